import uuid
from dataclasses import dataclass, field

from taxbinder.database.models import AuditEntry
from taxbinder.database.repositories.audit_log_repository import AuditLogRepository
from taxbinder.database.repositories.documents_repository import DocumentsRepository
from taxbinder.dispatch.dispatcher import DispatchResult, Dispatcher
from taxbinder.dispatch.triggers import BulkReprocess, DocumentReprocess
from taxbinder.documents.audit import record_audit_entry
from taxbinder.documents.exceptions import DocumentNotFoundError
from taxbinder.logging.logger import Log


@dataclass(frozen=True)
class BulkReprocessResult:
    dispatch: DispatchResult
    document_ids: list[str] = field(default_factory=list)
    missing_ids: list[str] = field(default_factory=list)


def _is_document_id(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


class ReprocessService:
    """Rewinds documents to pending_ocr and schedules a fresh run.

    Stored outputs are left in place; the new run merges over them.
    """

    def __init__(
        self,
        doc_repo: DocumentsRepository,
        audit_repo: AuditLogRepository,
        dispatcher: Dispatcher,
    ) -> None:
        self._doc_repo = doc_repo
        self._audit_repo = audit_repo
        self._dispatcher = dispatcher

    def reprocess(
        self,
        document_id: str,
        organization_id: str,
        requested_by: str | None = None,
    ) -> DispatchResult:
        """Reprocess one document.

        Raises:
            DocumentNotFoundError: if the organization has no such document.
        """
        if not _is_document_id(document_id):
            raise DocumentNotFoundError(f"Document {document_id} not found")
        rewound = self._doc_repo.rewind_for_reprocess([document_id], organization_id)
        if not rewound:
            raise DocumentNotFoundError(f"Document {document_id} not found")

        result = self._dispatcher.dispatch(
            DocumentReprocess(document_id=document_id, organization_id=organization_id)
        )
        record_audit_entry(
            self._audit_repo,
            AuditEntry(
                organization_id=organization_id,
                user_id=requested_by,
                action="reprocess",
                resource_type="document",
                resource_id=document_id,
                details={"queued": result.queued},
            ),
        )
        return result

    def bulk_reprocess(
        self,
        document_ids: list[str],
        organization_id: str,
        requested_by: str | None = None,
    ) -> BulkReprocessResult:
        """Reprocess every listed document the organization owns.

        Ids from other organizations, unknown ids and malformed ids are reported
        as missing.

        Raises:
            ValueError: if no document ids are given.
        """
        unique_ids = list(
            dict.fromkeys(
                document_id.strip().lower() for document_id in document_ids if document_id.strip()
            )
        )
        if not unique_ids:
            raise ValueError("At least one document id is required")

        valid_ids = [document_id for document_id in unique_ids if _is_document_id(document_id)]
        rewound = (
            self._doc_repo.rewind_for_reprocess(valid_ids, organization_id) if valid_ids else []
        )
        rewound_set = set(rewound)
        missing = [document_id for document_id in unique_ids if document_id not in rewound_set]
        if missing:
            Log.warning(f"Skipping {len(missing)} unknown documents", organization_id=organization_id)
        if not rewound:
            return BulkReprocessResult(
                dispatch=DispatchResult(queued=False, error="no documents to reprocess"),
                missing_ids=missing,
            )

        ordered = [document_id for document_id in unique_ids if document_id in rewound_set]
        result = self._dispatcher.dispatch(
            BulkReprocess(organization_id=organization_id, document_ids=ordered)
        )
        for document_id in ordered:
            record_audit_entry(
                self._audit_repo,
                AuditEntry(
                    organization_id=organization_id,
                    user_id=requested_by,
                    action="reprocess",
                    resource_type="document",
                    resource_id=document_id,
                    details={"bulk": True, "queued": result.queued},
                ),
            )
        return BulkReprocessResult(dispatch=result, document_ids=ordered, missing_ids=missing)
