from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import PurePosixPath

from taxbinder.database.models import AuditEntry
from taxbinder.database.repositories.audit_log_repository import AuditLogRepository
from taxbinder.database.repositories.documents_repository import DocumentsRepository
from taxbinder.dispatch.dispatcher import DispatchResult, Dispatcher
from taxbinder.dispatch.triggers import DocumentUploaded
from taxbinder.documents.audit import record_audit_entry
from taxbinder.documents.models import Document, NewDocument
from taxbinder.logging.logger import Log
from taxbinder.storage.base import BaseBlobStore


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class UploadReceipt:
    document: Document
    dispatch: DispatchResult


class UploadIntake:
    """Stores an uploaded file, records its Document and schedules processing."""

    def __init__(
        self,
        blob_store: BaseBlobStore,
        doc_repo: DocumentsRepository,
        audit_repo: AuditLogRepository,
        dispatcher: Dispatcher,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._blob_store = blob_store
        self._doc_repo = doc_repo
        self._audit_repo = audit_repo
        self._dispatcher = dispatcher
        self._clock = clock

    def register_upload(
        self,
        *,
        organization_id: str,
        client_id: str,
        file_name: str,
        mime_type: str,
        data: bytes,
        uploaded_by: str | None = None,
        category: str | None = None,
        subcategory: str | None = None,
        tax_year: int | None = None,
    ) -> UploadReceipt:
        """Register an upload.

        The Document is committed in pending_ocr before the trigger is
        dispatched, so a dispatch failure still leaves a reprocessable record.

        Raises:
            ValueError: if the file name or content is empty.
            StorageError: if the blob cannot be stored.
        """
        safe_name = PurePosixPath(file_name.replace("\\", "/")).name
        if safe_name in ("", ".."):
            raise ValueError("file_name is required")
        if not data:
            raise ValueError("Uploaded file is empty")

        now = self._clock()
        location = f"{organization_id}/{client_id}/{int(now.timestamp() * 1000)}-{safe_name}"
        self._blob_store.put(location, data, mime_type)

        try:
            document = self._doc_repo.create(
                NewDocument(
                    organization_id=organization_id,
                    client_id=client_id,
                    file_location=location,
                    file_name=safe_name,
                    file_size=len(data),
                    mime_type=mime_type,
                    uploaded_by=uploaded_by,
                    category=category or None,
                    subcategory=subcategory or None,
                    tax_year=tax_year if tax_year is not None else now.year,
                )
            )
        except Exception:
            Log.error("Failed to create document record, removing stored file", location=location)
            self._blob_store.delete(location)
            raise

        record_audit_entry(
            self._audit_repo,
            AuditEntry(
                organization_id=organization_id,
                user_id=uploaded_by,
                action="upload",
                resource_type="document",
                resource_id=document.id,
                details={"file_name": safe_name, "client_id": client_id, "file_size": len(data)},
            ),
        )

        result = self._dispatcher.dispatch(
            DocumentUploaded(
                document_id=document.id,
                organization_id=organization_id,
                file_location=location,
                file_name=safe_name,
                mime_type=mime_type,
            )
        )
        return UploadReceipt(document=document, dispatch=result)
