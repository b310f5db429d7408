from taxbinder.database.models import AuditEntry
from taxbinder.database.repositories.audit_log_repository import AuditLogRepository
from taxbinder.database.repositories.documents_repository import DocumentsRepository
from taxbinder.documents.audit import record_audit_entry
from taxbinder.documents.categories import parse_category
from taxbinder.documents.models import Document, DocumentStatus
from taxbinder.documents.state_machine import ensure_transition
from taxbinder.logging.logger import Log
from taxbinder.storage.base import BaseBlobStore
from taxbinder.storage.exceptions import StorageError

VIEW_URL_TTL_SECONDS = 3600


class ReviewService:
    """Human review actions on processed documents."""

    def __init__(
        self,
        doc_repo: DocumentsRepository,
        audit_repo: AuditLogRepository,
        blob_store: BaseBlobStore,
    ) -> None:
        self._doc_repo = doc_repo
        self._audit_repo = audit_repo
        self._blob_store = blob_store

    def verify(
        self,
        document_id: str,
        organization_id: str,
        verifier_id: str,
        category: str | None = None,
        subcategory: str | None = None,
    ) -> Document:
        """Accept the pipeline's output, optionally correcting the category.

        Raises:
            ValueError: if ``category`` is not a known category.
            DocumentNotFoundError: if the organization has no such document.
            InvalidTransitionError: if the document is not awaiting review.
        """
        corrected = None
        if category is not None:
            parsed = parse_category(category)
            if parsed is None:
                raise ValueError(f"Unknown category '{category}'")
            corrected = parsed.value
        return self._review(
            document_id,
            organization_id,
            verifier_id,
            DocumentStatus.VERIFIED,
            category=corrected,
            subcategory=subcategory or None,
        )

    def reject(self, document_id: str, organization_id: str, verifier_id: str) -> Document:
        """Reject the document.

        Raises:
            DocumentNotFoundError: if the organization has no such document.
            InvalidTransitionError: if the document is not awaiting review.
        """
        return self._review(document_id, organization_id, verifier_id, DocumentStatus.REJECTED)

    def delete(self, document_id: str, organization_id: str, deleted_by: str | None = None) -> Document:
        """Delete the document row and its stored file.

        Raises:
            DocumentNotFoundError: if the organization has no such document.
        """
        document = self._doc_repo.delete(document_id, organization_id)
        try:
            self._blob_store.delete(document.file_location)
        except StorageError as exc:
            Log.warning(f"Failed to delete stored file: {exc}", document_id=document_id)

        record_audit_entry(
            self._audit_repo,
            AuditEntry(
                organization_id=organization_id,
                user_id=deleted_by,
                action="delete",
                resource_type="document",
                resource_id=document_id,
                details={"file_name": document.file_name},
            ),
        )
        return document

    def view_url(self, document_id: str, organization_id: str) -> str:
        """Mint a short-lived URL for viewing the stored file."""
        document = self._doc_repo.find_by_id(document_id, organization_id)
        return self._blob_store.signed_url(document.file_location, VIEW_URL_TTL_SECONDS)

    def _review(
        self,
        document_id: str,
        organization_id: str,
        verifier_id: str,
        status: DocumentStatus,
        category: str | None = None,
        subcategory: str | None = None,
    ) -> Document:
        current = self._doc_repo.find_by_id(document_id, organization_id)
        ensure_transition(current.status, status)
        document = self._doc_repo.record_review(
            document_id,
            organization_id,
            status=status,
            verifier_id=verifier_id,
            category=category,
            subcategory=subcategory,
        )
        record_audit_entry(
            self._audit_repo,
            AuditEntry(
                organization_id=organization_id,
                user_id=verifier_id,
                action="update",
                resource_type="document",
                resource_id=document_id,
                details={
                    "status": status.value,
                    "category": document.category,
                    "subcategory": document.subcategory,
                },
            ),
        )
        Log.info(f"Document {status.value}", document_id=document_id, verifier_id=verifier_id)
        return document
