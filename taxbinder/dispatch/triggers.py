"""Trigger payloads written to the pipeline_jobs outbox."""

from dataclasses import dataclass, field
from typing import Any

from taxbinder.database.models import JobRecord

DOCUMENT_UPLOADED = "document.uploaded"
DOCUMENT_REPROCESS = "document.reprocess"
DOCUMENTS_BULK_REPROCESS = "documents.bulkReprocess"


@dataclass(frozen=True)
class DocumentUploaded:
    document_id: str
    organization_id: str
    file_location: str
    file_name: str
    mime_type: str

    kind = DOCUMENT_UPLOADED

    def payload(self) -> dict[str, Any]:
        return {
            "document_id": self.document_id,
            "file_location": self.file_location,
            "file_name": self.file_name,
            "mime_type": self.mime_type,
        }


@dataclass(frozen=True)
class DocumentReprocess:
    document_id: str
    organization_id: str

    kind = DOCUMENT_REPROCESS

    def payload(self) -> dict[str, Any]:
        return {"document_id": self.document_id}


@dataclass(frozen=True)
class BulkReprocess:
    organization_id: str
    document_ids: list[str] = field(default_factory=list)

    kind = DOCUMENTS_BULK_REPROCESS
    document_id = None

    def payload(self) -> dict[str, Any]:
        return {"document_ids": list(self.document_ids)}


Trigger = DocumentUploaded | DocumentReprocess | BulkReprocess


def trigger_from_job(job: JobRecord) -> Trigger:
    """Rebuild the trigger a job was enqueued for.

    Raises:
        ValueError: if the job kind is unknown or the payload is incomplete.
    """
    payload = job.payload
    if job.kind == DOCUMENT_UPLOADED:
        return DocumentUploaded(
            document_id=_document_id(job),
            organization_id=job.organization_id,
            file_location=payload.get("file_location", ""),
            file_name=payload.get("file_name", ""),
            mime_type=payload.get("mime_type", ""),
        )
    if job.kind == DOCUMENT_REPROCESS:
        return DocumentReprocess(document_id=_document_id(job), organization_id=job.organization_id)
    if job.kind == DOCUMENTS_BULK_REPROCESS:
        document_ids = payload.get("document_ids")
        if not isinstance(document_ids, list):
            raise ValueError(f"Job {job.id} has no document_ids list")
        return BulkReprocess(
            organization_id=job.organization_id,
            document_ids=[str(document_id) for document_id in document_ids],
        )
    raise ValueError(f"Unknown job kind '{job.kind}'")


def _document_id(job: JobRecord) -> str:
    document_id = job.document_id or job.payload.get("document_id")
    if not document_id:
        raise ValueError(f"Job {job.id} has no document id")
    return str(document_id)
