from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class DocumentStatus(str, Enum):
    PENDING_UPLOAD = "pending_upload"
    PENDING_OCR = "pending_ocr"
    PROCESSING = "processing"
    PENDING_REVIEW = "pending_review"
    VERIFIED = "verified"
    REJECTED = "rejected"
    ERROR = "error"


@dataclass(frozen=True)
class Document:
    """Domain model for a row of the documents table."""

    id: str
    organization_id: str
    client_id: str
    file_location: str
    file_name: str
    mime_type: str
    status: DocumentStatus
    file_size: int = 0
    category: str | None = None
    subcategory: str | None = None
    tax_year: int | None = None
    ocr_text: str | None = None
    extracted_data: dict[str, Any] | None = None
    uploaded_by: str | None = None
    verified_by: str | None = None
    processing_run_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class NewDocument:
    """Values needed to insert a freshly uploaded document."""

    organization_id: str
    client_id: str
    file_location: str
    file_name: str
    file_size: int
    mime_type: str
    uploaded_by: str | None = None
    category: str | None = None
    subcategory: str | None = None
    tax_year: int | None = None


@dataclass(frozen=True)
class ProcessingResults:
    """Whatever subset of outputs one pipeline run produced.

    None means "this run has nothing to say about the field"; persisting it
    leaves the stored value untouched.
    """

    ocr_text: str | None = None
    category: str | None = None
    subcategory: str | None = None
    tax_year: int | None = None
    extracted_data: dict[str, Any] | None = None
