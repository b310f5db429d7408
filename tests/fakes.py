"""In-memory stand-ins for the database and capability adapters.

The document repository applies the same guards as the SQL statements in
DocumentsRepository, so orchestrator behaviour can be checked without a
database.
"""

import threading
import uuid
from dataclasses import replace
from typing import Any

from taxbinder.classification.base import BaseClassifier
from taxbinder.classification.exceptions import ClassificationError
from taxbinder.classification.models import ClassificationResult, FormExtraction
from taxbinder.database.models import AuditEntry
from taxbinder.documents.exceptions import DocumentNotFoundError, InvalidTransitionError
from taxbinder.documents.models import Document, DocumentStatus, NewDocument, ProcessingResults
from taxbinder.documents.state_machine import RUNNABLE_STATUSES, can_transition
from taxbinder.ocr.base import BaseOcrEngine
from taxbinder.ocr.models import OcrPage, OcrResult
from taxbinder.pipeline.orchestrator import Orchestrator
from taxbinder.pipeline.steps import (
    CheckSourceStep,
    ClassifyStep,
    ExtractFormFieldsStep,
    MarkErrorStep,
    MarkProcessingStep,
    OcrStep,
    PersistResultsStep,
    RecordAuditStep,
)
from taxbinder.retry import RetryPolicy
from taxbinder.storage.base import BaseBlobStore
from taxbinder.storage.exceptions import BlobNotFoundError

ORG_A = "00000000-0000-0000-0000-00000000000a"
ORG_B = "00000000-0000-0000-0000-00000000000b"
CLIENT_ID = "00000000-0000-0000-0000-0000000000c1"

NO_WAIT_RETRY = RetryPolicy(attempts=3, initial_wait_seconds=0, max_wait_seconds=0)


class InMemoryDocumentsRepository:
    def __init__(self) -> None:
        self._rows: dict[tuple[str, str], Document] = {}
        self._lock = threading.Lock()
        self.transitions: list[tuple[str, DocumentStatus, DocumentStatus, bool]] = []

    def add(self, document: Document) -> Document:
        self._rows[(document.organization_id, document.id)] = document
        return document

    def get(self, document_id: str, organization_id: str) -> Document:
        return self._rows[(organization_id, document_id)]

    def _move(self, key: tuple[str, str], target: DocumentStatus, *, reprocess: bool = False, **changes: Any) -> Document:
        current = self._rows[key]
        assert can_transition(current.status, target, reprocess=reprocess), (current.status, target)
        self.transitions.append((key[1], current.status, target, reprocess))
        updated = replace(current, status=target, **changes)
        self._rows[key] = updated
        return updated

    def find_by_id(self, document_id: str, organization_id: str) -> Document:
        document = self._rows.get((organization_id, document_id))
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return document

    def create(self, document: NewDocument) -> Document:
        created = Document(
            id=str(uuid.uuid4()),
            organization_id=document.organization_id,
            client_id=document.client_id,
            file_location=document.file_location,
            file_name=document.file_name,
            file_size=document.file_size,
            mime_type=document.mime_type,
            status=DocumentStatus.PENDING_OCR,
            category=document.category,
            subcategory=document.subcategory,
            tax_year=document.tax_year,
            uploaded_by=document.uploaded_by,
        )
        return self.add(created)

    def mark_processing(self, document_id: str, organization_id: str, run_id: str) -> Document | None:
        with self._lock:
            key = (organization_id, document_id)
            document = self.find_by_id(document_id, organization_id)
            if document.status not in RUNNABLE_STATUSES:
                return None
            return self._move(key, DocumentStatus.PROCESSING, processing_run_id=run_id)

    def save_results(
        self,
        document_id: str,
        organization_id: str,
        run_id: str,
        results: ProcessingResults,
    ) -> bool:
        with self._lock:
            key = (organization_id, document_id)
            document = self._rows.get(key)
            if (
                document is None
                or document.status != DocumentStatus.PROCESSING
                or document.processing_run_id != run_id
            ):
                return False
            extracted = document.extracted_data
            if results.extracted_data:
                extracted = {**(extracted or {}), **results.extracted_data}
            self._move(
                key,
                DocumentStatus.PENDING_REVIEW,
                ocr_text=results.ocr_text if results.ocr_text is not None else document.ocr_text,
                category=results.category if results.category is not None else document.category,
                subcategory=(
                    results.subcategory if results.subcategory is not None else document.subcategory
                ),
                tax_year=results.tax_year if results.tax_year is not None else document.tax_year,
                extracted_data=extracted,
                processing_run_id=None,
            )
            return True

    def mark_error(self, document_id: str, organization_id: str, run_id: str) -> bool:
        with self._lock:
            key = (organization_id, document_id)
            document = self._rows.get(key)
            if (
                document is None
                or document.status != DocumentStatus.PROCESSING
                or document.processing_run_id != run_id
            ):
                return False
            self._move(key, DocumentStatus.ERROR, processing_run_id=None)
            return True

    def rewind_for_reprocess(self, document_ids: list[str], organization_id: str) -> list[str]:
        with self._lock:
            rewound = []
            for document_id in document_ids:
                key = (organization_id, document_id)
                if key in self._rows:
                    self._move(key, DocumentStatus.PENDING_OCR, reprocess=True, processing_run_id=None)
                    rewound.append(document_id)
            return rewound

    def record_review(
        self,
        document_id: str,
        organization_id: str,
        *,
        status: DocumentStatus,
        verifier_id: str,
        category: str | None = None,
        subcategory: str | None = None,
    ) -> Document:
        with self._lock:
            document = self.find_by_id(document_id, organization_id)
            if document.status != DocumentStatus.PENDING_REVIEW:
                raise InvalidTransitionError(f"Document {document_id} is not awaiting review")
            return self._move(
                (organization_id, document_id),
                status,
                verified_by=verifier_id,
                category=category if category is not None else document.category,
                subcategory=subcategory if subcategory is not None else document.subcategory,
            )

    def delete(self, document_id: str, organization_id: str) -> Document:
        document = self.find_by_id(document_id, organization_id)
        del self._rows[(organization_id, document_id)]
        return document


class InMemoryAuditLogRepository:
    def __init__(self, fail: bool = False) -> None:
        self.entries: list[AuditEntry] = []
        self._fail = fail

    def append(self, entry: AuditEntry) -> None:
        if self._fail:
            raise RuntimeError("audit_logs unavailable")
        self.entries.append(entry)


class InMemoryBlobStore(BaseBlobStore):
    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.signed: list[str] = []
        self.deleted: list[str] = []

    def put(self, location: str, data: bytes, content_type: str) -> str:
        self.blobs[location] = data
        return location

    def signed_url(self, location: str, ttl_seconds: int) -> str:
        if location not in self.blobs:
            raise BlobNotFoundError(f"Blob not found: {location}")
        url = f"memory://{location}?ttl={ttl_seconds}&n={len(self.signed)}"
        self.signed.append(url)
        return url

    def exists(self, location: str) -> bool:
        return location in self.blobs

    def delete(self, location: str) -> None:
        self.deleted.append(location)
        self.blobs.pop(location, None)


class FakeOcrEngine(BaseOcrEngine):
    """Returns a fixed text; ``errors`` are raised, in order, before succeeding."""

    def __init__(
        self,
        text: str = "Form W-2 Wage and Tax Statement 2024",
        *,
        configured: bool = True,
        errors: list[Exception] | None = None,
    ) -> None:
        self.text = text
        self.configured = configured
        self.errors = list(errors or [])
        self.urls: list[str] = []

    def is_configured(self) -> bool:
        return self.configured

    def analyze(self, document_url: str) -> OcrResult:
        self.urls.append(document_url)
        if self.errors:
            raise self.errors.pop(0)
        return OcrResult(text=self.text, pages=[OcrPage(page_number=1, text=self.text)])


class FakeClassifier(BaseClassifier):
    def __init__(
        self,
        result: ClassificationResult | None = None,
        *,
        configured: bool = True,
        error: ClassificationError | None = None,
        extraction: FormExtraction | None = None,
        extraction_error: ClassificationError | None = None,
    ) -> None:
        self.result = result
        self.configured = configured
        self.error = error
        self.extraction = extraction
        self.extraction_error = extraction_error
        self.classify_calls: list[str] = []
        self.extract_calls: list[str] = []

    def is_configured(self) -> bool:
        return self.configured

    def classify(self, text: str) -> ClassificationResult:
        self.classify_calls.append(text)
        if self.error is not None:
            raise self.error
        assert self.result is not None
        return self.result

    def extract_form_fields(self, text: str, form_type: str) -> FormExtraction:
        self.extract_calls.append(form_type)
        if self.extraction_error is not None:
            raise self.extraction_error
        return self.extraction or FormExtraction(form_type=form_type)


def make_document(
    organization_id: str = ORG_A,
    *,
    document_id: str | None = None,
    status: DocumentStatus = DocumentStatus.PENDING_OCR,
    **fields: Any,
) -> Document:
    document_id = document_id or str(uuid.uuid4())
    defaults: dict[str, Any] = {
        "client_id": CLIENT_ID,
        "file_location": f"{organization_id}/{CLIENT_ID}/{document_id}.pdf",
        "file_name": "w2.pdf",
        "mime_type": "application/pdf",
    }
    defaults.update(fields)
    return Document(id=document_id, organization_id=organization_id, status=status, **defaults)


def make_orchestrator(
    doc_repo: InMemoryDocumentsRepository,
    blob_store: InMemoryBlobStore,
    ocr_engine: BaseOcrEngine,
    classifier: BaseClassifier,
    audit_repo: InMemoryAuditLogRepository | None = None,
) -> Orchestrator:
    audit_repo = audit_repo if audit_repo is not None else InMemoryAuditLogRepository()
    return Orchestrator(
        steps=[
            MarkProcessingStep(doc_repo),  # type: ignore[arg-type]
            CheckSourceStep(blob_store),
            OcrStep(ocr_engine, blob_store, 3600, NO_WAIT_RETRY),
            ClassifyStep(classifier),
            ExtractFormFieldsStep(classifier),
            PersistResultsStep(doc_repo),  # type: ignore[arg-type]
            RecordAuditStep(audit_repo),  # type: ignore[arg-type]
        ],
        failed_step=MarkErrorStep(doc_repo),  # type: ignore[arg-type]
        bulk_concurrency=3,
    )
