from collections.abc import Callable
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any

from taxbinder.classification.base import BaseClassifier
from taxbinder.classification.exceptions import ClassificationError
from taxbinder.classification.forms import canonical_form_type
from taxbinder.database.models import AuditEntry
from taxbinder.database.repositories.audit_log_repository import AuditLogRepository
from taxbinder.database.repositories.documents_repository import DocumentsRepository
from taxbinder.documents.audit import record_audit_entry
from taxbinder.documents.exceptions import DocumentNotFoundError
from taxbinder.documents.models import Document, ProcessingResults
from taxbinder.logging.logger import Log
from taxbinder.ocr.base import BaseOcrEngine
from taxbinder.ocr.exceptions import OcrError, OcrNetworkError, UnreadableDocumentError
from taxbinder.ocr.models import OcrResult
from taxbinder.pipeline.context import PipelineContext, PipelineStep
from taxbinder.pipeline.exceptions import DocumentUnreadableError
from taxbinder.pipeline.outcome import RunOutcome, StepOutcome
from taxbinder.retry import RetryPolicy, call_with_retry
from taxbinder.storage.base import BaseBlobStore
from taxbinder.storage.exceptions import BlobNotFoundError, StorageError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_document(context: PipelineContext) -> Document:
    if context.document is None:
        raise ValueError("PipelineContext.document must be set before this step")
    return context.document


class MarkProcessingStep(PipelineStep):
    name = "mark_processing"

    def __init__(self, doc_repo: DocumentsRepository) -> None:
        self._doc_repo = doc_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        request = context.request
        try:
            document = self._doc_repo.mark_processing(
                request.document_id, request.organization_id, request.run_id
            )
        except DocumentNotFoundError:
            Log.warning(
                "Document not found, nothing to process",
                document_id=request.document_id,
                organization_id=request.organization_id,
            )
            context.record(StepOutcome.skipped(self.name, "document not found"))
            context.halt(RunOutcome.NOT_FOUND)
            return context

        if document is None:
            Log.info(
                "Document is not awaiting processing, ignoring trigger",
                document_id=request.document_id,
                cause=request.cause,
            )
            context.record(StepOutcome.skipped(self.name, "document not runnable"))
            context.halt(RunOutcome.STALE)
            return context

        context.document = document
        context.record(StepOutcome.succeeded(self.name))
        Log.info("Document marked as processing", document_id=document.id, run_id=request.run_id)
        return context


class CheckSourceStep(PipelineStep):
    """Fail the run early when the stored blob is gone."""

    name = "check_source"

    def __init__(self, blob_store: BaseBlobStore) -> None:
        self._blob_store = blob_store

    def run(self, context: PipelineContext) -> PipelineContext:
        document = _require_document(context)
        if not self._blob_store.exists(document.file_location):
            raise DocumentUnreadableError(f"No file stored at {document.file_location}")
        context.record(StepOutcome.succeeded(self.name))
        return context


class OcrStep(PipelineStep):
    name = "ocr"

    def __init__(
        self,
        ocr_engine: BaseOcrEngine,
        blob_store: BaseBlobStore,
        signed_url_ttl_seconds: int,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._ocr_engine = ocr_engine
        self._blob_store = blob_store
        self._signed_url_ttl_seconds = signed_url_ttl_seconds
        self._retry_policy = retry_policy or RetryPolicy()

    def run(self, context: PipelineContext) -> PipelineContext:
        document = _require_document(context)
        if not self._ocr_engine.is_configured():
            context.record(StepOutcome.skipped(self.name, "OCR provider not configured"))
            Log.info("OCR skipped, provider not configured", document_id=document.id)
            return context

        try:
            result = call_with_retry(
                lambda: self._analyze(document.file_location),
                retry_on=(OcrNetworkError, StorageError),
                policy=self._retry_policy,
                description=f"OCR for document {document.id}",
            )
        except UnreadableDocumentError as exc:
            raise DocumentUnreadableError(str(exc)) from exc
        except (OcrError, StorageError) as exc:
            context.record(StepOutcome.failed(self.name, str(exc)))
            Log.warning(f"OCR failed: {exc}", document_id=document.id)
            return context

        context.ocr_result = result
        context.record(StepOutcome.succeeded(self.name, f"{len(result.pages)} pages"))
        Log.info(
            f"OCR extracted {len(result.text)} chars from {len(result.pages)} pages",
            document_id=document.id,
        )
        return context

    def _analyze(self, location: str) -> OcrResult:
        # Signed URLs expire; every attempt mints its own.
        try:
            url = self._blob_store.signed_url(location, self._signed_url_ttl_seconds)
        except BlobNotFoundError as exc:
            raise DocumentUnreadableError(f"No file stored at {location}") from exc
        return self._ocr_engine.analyze(url)


class ClassifyStep(PipelineStep):
    name = "classify"

    def __init__(self, classifier: BaseClassifier) -> None:
        self._classifier = classifier

    def run(self, context: PipelineContext) -> PipelineContext:
        document = _require_document(context)
        if not self._classifier.is_configured():
            context.record(StepOutcome.skipped(self.name, "classification provider not configured"))
            return context
        if context.ocr_result is None or not context.ocr_result.text.strip():
            context.record(StepOutcome.skipped(self.name, "no OCR text"))
            return context

        try:
            context.classification = self._classifier.classify(context.ocr_result.text)
        except ClassificationError as exc:
            context.record(StepOutcome.failed(self.name, str(exc)))
            Log.warning(f"Classification failed: {exc}", document_id=document.id)
            return context

        context.record(StepOutcome.succeeded(self.name))
        return context


class ExtractFormFieldsStep(PipelineStep):
    name = "extract_form_fields"

    def __init__(self, classifier: BaseClassifier) -> None:
        self._classifier = classifier

    def run(self, context: PipelineContext) -> PipelineContext:
        document = _require_document(context)
        classification = context.classification
        if classification is None:
            context.record(StepOutcome.skipped(self.name, "no classification"))
            return context

        context.extracted_fields = list(classification.extracted_fields)
        form_type = canonical_form_type(classification.subcategory)
        if form_type is None or context.ocr_result is None:
            context.record(
                StepOutcome.skipped(self.name, "not a structured form, using classification fields")
            )
            return context

        try:
            extraction = self._classifier.extract_form_fields(context.ocr_result.text, form_type)
        except ClassificationError as exc:
            context.record(StepOutcome.failed(self.name, str(exc)))
            Log.warning(
                f"{form_type} field extraction failed, using classification fields: {exc}",
                document_id=document.id,
            )
            return context

        context.form_extraction = extraction
        if extraction.values:
            context.extracted_fields = extraction.as_fields()
        context.record(StepOutcome.succeeded(self.name, form_type))
        return context


class PersistResultsStep(PipelineStep):
    name = "persist_results"

    def __init__(
        self,
        doc_repo: DocumentsRepository,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._doc_repo = doc_repo
        self._clock = clock

    def run(self, context: PipelineContext) -> PipelineContext:
        document = _require_document(context)
        results = build_processing_results(context, self._clock())
        saved = self._doc_repo.save_results(
            document.id,
            document.organization_id,
            context.request.run_id,
            results,
        )
        if not saved:
            Log.warning(
                "Run no longer owns the document, results discarded",
                document_id=document.id,
                run_id=context.request.run_id,
            )
            context.record(StepOutcome.skipped(self.name, "superseded by a later run"))
            context.halt(RunOutcome.SUPERSEDED)
            return context

        context.record(StepOutcome.succeeded(self.name))
        Log.info("Document moved to pending_review", document_id=document.id)
        return context


class RecordAuditStep(PipelineStep):
    name = "record_audit"

    def __init__(self, audit_repo: AuditLogRepository) -> None:
        self._audit_repo = audit_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        document = _require_document(context)
        classification = context.classification
        entry = AuditEntry(
            organization_id=document.organization_id,
            action="process",
            resource_type="document",
            resource_id=document.id,
            details={
                "file_name": document.file_name,
                "category": classification.category.value if classification else None,
                "subcategory": classification.subcategory if classification else None,
                "confidence": classification.confidence if classification else None,
                "ocr_success": context.ocr_result is not None,
                "classification_success": classification is not None,
                "cause": context.request.cause,
            },
        )
        if not record_audit_entry(self._audit_repo, entry):
            # The document is already saved; a missing audit row does not fail the run.
            context.record(StepOutcome.failed(self.name, "audit entry not written"))
            return context

        context.record(StepOutcome.succeeded(self.name))
        return context


class MarkErrorStep(PipelineStep):
    """Run when the document itself cannot be read."""

    name = "mark_error"

    def __init__(self, doc_repo: DocumentsRepository) -> None:
        self._doc_repo = doc_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        request = context.request
        marked = self._doc_repo.mark_error(
            request.document_id, request.organization_id, request.run_id
        )
        if not marked:
            Log.warning(
                "Run no longer owns the document, error status not applied",
                document_id=request.document_id,
            )
            context.halt(RunOutcome.SUPERSEDED)
            context.record(StepOutcome.skipped(self.name, "superseded by a later run"))
            return context

        context.halt(RunOutcome.ERROR)
        context.record(StepOutcome.succeeded(self.name))
        Log.error(
            f"Document marked as error: {context.error_message}",
            document_id=request.document_id,
        )
        return context


def _keeps_previous_form_data(context: PipelineContext, subcategory: str | None) -> bool:
    """True when extraction failed for the same form the stored values describe."""
    form_type = canonical_form_type(subcategory)
    if form_type is None or context.document is None:
        return False
    previous = (context.document.extracted_data or {}).get("form_data")
    return isinstance(previous, dict) and previous.get("form_type") == form_type


def build_processing_results(context: PipelineContext, processed_at: datetime) -> ProcessingResults:
    """Collect what this run produced; absent outputs stay None."""
    ocr_result = context.ocr_result
    ocr_text = ocr_result.text if ocr_result is not None and ocr_result.text.strip() else None

    classification = context.classification
    if classification is None:
        return ProcessingResults(ocr_text=ocr_text)

    classification_data = classification.to_dict()
    classification_data.pop("extracted_fields", None)
    extracted_data: dict[str, Any] = {
        "classification": classification_data,
        "extracted_fields": [asdict(f) for f in context.extracted_fields or []],
        "processed_at": processed_at.isoformat(),
    }
    if ocr_result is not None:
        extracted_data["ocr_metadata"] = ocr_result.metadata()
    if context.form_extraction is not None:
        extracted_data["form_data"] = {
            "form_type": context.form_extraction.form_type,
            "values": dict(context.form_extraction.values),
            "confidence": context.form_extraction.confidence,
        }
    elif not _keeps_previous_form_data(context, classification.subcategory):
        # Form values belong to the classification that produced them.
        extracted_data["form_data"] = None

    return ProcessingResults(
        ocr_text=ocr_text,
        category=classification.category.value,
        subcategory=classification.subcategory,
        tax_year=classification.tax_year,
        extracted_data=extracted_data,
    )
