from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from taxbinder.classification.base import BaseClassifier
from taxbinder.classification.factory import ClassifierFactory
from taxbinder.config.settings import Settings
from taxbinder.database.repositories.audit_log_repository import AuditLogRepository
from taxbinder.database.repositories.documents_repository import DocumentsRepository
from taxbinder.logging.logger import Log
from taxbinder.ocr.base import BaseOcrEngine
from taxbinder.ocr.factory import OcrEngineFactory
from taxbinder.pipeline.context import PipelineContext, PipelineStep, RunRequest
from taxbinder.pipeline.exceptions import DocumentUnreadableError
from taxbinder.pipeline.outcome import RunOutcome, StepOutcome
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
from taxbinder.storage.factory import BlobStoreFactory


@dataclass(frozen=True)
class RunReport:
    document_id: str
    run_id: str
    outcome: RunOutcome
    steps: list[StepOutcome] = field(default_factory=list)
    error_message: str = ""

    def step(self, name: str) -> StepOutcome | None:
        return next((outcome for outcome in self.steps if outcome.name == name), None)


@dataclass(frozen=True)
class BulkReport:
    """Per-document results of a bulk run; ``failures`` holds runs that raised."""

    reports: list[RunReport] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)


class Orchestrator:
    """Drives one document through the step sequence.

    Steps run in order until one halts the run. A DocumentUnreadableError hands
    the context to ``failed_step``; any other exception propagates so the
    caller can retry the whole run.
    """

    def __init__(
        self,
        steps: list[PipelineStep],
        failed_step: PipelineStep,
        bulk_concurrency: int = 4,
    ) -> None:
        self._steps = steps
        self._failed_step = failed_step
        self._bulk_concurrency = max(1, bulk_concurrency)

    def run(self, request: RunRequest) -> RunReport:
        Log.info(
            f"Starting {request.cause} run",
            document_id=request.document_id,
            run_id=request.run_id,
        )
        context = PipelineContext(request=request)
        try:
            for step in self._steps:
                context = step.run(context)
                if context.halted is not None:
                    break
        except DocumentUnreadableError as exc:
            context.error_message = str(exc)
            context.record(StepOutcome.failed("read_document", str(exc)))
            context = self._failed_step.run(context)

        outcome = context.halted or RunOutcome.COMPLETED
        Log.info(f"Run finished: {outcome.value}", document_id=request.document_id)
        return RunReport(
            document_id=request.document_id,
            run_id=request.run_id,
            outcome=outcome,
            steps=list(context.outcomes),
            error_message=context.error_message,
        )

    def run_bulk(self, requests: list[RunRequest]) -> BulkReport:
        """Run every request independently; one failing document never stops the rest."""
        reports: list[RunReport] = []
        failures: dict[str, str] = {}
        with ThreadPoolExecutor(
            max_workers=self._bulk_concurrency,
            thread_name_prefix="bulk",
        ) as executor:
            futures = {request.document_id: executor.submit(self.run, request) for request in requests}
            for document_id, future in futures.items():
                try:
                    reports.append(future.result())
                except Exception as exc:
                    Log.exception(f"Bulk run failed: {exc}", document_id=document_id)
                    failures[document_id] = str(exc)
        return BulkReport(reports=reports, failures=failures)


def build_orchestrator(
    settings: Settings,
    *,
    doc_repo: DocumentsRepository | None = None,
    audit_repo: AuditLogRepository | None = None,
    blob_store: BaseBlobStore | None = None,
    ocr_engine: BaseOcrEngine | None = None,
    classifier: BaseClassifier | None = None,
    local_root: Path | None = None,
) -> Orchestrator:
    """Build an Orchestrator with adapters chosen by settings."""
    doc_repo = doc_repo or DocumentsRepository()
    audit_repo = audit_repo or AuditLogRepository()
    blob_store = blob_store or BlobStoreFactory.create(settings, local_root=local_root)
    ocr_engine = ocr_engine or OcrEngineFactory.create(settings)
    classifier = classifier or ClassifierFactory.create(settings)
    retry_policy = RetryPolicy.from_settings(settings)
    return Orchestrator(
        steps=[
            MarkProcessingStep(doc_repo),
            CheckSourceStep(blob_store),
            OcrStep(ocr_engine, blob_store, settings.signed_url_ttl_seconds, retry_policy),
            ClassifyStep(classifier),
            ExtractFormFieldsStep(classifier),
            PersistResultsStep(doc_repo),
            RecordAuditStep(audit_repo),
        ],
        failed_step=MarkErrorStep(doc_repo),
        bulk_concurrency=settings.bulk_concurrency,
    )
