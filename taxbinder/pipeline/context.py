from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from taxbinder.classification.models import ClassificationResult, ExtractedField, FormExtraction
from taxbinder.documents.models import Document
from taxbinder.ocr.models import OcrResult
from taxbinder.pipeline.outcome import RunOutcome, StepOutcome


@dataclass(frozen=True)
class RunRequest:
    """One trigger's request to run the pipeline for one document."""

    document_id: str
    organization_id: str
    run_id: str
    cause: str


@dataclass(slots=True)
class PipelineContext:
    request: RunRequest
    document: Document | None = None
    ocr_result: OcrResult | None = None
    classification: ClassificationResult | None = None
    form_extraction: FormExtraction | None = None
    extracted_fields: list[ExtractedField] | None = None
    outcomes: list[StepOutcome] = field(default_factory=list)
    halted: RunOutcome | None = None
    error_message: str = ""

    def record(self, outcome: StepOutcome) -> None:
        self.outcomes.append(outcome)

    def halt(self, outcome: RunOutcome) -> None:
        self.halted = outcome


class PipelineStep(ABC):
    name: str = "step"

    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
