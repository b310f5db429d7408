from dataclasses import asdict, dataclass, field
from typing import Any

from taxbinder.documents.categories import DocumentCategory


@dataclass(frozen=True)
class ExtractedField:
    """A single field read from a document; confidence is 0-100."""

    field_name: str
    value: str
    confidence: float = 0.0


@dataclass(frozen=True)
class ClassificationResult:
    """Output of the classify capability."""

    category: DocumentCategory
    subcategory: str
    confidence: float = 0.0
    tax_year: int | None = None
    extracted_fields: list[ExtractedField] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["category"] = self.category.value
        return data


@dataclass(frozen=True)
class FormExtraction:
    """Output of the extract-form-fields capability for one known form type."""

    form_type: str
    values: dict[str, str] = field(default_factory=dict)
    confidence: float | None = None

    def as_fields(self) -> list[ExtractedField]:
        confidence = self.confidence if self.confidence is not None else 0.0
        return [
            ExtractedField(field_name=name, value=value, confidence=confidence)
            for name, value in self.values.items()
        ]
