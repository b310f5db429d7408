"""Builds domain results from parsed provider JSON.

Providers that ignore the requested schema still produce usable results:
camelCase keys are accepted, unknown categories fall back to
other/Unclassified and malformed extracted fields are dropped.
"""

from typing import Any

from taxbinder.classification.exceptions import ClassificationValidationError
from taxbinder.classification.models import ClassificationResult, ExtractedField, FormExtraction
from taxbinder.documents.categories import (
    FALLBACK_CATEGORY,
    FALLBACK_SUBCATEGORY,
    parse_category,
)

_MAX_EXTRACTED_FIELDS = 200
_MIN_TAX_YEAR = 1900
_MAX_TAX_YEAR = 2100


def validate_and_build(data: dict[str, Any]) -> ClassificationResult:
    """Build a ClassificationResult whose category is always in the enumeration.

    Raises:
        ClassificationValidationError: if 'extracted_fields' is present but not a list.
    """
    category = parse_category(data.get("category"))
    subcategory = _build_subcategory(data.get("subcategory"))
    if category is None:
        category = FALLBACK_CATEGORY
        subcategory = FALLBACK_SUBCATEGORY

    return ClassificationResult(
        category=category,
        subcategory=subcategory,
        confidence=_build_confidence(data.get("confidence")),
        tax_year=_build_tax_year(_first_present(data, "tax_year", "taxYear")),
        extracted_fields=_build_fields(_first_present(data, "extracted_fields", "extractedFields")),
        summary=data.get("summary") if isinstance(data.get("summary"), str) else "",
    )


def build_form_extraction(data: dict[str, Any], form_type: str) -> FormExtraction:
    """Flatten an extraction response into string values plus overall confidence."""
    confidence = data.get("confidence")
    values: dict[str, str] = {}
    for key, value in data.items():
        if key == "confidence" or value is None:
            continue
        if isinstance(value, (dict, list)):
            raise ClassificationValidationError(
                f"Form field '{key}' must be a scalar value"
            )
        values[str(key)] = str(value)
    return FormExtraction(
        form_type=form_type,
        values=values,
        confidence=_build_confidence(confidence) if confidence is not None else None,
    )


def _first_present(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _build_subcategory(raw: Any) -> str:
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return FALLBACK_SUBCATEGORY


def _build_confidence(raw: Any) -> float:
    if isinstance(raw, bool):
        return 0.0
    if isinstance(raw, str):
        try:
            raw = float(raw)
        except ValueError:
            return 0.0
    if not isinstance(raw, (int, float)):
        return 0.0
    return max(0.0, min(100.0, float(raw)))


def _build_tax_year(raw: Any) -> int | None:
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, str):
        if not raw.strip().isdigit():
            return None
        raw = int(raw.strip())
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    if not isinstance(raw, int):
        return None
    if not _MIN_TAX_YEAR <= raw <= _MAX_TAX_YEAR:
        return None
    return raw


def _build_fields(raw: Any) -> list[ExtractedField]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ClassificationValidationError("'extracted_fields' must be a list")
    fields: list[ExtractedField] = []
    for item in raw[:_MAX_EXTRACTED_FIELDS]:
        if not isinstance(item, dict):
            continue
        name = _first_present(item, "field_name", "fieldName")
        if not isinstance(name, str) or not name.strip():
            continue
        value = item.get("value")
        fields.append(
            ExtractedField(
                field_name=name.strip(),
                value="" if value is None else str(value),
                confidence=_build_confidence(item.get("confidence")),
            )
        )
    return fields
