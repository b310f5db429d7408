"""AI-powered tax document classifier."""

import json
import re
from pathlib import Path

from taxbinder.classification.base import BaseClassifier
from taxbinder.classification.client_base import BaseClassificationClient
from taxbinder.classification.exceptions import (
    ClassificationNetworkError,
    ClassificationNotConfiguredError,
    ClassificationParseError,
)
from taxbinder.classification.forms import form_fields_hint
from taxbinder.classification.models import ClassificationResult, FormExtraction
from taxbinder.classification.prompt_loader import load_json_schema, load_prompt_template
from taxbinder.classification.validator import build_form_extraction, validate_and_build
from taxbinder.documents.categories import DOCUMENT_CATEGORIES
from taxbinder.logging.logger import Log
from taxbinder.retry import RetryPolicy, call_with_retry

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.DOTALL | re.IGNORECASE)
_TRUNCATION_MARKER = "\n...[truncated]"


class Classifier(BaseClassifier):
    """Classifies OCR text and extracts form fields through a chat completion client."""

    def __init__(
        self,
        *,
        client: BaseClassificationClient,
        model: str,
        temperature: float = 0.0,
        max_text_chars: int = 50000,
        retry_policy: RetryPolicy | None = None,
        prompt_dir: Path | None = None,
        system_prompt: str = "",
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._max_text_chars = max_text_chars
        self._retry_policy = retry_policy or RetryPolicy()
        self._system_prompt = system_prompt
        self._classification_template = load_prompt_template(
            "classification_prompt.txt", prompt_dir
        )
        self._extraction_template = load_prompt_template("extraction_prompt.txt", prompt_dir)
        self._json_schema = load_json_schema(prompt_dir)
        self._json_schema_dict = json.loads(self._json_schema)

    def is_configured(self) -> bool:
        return True

    def classify(self, text: str) -> ClassificationResult:
        prompt = self._classification_template.format(
            categories=_format_categories(),
            json_schema=self._json_schema,
            document_text=self._truncate(text),
        )
        raw_response = self._call_ai(prompt, json_schema=self._json_schema_dict)
        Log.debug(f"Classification raw response:\n{raw_response}")

        result = validate_and_build(parse_json_object(raw_response))
        Log.info(
            f"Classified as {result.category.value}/{result.subcategory} "
            f"({result.confidence:.0f}%), {len(result.extracted_fields)} fields"
        )
        return result

    def extract_form_fields(self, text: str, form_type: str) -> FormExtraction:
        prompt = self._extraction_template.format(
            form_type=form_type,
            field_hints=form_fields_hint(form_type),
            document_text=self._truncate(text),
        )
        raw_response = self._call_ai(prompt, json_schema=None)
        Log.debug(f"Extraction raw response:\n{raw_response}")

        extraction = build_form_extraction(parse_json_object(raw_response), form_type)
        Log.info(f"Extracted {len(extraction.values)} {form_type} fields")
        return extraction

    def _truncate(self, text: str) -> str:
        if len(text) <= self._max_text_chars:
            return text
        return text[: self._max_text_chars] + _TRUNCATION_MARKER

    def _call_ai(self, prompt: str, json_schema: dict[str, object] | None) -> str:
        return call_with_retry(
            lambda: self._client.create_chat_completion(
                model=self._model,
                temperature=self._temperature,
                system_prompt=self._system_prompt,
                user_prompt=prompt,
                json_schema=json_schema,
            ),
            retry_on=(ClassificationNetworkError,),
            policy=self._retry_policy,
            description="AI provider call",
        )


class DisabledClassifier(BaseClassifier):
    """Stand-in used when no classification provider is configured."""

    def is_configured(self) -> bool:
        return False

    def classify(self, text: str) -> ClassificationResult:
        raise ClassificationNotConfiguredError("Classification provider is not configured")

    def extract_form_fields(self, text: str, form_type: str) -> FormExtraction:
        raise ClassificationNotConfiguredError("Classification provider is not configured")


def strip_code_fences(raw: str) -> str:
    """Remove a surrounding ```json ... ``` block if present."""
    cleaned = raw.strip()
    match = _CODE_FENCE_RE.match(cleaned)
    return match.group(1).strip() if match else cleaned


def parse_json_object(raw: str) -> dict[str, object]:
    """Parse a provider response into a JSON object.

    Raises:
        ClassificationParseError: if the response is not a JSON object.
    """
    cleaned = strip_code_fences(raw)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ClassificationParseError(f"Invalid JSON response: {exc}") from exc

    if not isinstance(parsed, dict):
        raise ClassificationParseError("JSON response must be an object")
    return parsed


def _format_categories() -> str:
    return "\n".join(
        f"- {category.value}: {', '.join(subcategories)}"
        for category, subcategories in DOCUMENT_CATEGORIES.items()
    )
