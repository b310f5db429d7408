import json
from unittest.mock import MagicMock

import pytest

from taxbinder.classification.classifier import (
    Classifier,
    DisabledClassifier,
    parse_json_object,
    strip_code_fences,
)
from taxbinder.classification.exceptions import (
    ClassificationError,
    ClassificationNetworkError,
    ClassificationNotConfiguredError,
    ClassificationParseError,
)
from taxbinder.documents.categories import DocumentCategory
from taxbinder.retry import RetryPolicy

NO_WAIT = RetryPolicy(attempts=3, initial_wait_seconds=0, max_wait_seconds=0)

W2_RESPONSE = json.dumps(
    {
        "category": "income",
        "subcategory": "W-2",
        "confidence": 96,
        "tax_year": 2024,
        "extracted_fields": [{"field_name": "employer", "value": "Acme", "confidence": 90}],
        "summary": "W-2 wage statement",
    }
)


def _make_classifier(client: MagicMock, **kwargs) -> Classifier:
    return Classifier(client=client, model="gpt-test", retry_policy=NO_WAIT, **kwargs)


class TestStripCodeFences:
    def test_removes_json_fence(self) -> None:
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_removes_bare_fence(self) -> None:
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_leaves_plain_json(self) -> None:
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


class TestParseJsonObject:
    def test_parses_fenced_object(self) -> None:
        assert parse_json_object('```json\n{"category": "income"}\n```') == {"category": "income"}

    def test_rejects_invalid_json(self) -> None:
        with pytest.raises(ClassificationParseError, match="Invalid JSON"):
            parse_json_object("I think this is a W-2")

    def test_rejects_non_object(self) -> None:
        with pytest.raises(ClassificationParseError, match="must be an object"):
            parse_json_object("[1, 2]")


class TestClassify:
    def test_returns_result(self) -> None:
        client = MagicMock()
        client.create_chat_completion.return_value = W2_RESPONSE

        result = _make_classifier(client).classify("Form W-2")

        assert result.category == DocumentCategory.INCOME
        assert result.subcategory == "W-2"
        assert result.tax_year == 2024
        assert result.extracted_fields[0].field_name == "employer"

    def test_prompt_lists_categories_and_text(self) -> None:
        client = MagicMock()
        client.create_chat_completion.return_value = W2_RESPONSE

        _make_classifier(client).classify("Box 1 wages 52000")

        kwargs = client.create_chat_completion.call_args.kwargs
        assert "Box 1 wages 52000" in kwargs["user_prompt"]
        assert "- income:" in kwargs["user_prompt"]
        assert "1099-INT" in kwargs["user_prompt"]
        assert kwargs["json_schema"]["type"] == "object"
        assert kwargs["model"] == "gpt-test"

    def test_unknown_category_falls_back_to_other(self) -> None:
        client = MagicMock()
        client.create_chat_completion.return_value = json.dumps(
            {"category": "crypto", "subcategory": "Wallet export"}
        )

        result = _make_classifier(client).classify("text")

        assert result.category == DocumentCategory.OTHER
        assert result.subcategory == "Unclassified"

    def test_truncates_long_text(self) -> None:
        client = MagicMock()
        client.create_chat_completion.return_value = W2_RESPONSE

        _make_classifier(client, max_text_chars=10).classify("x" * 50)

        prompt = client.create_chat_completion.call_args.kwargs["user_prompt"]
        assert "x" * 10 + "\n...[truncated]" in prompt
        assert "x" * 11 not in prompt

    def test_clamps_temperature(self) -> None:
        client = MagicMock()
        client.create_chat_completion.return_value = W2_RESPONSE

        _make_classifier(client, temperature=0.9).classify("text")

        assert client.create_chat_completion.call_args.kwargs["temperature"] == 0.2

    def test_retries_network_errors(self) -> None:
        client = MagicMock()
        client.create_chat_completion.side_effect = [
            ClassificationNetworkError("rate limited"),
            W2_RESPONSE,
        ]

        result = _make_classifier(client).classify("text")

        assert client.create_chat_completion.call_count == 2
        assert result.subcategory == "W-2"

    def test_gives_up_after_policy_attempts(self) -> None:
        client = MagicMock()
        client.create_chat_completion.side_effect = ClassificationNetworkError("down")

        with pytest.raises(ClassificationNetworkError):
            _make_classifier(client).classify("text")
        assert client.create_chat_completion.call_count == 3

    def test_does_not_retry_api_errors(self) -> None:
        client = MagicMock()
        client.create_chat_completion.side_effect = ClassificationError("bad request")

        with pytest.raises(ClassificationError):
            _make_classifier(client).classify("text")
        assert client.create_chat_completion.call_count == 1


class TestExtractFormFields:
    def test_returns_flat_values(self) -> None:
        client = MagicMock()
        client.create_chat_completion.return_value = json.dumps(
            {"wages": 52000, "employer_name": "Acme", "confidence": 91}
        )

        extraction = _make_classifier(client).extract_form_fields("text", "W-2")

        assert extraction.form_type == "W-2"
        assert extraction.values == {"wages": "52000", "employer_name": "Acme"}
        assert extraction.confidence == 91.0
        kwargs = client.create_chat_completion.call_args.kwargs
        assert kwargs["json_schema"] is None
        assert "Federal income tax withheld (Box 2)" in kwargs["user_prompt"]

    def test_generic_hint_for_forms_without_hints(self) -> None:
        client = MagicMock()
        client.create_chat_completion.return_value = "{}"

        _make_classifier(client).extract_form_fields("text", "K-1")

        prompt = client.create_chat_completion.call_args.kwargs["user_prompt"]
        assert "All relevant tax-related fields" in prompt


class TestDisabledClassifier:
    def test_is_not_configured(self) -> None:
        assert DisabledClassifier().is_configured() is False

    def test_classify_raises(self) -> None:
        with pytest.raises(ClassificationNotConfiguredError):
            DisabledClassifier().classify("text")
