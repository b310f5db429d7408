import json

from taxbinder.classification.classifier import Classifier
from taxbinder.classification.example_client_adapter import ExampleClientAdapter
from taxbinder.documents.categories import DocumentCategory


class TestExampleClientAdapter:
    def test_classification_response_is_valid_json(self) -> None:
        raw = ExampleClientAdapter().create_chat_completion(
            model="example",
            temperature=0.0,
            system_prompt="",
            user_prompt="text",
            json_schema={"type": "object"},
        )

        assert json.loads(raw)["category"] == "other"

    def test_extraction_response_without_schema(self) -> None:
        raw = ExampleClientAdapter().create_chat_completion(
            model="example",
            temperature=0.0,
            system_prompt="",
            user_prompt="text",
        )

        assert json.loads(raw) == {"confidence": 0}

    def test_drives_classifier_end_to_end(self) -> None:
        classifier = Classifier(client=ExampleClientAdapter(), model="example")

        result = classifier.classify("anything")
        extraction = classifier.extract_form_fields("anything", "W-2")

        assert result.category == DocumentCategory.OTHER
        assert result.subcategory == "Miscellaneous"
        assert extraction.values == {}
