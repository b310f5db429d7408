"""Offline classification client.

Returns fixed, valid responses without network calls. Useful for local
development and as a template for new provider adapters: implement
BaseClassificationClient and register the provider in ClassifierFactory.
"""

import json
from typing import ClassVar

from taxbinder.classification.client_base import BaseClassificationClient


class ExampleClientAdapter(BaseClassificationClient):
    DEFAULT_CLASSIFICATION: ClassVar[dict[str, object]] = {
        "category": "other",
        "subcategory": "Miscellaneous",
        "confidence": 0,
        "tax_year": None,
        "extracted_fields": [],
        "summary": "",
    }
    DEFAULT_EXTRACTION: ClassVar[dict[str, object]] = {"confidence": 0}

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object] | None = None,
    ) -> str:
        _ = model, temperature, system_prompt, user_prompt
        if json_schema is None:
            return json.dumps(self.DEFAULT_EXTRACTION)
        return json.dumps(self.DEFAULT_CLASSIFICATION)
