"""Azure AI Document Intelligence (Form Recognizer) REST adapter."""

import base64
import time
from collections.abc import Callable
from typing import Any

import httpx

from taxbinder.logging.logger import Log
from taxbinder.ocr.base import BaseOcrEngine
from taxbinder.ocr.exceptions import OcrError, OcrNetworkError, UnreadableDocumentError
from taxbinder.ocr.models import (
    OcrKeyValuePair,
    OcrLine,
    OcrPage,
    OcrResult,
    OcrTable,
    OcrTableCell,
    join_page_texts,
)
from taxbinder.ocr.source import fetch_document_bytes

_RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})
# Provider error codes meaning "the input itself is bad", not "try again".
_UNREADABLE_ERROR_CODES = frozenset(
    {
        "InvalidContent",
        "InvalidContentLength",
        "InvalidContentSourceFormat",
        "InvalidImage",
        "InvalidImageSize",
        "InvalidImageURL",
        "FailedToDownloadImage",
        "UnsupportedContent",
    }
)


class AzureDocumentIntelligenceAdapter(BaseOcrEngine):
    """Runs the prebuilt-document model and converts its layout into OcrResult."""

    MODEL_ID = "prebuilt-document"

    def __init__(
        self,
        *,
        endpoint: str,
        api_key: str,
        api_version: str,
        timeout_seconds: int,
        poll_interval_seconds: float = 1.0,
        http_client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._endpoint = endpoint.rstrip("/")
        self._api_key = api_key
        self._api_version = api_version
        self._timeout_seconds = timeout_seconds
        self._poll_interval_seconds = poll_interval_seconds
        self._http = http_client or httpx.Client(timeout=timeout_seconds)
        self._sleep = sleep

    def is_configured(self) -> bool:
        return bool(self._endpoint and self._api_key)

    def analyze(self, document_url: str) -> OcrResult:
        operation_url = self._begin_analyze(document_url)
        analyze_result = self._poll_until_done(operation_url)
        try:
            return transform_analyze_result(analyze_result)
        except (AttributeError, TypeError, ValueError) as exc:
            raise OcrError(f"Document Intelligence returned a malformed result: {exc}") from exc

    def _begin_analyze(self, document_url: str) -> str:
        url = (
            f"{self._endpoint}/formrecognizer/documentModels/{self.MODEL_ID}:analyze"
            f"?api-version={self._api_version}"
        )
        response = self._request("POST", url, json=self._source_body(document_url))
        operation_url = response.headers.get("operation-location")
        if not operation_url:
            raise OcrError("Document Intelligence did not return an operation location")
        return operation_url

    def _source_body(self, document_url: str) -> dict[str, str]:
        # The service cannot reach file URIs; send the bytes inline instead.
        if document_url.startswith("file://"):
            data = fetch_document_bytes(document_url, self._timeout_seconds)
            return {"base64Source": base64.b64encode(data).decode("ascii")}
        return {"urlSource": document_url}

    def _poll_until_done(self, operation_url: str) -> dict[str, Any]:
        deadline = time.monotonic() + self._timeout_seconds
        while True:
            body = _json_object(self._request("GET", operation_url))
            status = body.get("status")
            if status == "succeeded":
                result = body.get("analyzeResult") or {}
                if not isinstance(result, dict):
                    raise OcrError("Document Intelligence returned malformed JSON")
                return result
            if status == "failed":
                self._raise_for_error_body(body.get("error"))
            if time.monotonic() >= deadline:
                raise OcrNetworkError(
                    f"Document analysis did not finish within {self._timeout_seconds}s"
                )
            Log.debug(f"Document analysis status '{status}', polling again")
            self._sleep(self._poll_interval_seconds)

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._http.request(
                method,
                url,
                headers={"Ocp-Apim-Subscription-Key": self._api_key},
                **kwargs,
            )
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            raise OcrNetworkError(f"OCR provider network error: {exc}") from exc

        if response.status_code in _RETRYABLE_STATUSES:
            raise OcrNetworkError(f"OCR provider returned HTTP {response.status_code}")
        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            error = body.get("error") if isinstance(body, dict) else None
            self._raise_for_error_body(error, status_code=response.status_code)
        return response

    @staticmethod
    def _raise_for_error_body(error: Any, status_code: int | None = None) -> None:
        if not isinstance(error, dict):
            error = {}
        codes = {error.get("code")}
        inner = error.get("innererror")
        if isinstance(inner, dict):
            codes.add(inner.get("code"))
        message = error.get("message") or "unknown error"
        if codes & _UNREADABLE_ERROR_CODES:
            raise UnreadableDocumentError(f"Document could not be decoded: {message}")
        suffix = f" (HTTP {status_code})" if status_code else ""
        raise OcrError(f"Document analysis failed{suffix}: {message}")


def _json_object(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError as exc:
        raise OcrError("Document Intelligence returned malformed JSON") from exc
    if not isinstance(body, dict):
        raise OcrError("Document Intelligence returned malformed JSON")
    return body


def transform_analyze_result(result: dict[str, Any]) -> OcrResult:
    """Convert an Azure analyzeResult payload into OcrResult."""
    pages = [
        OcrPage(
            page_number=page.get("pageNumber", index + 1),
            width=page.get("width") or 0.0,
            height=page.get("height") or 0.0,
            text="\n".join(line.get("content", "") for line in page.get("lines") or []),
            lines=[
                OcrLine(content=line.get("content", ""), bounding_box=line.get("polygon"))
                for line in page.get("lines") or []
            ],
        )
        for index, page in enumerate(result.get("pages") or [])
    ]
    tables = [
        OcrTable(
            row_count=table.get("rowCount", 0),
            column_count=table.get("columnCount", 0),
            cells=[
                OcrTableCell(
                    row_index=cell.get("rowIndex", 0),
                    column_index=cell.get("columnIndex", 0),
                    content=cell.get("content", ""),
                )
                for cell in table.get("cells") or []
            ],
        )
        for table in result.get("tables") or []
    ]
    key_value_pairs = [
        OcrKeyValuePair(
            key=(pair.get("key") or {}).get("content", ""),
            value=(pair.get("value") or {}).get("content", ""),
            confidence=pair.get("confidence") or 0.0,
        )
        for pair in result.get("keyValuePairs") or []
    ]
    documents = result.get("documents") or []
    first_document = documents[0] if documents else {}
    return OcrResult(
        text=join_page_texts(pages),
        pages=pages,
        tables=tables,
        key_value_pairs=key_value_pairs,
        document_type=first_document.get("docType"),
        confidence=first_document.get("confidence"),
    )
