from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

from taxbinder.ocr.exceptions import OcrNetworkError, UnreadableDocumentError

_RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


def fetch_document_bytes(document_url: str, timeout_seconds: float) -> bytes:
    """Read the document behind a signed URL or file URI.

    Raises:
        UnreadableDocumentError: if the document does not exist or is empty.
        OcrNetworkError: on transient transport failures.
    """
    parsed = urlparse(document_url)
    if parsed.scheme == "file":
        path = Path(unquote(parsed.path))
        try:
            data = path.read_bytes()
        except FileNotFoundError as exc:
            raise UnreadableDocumentError(f"Document file not found: {path}") from exc
        except OSError as exc:
            raise UnreadableDocumentError(f"Document file unreadable: {exc}") from exc
    else:
        try:
            response = httpx.get(document_url, timeout=timeout_seconds, follow_redirects=True)
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            raise OcrNetworkError(f"Document download failed: {exc}") from exc
        if response.status_code in _RETRYABLE_STATUSES:
            raise OcrNetworkError(f"Document download returned HTTP {response.status_code}")
        if response.status_code >= 400:
            raise UnreadableDocumentError(
                f"Document download returned HTTP {response.status_code}"
            )
        data = response.content

    if not data:
        raise UnreadableDocumentError("Document is empty")
    return data
