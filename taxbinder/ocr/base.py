from abc import ABC, abstractmethod

from taxbinder.ocr.exceptions import OcrNotConfiguredError
from taxbinder.ocr.models import OcrResult


class BaseOcrEngine(ABC):
    """Contract for all OCR adapters."""

    @abstractmethod
    def is_configured(self) -> bool:
        """Return False when the engine is switched off or lacks credentials."""

    @abstractmethod
    def analyze(self, document_url: str) -> OcrResult:
        """Extract text and layout from the document behind a short-lived URL.

        Args:
            document_url: Signed URL (or file URI) minted for this attempt.

        Returns:
            OcrResult with full text, pages, tables and key/value pairs.

        Raises:
            UnreadableDocumentError: if the document cannot be fetched or decoded.
            OcrNetworkError: on transient provider failures.
            OcrError: on any other failure.
        """


class DisabledOcrEngine(BaseOcrEngine):
    """Stand-in used when no OCR provider is configured."""

    def is_configured(self) -> bool:
        return False

    def analyze(self, document_url: str) -> OcrResult:
        raise OcrNotConfiguredError("OCR provider is not configured")
