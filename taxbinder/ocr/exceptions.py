class OcrError(Exception):
    """Raised when OCR fails."""


class OcrNetworkError(OcrError):
    """Raised on transient provider failures: network, rate limit, timeout, 5xx."""


class OcrNotConfiguredError(OcrError):
    """Raised when an unconfigured OCR engine is asked to analyze a document."""


class UnreadableDocumentError(OcrError):
    """Raised when the document itself cannot be fetched or decoded."""
