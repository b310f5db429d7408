class DocumentError(Exception):
    """Base exception for document store errors."""


class DocumentNotFoundError(DocumentError):
    """Raised when a document does not exist within the caller's organization."""


class InvalidTransitionError(DocumentError):
    """Raised when a status change is not allowed by the document lifecycle."""
