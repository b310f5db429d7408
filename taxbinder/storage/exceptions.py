class StorageError(Exception):
    """Base exception for blob storage errors."""


class BlobNotFoundError(StorageError):
    """Raised when no blob exists at a location."""
