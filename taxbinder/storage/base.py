from abc import ABC, abstractmethod


class BaseBlobStore(ABC):
    """Contract for blob storage adapters.

    A location is a storage-relative path, never a public URL. URLs are minted
    on demand with ``signed_url`` and expire.
    """

    @abstractmethod
    def put(self, location: str, data: bytes, content_type: str) -> str:
        """Store bytes at ``location`` and return the location.

        Raises:
            StorageError: if the write fails.
        """

    @abstractmethod
    def signed_url(self, location: str, ttl_seconds: int) -> str:
        """Return a short-lived URL for reading the blob.

        Raises:
            BlobNotFoundError: if the adapter can tell the blob is missing.
            StorageError: if a URL cannot be issued.
        """

    @abstractmethod
    def exists(self, location: str) -> bool:
        """Return True if a blob is stored at ``location``."""

    @abstractmethod
    def delete(self, location: str) -> None:
        """Remove the blob. Deleting a missing blob is not an error."""
