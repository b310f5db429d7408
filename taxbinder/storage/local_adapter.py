from pathlib import Path, PurePosixPath

from taxbinder.storage.base import BaseBlobStore
from taxbinder.storage.exceptions import BlobNotFoundError, StorageError


class LocalBlobStore(BaseBlobStore):
    """Stores blobs under a directory on the local filesystem.

    Signed URLs are ``file://`` URIs; they do not expire, which is acceptable
    for single-host development setups only.
    """

    DEFAULT_ROOT = Path("/app/files")

    def __init__(self, root: Path | None = None) -> None:
        self._root = root if root is not None else self.DEFAULT_ROOT

    def put(self, location: str, data: bytes, content_type: str) -> str:
        _ = content_type
        path = self._resolve_path(location)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to write blob {location}: {exc}") from exc
        return location

    def signed_url(self, location: str, ttl_seconds: int) -> str:
        _ = ttl_seconds
        path = self._resolve_path(location)
        if not path.is_file():
            raise BlobNotFoundError(f"Blob not found: {location}")
        return path.resolve().as_uri()

    def exists(self, location: str) -> bool:
        return self._resolve_path(location).is_file()

    def delete(self, location: str) -> None:
        try:
            self._resolve_path(location).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete blob {location}: {exc}") from exc

    def _resolve_path(self, location: str) -> Path:
        relative = PurePosixPath(location)
        if relative.is_absolute() or ".." in relative.parts:
            raise StorageError(f"Invalid blob location: {location}")
        return self._root.joinpath(*relative.parts)
