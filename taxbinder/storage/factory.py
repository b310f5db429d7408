from pathlib import Path

from taxbinder.config.settings import Settings
from taxbinder.storage.base import BaseBlobStore
from taxbinder.storage.local_adapter import LocalBlobStore
from taxbinder.storage.s3_adapter import S3BlobStore


class BlobStoreFactory:
    """Creates the configured blob store adapter."""

    BACKENDS = ("local", "s3")

    @classmethod
    def create(cls, settings: Settings, local_root: Path | None = None) -> BaseBlobStore:
        backend = settings.storage_backend.lower()
        if backend == "local":
            root = local_root if local_root is not None else Path(settings.storage_local_root)
            return LocalBlobStore(root=root)
        if backend == "s3":
            if not settings.storage_s3_bucket:
                raise ValueError("storage_s3_bucket is required for storage_backend=s3")
            return S3BlobStore(
                bucket=settings.storage_s3_bucket,
                region=settings.storage_s3_region,
                endpoint_url=settings.storage_s3_endpoint_url,
            )
        raise ValueError(
            f"Unknown storage backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
