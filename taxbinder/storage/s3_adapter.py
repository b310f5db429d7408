from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from taxbinder.storage.base import BaseBlobStore
from taxbinder.storage.exceptions import BlobNotFoundError, StorageError

_MISSING_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class S3BlobStore(BaseBlobStore):
    """Stores blobs in a single S3 (or S3-compatible) bucket."""

    def __init__(
        self,
        *,
        bucket: str,
        region: str | None = None,
        endpoint_url: str | None = None,
        client: Any | None = None,
    ) -> None:
        self._bucket = bucket
        self._client = client or boto3.client(
            "s3",
            region_name=region or None,
            endpoint_url=endpoint_url or None,
        )

    def put(self, location: str, data: bytes, content_type: str) -> str:
        try:
            self._client.put_object(
                Bucket=self._bucket,
                Key=location,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"S3 put failed for {location}: {exc}") from exc
        return location

    def signed_url(self, location: str, ttl_seconds: int) -> str:
        try:
            return str(
                self._client.generate_presigned_url(
                    "get_object",
                    Params={"Bucket": self._bucket, "Key": location},
                    ExpiresIn=ttl_seconds,
                )
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"S3 presign failed for {location}: {exc}") from exc

    def exists(self, location: str) -> bool:
        try:
            self._client.head_object(Bucket=self._bucket, Key=location)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _MISSING_CODES:
                return False
            raise StorageError(f"S3 head failed for {location}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"S3 head failed for {location}: {exc}") from exc
        return True

    def delete(self, location: str) -> None:
        try:
            self._client.delete_object(Bucket=self._bucket, Key=location)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _MISSING_CODES:
                return
            raise StorageError(f"S3 delete failed for {location}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"S3 delete failed for {location}: {exc}") from exc

