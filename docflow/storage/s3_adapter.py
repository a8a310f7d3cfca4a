import uuid
from typing import Any, BinaryIO

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from docflow.config.settings import Settings
from docflow.logging.logger import Log
from docflow.storage.base import BaseObjectStorage
from docflow.storage.exceptions import ObjectNotFoundError, StorageError

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class S3ObjectStorage(BaseObjectStorage):
    """Stores documents in an S3-compatible bucket (MinIO in the default deployment)."""

    def __init__(self, client: Any, bucket: str) -> None:
        self._client = client
        self._bucket = bucket

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3ObjectStorage":
        scheme = "https" if settings.minio_use_ssl else "http"
        client = boto3.client(
            "s3",
            endpoint_url=f"{scheme}://{settings.minio_endpoint}",
            aws_access_key_id=settings.minio_access_key,
            aws_secret_access_key=settings.minio_secret_key,
            config=Config(signature_version="s3v4"),
            region_name=settings.minio_region,
        )
        return cls(client, settings.minio_bucket)

    def ensure_bucket(self) -> None:
        """Create the bucket if it does not exist yet."""
        try:
            self._client.head_bucket(Bucket=self._bucket)
            Log.info("Bucket exists", bucket=self._bucket)
            return
        except ClientError as exc:
            if _error_code(exc) not in _NOT_FOUND_CODES:
                raise StorageError(f"Cannot access bucket '{self._bucket}': {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Object storage unreachable: {exc}") from exc

        try:
            self._client.create_bucket(Bucket=self._bucket)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Failed to create bucket '{self._bucket}': {exc}") from exc
        Log.info("Bucket created", bucket=self._bucket)

    def download(self, locator: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=locator)
            data: bytes = response["Body"].read()
        except ClientError as exc:
            if _error_code(exc) in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(
                    f"Object '{locator}' not found in bucket '{self._bucket}'"
                ) from exc
            raise StorageError(f"Failed to download '{locator}': {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to download '{locator}': {exc}") from exc
        Log.info("Downloaded object", locator=locator, size=len(data))
        return data

    def upload(self, name: str, stream: BinaryIO) -> str:
        locator = f"{uuid.uuid4()}_{name}"
        try:
            self._client.upload_fileobj(stream, self._bucket, locator)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Failed to upload '{name}': {exc}") from exc
        Log.info("Uploaded object", locator=locator)
        return locator


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))
