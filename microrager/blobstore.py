"""
Blob storage backends for daily documents.

Every backend exposes the same two coroutines: `get` returns the stored bytes
or None when the key does not exist, and `put` replaces the stored bytes.
Backend-specific failures are normalized into `StoreError` here so callers
never inspect filesystem or S3 error codes.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings
from .errors import StoreError

logger = logging.getLogger(__name__)

S3_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})


class BlobStore(Protocol):
    """Defines the operations the service needs from a blob store."""

    async def get(self, key: str) -> bytes | None:
        ...

    async def put(self, key: str, data: bytes) -> None:
        ...


@dataclass
class InMemoryBlobStore:
    """Test double for blob storage."""

    objects: dict[str, bytes] = field(default_factory=dict)

    async def get(self, key: str) -> bytes | None:
        return self.objects.get(key)

    async def put(self, key: str, data: bytes) -> None:
        self.objects[key] = bytes(data)


@dataclass
class LocalBlobStore:
    """
    Filesystem-backed store keeping each key as a file under `root`.
    """

    root: Path

    def __post_init__(self) -> None:
        self.root = Path(self.root)

    def path_for(self, key: str) -> Path:
        return self.root / key

    async def get(self, key: str) -> bytes | None:
        path = self.path_for(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreError(f"Could not read {path}: {exc}", action="read") from exc

    async def put(self, key: str, data: bytes) -> None:
        path = self.path_for(key)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            raise StoreError(f"Could not write {path}: {exc}", action="write") from exc


@dataclass
class S3BlobStore:
    """
    S3-backed store using the key directly as the object key.

    boto3 is synchronous, so each call runs in a worker thread.
    """

    bucket: str
    region: str | None = None
    endpoint_url: str | None = None
    client: Any = None

    def __post_init__(self) -> None:
        if self.client is None:
            self.client = boto3.client(
                "s3",
                region_name=self.region,
                endpoint_url=self.endpoint_url,
                config=Config(signature_version="s3v4"),
            )

    async def get(self, key: str) -> bytes | None:
        def _get() -> bytes:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()

        try:
            return await asyncio.to_thread(_get)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in S3_NOT_FOUND_CODES:
                return None
            raise StoreError(
                f"Could not read s3://{self.bucket}/{key}: {exc}", action="read"
            ) from exc
        except BotoCoreError as exc:
            raise StoreError(
                f"Could not read s3://{self.bucket}/{key}: {exc}", action="read"
            ) from exc

    async def put(self, key: str, data: bytes) -> None:
        def _put() -> None:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType="application/json",
            )

        try:
            await asyncio.to_thread(_put)
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(
                f"Could not write s3://{self.bucket}/{key}: {exc}", action="write"
            ) from exc


def build_blob_store(settings: Settings) -> BlobStore:
    """Return the runtime document store selected by `settings.storage_mode`."""
    if settings.storage_mode == "local":
        logger.info("Using local blob store at %s", settings.local_data_dir)
        return LocalBlobStore(settings.local_data_dir)

    if not settings.bucket_name:
        raise ValueError("BUCKET_NAME must be set when storage mode is 's3'")
    logger.info("Using S3 blob store in bucket %s", settings.bucket_name)
    return S3BlobStore(
        bucket=settings.bucket_name,
        region=settings.aws_region,
        endpoint_url=settings.s3_endpoint_url,
    )
