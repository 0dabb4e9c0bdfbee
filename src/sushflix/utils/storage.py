"""
Object store backends.

Provides a unified interface for durable blob storage that can be backed by
any S3-compatible service (Google Cloud Storage through its interoperability
endpoint by default) or by a local directory for development.
"""
import asyncio
import logging
import os
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from src.sushflix.core.config import settings
from src.sushflix.core.errors import ConflictError, NotFoundError, StorageError

logger = logging.getLogger(__name__)

# Constants
CHUNK_SIZE = 1024 * 1024  # 1MB chunks read from the client
MULTIPART_CHUNK_SIZE = 8 * 1024 * 1024  # S3 parts must be at least 5MB except the last
NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class ObjectWriter(ABC):
    """Write stream for a single object."""

    @abstractmethod
    async def write(self, chunk: bytes) -> None:
        pass


class ObjectStore(ABC):
    """Abstract base class for object storage operations."""

    bucket: str

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """
        Check whether an object exists.

        Args:
            key: Object key

        Returns:
            True if an object is stored under key
        """
        pass

    @abstractmethod
    def writer(
        self, key: str, content_type: str, metadata: Optional[dict] = None
    ) -> "AsyncIterator[ObjectWriter]":
        """
        Open a write stream for a new object.

        Used as an async context manager: the object is committed when the
        block exits cleanly and aborted when it raises or is cancelled.

        Args:
            key: Object key, never an existing one
            content_type: Declared content type stored with the object
            metadata: Extra string metadata stored with the object
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """
        Delete an object.

        Raises:
            NotFoundError: If no object is stored under key
            StorageError: If the backend fails
        """
        pass

    @abstractmethod
    def public_url(self, key: str) -> str:
        """Public URL of an object, derived from bucket and key only."""
        pass


class S3ObjectWriter(ObjectWriter):
    """Streams an object to S3 through a multipart upload."""

    def __init__(self, client, bucket: str, key: str, content_type: str, metadata: Optional[dict] = None):
        self.client = client
        self.bucket = bucket
        self.key = key
        self.content_type = content_type
        self.metadata = metadata or {}
        self.upload_id: Optional[str] = None
        self.parts: list[dict] = []
        self._buffer = bytearray()

    async def start(self) -> None:
        response = await self.client.create_multipart_upload(
            Bucket=self.bucket,
            Key=self.key,
            ContentType=self.content_type,
            Metadata=self.metadata,
        )
        self.upload_id = response["UploadId"]

    async def write(self, chunk: bytes) -> None:
        self._buffer.extend(chunk)
        while len(self._buffer) >= MULTIPART_CHUNK_SIZE:
            part = bytes(self._buffer[:MULTIPART_CHUNK_SIZE])
            del self._buffer[:MULTIPART_CHUNK_SIZE]
            await self._upload_part(part)

    async def _upload_part(self, data: bytes) -> None:
        part_number = len(self.parts) + 1
        response = await self.client.upload_part(
            Bucket=self.bucket,
            Key=self.key,
            UploadId=self.upload_id,
            PartNumber=part_number,
            Body=data,
        )
        self.parts.append({"ETag": response["ETag"], "PartNumber": part_number})

    async def commit(self) -> None:
        if self._buffer or not self.parts:
            await self._upload_part(bytes(self._buffer))
            self._buffer.clear()
        await self.client.complete_multipart_upload(
            Bucket=self.bucket,
            Key=self.key,
            UploadId=self.upload_id,
            MultipartUpload={"Parts": self.parts},
        )

    async def abort(self) -> None:
        if not self.upload_id:
            return
        try:
            await self.client.abort_multipart_upload(
                Bucket=self.bucket, Key=self.key, UploadId=self.upload_id
            )
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"Failed to abort multipart upload for {self.key}: {e}")


class S3ObjectStore(ObjectStore):
    """S3-compatible object store accessed through aioboto3."""

    def __init__(
        self,
        bucket: str,
        endpoint_url: Optional[str] = None,
        region_name: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        public_base_url: Optional[str] = None,
    ):
        self.bucket = bucket
        self.endpoint_url = endpoint_url
        self.region_name = region_name
        self.public_base_url = (public_base_url or f"{endpoint_url}/{bucket}").rstrip("/")
        self.session = aioboto3.Session(
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region_name,
        )

    def _client(self):
        return self.session.client("s3", endpoint_url=self.endpoint_url)

    async def exists(self, key: str) -> bool:
        try:
            async with self._client() as s3:
                await s3.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in NOT_FOUND_CODES:
                return False
            raise StorageError(f"Failed to look up object {key}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to look up object {key}") from e

    @asynccontextmanager
    async def writer(self, key: str, content_type: str, metadata: Optional[dict] = None):
        async with self._client() as s3:
            writer = S3ObjectWriter(s3, self.bucket, key, content_type, metadata)
            await writer.start()
            try:
                yield writer
            except BaseException:
                await writer.abort()
                raise
            try:
                await writer.commit()
            except BaseException:
                await writer.abort()
                raise

    async def delete(self, key: str) -> None:
        # S3 delete_object succeeds on absent keys, so check first to report NotFound
        if not await self.exists(key):
            raise NotFoundError(f"Object {key} not found")
        try:
            async with self._client() as s3:
                await s3.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to delete object {key}") from e

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"


class LocalObjectWriter(ObjectWriter):
    def __init__(self, handle):
        self.handle = handle

    async def write(self, chunk: bytes) -> None:
        await asyncio.to_thread(self.handle.write, chunk)


class LocalObjectStore(ObjectStore):
    """
    Local filesystem object store.

    Objects live flat under the base directory, one file per key:
    uploads/
      {owner_id}-{token}.jpg
    """

    def __init__(self, base_path: Optional[str] = None, public_base_url: str = "/uploads"):
        self.base_path = Path(base_path or settings.LOCAL_STORAGE_PATH)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.bucket = self.base_path.name
        self.public_base_url = public_base_url.rstrip("/")

    def _path(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if path.parent != self.base_path.resolve():
            raise StorageError(f"Invalid object key {key}")
        return path

    async def exists(self, key: str) -> bool:
        return self._path(key).exists()

    @asynccontextmanager
    async def writer(self, key: str, content_type: str, metadata: Optional[dict] = None):
        path = self._path(key)
        try:
            # exclusive create: a key is never overwritten
            handle = open(path, "xb")
        except FileExistsError as e:
            raise ConflictError(f"Object {key} already exists") from e
        except OSError as e:
            raise StorageError(f"Failed to open object {key}") from e
        try:
            yield LocalObjectWriter(handle)
        except BaseException:
            handle.close()
            path.unlink(missing_ok=True)
            raise
        handle.close()

    async def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            await asyncio.to_thread(os.remove, path)
        except FileNotFoundError as e:
            raise NotFoundError(f"Object {key} not found") from e
        except OSError as e:
            raise StorageError(f"Failed to delete object {key}") from e

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"


def get_object_store() -> ObjectStore:
    """
    Factory function to get the configured object store.

    Returns:
        ObjectStore instance (S3-compatible or local)
    """
    if settings.STORAGE_BACKEND == "s3":
        logger.info(
            f"Using object store bucket {settings.STORAGE_BUCKET_NAME} "
            f"(project {settings.STORAGE_PROJECT_ID}) at {settings.STORAGE_ENDPOINT_URL}"
        )
        return S3ObjectStore(
            bucket=settings.STORAGE_BUCKET_NAME,
            endpoint_url=settings.STORAGE_ENDPOINT_URL,
            region_name=settings.STORAGE_REGION,
            access_key_id=settings.STORAGE_ACCESS_KEY_ID,
            secret_access_key=settings.STORAGE_SECRET_ACCESS_KEY,
            public_base_url=settings.storage_public_base_url,
        )
    elif settings.STORAGE_BACKEND == "local":
        logger.info(f"Using local object store in {settings.LOCAL_STORAGE_PATH}")
        return LocalObjectStore()
    else:
        raise ValueError(f"Unknown storage backend: {settings.STORAGE_BACKEND}")
