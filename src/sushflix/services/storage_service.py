"""
Media storage gateway.

Streams validated uploads into the object store under collision-free keys
and owns every cleanup path: partial writes after a failed, timed out or
cancelled upload, and superseded objects after a replace.
"""
import asyncio
import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Awaitable, Callable, Optional, Protocol
from uuid import UUID

from src.sushflix.core.config import settings
from src.sushflix.core.errors import ConflictError, NotFoundError, StorageError, ValidationError
from src.sushflix.schemas.enums import AssetClass, MediaType
from src.sushflix.utils.dates import utcnow
from src.sushflix.utils.storage import CHUNK_SIZE, ObjectStore, get_object_store
from src.sushflix.utils.validation import MIME_EXTENSIONS, get_policy, validate_file

logger = logging.getLogger(__name__)

_EXTENSION_RE = re.compile(r"^\.[a-z0-9]{1,8}$")


class IncomingFile(Protocol):
    """What the gateway needs from an upload (satisfied by starlette's UploadFile)."""
    filename: Optional[str]
    content_type: Optional[str]
    size: Optional[int]

    async def read(self, size: int = -1) -> bytes: ...


@dataclass(frozen=True)
class StoredObject:
    """A durable blob written by the gateway."""
    key: str
    bucket: str
    url: str
    content_type: str
    size_bytes: int


@dataclass(frozen=True)
class ReplaceResult:
    stored: StoredObject
    # set when the superseded object could not be removed
    warning: Optional[str] = None


class MediaStorageGateway:
    """Upload, replace and delete media objects against an ObjectStore."""

    def __init__(
        self,
        store: ObjectStore,
        upload_timeout: float = 120.0,
        chunk_size: int = CHUNK_SIZE,
    ):
        self.store = store
        self.upload_timeout = upload_timeout
        self.chunk_size = chunk_size

    @staticmethod
    def generate_key(owner_id: UUID | str, filename: Optional[str], content_type: Optional[str]) -> str:
        """
        Build an unpredictable object key.

        The random token keeps keys distinct even for back-to-back uploads by
        the same owner, and makes keys impossible to enumerate.
        """
        ext = PurePosixPath(filename or "").suffix.lower()
        if not _EXTENSION_RE.match(ext):
            ext = MIME_EXTENSIONS.get((content_type or "").lower(), "")
        return f"{owner_id}-{uuid.uuid4().hex}{ext}"

    async def upload(
        self,
        owner_id: UUID | str,
        file: IncomingFile,
        asset_class: AssetClass,
        declared_kind: MediaType = MediaType.IMAGE,
    ) -> StoredObject:
        """
        Validate and stream a file into the object store.

        Args:
            owner_id: Owner whose id prefixes the key
            file: Incoming file
            asset_class: Slot the file is uploaded into, selects the policy
            declared_kind: Media kind the caller declares

        Returns:
            The stored object with its public URL

        Raises:
            ValidationError: File rejected, before or while streaming
            ConflictError: Generated key already taken
            StorageError: Backend failure or timeout
        """
        content_type = (file.content_type or "").lower()
        validate_file(content_type, file.size, declared_kind, asset_class)

        key = self.generate_key(owner_id, file.filename, content_type)
        if await self.store.exists(key):
            logger.error(f"Refusing to overwrite existing object {key}")
            raise ConflictError("Storage key already exists")

        logger.info(
            f"Starting upload of {file.filename} ({content_type}) for {owner_id} as {key}"
        )
        try:
            size = await asyncio.wait_for(
                self._stream(file, key, content_type, owner_id, asset_class),
                timeout=self.upload_timeout,
            )
        except ConflictError:
            # the key belongs to an object this upload did not write
            raise
        except ValidationError:
            await self.discard(key)
            raise
        except asyncio.TimeoutError as e:
            logger.error(f"Upload of {key} timed out after {self.upload_timeout}s")
            await self.discard(key)
            raise StorageError("Upload operation timed out") from e
        except asyncio.CancelledError:
            logger.warning(f"Upload of {key} cancelled, cleaning up")
            await self.discard(key)
            raise
        except StorageError:
            await self.discard(key)
            raise
        except Exception as e:
            logger.error(f"Upload of {key} failed: {str(e)}")
            await self.discard(key)
            raise StorageError("Failed to store file in storage") from e

        url = self.store.public_url(key)
        logger.info(f"File upload completed: {key} ({size} bytes)")
        return StoredObject(
            key=key,
            bucket=self.store.bucket,
            url=url,
            content_type=content_type,
            size_bytes=size,
        )

    async def _stream(
        self,
        file: IncomingFile,
        key: str,
        content_type: str,
        owner_id: UUID | str,
        asset_class: AssetClass,
    ) -> int:
        max_size = get_policy(asset_class).max_size_bytes
        metadata = {
            "original-name": file.filename or "",
            "uploaded-by": str(owner_id),
            "uploaded-at": utcnow().isoformat(),
        }
        size = 0
        async with self.store.writer(key, content_type, metadata) as writer:
            while True:
                chunk = await file.read(self.chunk_size)
                if not chunk:
                    break
                size += len(chunk)
                # the declared size is client-supplied, so enforce the real count too
                if size > max_size:
                    raise ValidationError(f"File size exceeds the {max_size // (1024 * 1024)}MB limit")
                await writer.write(chunk)
            if size == 0:
                raise ValidationError("File is empty")
        return size

    async def replace(
        self,
        owner_id: UUID | str,
        file: IncomingFile,
        old_key: Optional[str],
        asset_class: AssetClass,
        declared_kind: MediaType = MediaType.IMAGE,
        persist: Optional[Callable[[StoredObject], Awaitable[None]]] = None,
    ) -> ReplaceResult:
        """
        Replace the object in a slot: write the new one, then drop the old one.

        The old object is only touched after the new one is stored and, when
        given, after persist() recorded it. If persist() fails the new object
        is discarded and the old one stays live. Failure to delete the old
        object is reported as a warning and never fails the replace.
        """
        stored = await self.upload(owner_id, file, asset_class, declared_kind)

        if persist is not None:
            try:
                await persist(stored)
            except BaseException:
                logger.error(f"Recording {stored.key} failed, discarding the new object")
                await self.discard(stored.key)
                raise

        warning = None
        if old_key and old_key != stored.key:
            warning = await self.discard(old_key)
        return ReplaceResult(stored=stored, warning=warning)

    async def delete(self, key: str) -> bool:
        """
        Delete an object. Idempotent.

        Returns:
            True if deleted, False if it was already absent

        Raises:
            StorageError: If the backend fails
        """
        try:
            await self.store.delete(key)
        except NotFoundError:
            logger.info(f"Object {key} already absent")
            return False
        logger.info(f"Object {key} deleted")
        return True

    async def discard(self, key: str) -> Optional[str]:
        """
        Best-effort delete for cleanup paths.

        Returns:
            None on success (or if the object was absent), otherwise a warning
            describing the object that was left behind
        """
        try:
            await self.delete(key)
        except Exception as e:
            logger.error(f"Failed to clean up object {key}: {str(e)}")
            return f"Previous file {key} could not be removed"
        return None


def get_storage_gateway() -> MediaStorageGateway:
    """Build the gateway for the configured object store."""
    return MediaStorageGateway(
        store=get_object_store(),
        upload_timeout=settings.UPLOAD_TIMEOUT_SECONDS,
    )
