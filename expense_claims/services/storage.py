"""
Attachment Store Adapter
MinIO (S3-compatible) storage for claim and item evidence files.
Source: https://min.io/docs/minio/linux/developers/python/minio-py.html

Blobs are addressed by URL. Uploads are fatal when they fail; deletes are
idempotent (removing a missing object is not an error).
"""

import secrets
import time
from dataclasses import dataclass
from functools import lru_cache
from io import BytesIO
from pathlib import PurePosixPath
from typing import Protocol
from urllib.parse import unquote, urlparse

from anyio import to_thread
from minio import Minio
from minio.error import S3Error

from expense_claims.api.config import settings
from expense_claims.core.enums import AttachmentOwnerKind
from expense_claims.utils.errors import AttachmentUploadError, ValidationError
from expense_claims.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class UploadedFile:
    """A file received from the client, not yet stored."""

    file_name: str
    content: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        return PurePosixPath(self.file_name).suffix.lower()


@dataclass(frozen=True)
class StoredObject:
    """Where an uploaded file ended up."""

    url: str
    size: int
    mime_type: str


class AttachmentStore(Protocol):
    async def upload(
        self, owner_kind: AttachmentOwnerKind, owner_id: int, file: UploadedFile
    ) -> StoredObject: ...

    async def delete(self, url: str) -> None: ...


def build_object_name(owner_kind: AttachmentOwnerKind, owner_id: int, file_name: str) -> str:
    """``claims/12/claim_12_<ms>_<rand>.pdf`` or ``items/40/item_40_<ms>_<rand>.jpg``."""
    suffix = PurePosixPath(file_name).suffix.lower()
    prefix = "claims" if owner_kind == AttachmentOwnerKind.CLAIM else "items"
    stamp = int(time.time() * 1000)
    token = secrets.token_hex(3)
    return f"{prefix}/{owner_id}/{owner_kind.value}_{owner_id}_{stamp}_{token}{suffix}"


def validate_upload(file: UploadedFile) -> None:
    """Reject files the claim form would not accept, before anything is stored."""
    if not file.file_name:
        raise ValidationError("Attachment file name is required")
    if file.extension not in settings.UPLOAD_ALLOWED_EXTENSIONS:
        raise ValidationError(
            f"File type {file.extension or '(none)'} is not allowed",
            file_name=file.file_name,
        )
    if file.size > settings.upload_max_bytes:
        raise ValidationError(
            f"File exceeds {settings.UPLOAD_MAX_SIZE_MB} MB",
            file_name=file.file_name,
        )


class MinioAttachmentStore:
    """
    MinIO-backed attachment store.

    The blocking MinIO client runs in worker threads via ``anyio.to_thread``.
    """

    def __init__(
        self,
        client: Minio | None = None,
        bucket: str | None = None,
        base_url: str | None = None,
    ):
        self.client = client or Minio(
            settings.MINIO_ENDPOINT,
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            secure=settings.MINIO_SECURE,
            region=settings.MINIO_REGION,
        )
        self.bucket = bucket or settings.MINIO_BUCKET_ATTACHMENTS
        self.base_url = (base_url or settings.attachment_base_url).rstrip("/")
        self._bucket_ready = False

    def url_for(self, object_name: str) -> str:
        return f"{self.base_url}/{self.bucket}/{object_name}"

    def object_name_from_url(self, url: str) -> str | None:
        """Recover the object key from a URL this store produced, or None for foreign URLs."""
        path = unquote(urlparse(url).path)
        marker = f"/{self.bucket}/"
        if marker not in path:
            return None
        return path.split(marker, 1)[1] or None

    async def upload(
        self, owner_kind: AttachmentOwnerKind, owner_id: int, file: UploadedFile
    ) -> StoredObject:
        validate_upload(file)
        object_name = build_object_name(owner_kind, owner_id, file.file_name)
        content_type = file.content_type or DEFAULT_CONTENT_TYPE

        try:
            await to_thread.run_sync(self._upload_sync, object_name, file.content, content_type)
        except S3Error as e:
            logger.error(f"Error uploading {file.file_name} for {owner_kind.value} {owner_id}: {e}")
            raise AttachmentUploadError(
                f"Could not store {file.file_name}", file_name=file.file_name
            ) from e

        return StoredObject(url=self.url_for(object_name), size=file.size, mime_type=content_type)

    async def delete(self, url: str) -> None:
        object_name = self.object_name_from_url(url)
        if object_name is None:
            logger.warning(f"Ignoring delete for URL outside bucket {self.bucket}: {url}")
            return

        try:
            await to_thread.run_sync(self._delete_sync, object_name)
        except S3Error as e:
            if e.code in ("NoSuchKey", "NoSuchObject"):
                return
            raise

    # ------------------------------------------------------------------
    # Blocking helpers (run via anyio.to_thread)
    # ------------------------------------------------------------------

    def _ensure_bucket_sync(self) -> None:
        if self._bucket_ready:
            return
        if not self.client.bucket_exists(self.bucket):
            self.client.make_bucket(self.bucket)
            logger.info(f"Created bucket: {self.bucket}")
        self._bucket_ready = True

    def _upload_sync(self, object_name: str, content: bytes, content_type: str) -> None:
        self._ensure_bucket_sync()
        self.client.put_object(
            self.bucket,
            object_name,
            BytesIO(content),
            len(content),
            content_type=content_type,
        )
        logger.info(f"Uploaded file: {self.bucket}/{object_name}")

    def _delete_sync(self, object_name: str) -> None:
        self.client.remove_object(self.bucket, object_name)
        logger.info(f"Deleted file: {self.bucket}/{object_name}")


@lru_cache
def get_attachment_store() -> MinioAttachmentStore:
    """Process-wide attachment store."""
    return MinioAttachmentStore()
