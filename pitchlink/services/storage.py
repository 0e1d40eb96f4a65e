import os
import secrets
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from loguru import logger
from supabase import Client, create_client

from pitchlink.core.config import (
    MAX_UPLOAD_BYTES,
    STORAGE_BACKEND,
    SUPABASE_BUCKET,
    SUPABASE_SERVICE_ROLE_KEY,
    SUPABASE_URL,
    UPLOAD_DIR,
    UPLOAD_URL_PREFIX,
)
from pitchlink.core.errors import UpstreamError, ValidationError
from pitchlink.schemas.enums import AttachmentType


@dataclass
class PendingUpload:
    """A file received with a send request, not yet stored."""

    filename: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def detect_attachment_type(mime_type: str) -> AttachmentType:
    if mime_type.startswith("image"):
        return AttachmentType.image
    if mime_type.startswith("video"):
        return AttachmentType.video
    if mime_type == "application/pdf":
        return AttachmentType.pdf
    return AttachmentType.document


def _object_name(filename: str, folder: str) -> str:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    return f"{folder}/{int(time.time() * 1000)}-{secrets.token_hex(4)}.{ext}"


class ObjectStorage:
    def store(self, data: bytes, filename: str, mime_type: str, folder: str) -> str:
        raise NotImplementedError


class LocalObjectStorage(ObjectStorage):
    """Writes under ``root`` and serves from ``url_prefix`` (mounted as static)."""

    def __init__(self, root: str = UPLOAD_DIR, url_prefix: str = UPLOAD_URL_PREFIX):
        self.root = root
        self.url_prefix = url_prefix.rstrip("/")

    def store(self, data: bytes, filename: str, mime_type: str, folder: str) -> str:
        name = _object_name(filename, folder)
        full_path = os.path.join(self.root, name)
        try:
            os.makedirs(os.path.dirname(full_path), exist_ok=True)
            with open(full_path, "wb") as buffer:
                buffer.write(data)
        except OSError as e:
            logger.error(f"Local upload failed | file={filename} error={e}")
            raise UpstreamError(f"Upload failed: {e}") from e

        return f"{self.url_prefix}/{name}"


class SupabaseObjectStorage(ObjectStorage):
    """Uploads into a Supabase Storage bucket with the service-role key."""

    def __init__(self, bucket: str = SUPABASE_BUCKET):
        self.bucket = bucket
        self._client: Client | None = None

    def client(self) -> Client:
        if self._client is None:
            if not SUPABASE_URL or not SUPABASE_SERVICE_ROLE_KEY:
                raise RuntimeError("Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY")
            self._client = create_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)
        return self._client

    def store(self, data: bytes, filename: str, mime_type: str, folder: str) -> str:
        name = _object_name(filename, folder)
        try:
            files = self.client().storage.from_(self.bucket)
            files.upload(name, data, {"content-type": mime_type, "upsert": "false"})
            return files.get_public_url(name)
        except Exception as e:
            logger.error(f"Supabase upload failed | file={filename} error={e}")
            raise UpstreamError(f"Upload failed: {e}") from e


def materialize_attachments(
    storage: ObjectStorage,
    uploads: Optional[List[PendingUpload]],
    folder: str = "chat-files",
) -> List[Dict]:
    """Store every upload and return the attachment entries for a Message."""
    attachments = []
    for upload in uploads or []:
        if upload.size > MAX_UPLOAD_BYTES:
            raise ValidationError(f"File {upload.filename} exceeds the {MAX_UPLOAD_BYTES} byte limit")

        url = storage.store(upload.data, upload.filename, upload.mime_type, folder)
        attachments.append(
            {
                "type": detect_attachment_type(upload.mime_type).value,
                "url": url,
                "filename": upload.filename,
                "size": upload.size,
                "mime_type": upload.mime_type,
            }
        )
    return attachments


def build_storage(backend: str = STORAGE_BACKEND) -> ObjectStorage:
    if backend == "supabase":
        return SupabaseObjectStorage()
    if backend == "local":
        return LocalObjectStorage()
    raise RuntimeError(f"Invalid STORAGE_BACKEND: {backend}")


_STORAGE: ObjectStorage | None = None


def get_storage() -> ObjectStorage:
    global _STORAGE
    if _STORAGE is None:
        _STORAGE = build_storage()
    return _STORAGE
