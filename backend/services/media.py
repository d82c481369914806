"""Profile media uploads (avatars and cover images) backed by MinIO."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal
from uuid import uuid4

from fastapi import UploadFile
from minio import Minio

from core.config import Settings
from core.errors import BadRequestError, PayloadTooLargeError, ServiceUnavailableError

from .images import UploadTooLargeError, process_image_bytes, read_upload_file
from .storage import (
    build_object_url,
    delete_object,
    ensure_bucket,
    get_minio_client,
    put_object_bytes,
)

MediaKind = Literal["avatar", "cover"]
logger = logging.getLogger(__name__)
_background_tasks: set[asyncio.Task[None]] = set()


class MediaUploadError(RuntimeError):
    """Raised when the storage backend refuses or fails an upload."""


@dataclass(frozen=True, slots=True)
class StoredMedia:
    key: str
    url: str


class MediaUploader:
    """Validates image uploads and stores them under the configured media folder."""

    def __init__(self, settings: Settings, client: Minio | None = None) -> None:
        self.settings = settings
        self._client = client

    @property
    def client(self) -> Minio:
        if self._client is None:
            self._client = get_minio_client(self.settings)
        return self._client

    def object_key_for(self, kind: MediaKind) -> str:
        folder = self.settings.media_folder
        name = f"{kind}s/{uuid4().hex}.jpg"
        return f"{folder}/{name}" if folder else name

    async def upload_image(self, upload: UploadFile, *, kind: MediaKind) -> StoredMedia:
        """Store ``upload`` as a normalized JPEG and return its key and public URL.

        Raises ``PayloadTooLargeError`` / ``BadRequestError`` for bad client data,
        ``ServiceUnavailableError`` when storage does not answer in time and
        ``MediaUploadError`` when storage rejects the write.
        """
        try:
            data = await read_upload_file(upload, self.settings.upload_max_bytes)
        except UploadTooLargeError as exc:
            raise PayloadTooLargeError(str(exc)) from exc
        except ValueError as exc:
            raise BadRequestError(str(exc)) from exc

        try:
            processed_bytes, content_type = await asyncio.to_thread(process_image_bytes, data)
        except ValueError as exc:
            raise BadRequestError(str(exc)) from exc

        object_key = self.object_key_for(kind)
        store = asyncio.ensure_future(
            asyncio.to_thread(self._store, object_key, processed_bytes, content_type)
        )
        try:
            await asyncio.wait_for(
                asyncio.shield(store),
                timeout=self.settings.media_upload_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.warning(
                "Media upload timed out",
                extra={"object_key": object_key, "kind": kind},
            )
            # The worker thread keeps running; delete the object if it lands.
            cleanup = asyncio.create_task(self._remove_late_write(store, object_key))
            _background_tasks.add(cleanup)
            cleanup.add_done_callback(_background_tasks.discard)
            raise ServiceUnavailableError("Media storage did not respond in time") from exc
        except Exception as exc:
            logger.warning(
                "Media upload failed",
                extra={"object_key": object_key, "kind": kind},
                exc_info=exc,
            )
            raise MediaUploadError(f"Failed to upload {kind} image") from exc

        logger.info("Uploaded %s image", kind, extra={"object_key": object_key})
        return StoredMedia(key=object_key, url=build_object_url(self.settings, object_key))

    async def remove(self, object_key: str | None) -> None:
        """Best-effort removal of a stored object; failures are logged, not raised."""
        if not object_key:
            return
        try:
            await asyncio.to_thread(
                delete_object,
                self.client,
                self.settings.minio_bucket,
                object_key,
            )
        except Exception as cleanup_error:
            logger.warning(
                "Failed to cleanup media object",
                extra={"object_key": object_key},
                exc_info=cleanup_error,
            )

    async def _remove_late_write(self, store: asyncio.Future[None], object_key: str) -> None:
        try:
            await store
        except Exception:
            logger.info(
                "Timed out upload never landed",
                extra={"object_key": object_key},
                exc_info=True,
            )
            return
        await self.remove(object_key)

    def _store(self, object_key: str, payload: bytes, content_type: str) -> None:
        client = self.client
        ensure_bucket(client, self.settings.minio_bucket)
        put_object_bytes(
            client,
            self.settings.minio_bucket,
            object_key,
            payload,
            content_type,
        )
