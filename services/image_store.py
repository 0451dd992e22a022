"""Helpers for saving original chat images to object storage.

Keys follow `{session_id}/original/{timestamp}.{extension}` where the
timestamp is epoch milliseconds and the extension is inferred from the
content type. The backend is any `dal.object_storage.ObjectStorage`.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from dal.object_storage import ObjectStorage
from models.image_models import DecodedImage, StoredObject
from services.errors import StorageWriteFailed

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/jpeg"
DEFAULT_EXTENSION = "jpg"

# Ordered substring rules; the first match wins.
EXTENSION_RULES = (
    ("png", "png"),
    ("webp", "webp"),
    ("jpeg", "jpg"),
    ("gif", "gif"),
)


def guess_extension(content_type: Optional[str]) -> str:
    """Return a file extension for `content_type`, defaulting to `jpg`."""
    if not content_type:
        return DEFAULT_EXTENSION
    for needle, ext in EXTENSION_RULES:
        if needle in content_type:
            return ext
    return DEFAULT_EXTENSION


def build_object_key(session_id: str, timestamp_ms: int, extension: str) -> str:
    return f"{session_id}/original/{timestamp_ms}.{extension}"


class StorageUploader:
    """Persist decoded images under their session folder."""

    def __init__(self, storage: ObjectStorage, clock_ms: Optional[Callable[[], int]] = None) -> None:
        if storage is None:
            raise ValueError("An object storage backend must be provided.")
        self.storage = storage
        self._clock_ms = clock_ms or (lambda: int(time.time() * 1000))

    async def upload(self, image: DecodedImage, session_id: str) -> StoredObject:
        """Write `image` under `session_id` and return where it landed.

        Args:
            image: Bytes and optional content type from the resolver.
            session_id: Conversation folder the object belongs to.

        Returns:
            The `StoredObject` describing the written key.

        Raises:
            StorageWriteFailed: If the backend raises for any reason.
        """
        key = build_object_key(session_id, self._clock_ms(), guess_extension(image.content_type))
        content_type = image.content_type or DEFAULT_CONTENT_TYPE
        try:
            await self.storage.put(key, image.data, content_type)
        except Exception as exc:
            logger.error("Error writing %s to %s storage: %s", key, getattr(self.storage, "name", "object"), exc)
            raise StorageWriteFailed(key, f"Failed to upload image to storage: {exc}") from exc

        logger.info("Stored %d bytes at %s", len(image.data), key)
        return StoredObject(key=key, content_type=content_type, size=len(image.data))
