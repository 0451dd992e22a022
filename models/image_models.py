from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class DecodedImage:
    """Raw image bytes resolved from an inbound image reference.

    Attributes:
        data: Decoded image bytes.
        content_type: Declared or response-provided MIME type, if any.
    """

    data: bytes
    content_type: Optional[str] = None


@dataclass
class StoredObject:
    """Location and metadata of an image written to object storage.

    Attributes:
        key: Object key, `{session_id}/original/{timestamp}.{extension}`.
        content_type: MIME type recorded with the object.
        size: Number of bytes written.
    """

    key: str
    content_type: str
    size: int
