"""Resolve inbound image references into raw bytes.

Two reference shapes are accepted: an inline `data:<type>;base64,<data>` URL
and a remote `http(s)://` URL. Anything else is rejected.
"""

from __future__ import annotations

import base64
import logging
import re

import httpx

from models.image_models import DecodedImage
from services.errors import MalformedInlineImage, RemoteFetchFailed, UnsupportedImageSource

logger = logging.getLogger(__name__)

# `.` without line terminators, as in a JavaScript regex.
_ANY = r"[^\n\r\u2028\u2029]"
_DATA_URL_RE = re.compile(rf"data:({_ANY}+?);base64,({_ANY}*)")
_NON_BASE64_RE = re.compile(r"[^A-Za-z0-9+/]")
_URL_SAFE = str.maketrans("-_", "+/")


def decode_base64_lenient(encoded: str) -> bytes:
    """Decode base64 the forgiving way browsers and Node do.

    URL-safe characters are accepted, decoding stops at the first `=`, other
    characters outside the alphabet are skipped and missing padding is added.
    """
    text = encoded.translate(_URL_SAFE).split("=", 1)[0]
    text = _NON_BASE64_RE.sub("", text)
    if len(text) % 4 == 1:
        # a single trailing sextet cannot form a byte
        text = text[:-1]
    return base64.b64decode(text + "=" * (-len(text) % 4), validate=True)


def parse_data_url(data_url: str) -> DecodedImage:
    """Decode a base64 data URL into bytes and its declared media type.

    Raises:
        MalformedInlineImage: If the URL does not match `data:<type>;base64,<data>`.
    """
    match = _DATA_URL_RE.fullmatch(data_url)
    if not match:
        raise MalformedInlineImage()
    content_type, encoded = match.group(1), match.group(2)
    return DecodedImage(data=decode_base64_lenient(encoded), content_type=content_type)


class ImageSourceResolver:
    """Turn an image reference string into a `DecodedImage`."""

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        if http_client is None:
            raise ValueError("An httpx.AsyncClient must be provided.")
        self.http_client = http_client

    async def resolve(self, reference: str) -> DecodedImage:
        """Return decoded bytes for an inline or remote image reference.

        Args:
            reference: Data URL or http(s) URL taken from the request payload.

        Raises:
            MalformedInlineImage: For a data URL of the wrong shape.
            RemoteFetchFailed: When the remote fetch fails or is not 2xx.
            UnsupportedImageSource: For any other kind of reference.
        """
        if not isinstance(reference, str):
            raise UnsupportedImageSource()
        if reference.startswith("data:"):
            return parse_data_url(reference)
        if reference.startswith("http://") or reference.startswith("https://"):
            return await self._fetch(reference)
        raise UnsupportedImageSource()

    async def _fetch(self, url: str) -> DecodedImage:
        try:
            response = await self.http_client.get(url, follow_redirects=True)
        except httpx.HTTPError as exc:
            logger.error("Error fetching image from %s: %s", url, exc)
            raise RemoteFetchFailed(message=f"Failed to fetch image: {exc}") from exc

        if not response.is_success:
            logger.error("Error fetching image from %s - %s", url, response.status_code)
            raise RemoteFetchFailed(response.status_code)

        return DecodedImage(data=response.content, content_type=response.headers.get("content-type"))
