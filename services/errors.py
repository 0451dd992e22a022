"""Failure types raised by the image detection pipeline.

Every stage raises a subclass of `PipelineError`; the pipeline catches them
once per request and turns them into a user-facing error report.
"""

from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
    """Base class for failures that end a detection request."""

    default_message = "Unknown error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class UnsupportedImageSource(PipelineError):
    default_message = "Unsupported image source. Use a data URL or http(s) URL."


class MalformedInlineImage(PipelineError):
    default_message = "Unsupported data URL format."


class RemoteFetchFailed(PipelineError):
    """Fetching a remote image did not yield a successful response."""

    def __init__(self, status_code: Optional[int] = None, message: Optional[str] = None) -> None:
        self.status_code = status_code
        super().__init__(message or f"Failed to fetch image: {status_code}")


class StorageWriteFailed(PipelineError):
    """The storage backend rejected or failed the object write."""

    def __init__(self, key: str, message: Optional[str] = None) -> None:
        self.key = key
        super().__init__(message or f"Failed to upload image to storage at '{key}'")


class DetectionServiceError(PipelineError):
    """The detection service failed or returned an unusable response."""

    def __init__(self, status_code: Optional[int] = None, detail: str = "", message: Optional[str] = None) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(message or f"Prediction API error: {status_code} {detail}")


class UnknownPipelineError(PipelineError):
    """Wraps an unexpected exception so it can be reported like the others."""

    def __init__(self, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        text = str(cause).strip() if cause is not None else ""
        super().__init__(text or None)
