"""Run one chat image through storage and detection and produce the reply text."""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from services.detection_client import DetectionClient
from services.errors import PipelineError, UnknownPipelineError
from services.image_source import ImageSourceResolver
from services.image_store import StorageUploader
from services.result_formatter import build_error_message, build_prompt_message, build_success_message

logger = logging.getLogger(__name__)


class DetectionPipeline:
    """Resolve, upload and detect a single image for a conversation."""

    def __init__(
        self,
        resolver: ImageSourceResolver,
        uploader: StorageUploader,
        detector: DetectionClient,
        service_address: str,
    ) -> None:
        self.resolver = resolver
        self.uploader = uploader
        self.detector = detector
        self.service_address = service_address

    async def run(self, images: Optional[Sequence[str]], session_id: str) -> str:
        """Return the reply message for the request's images.

        Only the first image is processed. Every failure is logged and turned
        into an error report, so this method never raises.
        """
        if not images:
            return build_prompt_message()
        if len(images) > 1:
            logger.debug("Ignoring %d extra image(s) for session %s", len(images) - 1, session_id)

        try:
            decoded = await self.resolver.resolve(images[0])
            stored = await self.uploader.upload(decoded, session_id)
            result = await self.detector.predict(stored.key, session_id)
        except PipelineError as exc:
            logger.error("Object detection error for session %s: %s", session_id, exc.message)
            return build_error_message(exc, self.service_address)
        except Exception as exc:
            logger.exception("Unexpected object detection error for session %s", session_id)
            return build_error_message(UnknownPipelineError(exc), self.service_address)

        return build_success_message(result)
