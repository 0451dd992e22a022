"""Client for the external object detection service."""

import logging
import time
from typing import Any

import httpx
from pydantic import ValidationError

from models.detection_result import DetectionResult
from services.errors import DetectionServiceError

logger = logging.getLogger(__name__)


class DetectionClient:
    """Ask the detection service to run on an object it fetches from storage."""

    def __init__(self, http_client: httpx.AsyncClient, base_url: str) -> None:
        """Initialize with a shared async HTTP client and the service base URL."""
        if http_client is None:
            raise ValueError("An httpx.AsyncClient must be provided.")
        if not base_url:
            raise ValueError("Detection service base URL must be provided.")
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")

    async def predict(self, object_key: str, session_id: str) -> DetectionResult:
        """Run detection on the stored object `object_key` for `session_id`."""
        start_time = time.time()
        response = await self._create_prediction(object_key, session_id)
        result = self._parse_response(response)
        logger.info(
            "Prediction %s for %s: %d detection(s) in %.2fs",
            result.prediction_uid,
            object_key,
            result.detection_count,
            time.time() - start_time,
        )
        return result

    async def _create_prediction(self, object_key: str, session_id: str) -> httpx.Response:
        """POST to `/predict`; the key and session travel as query parameters."""
        try:
            response = await self.http_client.post(
                f"{self.base_url}/predict",
                params={"img": object_key, "chat_id": session_id},
            )
        except httpx.HTTPError as exc:
            logger.error("Error during detection service call: %s", exc)
            raise DetectionServiceError(message=f"Prediction API unreachable: {exc}") from exc

        if not response.is_success:
            detail = response.text
            logger.error("Detection service returned %s: %s", response.status_code, detail)
            raise DetectionServiceError(response.status_code, detail)
        return response

    def _parse_response(self, response: httpx.Response) -> DetectionResult:
        """Validate the service payload into a `DetectionResult`."""
        try:
            payload: Any = response.json()
        except ValueError as exc:
            logger.error("Detection service returned non-JSON body: %r", response.text)
            raise DetectionServiceError(
                response.status_code, response.text, message="Prediction API returned an invalid JSON body"
            ) from exc

        try:
            return DetectionResult.model_validate(payload)
        except ValidationError as exc:
            logger.error("Unexpected detection payload %r: %s", payload, exc)
            raise DetectionServiceError(
                response.status_code,
                response.text,
                message=f"Prediction API returned an unexpected payload: {exc.error_count()} invalid field(s)",
            ) from exc
