import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request
from fastapi.responses import StreamingResponse

from services.detection_pipeline import DetectionPipeline
from services.session_addressor import SESSION_MAX_AGE_SECONDS, SessionAddressor
from services.stream_encoder import STREAM_MEDIA_TYPE, iter_encoded, stream_headers
from utils.settings import Settings

logger = logging.getLogger(__name__)


def _require_state(request: Request, name: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=500, detail=f"{name} not initialized.")
    return value


async def stream_chat_reply(
    request: Request,
    messages: List[Dict[str, Any]],
    data: Optional[Dict[str, Any]],
    selected_model: Optional[str] = None,
) -> StreamingResponse:
    """Run object detection for a chat turn and stream the reply.

    Args:
        request: FastAPI Request (used to access app.state and the session cookie).
        messages: Conversation messages as plain dicts; only the first id is read.
        data: Optional request data carrying `images` and the chat id fields.
        selected_model: Model picked in the chat UI. Accepted for compatibility, unused.

    Returns:
        A `StreamingResponse` in the data stream protocol. When a session id
        was minted for this request, the response also sets the session cookie.
    """
    settings: Settings = _require_state(request, "settings")
    addressor: SessionAddressor = _require_state(request, "session_addressor")
    pipeline: DetectionPipeline = _require_state(request, "pipeline")

    if selected_model:
        logger.debug("selectedModel=%s ignored; replies come from the detection service", selected_model)

    session = addressor.resolve(data, messages, request.cookies.get(settings.session_cookie_name))
    images = (data or {}).get("images") or []
    message = await pipeline.run(images, session.session_id)

    response = StreamingResponse(iter_encoded(message), media_type=STREAM_MEDIA_TYPE, headers=stream_headers())
    if session.token_to_persist:
        response.set_cookie(
            key=settings.session_cookie_name,
            value=session.token_to_persist,
            max_age=SESSION_MAX_AGE_SECONDS,
            path="/",
            samesite="lax",
            httponly=True,
        )
    return response
