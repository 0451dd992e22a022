"""FastAPI route for the object detection chat endpoint."""

from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from controllers.chat_controller import stream_chat_reply

router = APIRouter(prefix="/api")


class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Union[str, int, None] = None
    role: Optional[str] = None
    content: Any = None


class ChatData(BaseModel):
    model_config = ConfigDict(extra="allow")

    images: Optional[List[Any]] = None
    chatId: Union[str, int, None] = None
    chat_id: Union[str, int, None] = None


class ChatPayload(BaseModel):
    messages: List[ChatMessage] = Field(default_factory=list)
    selectedModel: Optional[str] = None
    data: Optional[ChatData] = None


def _message_dicts(messages: List[ChatMessage]) -> List[Dict[str, Any]]:
    # experimental_attachments carry the raw image again; the pipeline reads data.images
    return [m.model_dump(exclude={"experimental_attachments"}) for m in messages]


@router.post("/chat")
async def chat_route(request: Request, payload: ChatPayload):
    """Detect objects in the first attached image and stream the reply."""
    data = payload.data.model_dump() if payload.data is not None else None
    try:
        return await stream_chat_reply(request, _message_dicts(payload.messages), data, payload.selectedModel)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
