"""Encode a reply into the chat UI's line-oriented data stream protocol.

Frames, one per line:
    0:<json string>   a chunk of message text
    e:<json object>   end of step, with finish reason and usage
    d:<json object>   end of stream; nothing may follow

`completionTokens` is the message length in UTF-16 code units, the same
number a JavaScript client computes with `message.length`. It is not a real
token count.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Iterator, List

STREAM_PROTOCOL_HEADER = "X-Vercel-AI-Data-Stream"
STREAM_PROTOCOL_VERSION = "v1"
STREAM_MEDIA_TYPE = "text/plain; charset=utf-8"

PROMPT_TOKENS = 10
FINISH_REASON = "stop"

TEXT_TAG = "0"
FINISH_STEP_TAG = "e"
FINISH_MESSAGE_TAG = "d"


_SURROGATE_RE = re.compile("[\ud800-\udbff][\udc00-\udfff]|[\ud800-\udfff]")


def _escape_surrogates(match: "re.Match[str]") -> str:
    text = match.group(0)
    if len(text) == 2:
        high, low = ord(text[0]), ord(text[1])
        return chr(0x10000 + ((high - 0xD800) << 10) + (low - 0xDC00))
    return f"\\u{ord(text):04x}"


def _dumps(value: Any) -> str:
    # Compact and non-ASCII preserving, matching JSON.stringify output.
    # Lone surrogates are escaped as JSON.stringify does, so frames always encode as UTF-8.
    return _SURROGATE_RE.sub(_escape_surrogates, json.dumps(value, ensure_ascii=False, separators=(",", ":")))


def completion_tokens(message: str) -> int:
    """Return the JavaScript string length of `message`."""
    return len(message.encode("utf-16-le", "surrogatepass")) // 2


def split_message(message: str) -> List[str]:
    """Split on newlines, keeping each line's trailing newline except the last."""
    lines = message.split("\n")
    return [line + "\n" if i < len(lines) - 1 else line for i, line in enumerate(lines)]


def _frame(tag: str, payload: Any) -> str:
    return f"{tag}:{_dumps(payload)}\n"


def _usage(message: str) -> Dict[str, int]:
    return {"promptTokens": PROMPT_TOKENS, "completionTokens": completion_tokens(message)}


def iter_frames(message: str) -> Iterator[str]:
    """Yield every frame for `message`, ending with the `d:` frame."""
    for chunk in split_message(message):
        yield _frame(TEXT_TAG, chunk)
    yield _frame(
        FINISH_STEP_TAG,
        {"finishReason": FINISH_REASON, "usage": _usage(message), "isContinued": False},
    )
    yield _frame(FINISH_MESSAGE_TAG, {"finishReason": FINISH_REASON, "usage": _usage(message)})


def iter_encoded(message: str) -> Iterator[bytes]:
    """Yield the UTF-8 encoded frames, ready for a streaming response body."""
    for frame in iter_frames(message):
        yield frame.encode("utf-8")


def stream_headers() -> Dict[str, str]:
    return {STREAM_PROTOCOL_HEADER: STREAM_PROTOCOL_VERSION}
