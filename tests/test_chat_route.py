from __future__ import annotations

import base64
import json

import httpx
from fastapi.testclient import TestClient

from main import build_pipeline, create_app
from services.session_addressor import SessionAddressor
from utils.settings import Settings

IMAGE_URL = "data:image/jpeg;base64," + base64.b64encode(b"jpeg-bytes").decode("ascii")


class RecordingStorage:
    name = "memory"

    def __init__(self, fail: bool = False) -> None:
        self.keys = []
        self.fail = fail

    async def put(self, key: str, body: bytes, content_type: str) -> None:
        if self.fail:
            raise OSError("disk full")
        self.keys.append(key)


def detection_ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"detection_count": 3, "labels": ["cat", "dog", "car"], "prediction_uid": "abc123"})


def make_client(storage=None, handler=detection_ok) -> TestClient:
    app = create_app()
    settings = Settings(detection_service="yolo:8080", storage_backend="local")
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    storage = storage or RecordingStorage()
    app.state.settings = settings
    app.state.storage = storage
    app.state.session_addressor = SessionAddressor()
    app.state.pipeline = build_pipeline(settings, http_client, storage)
    return TestClient(app)


def decode_stream(body: str):
    frames = []
    for line in body.splitlines():
        tag, _, payload = line.partition(":")
        frames.append((tag, json.loads(payload)))
    return frames


def message_text(frames) -> str:
    return "".join(payload for tag, payload in frames if tag == "0")


def test_stream_headers_and_prompt_without_image():
    client = make_client()
    response = client.post("/api/chat", json={"messages": [{"id": "m1", "role": "user", "content": "hi"}]})

    assert response.status_code == 200
    assert response.headers["content-type"] == "text/plain; charset=utf-8"
    assert response.headers["x-vercel-ai-data-stream"] == "v1"
    frames = decode_stream(response.text)
    assert message_text(frames) == "Please provide an image for object detection."
    assert [tag for tag, _ in frames[-2:]] == ["e", "d"]


def test_successful_detection_streams_report():
    storage = RecordingStorage()
    client = make_client(storage)
    response = client.post(
        "/api/chat",
        json={
            "messages": [{"id": "m1", "role": "user", "content": "", "experimental_attachments": [{"url": IMAGE_URL}]}],
            "selectedModel": "yolo",
            "data": {"images": [IMAGE_URL], "chatId": "chat-42"},
        },
    )

    text = message_text(decode_stream(response.text))
    assert "Detection Count:** 3" in text
    assert "cat, dog, car" in text
    assert "abc123" in text
    assert len(storage.keys) == 1
    assert storage.keys[0].startswith("chat-42/original/")
    assert storage.keys[0].endswith(".jpg")
    assert "set-cookie" not in response.headers


def test_new_conversation_gets_session_cookie():
    client = make_client()
    response = client.post("/api/chat", json={"messages": [], "data": {"images": []}})

    cookie = response.headers["set-cookie"]
    assert cookie.startswith("chat_session=")
    assert "Max-Age=7776000" in cookie
    assert "Path=/" in cookie
    assert "SameSite=lax" in cookie.replace("SameSite=Lax", "SameSite=lax")
    assert "HttpOnly" in cookie


def test_cookie_session_reused_for_storage_folder():
    storage = RecordingStorage()
    client = make_client(storage)
    client.cookies.set("chat_session", "20250301-cafebabe")

    response = client.post("/api/chat", json={"messages": [], "data": {"images": [IMAGE_URL]}})

    assert response.status_code == 200
    assert "set-cookie" not in response.headers
    assert storage.keys[0].startswith("20250301-cafebabe/original/")


def test_storage_failure_streams_error_report():
    client = make_client(RecordingStorage(fail=True))
    response = client.post("/api/chat", json={"messages": [], "data": {"images": [IMAGE_URL], "chat_id": "c1"}})

    assert response.status_code == 200
    frames = decode_stream(response.text)
    text = message_text(frames)
    assert text.startswith("❌ **Object Detection Error**")
    assert "http://yolo:8080" in text
    assert [tag for tag, _ in frames][-2:] == ["e", "d"]


def test_unsupported_image_source_streams_error_report():
    client = make_client()
    response = client.post("/api/chat", json={"messages": [], "data": {"images": ["s3://bucket/key.png"]}})

    assert "Unsupported image source" in message_text(decode_stream(response.text))


def test_invalid_body_is_rejected():
    client = make_client()
    response = client.post("/api/chat", json={"messages": "not-a-list"})

    assert response.status_code == 422


def test_health_reports_pipeline():
    client = make_client()
    assert client.get("/health").json() == {
        "ok": True,
        "pipeline_ready": True,
        "storage_backend": "memory",
        "detection_service": "yolo:8080",
    }


def test_unencodable_label_still_terminates_stream():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            content=b'{"detection_count": 1, "labels": ["\\ud800"], "prediction_uid": "p"}',
            headers={"content-type": "application/json"},
        )

    client = make_client(handler=handler)
    response = client.post("/api/chat", json={"messages": [], "data": {"images": [IMAGE_URL], "chatId": "c1"}})

    assert response.status_code == 200
    frames = decode_stream(response.text)
    assert "\ud800" in message_text(frames)
    assert [tag for tag, _ in frames][-2:] == ["e", "d"]
