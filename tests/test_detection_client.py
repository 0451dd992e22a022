from __future__ import annotations

import asyncio

import httpx
import pytest

from services.detection_client import DetectionClient
from services.errors import DetectionServiceError


def make_client(handler) -> DetectionClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DetectionClient(http_client, "http://yolo:8080")


def test_predict_sends_key_and_session_as_query():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["body"] = request.content
        return httpx.Response(
            200, json={"detection_count": 3, "labels": ["cat", "dog", "car"], "prediction_uid": "abc123"}
        )

    result = asyncio.run(make_client(handler).predict("chat 1/original/1.png", "chat 1"))

    assert seen["method"] == "POST"
    assert seen["path"] == "/predict"
    assert seen["params"] == {"img": "chat 1/original/1.png", "chat_id": "chat 1"}
    assert seen["body"] == b""
    assert result.detection_count == 3
    assert result.labels == ["cat", "dog", "car"]
    assert result.prediction_uid == "abc123"


def test_predict_ignores_extra_fields():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"detection_count": 0, "labels": [], "prediction_uid": "p1", "time_took": 0.2}
        )

    result = asyncio.run(make_client(handler).predict("k", "s"))
    assert result.detection_count == 0
    assert result.labels == []


def test_error_status_carries_status_and_text():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, text="Image not found in bucket")

    with pytest.raises(DetectionServiceError) as exc_info:
        asyncio.run(make_client(handler).predict("k", "s"))

    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Image not found in bucket"
    assert exc_info.value.message == "Prediction API error: 400 Image not found in bucket"


@pytest.mark.parametrize(
    "payload",
    [
        {"labels": ["cat"], "prediction_uid": "p1"},
        {"detection_count": 1, "prediction_uid": "p1"},
        {"detection_count": 1, "labels": ["cat"]},
        {"detection_count": -1, "labels": [], "prediction_uid": "p1"},
        {"detection_count": 1, "labels": "cat", "prediction_uid": "p1"},
        ["not", "an", "object"],
    ],
)
def test_malformed_payload_is_a_service_error(payload):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    with pytest.raises(DetectionServiceError) as exc_info:
        asyncio.run(make_client(handler).predict("k", "s"))
    assert "unexpected payload" in exc_info.value.message


def test_non_json_body_is_a_service_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    with pytest.raises(DetectionServiceError, match="invalid JSON"):
        asyncio.run(make_client(handler).predict("k", "s"))


def test_unreachable_service():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("name resolution failed", request=request)

    with pytest.raises(DetectionServiceError) as exc_info:
        asyncio.run(make_client(handler).predict("k", "s"))
    assert exc_info.value.status_code is None


def test_timeout_is_a_service_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(DetectionServiceError) as exc_info:
        asyncio.run(make_client(handler).predict("k", "s"))
    assert exc_info.value.status_code is None
    assert "timed out" in exc_info.value.message
