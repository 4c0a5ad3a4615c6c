"""Tests for the chat bridge gateway."""

import base64
import json

import pytest
import requests

from gateway import InboundMessage, MessageKind
from gateway.bridge import BridgeGateway, BridgeError, BridgeAuthError, BridgeConnectionError


class FakeResponse:
    def __init__(self, status_code=200, body=None, reason="OK"):
        self.status_code = status_code
        self.reason = reason
        self.content = json.dumps(body).encode() if body is not None else b""

    def json(self):
        return json.loads(self.content)


@pytest.fixture
def bridge():
    return BridgeGateway("http://bridge.local/", token="secret", timeout=3)


def record_requests(monkeypatch, bridge, response):
    calls = []

    def fake_request(method, url, json=None, timeout=None):
        calls.append((method, url, json, timeout))
        return response

    monkeypatch.setattr(bridge.client.session, "request", fake_request)
    return calls


@pytest.mark.asyncio
async def test_send_text(monkeypatch, bridge):
    calls = record_requests(monkeypatch, bridge, FakeResponse(body={"ok": True}))
    await bridge.send_text("wxid_1", "你好")
    assert calls == [("POST", "http://bridge.local/send_text", {"target_id": "wxid_1", "text": "你好"}, 3)]
    assert bridge.client.session.headers["authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_send_image_is_base64(monkeypatch, bridge):
    calls = record_requests(monkeypatch, bridge, FakeResponse())
    await bridge.send_image("group-1", b"\x00\x01")
    assert calls[0][2] == {"target_id": "group-1", "data": base64.b64encode(b"\x00\x01").decode()}


@pytest.mark.asyncio
async def test_list_groups(monkeypatch, bridge):
    record_requests(monkeypatch, bridge, FakeResponse(body=[{"id": "group-1", "name": "交易群"}]))
    groups = await bridge.list_groups()
    assert [group.id for group in groups] == ["group-1"]


@pytest.mark.asyncio
async def test_fetch_picture(monkeypatch, bridge):
    encoded = base64.b64encode(b"jpeg").decode()
    calls = record_requests(monkeypatch, bridge, FakeResponse(body={"data": encoded}))
    message = InboundMessage(
        message_id="42", kind=MessageKind.PICTURE, chat_id="c", sender_id="s"
    )
    assert await bridge.fetch_picture(message) == b"jpeg"
    assert calls[0][1] == "http://bridge.local/messages/42/picture"


@pytest.mark.asyncio
async def test_sender_identity_falls_back_to_id(bridge):
    message = InboundMessage(message_id="1", chat_id="c", sender_id="wxid_9")
    identity = await bridge.current_sender_identity(message)
    assert identity.user_id == "wxid_9"
    assert identity.nickname == "wxid_9"


@pytest.mark.asyncio
async def test_auth_error(monkeypatch, bridge):
    record_requests(monkeypatch, bridge, FakeResponse(status_code=401, reason="Unauthorized"))
    with pytest.raises(BridgeAuthError):
        await bridge.send_text("wxid_1", "hi")


@pytest.mark.asyncio
async def test_error_response(monkeypatch, bridge):
    record_requests(monkeypatch, bridge, FakeResponse(status_code=500, body={"error": "down"}))
    with pytest.raises(BridgeError) as exc_info:
        await bridge.list_contacts()
    assert "down" in str(exc_info.value)


@pytest.mark.asyncio
async def test_connection_error_is_retried(monkeypatch, bridge):
    attempts = []

    def failing_request(*args, **kwargs):
        attempts.append(1)
        raise requests.exceptions.ConnectionError("refused")

    monkeypatch.setattr(bridge.client.session, "request", failing_request)
    monkeypatch.setattr("time.sleep", lambda seconds: None)
    with pytest.raises(BridgeConnectionError):
        await bridge.send_text("wxid_1", "hi")
    assert len(attempts) == 3
