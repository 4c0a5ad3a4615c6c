"""Tests for the HTTP surface."""

import pytest
from fastapi.testclient import TestClient

from api import create_app
from blobs import FileBlobStore
from config import DEFAULTS
from config.lib.load_settings_conf import validate_settings
from router import replies

from conftest import FakeGateway


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(tmp_path, gateway):
    settings = validate_settings(dict(DEFAULTS, db_url='memory://', contact_card_path=''))
    app = create_app(settings, gateway=gateway, blob_store=FileBlobStore(tmp_path))
    with TestClient(app) as test_client:
        yield test_client


def message_body(text, **overrides):
    body = {
        "message_id": "m-1",
        "kind": "text",
        "content": text,
        "chat_id": "wxid_seller",
        "is_group": False,
        "sender_id": "wxid_seller",
        "sender_nickname": "老王",
    }
    body.update(overrides)
    return body


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "running"


def test_message_is_accepted_and_handled(client, gateway):
    response = client.post("/messages", json=message_body("帮助"))
    assert response.status_code == 202
    assert response.json() == {"message_id": "m-1", "status": "accepted"}

    # Background tasks run before TestClient returns
    assert gateway.texts == [("wxid_seller", replies.HELP_TEXT)]


def test_create_and_browse(client, gateway):
    client.post("/messages", json=message_body("交易，老王，手办，50，1，限量版"))
    client.post("/messages", json=message_body("交易区"))
    assert gateway.texts[-1][1].startswith("————交易区————\n1号---手办（限量版），价：50.00")


def test_invalid_message(client):
    response = client.post("/messages", json={"content": "帮助"})
    assert response.status_code == 422


def test_health(client):
    response = client.get("/system/health")
    assert response.status_code == 200
    health = response.json()
    assert health["status"] == "healthy"
    assert health["ledger_status"] == "connected"
    assert health["ledger_backend"] == "MemoryLedger"
