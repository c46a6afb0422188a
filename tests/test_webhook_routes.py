"""Tests for the webhook and health endpoints."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from relaybot.core.app_factory import create_app
from relaybot.core.config import settings
from relaybot.core.webhook_auth import SECRET_HEADER
from relaybot.services.runtime import build_runtime

UPDATE = {
    "update_id": 1001,
    "message": {
        "message_id": 1,
        "chat": {"id": 500},
        "from": {"id": 7, "first_name": "Ada"},
        "text": "/help",
    },
}


@pytest.fixture
def runtime(messenger, membership, provider):
    return build_runtime(messenger=messenger, membership=membership, provider=provider)


@pytest.fixture
def client(runtime):
    with TestClient(create_app(runtime=runtime)) as test_client:
        yield test_client


def test_health_without_runtime_reports_starting():
    with TestClient(create_app()) as test_client:
        resp = test_client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "starting"}


def test_health_reports_runtime_snapshot(client):
    resp = client.get("/health")

    body = resp.json()
    assert body["status"] == "ok"
    assert body["verified_users"] == 0
    assert body["downloads_in_flight"] == 0
    assert body["sweepers_running"] is True


def test_webhook_dispatches_update(client, runtime, messenger):
    resp = client.post("/telegram/webhook", json=UPDATE)

    assert resp.status_code == 200
    assert resp.json()["ok"] is True
    # Background task runs before TestClient returns
    assert "How to use this bot" in messenger.texts[0]["text"]


def test_webhook_rejects_wrong_secret(client, monkeypatch, messenger):
    monkeypatch.setattr(settings.bot, "webhook_secret", "s3cret")

    missing = client.post("/telegram/webhook", json=UPDATE)
    wrong = client.post("/telegram/webhook", json=UPDATE, headers={SECRET_HEADER: "nope"})
    ok = client.post("/telegram/webhook", json=UPDATE, headers={SECRET_HEADER: "s3cret"})

    assert missing.status_code == 403
    assert wrong.status_code == 403
    assert ok.status_code == 200
    assert len(messenger.texts) == 1


def test_webhook_without_runtime_is_unavailable():
    with TestClient(create_app()) as test_client:
        resp = test_client.post("/telegram/webhook", json=UPDATE)

    assert resp.status_code == 503


def test_webhook_rejects_malformed_update(client):
    resp = client.post("/telegram/webhook", json={"message": "nope"})

    assert resp.status_code == 422


def test_lifespan_starts_and_stops_runtime(runtime):
    runtime.start = AsyncMock()
    runtime.stop = AsyncMock()

    with TestClient(create_app(runtime=runtime)):
        runtime.start.assert_awaited_once()

    runtime.stop.assert_awaited_once()
