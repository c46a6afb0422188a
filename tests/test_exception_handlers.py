"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from relaybot.core.errors import (
    AppError,
    ContentProviderError,
    CooldownError,
    FileTooLargeError,
    NotAMemberError,
    RateLimitedError,
    TransportAppError,
    ValidationAppError,
)
from relaybot.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers, raise_server_exceptions=False)


def _route(app: FastAPI, path: str, exc: Exception) -> None:
    @app.get(path)
    async def endpoint():
        raise exc


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    @pytest.mark.parametrize(
        "exc,status",
        [
            (ValidationAppError(code="bad_input", message="Bad input"), 400),
            (NotAMemberError(), 403),
            (CooldownError(retry_after=120), 403),
            (RateLimitedError(retry_after=30), 403),
            (TransportAppError(code="telegram_unreachable", message="down"), 502),
            (ContentProviderError(code="host_down", message="down"), 502),
            (FileTooLargeError(size_bytes=10, max_bytes=5), 500),
            (AppError(code="other", message="other"), 500),
        ],
    )
    def test_status_mapping(self, client: TestClient, app_with_handlers: FastAPI, exc, status):
        _route(app_with_handlers, "/boom", exc)

        response = client.get("/boom")

        assert response.status_code == status
        data = response.json()
        assert data["error"]["code"] == exc.code
        assert data["error"]["message"] == exc.message
        assert "request_id" in data["error"]

    def test_details_are_included_when_present(self, client: TestClient, app_with_handlers: FastAPI):
        _route(app_with_handlers, "/cooldown", CooldownError(retry_after=90))

        data = client.get("/cooldown").json()

        assert data["error"]["details"] == {"retry_after": 90}

    def test_details_omitted_when_absent(self, client: TestClient, app_with_handlers: FastAPI):
        _route(app_with_handlers, "/plain", ValidationAppError(code="x", message="y"))

        assert "details" not in client.get("/plain").json()["error"]


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_general_exception_handler_logic(self):
        request = AsyncMock()
        request.url.path = "/telegram/webhook"
        request.method = "POST"

        exc = RuntimeError("token 123456:ABC leaked in message")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_error"
        assert "123456" not in data["error"]["message"]
        assert "RuntimeError" not in bytes(response.body).decode()

    def test_unexpected_exception_through_app(self, client: TestClient, app_with_handlers: FastAPI):
        _route(app_with_handlers, "/crash", KeyError("secret"))

        response = client.get("/crash")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "internal_error"


def test_setup_exception_handlers_registers_handlers(app_with_handlers: FastAPI):
    assert AppError in app_with_handlers.exception_handlers
    assert Exception in app_with_handlers.exception_handlers
