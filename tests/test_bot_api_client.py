"""Tests for the Telegram Bot API client over a mocked httpx transport."""

import json

import httpx
import pytest

from relaybot.adapters.telegram.bot_api import TelegramBotClient
from relaybot.core.errors import TransportAppError
from relaybot.schemas.telegram import InlineKeyboardButton, InlineKeyboardMarkup


def _client(handler) -> TelegramBotClient:
    http = httpx.AsyncClient(
        base_url="https://api.telegram.org/bot123:abc/",
        transport=httpx.MockTransport(handler),
    )
    return TelegramBotClient("123:abc", client=http)


def _ok(result) -> httpx.Response:
    return httpx.Response(200, json={"ok": True, "result": result})


@pytest.mark.asyncio
async def test_send_text_posts_json_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return _ok({"message_id": 99, "chat": {"id": 500}})

    client = _client(handler)
    markup = InlineKeyboardMarkup(
        inline_keyboard=[[InlineKeyboardButton(text="Join", url="https://t.me/+x")]]
    )

    sent = await client.send_text(500, "hi", parse_mode="HTML", reply_markup=markup)

    assert sent.message_id == 99
    assert seen["path"].endswith("/sendMessage")
    assert seen["body"]["parse_mode"] == "HTML"
    assert seen["body"]["reply_markup"] == {"inline_keyboard": [[{"text": "Join", "url": "https://t.me/+x"}]]}
    await client.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "api_status,extra,expected",
    [
        ("creator", {}, "owner"),
        ("administrator", {}, "admin"),
        ("member", {}, "member"),
        ("left", {}, "none"),
        ("kicked", {}, "none"),
        ("restricted", {"is_member": True}, "member"),
        ("restricted", {"is_member": False}, "none"),
        ("mystery", {}, "unknown"),
    ],
)
async def test_membership_status_mapping(api_status, extra, expected):
    def handler(request: httpx.Request) -> httpx.Response:
        return _ok({"status": api_status, **extra})

    client = _client(handler)

    assert await client.get_membership_status(7, "-1001") == expected


@pytest.mark.asyncio
async def test_send_media_uploads_multipart(tmp_path):
    artifact = tmp_path / "clip.mp4"
    artifact.write_bytes(b"video-bytes")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["content_type"] = request.headers["content-type"]
        seen["body"] = request.read()
        return _ok({"message_id": 5, "chat": {"id": 500}})

    client = _client(handler)

    await client.send_media(500, "video", artifact, caption="🎥 clip.mp4")

    assert seen["path"].endswith("/sendVideo")
    assert seen["content_type"].startswith("multipart/form-data")
    assert b"video-bytes" in seen["body"]
    assert b"supports_streaming" in seen["body"]


@pytest.mark.asyncio
async def test_api_error_raises_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"ok": False, "description": "Bad Request: chat not found"})

    client = _client(handler)

    with pytest.raises(TransportAppError) as exc_info:
        await client.send_text(1, "hi")

    assert exc_info.value.code == "telegram_api_error"
    assert exc_info.value.message == "Bad Request: chat not found"


@pytest.mark.asyncio
async def test_network_error_raises_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    client = _client(handler)

    with pytest.raises(TransportAppError) as exc_info:
        await client.answer_callback("cb-1")

    assert exc_info.value.code == "telegram_unreachable"


@pytest.mark.asyncio
async def test_get_updates_parses_updates():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["offset"] == 10
        return _ok([{"update_id": 10, "message": {"message_id": 1, "chat": {"id": 2}, "text": "hi"}}])

    client = _client(handler)

    updates = await client.get_updates(10, timeout=0)

    assert [u.update_id for u in updates] == [10]
    assert updates[0].message.text == "hi"
