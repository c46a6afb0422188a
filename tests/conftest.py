"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins the environment before settings are imported and provides
in-memory fakes for the messaging platform and content host.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ["BOT_MODE"] = "disabled"
os.environ.setdefault("BOT_TOKEN", "123456:test-token")
os.environ.setdefault("BOT_WEBHOOK_SECRET", "")
os.environ.setdefault("LOG_FORMAT", "json")

import asyncio
from pathlib import Path
from typing import Any

import pytest

from relaybot.adapters.content.base import AbstractContentProvider
from relaybot.adapters.telegram.base import AbstractMembershipClient, AbstractMessenger
from relaybot.core.config import ChannelRequirement, MediaLimitSettings
from relaybot.core.errors import ContentProviderError, TransportAppError
from relaybot.schemas.content import FileInfo
from relaybot.schemas.telegram import SentMessage


class FakeClock:
    """Manually advanced clock for time-dependent components."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeMessenger(AbstractMessenger):
    """Records every outbound call instead of talking to Telegram."""

    def __init__(self) -> None:
        self.texts: list[dict[str, Any]] = []
        self.media: list[dict[str, Any]] = []
        self.edits: list[dict[str, Any]] = []
        self.callbacks: list[dict[str, Any]] = []
        self.fail_media = False
        self._next_id = 1

    async def send_text(self, chat_id, text, *, parse_mode=None, reply_markup=None) -> SentMessage:
        message_id = self._next_id
        self._next_id += 1
        self.texts.append(
            {"chat_id": chat_id, "text": text, "parse_mode": parse_mode, "reply_markup": reply_markup}
        )
        return SentMessage(chat_id=chat_id, message_id=message_id)

    async def send_media(self, chat_id, method, path, *, caption=None) -> SentMessage:
        if self.fail_media:
            raise TransportAppError(code="telegram_api_error", message="Request Entity Too Large")
        self.media.append(
            {"chat_id": chat_id, "method": method, "path": Path(path), "exists": Path(path).exists(), "caption": caption}
        )
        message_id = self._next_id
        self._next_id += 1
        return SentMessage(chat_id=chat_id, message_id=message_id)

    async def edit_message(self, chat_id, message_id, text, *, parse_mode=None, reply_markup=None) -> None:
        self.edits.append({"chat_id": chat_id, "message_id": message_id, "text": text})

    async def answer_callback(self, callback_id, text=None) -> None:
        self.callbacks.append({"callback_id": callback_id, "text": text})


class FakeMembershipClient(AbstractMembershipClient):
    """Membership lookups answered from a ``{(user_id, channel_id): status}`` table.

    A channel id listed in ``failing`` raises a transport error instead.
    """

    def __init__(self, statuses: dict[tuple[int, str], str] | None = None) -> None:
        self.statuses = dict(statuses or {})
        self.failing: set[str] = set()
        self.calls: list[tuple[int, str]] = []

    def join(self, user_id: int, *channel_ids: str) -> None:
        for channel_id in channel_ids:
            self.statuses[(user_id, channel_id)] = "member"

    def leave(self, user_id: int, *channel_ids: str) -> None:
        for channel_id in channel_ids:
            self.statuses[(user_id, channel_id)] = "none"

    async def get_membership_status(self, user_id: int, channel_id: str) -> str:
        self.calls.append((user_id, channel_id))
        if channel_id in self.failing:
            raise TransportAppError(code="telegram_unreachable", message="boom")
        return self.statuses.get((user_id, channel_id), "none")


class FakeContentProvider(AbstractContentProvider):
    """Provider with per-link scripted metadata and fetch behaviour.

    ``infos`` maps link -> FileInfo; ``payload_sizes`` maps link -> bytes
    written on fetch; ``fetch_errors`` maps link -> list of exceptions raised
    by successive attempts (or the string "hang" to block forever).
    """

    def __init__(self) -> None:
        self.infos: dict[str, FileInfo] = {}
        self.payload_sizes: dict[str, int] = {}
        self.fetch_errors: dict[str, list[Any]] = {}
        self.fetch_calls: list[str] = []
        self.fetched_dirs: list[Path] = []
        self.gate = None
        # Fetches currently inside this provider, and the most seen at once
        self.active = 0
        self.peak_active = 0

    def add(self, link: str, info: FileInfo, payload_size: int = 16) -> None:
        self.infos[link] = info
        self.payload_sizes[link] = payload_size

    async def resolve_link(self, url: str) -> FileInfo:
        if url not in self.infos:
            raise ContentProviderError(code="resolve_failed", message="Failed to get file information")
        return self.infos[url]

    async def fetch_to_path(self, url: str, destination_dir: Path, *, info: FileInfo) -> Path:
        self.fetch_calls.append(url)
        self.fetched_dirs.append(destination_dir)
        self.active += 1
        self.peak_active = max(self.peak_active, self.active)
        try:
            errors = self.fetch_errors.get(url) or []
            if errors:
                error = errors.pop(0)
                if error == "hang":
                    await asyncio.Event().wait()
                raise error
            if self.gate is not None:
                await self.gate.wait()
            extension = ".zip" if info.is_folder else ".bin"
            target = destination_dir / f"artifact{extension}"
            target.write_bytes(b"x" * self.payload_sizes.get(url, 16))
            return target
        finally:
            self.active -= 1


CHANNELS = [
    ChannelRequirement(id="-1001", name="News", invite_link="https://t.me/+news", required=True),
    ChannelRequirement(id="-1002", name="Chat", invite_link="https://t.me/+chat", required=True),
    ChannelRequirement(id="-1003", name="Extras", invite_link="https://t.me/+extras", required=False),
]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def channels() -> list[ChannelRequirement]:
    return list(CHANNELS)


@pytest.fixture
def messenger() -> FakeMessenger:
    return FakeMessenger()


@pytest.fixture
def membership() -> FakeMembershipClient:
    return FakeMembershipClient()


@pytest.fixture
def provider() -> FakeContentProvider:
    return FakeContentProvider()


@pytest.fixture
def media_limits() -> MediaLimitSettings:
    return MediaLimitSettings(
        max_file_size_bytes=1000,
        max_photo_size_bytes=100,
        max_video_size_bytes=500,
    )
