"""Tests for runtime wiring, the simulated provider and the polling source."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from relaybot.adapters.content.factory import create_content_provider
from relaybot.adapters.content.simulated import SimulatedContentProvider
from relaybot.adapters.telegram.polling import TelegramPoller
from relaybot.core.config import DownloadSettings, Settings
from relaybot.core.errors import TransportAppError, ValidationAppError
from relaybot.schemas.telegram import TelegramUpdate
from relaybot.services.runtime import build_runtime


class TestSimulatedProvider:
    @pytest.mark.asyncio
    async def test_share_folder_links_resolve_to_folders(self):
        info = await SimulatedContentProvider().resolve_link("https://terabox.com/s/abc")

        assert info.is_folder is True
        assert info.file_count == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "name,subtype",
        [("movie.MP4", "video"), ("pic.png", "image"), ("notes.pdf", "document"), ("blob", "other")],
    )
    async def test_file_subtype_comes_from_extension(self, name, subtype):
        info = await SimulatedContentProvider().resolve_link(f"https://terabox.com/sharing/{name}")

        assert info.kind == "file"
        assert info.subtype == subtype

    @pytest.mark.asyncio
    async def test_fetch_writes_artifact_into_destination(self, tmp_path):
        provider = SimulatedContentProvider(max_delay_seconds=0)
        info = await provider.resolve_link("https://terabox.com/s/abc")

        artifact = await provider.fetch_to_path("https://terabox.com/s/abc", tmp_path, info=info)

        assert artifact.parent == tmp_path
        assert artifact.suffix == ".zip"
        assert artifact.read_bytes() == b"Simulated content"


def test_factory_rejects_unknown_provider():
    with pytest.raises(ValidationAppError) as exc_info:
        create_content_provider(DownloadSettings(provider="ftp"))

    assert exc_info.value.code == "unknown_content_provider"


def test_build_runtime_requires_token_without_overrides():
    cfg = Settings()
    cfg.bot.token = ""

    with pytest.raises(ValidationAppError) as exc_info:
        build_runtime(cfg)

    assert exc_info.value.code == "bot_token_missing"


def test_build_runtime_with_overrides_skips_bot_client(messenger, membership, provider):
    runtime = build_runtime(messenger=messenger, membership=membership, provider=provider)

    assert runtime.bot_client is None
    assert runtime.poller is None
    assert runtime.snapshot()["verified_users"] == 0


def test_build_runtime_polling_mode_creates_poller():
    cfg = Settings()
    cfg.bot.mode = "polling"
    cfg.bot.token = "123:abc"

    runtime = build_runtime(cfg)

    assert runtime.bot_client is not None
    assert runtime.poller is not None
    assert runtime.limiter.sweep_interval_seconds == cfg.rate_limit.window_seconds * 2


class TestPoller:
    @pytest.mark.asyncio
    async def test_poll_once_hands_off_updates_and_advances_offset(self):
        client = Mock()
        client.get_updates = AsyncMock(
            side_effect=[[TelegramUpdate(update_id=5), TelegramUpdate(update_id=6)], []]
        )
        handler = AsyncMock()
        poller = TelegramPoller(client, handler, timeout_seconds=0)

        assert await poller.poll_once() == 2
        await asyncio.sleep(0)
        assert handler.await_count == 2

        await poller.poll_once()
        assert client.get_updates.await_args_list[1].args == (7, 0)

    @pytest.mark.asyncio
    async def test_loop_backs_off_on_transport_errors(self):
        client = Mock()
        client.get_updates = AsyncMock(
            side_effect=TransportAppError(code="telegram_unreachable", message="down")
        )
        poller = TelegramPoller(client, AsyncMock(), timeout_seconds=0, error_backoff_seconds=0.01)

        poller.start()
        await asyncio.sleep(0.05)
        assert poller.running is True
        await poller.stop()

        assert client.get_updates.await_count >= 2
        assert poller.running is False
