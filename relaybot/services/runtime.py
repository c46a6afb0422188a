"""Wiring of collaborators, services and background tasks for one process."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from relaybot.adapters.content.base import AbstractContentProvider
from relaybot.adapters.content.factory import create_content_provider
from relaybot.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from relaybot.adapters.telegram.base import AbstractMembershipClient, AbstractMessenger
from relaybot.adapters.telegram.bot_api import TelegramBotClient
from relaybot.adapters.telegram.polling import TelegramPoller
from relaybot.core.config import Settings, settings as default_settings
from relaybot.core.errors import ValidationAppError
from relaybot.services.admission import AdmissionGate
from relaybot.services.dispatcher import UpdateDispatcher
from relaybot.services.download_service import DownloadOrchestrator
from relaybot.services.sweepers import SweeperService
from relaybot.services.verification import VerificationTracker

logger = logging.getLogger(__name__)


@dataclass
class BotRuntime:
    """Everything with process lifetime: state stores, services, loops."""

    tracker: VerificationTracker
    limiter: InMemorySlidingWindowRateLimiter
    gate: AdmissionGate
    orchestrator: DownloadOrchestrator
    dispatcher: UpdateDispatcher
    sweepers: SweeperService
    bot_client: TelegramBotClient | None = None
    poller: TelegramPoller | None = None

    async def start(self) -> None:
        self.sweepers.start()
        if self.poller is not None:
            self.poller.start()
        logger.info("runtime.started", extra={"polling": self.poller is not None})

    async def stop(self) -> None:
        if self.poller is not None:
            await self.poller.stop()
        await self.sweepers.stop()
        if self.bot_client is not None:
            await self.bot_client.aclose()
        logger.info("runtime.stopped")

    def snapshot(self) -> dict[str, int | bool]:
        return {
            "verified_users": len(self.tracker.verified_users()),
            "rate_limited_keys": self.limiter.tracked_keys(),
            "downloads_in_flight": self.orchestrator.in_flight,
            "sweepers_running": all(task.running for task in self.sweepers.tasks),
        }


def build_runtime(
    cfg: Settings | None = None,
    *,
    messenger: AbstractMessenger | None = None,
    membership: AbstractMembershipClient | None = None,
    provider: AbstractContentProvider | None = None,
) -> BotRuntime:
    """Build the runtime from settings, with optional collaborator overrides.

    Without overrides a ``TelegramBotClient`` serves as both messenger and
    membership client, which requires ``BOT_TOKEN``.

    Raises:
        ValidationAppError: If a Bot API client is needed but no token is set,
            or the configured content provider is unknown.
    """
    cfg = cfg or default_settings

    bot_client: TelegramBotClient | None = None
    if messenger is None or membership is None:
        if not cfg.bot.token:
            raise ValidationAppError(
                code="bot_token_missing",
                message="BOT_TOKEN is required to talk to the Telegram Bot API",
            )
        bot_client = TelegramBotClient(
            cfg.bot.token,
            base_url=cfg.bot.api_base_url,
            timeout_seconds=cfg.bot.request_timeout_seconds,
        )
    messenger = messenger or bot_client
    membership = membership or bot_client

    channels = cfg.channels.requirements
    tracker = VerificationTracker(
        membership,
        channels,
        max_attempts=cfg.verification.max_attempts,
        cooldown_seconds=cfg.verification.cooldown_seconds,
    )
    limiter = InMemorySlidingWindowRateLimiter(
        limit=cfg.rate_limit.max_requests,
        window_seconds=cfg.rate_limit.window_seconds,
    )
    gate = AdmissionGate(tracker, limiter)
    orchestrator = DownloadOrchestrator(
        provider or create_content_provider(cfg.download),
        messenger,
        temp_root=cfg.storage.temp_dir,
        media_limits=cfg.media,
        concurrent_downloads=cfg.download.concurrent_downloads,
        timeout_seconds=cfg.download.timeout_seconds,
        retry_attempts=cfg.download.retry_attempts,
        retry_delay_seconds=cfg.download.retry_delay_seconds,
        max_file_size_bytes=cfg.download.max_file_size_bytes,
    )
    dispatcher = UpdateDispatcher(
        messenger=messenger,
        tracker=tracker,
        gate=gate,
        orchestrator=orchestrator,
        channels=channels,
    )
    sweepers = SweeperService(
        tracker=tracker,
        limiter=limiter,
        temp_root=cfg.storage.temp_dir,
        revalidate_interval_seconds=cfg.verification.check_interval_seconds,
        rate_limit_interval_seconds=limiter.sweep_interval_seconds,
        temp_cleanup_interval_seconds=cfg.storage.cleanup_interval_seconds,
        temp_retention_seconds=cfg.storage.retention_seconds,
    )

    poller = None
    if cfg.bot.mode.lower() == "polling" and bot_client is not None:
        poller = TelegramPoller(
            bot_client,
            dispatcher.handle_update,
            timeout_seconds=cfg.bot.polling_timeout_seconds,
        )

    return BotRuntime(
        tracker=tracker,
        limiter=limiter,
        gate=gate,
        orchestrator=orchestrator,
        dispatcher=dispatcher,
        sweepers=sweepers,
        bot_client=bot_client,
        poller=poller,
    )
