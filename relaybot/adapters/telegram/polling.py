"""Long-polling update source for development without a public webhook."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from relaybot.adapters.telegram.bot_api import TelegramBotClient
from relaybot.core.errors import TransportAppError
from relaybot.schemas.telegram import TelegramUpdate

logger = logging.getLogger(__name__)

UpdateHandler = Callable[[TelegramUpdate], Awaitable[None]]


class TelegramPoller:
    """Fetch updates with getUpdates and hand each one to ``handler``.

    Each update is handled in its own task so a slow download never stalls
    polling.
    """

    def __init__(
        self,
        client: TelegramBotClient,
        handler: UpdateHandler,
        *,
        timeout_seconds: int = 30,
        error_backoff_seconds: float = 5.0,
    ) -> None:
        self._client = client
        self._handler = handler
        self._timeout_seconds = timeout_seconds
        self._error_backoff_seconds = error_backoff_seconds
        self._offset: int | None = None
        self._task: asyncio.Task[None] | None = None
        self._in_flight: set[asyncio.Task[None]] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="telegram-poller")
        logger.info("polling.started", extra={"timeout_s": self._timeout_seconds})

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)
        logger.info("polling.stopped")

    async def poll_once(self) -> int:
        """Fetch one batch of updates and schedule their handling.

        Returns:
            Number of updates scheduled.
        """
        updates = await self._client.get_updates(self._offset, self._timeout_seconds)
        for update in updates:
            self._offset = update.update_id + 1
            task = asyncio.create_task(self._handler(update))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)
        return len(updates)

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except TransportAppError as exc:
                logger.warning(
                    "polling.fetch_failed",
                    extra={"error_code": exc.code, "error_msg": exc.message},
                )
                await asyncio.sleep(self._error_backoff_seconds)
            except Exception:
                logger.exception("polling.unexpected_error")
                await asyncio.sleep(self._error_backoff_seconds)
