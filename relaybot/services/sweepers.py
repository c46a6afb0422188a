"""Background maintenance tasks.

Three independent loops, each on its own interval:
- re-validation of verified users against current membership
- rate limiter history GC
- temp storage GC (safety net for jobs that never reached their cleanup)

A failing iteration is logged and the loop carries on; sweepers never run
inside request handling.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable

from relaybot.adapters.rate_limit.base import AbstractRateLimiter
from relaybot.services.verification import VerificationTracker
from relaybot.utils.temp_storage import SweepStats, sweep_stale_entries

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run an async action every ``interval_seconds`` until stopped."""

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        action: Callable[[], Awaitable[Any]],
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.name = name
        self.interval_seconds = interval_seconds
        self._action = action
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> bool:
        """Run a single iteration, logging instead of raising on failure.

        Returns:
            True if the iteration completed without error.
        """
        try:
            await self._action()
            return True
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception(
                "sweeper.iteration_failed",
                extra={"sweeper": self.name, "error_type": type(exc).__name__},
            )
            return False

    async def _loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval_seconds)
                await self.run_once()
        finally:
            logger.info("sweeper.stopped", extra={"sweeper": self.name})

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=f"sweeper:{self.name}")
        logger.info(
            "sweeper.started",
            extra={"sweeper": self.name, "interval_s": self.interval_seconds},
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


async def revalidate_verified_users(tracker: VerificationTracker) -> int:
    """Re-check every verified user; one user's failure doesn't stop the sweep.

    Returns:
        Number of users demoted.
    """
    demoted = 0
    for user_id in tracker.verified_users():
        try:
            if not await tracker.revalidate(user_id):
                demoted += 1
        except Exception as exc:
            logger.warning(
                "sweeper.revalidate_user_failed",
                extra={"user_id": user_id, "error_type": type(exc).__name__},
            )
    return demoted


class SweeperService:
    """Owns the three maintenance loops and their lifecycle."""

    def __init__(
        self,
        *,
        tracker: VerificationTracker,
        limiter: AbstractRateLimiter,
        temp_root: Path,
        revalidate_interval_seconds: float,
        rate_limit_interval_seconds: float,
        temp_cleanup_interval_seconds: float,
        temp_retention_seconds: float,
    ) -> None:
        self._tracker = tracker
        self._limiter = limiter
        self._temp_root = temp_root
        self._temp_retention_seconds = temp_retention_seconds
        self.tasks = (
            PeriodicTask("revalidate_members", revalidate_interval_seconds, self.revalidate),
            PeriodicTask("rate_limit_gc", rate_limit_interval_seconds, self.collect_rate_limits),
            PeriodicTask("temp_storage_gc", temp_cleanup_interval_seconds, self.collect_temp_storage),
        )

    async def revalidate(self) -> int:
        demoted = await revalidate_verified_users(self._tracker)
        if demoted:
            logger.info("sweeper.revalidated", extra={"demoted": demoted})
        return demoted

    async def collect_rate_limits(self) -> int:
        return self._limiter.sweep()

    async def collect_temp_storage(self) -> SweepStats:
        # Filesystem walk runs off the event loop
        return await asyncio.to_thread(
            sweep_stale_entries, self._temp_root, self._temp_retention_seconds
        )

    def start(self) -> None:
        for task in self.tasks:
            task.start()

    async def stop(self) -> None:
        await asyncio.gather(*(task.stop() for task in self.tasks))
