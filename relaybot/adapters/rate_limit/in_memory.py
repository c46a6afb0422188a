"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running several bot processes multiplies the effective limit.
- Thread-safe: a single lock guards the whole history table.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Callable

from relaybot.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests inside a rolling time window per key.

    A request at time ``t`` counts while ``now - t < window_seconds``. Unlike a
    fixed bucket, a burst straddling a bucket boundary is still throttled.

    Histories older than ``2 * window_seconds`` are dropped by ``sweep``.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the limiter.

        Args:
            limit: Maximum number of requests per window.
            window_seconds: Length of the rolling window in seconds.
            clock: Time source returning seconds (monotonic by default).

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._history: dict[int | str, deque[float]] = {}

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    @property
    def sweep_interval_seconds(self) -> float:
        return self._window_seconds * 2

    def _prune_locked(self, timestamps: deque[float], now: float, horizon: float) -> None:
        # Timestamps are appended in clock order, so expired ones sit on the left
        while timestamps and now - timestamps[0] >= horizon:
            timestamps.popleft()

    def check(self, key: int | str) -> RateLimitResult:
        now = self._clock()
        with self._lock:
            timestamps = self._history.get(key)
            if timestamps is None:
                return RateLimitResult(
                    allowed=True, limit=self._limit, remaining=self._limit, retry_after_seconds=None
                )

            self._prune_locked(timestamps, now, self._window_seconds)
            used = len(timestamps)
            if used < self._limit:
                return RateLimitResult(
                    allowed=True,
                    limit=self._limit,
                    remaining=self._limit - used,
                    retry_after_seconds=None,
                )

            retry_after = max(0.0, timestamps[0] + self._window_seconds - now)
            return RateLimitResult(
                allowed=False, limit=self._limit, remaining=0, retry_after_seconds=retry_after
            )

    def is_limited(self, key: int | str) -> bool:
        return not self.check(key).allowed

    def record_request(self, key: int | str) -> None:
        now = self._clock()
        with self._lock:
            timestamps = self._history.setdefault(key, deque())
            timestamps.append(now)
            self._prune_locked(timestamps, now, self._window_seconds)

    def sweep(self) -> int:
        now = self._clock()
        horizon = self.sweep_interval_seconds
        removed = 0
        with self._lock:
            for key in list(self._history):
                timestamps = self._history[key]
                self._prune_locked(timestamps, now, horizon)
                if not timestamps:
                    del self._history[key]
                    removed += 1
            tracked = len(self._history)

        logger.debug(
            "rate_limit.swept",
            extra={"removed_keys": removed, "tracked_keys": tracked},
        )
        return removed

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._history)
