"""Rate limiter interfaces.

Checking and charging are separate operations: the admission gate checks
with ``check`` and only charges with ``record_request`` once every
other check has passed, so denied requests never consume budget.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Snapshot of a key's budget at a point in time.

    Attributes:
        allowed: Whether another request would be admitted now.
        limit: Max requests per window.
        remaining: Requests left in the current window.
        retry_after_seconds: Wait until the oldest request leaves the window
            (None when allowed).
    """

    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: float | None


class AbstractRateLimiter(ABC):
    """Interface for per-key rate limiters."""

    @abstractmethod
    def is_limited(self, key: int | str) -> bool:
        """Read-only check: True when the key has used up its window budget."""
        raise NotImplementedError

    @abstractmethod
    def record_request(self, key: int | str) -> None:
        """Charge one request against the key's budget."""
        raise NotImplementedError

    @abstractmethod
    def check(self, key: int | str) -> RateLimitResult:
        """Read-only lookup returning the full budget snapshot."""
        raise NotImplementedError

    @abstractmethod
    def sweep(self) -> int:
        """Drop stale histories.

        Returns:
            Number of keys removed.
        """
        raise NotImplementedError
