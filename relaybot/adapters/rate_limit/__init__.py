"""Rate limiting adapters.

The admission gate depends on ``AbstractRateLimiter`` only, so the in-memory
sliding window can later be replaced by a shared store without touching it.
"""

from relaybot.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from relaybot.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "InMemorySlidingWindowRateLimiter",
    "RateLimitResult",
]
