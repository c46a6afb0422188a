"""Admission gate: membership check, then rate check, then charge.

The rate limiter is only charged for requests that passed every other check,
right before work is dispatched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from relaybot.adapters.rate_limit.base import AbstractRateLimiter
from relaybot.core.errors import (
    COOLDOWN,
    NOT_A_MEMBER,
    AdmissionAppError,
    CooldownError,
    NotAMemberError,
    RateLimitedError,
)
from relaybot.services.verification import VerificationTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizeRequest:
    user_id: int


@dataclass(frozen=True)
class AuthorizeResult:
    """Decision returned by ``AdmissionGate.authorize``.

    Attributes:
        allowed: Whether work may be dispatched.
        error: The denial (``NotAMemberError``, ``CooldownError`` or
            ``RateLimitedError``); None when allowed.
    """

    allowed: bool
    error: AdmissionAppError | None = None

    @property
    def reason(self) -> str | None:
        return self.error.code if self.error else None

    @property
    def retry_after_seconds(self) -> float | None:
        if self.error is None or not self.error.details:
            return None
        return self.error.details.get("retry_after")

    @classmethod
    def allow(cls) -> "AuthorizeResult":
        return cls(allowed=True)

    @classmethod
    def deny(cls, error: AdmissionAppError) -> "AuthorizeResult":
        return cls(allowed=False, error=error)


class AdmissionGate:
    """Composes verification and rate limiting into one admission decision."""

    def __init__(self, tracker: VerificationTracker, limiter: AbstractRateLimiter) -> None:
        self._tracker = tracker
        self._limiter = limiter

    async def authorize(self, request: AuthorizeRequest) -> AuthorizeResult:
        user_id = request.user_id

        if not self._tracker.is_verified(user_id):
            # Cooldown is checked before a new membership query is issued
            remaining = self._tracker.remaining_cooldown(user_id)
            if remaining > 0:
                logger.info(
                    "admission.denied",
                    extra={"user_id": user_id, "reason": COOLDOWN, "retry_after_s": round(remaining, 1)},
                )
                return AuthorizeResult.deny(CooldownError(remaining))

            report = await self._tracker.verify(user_id)
            if not report.all_required_satisfied:
                logger.info("admission.denied", extra={"user_id": user_id, "reason": NOT_A_MEMBER})
                return AuthorizeResult.deny(NotAMemberError())

        budget = self._limiter.check(user_id)
        if not budget.allowed:
            logger.warning(
                "rate_limit.exceeded",
                extra={
                    "user_id": user_id,
                    "limit": budget.limit,
                    "retry_after_s": budget.retry_after_seconds,
                },
            )
            return AuthorizeResult.deny(RateLimitedError(budget.retry_after_seconds))

        self._limiter.record_request(user_id)
        logger.info(
            "admission.allowed",
            extra={"user_id": user_id, "remaining": budget.remaining - 1},
        )
        return AuthorizeResult.allow()
