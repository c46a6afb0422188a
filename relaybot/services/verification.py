"""Membership verification with attempt limiting and cooldown.

The tracker owns one ``VerificationRecord`` per user. Membership lookups are
awaited outside the lock; the record is then read-modified-written under the
lock in a single step, so concurrent verifications of the same user never
lose an attempt increment.

Cooldowns are evaluated against the clock at call time; no timers run.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

from relaybot.adapters.telegram.base import JOINED_STATUSES, AbstractMembershipClient
from relaybot.core.config import ChannelRequirement

logger = logging.getLogger(__name__)


@dataclass
class VerificationRecord:
    """Per-user verification state.

    Attributes:
        verified: True only right after a check where every required channel
            was joined (and until a later demotion).
        failed_attempts: Consecutive failed verifications since the last success.
        cooldown_until: Clock value until which new verifications are refused.
    """

    verified: bool = False
    failed_attempts: int = 0
    cooldown_until: float | None = None


@dataclass(frozen=True)
class MembershipReport:
    """Result of a membership query across all configured channels."""

    per_channel: dict[str, bool] = field(default_factory=dict)
    all_required_satisfied: bool = False


class VerificationTracker:
    """Tracks verified users, failed attempts and cooldowns."""

    def __init__(
        self,
        membership: AbstractMembershipClient,
        channels: Sequence[ChannelRequirement],
        *,
        max_attempts: int = 3,
        cooldown_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if cooldown_seconds <= 0:
            raise ValueError("cooldown_seconds must be > 0")

        self._membership = membership
        self._channels = tuple(channels)
        self._max_attempts = max_attempts
        self._cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._records: dict[int, VerificationRecord] = {}

    @property
    def channels(self) -> tuple[ChannelRequirement, ...]:
        return self._channels

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    async def _is_joined(self, user_id: int, channel: ChannelRequirement) -> bool:
        try:
            status = await self._membership.get_membership_status(user_id, channel.id)
        except Exception as exc:
            # Fail closed: an unreachable channel counts as not joined
            logger.warning(
                "verification.membership_query_failed",
                extra={
                    "user_id": user_id,
                    "channel_id": channel.id,
                    "error_type": type(exc).__name__,
                },
            )
            return False
        return status in JOINED_STATUSES

    def _evaluate(self, per_channel: dict[str, bool]) -> bool:
        return all(per_channel.get(c.id, False) for c in self._channels if c.required)

    async def query_membership(self, user_id: int) -> dict[str, bool]:
        """Query every configured channel once.

        Returns:
            Mapping of channel id to joined flag, in configured order.
        """
        joined = await asyncio.gather(*(self._is_joined(user_id, c) for c in self._channels))
        return {channel.id: flag for channel, flag in zip(self._channels, joined)}

    async def check_status(self, user_id: int) -> MembershipReport:
        """Query membership without touching the user's record."""
        per_channel = await self.query_membership(user_id)
        return MembershipReport(per_channel=per_channel, all_required_satisfied=self._evaluate(per_channel))

    async def verify(self, user_id: int) -> MembershipReport:
        """Run a user-initiated verification and update the record.

        Success marks the user verified and clears attempts and cooldown.
        Failure increments attempts and starts a cooldown once
        ``max_attempts`` is reached.
        """
        report = await self.check_status(user_id)

        with self._lock:
            record = self._records.setdefault(user_id, VerificationRecord())
            if report.all_required_satisfied:
                record.verified = True
                record.failed_attempts = 0
                record.cooldown_until = None
            else:
                record.verified = False
                record.failed_attempts += 1
                if record.failed_attempts >= self._max_attempts:
                    record.cooldown_until = self._clock() + self._cooldown_seconds
            attempts = record.failed_attempts
            in_cooldown = record.cooldown_until is not None

        if report.all_required_satisfied:
            logger.info("verification.success", extra={"user_id": user_id})
        else:
            logger.info(
                "verification.failed",
                extra={
                    "user_id": user_id,
                    "failed_attempts": attempts,
                    "max_attempts": self._max_attempts,
                    "cooldown": in_cooldown,
                },
            )
        return report

    async def revalidate(self, user_id: int) -> bool:
        """Re-check a verified user without touching attempts or cooldown.

        A verified user who no longer satisfies every required channel is
        demoted to unverified.

        Returns:
            True if the user still satisfies all required channels.
        """
        report = await self.check_status(user_id)
        if report.all_required_satisfied:
            return True

        with self._lock:
            record = self._records.get(user_id)
            demoted = record is not None and record.verified
            if demoted:
                record.verified = False

        if demoted:
            missing = [cid for cid, joined in report.per_channel.items() if not joined]
            logger.info(
                "verification.demoted",
                extra={"user_id": user_id, "missing_channels": missing},
            )
        return False

    def is_verified(self, user_id: int) -> bool:
        with self._lock:
            record = self._records.get(user_id)
            return record is not None and record.verified

    def remaining_cooldown(self, user_id: int) -> float:
        """Seconds left in the user's cooldown (0.0 when none)."""
        with self._lock:
            record = self._records.get(user_id)
            if record is None or record.cooldown_until is None:
                return 0.0
            return max(0.0, record.cooldown_until - self._clock())

    def is_in_cooldown(self, user_id: int) -> bool:
        return self.remaining_cooldown(user_id) > 0

    def failed_attempts(self, user_id: int) -> int:
        with self._lock:
            record = self._records.get(user_id)
            return record.failed_attempts if record else 0

    def verified_users(self) -> list[int]:
        """Snapshot of currently verified user ids."""
        with self._lock:
            return [uid for uid, record in self._records.items() if record.verified]
