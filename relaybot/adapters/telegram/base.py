"""Messaging platform interfaces.

Services depend on these abstractions only; nothing in the core touches
HTTP or Bot API payloads directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Literal

from relaybot.schemas.telegram import InlineKeyboardMarkup, SentMessage

DeliveryMethod = Literal["video", "photo", "document"]
MembershipStatus = Literal["member", "admin", "owner", "none", "unknown"]

JOINED_STATUSES: frozenset[str] = frozenset({"member", "admin", "owner"})


class AbstractMessenger(ABC):
    """Outbound messaging capabilities required by the dispatcher and orchestrator."""

    @abstractmethod
    async def send_text(
        self,
        chat_id: int,
        text: str,
        *,
        parse_mode: str | None = None,
        reply_markup: InlineKeyboardMarkup | None = None,
    ) -> SentMessage:
        """Send a text message and return a reference usable for edits."""
        ...

    @abstractmethod
    async def send_media(
        self,
        chat_id: int,
        method: DeliveryMethod,
        path: Path,
        *,
        caption: str | None = None,
    ) -> SentMessage:
        """Upload a local file as a video, photo or generic document."""
        ...

    @abstractmethod
    async def edit_message(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        *,
        parse_mode: str | None = None,
        reply_markup: InlineKeyboardMarkup | None = None,
    ) -> None:
        """Replace the text of a message previously sent by the bot."""
        ...

    @abstractmethod
    async def answer_callback(self, callback_id: str, text: str | None = None) -> None:
        """Acknowledge an inline-button press, optionally with a toast text."""
        ...


class AbstractMembershipClient(ABC):
    """Membership lookups for gated channels."""

    @abstractmethod
    async def get_membership_status(self, user_id: int, channel_id: str) -> MembershipStatus:
        """Return the user's membership status in a channel.

        Raises:
            TransportAppError: If the platform call fails.
        """
        ...
