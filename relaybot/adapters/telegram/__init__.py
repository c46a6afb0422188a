"""Telegram adapter layer."""

from relaybot.adapters.telegram.base import (
    JOINED_STATUSES,
    AbstractMembershipClient,
    AbstractMessenger,
    DeliveryMethod,
    MembershipStatus,
)
from relaybot.adapters.telegram.bot_api import TelegramBotClient
from relaybot.adapters.telegram.polling import TelegramPoller

__all__ = [
    "JOINED_STATUSES",
    "AbstractMembershipClient",
    "AbstractMessenger",
    "DeliveryMethod",
    "MembershipStatus",
    "TelegramBotClient",
    "TelegramPoller",
]
