"""Pydantic schemas for the subset of Telegram Bot API updates we consume.

Unknown fields are ignored so new Bot API versions don't break parsing.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _TelegramModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TelegramUser(_TelegramModel):
    id: int
    is_bot: bool = False
    first_name: str = ""
    username: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.username or self.first_name or str(self.id)


class TelegramChat(_TelegramModel):
    id: int
    type: str = "private"


class TelegramMessage(_TelegramModel):
    message_id: int
    chat: TelegramChat
    from_user: Optional[TelegramUser] = Field(default=None, alias="from")
    text: Optional[str] = None
    caption: Optional[str] = None


class TelegramCallbackQuery(_TelegramModel):
    id: str
    from_user: TelegramUser = Field(..., alias="from")
    message: Optional[TelegramMessage] = None
    data: Optional[str] = None


class TelegramUpdate(_TelegramModel):
    """Incoming update as delivered by webhook or getUpdates."""

    update_id: int
    message: Optional[TelegramMessage] = None
    callback_query: Optional[TelegramCallbackQuery] = None


class InlineKeyboardButton(_TelegramModel):
    text: str
    url: Optional[str] = None
    callback_data: Optional[str] = None


class InlineKeyboardMarkup(_TelegramModel):
    inline_keyboard: List[List[InlineKeyboardButton]] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class SentMessage(_TelegramModel):
    """Reference to a message we sent, used for later edits."""

    chat_id: int
    message_id: int
