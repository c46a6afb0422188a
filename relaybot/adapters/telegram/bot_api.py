"""Telegram Bot API client over httpx."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import httpx

from relaybot.adapters.telegram.base import (
    AbstractMembershipClient,
    AbstractMessenger,
    DeliveryMethod,
    MembershipStatus,
)
from relaybot.core.errors import TransportAppError
from relaybot.schemas.telegram import InlineKeyboardMarkup, SentMessage, TelegramUpdate

logger = logging.getLogger(__name__)

# Bot API getChatMember statuses mapped onto our membership vocabulary
_STATUS_MAP: dict[str, MembershipStatus] = {
    "creator": "owner",
    "administrator": "admin",
    "member": "member",
    "left": "none",
    "kicked": "none",
}

_MEDIA_METHODS: dict[str, tuple[str, str]] = {
    "video": ("sendVideo", "video"),
    "photo": ("sendPhoto", "photo"),
    "document": ("sendDocument", "document"),
}


class TelegramBotClient(AbstractMessenger, AbstractMembershipClient):
    """Bot API client implementing both messaging and membership lookups.

    The token is part of every request URL, so httpx request logging is
    turned down in ``configure_logging``.
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = "https://api.telegram.org",
        timeout_seconds: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            token: Bot token.
            base_url: Bot API base URL.
            timeout_seconds: Timeout for every call.
            client: Optional preconfigured httpx client (tests use MockTransport).
        """
        self._client = client or httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/bot{token}/",
            timeout=timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(
        self,
        method: str,
        *,
        data: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Invoke a Bot API method and return its ``result``.

        Raises:
            TransportAppError: On network errors or a non-ok API response.
        """
        kwargs: dict[str, Any] = {}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            if files:
                # multipart form: nested values must be JSON strings already
                response = await self._client.post(method, data=data, files=files, **kwargs)
            else:
                response = await self._client.post(method, json=data or {}, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning(
                "telegram.request_failed",
                extra={"method": method, "error_type": type(exc).__name__},
            )
            raise TransportAppError(
                code="telegram_unreachable",
                message=f"Bot API call {method} failed: {type(exc).__name__}",
                details={"method": method},
            ) from exc

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code != 200 or not body.get("ok"):
            description = body.get("description") or f"HTTP {response.status_code}"
            logger.warning(
                "telegram.api_error",
                extra={
                    "method": method,
                    "status_code": response.status_code,
                    "description": description,
                },
            )
            raise TransportAppError(
                code="telegram_api_error",
                message=description,
                details={"method": method, "http_status": response.status_code},
            )

        return body.get("result")

    @staticmethod
    def _sent(result: Any) -> SentMessage:
        return SentMessage(chat_id=result["chat"]["id"], message_id=result["message_id"])

    async def send_text(
        self,
        chat_id: int,
        text: str,
        *,
        parse_mode: str | None = None,
        reply_markup: InlineKeyboardMarkup | None = None,
    ) -> SentMessage:
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup.to_payload()
        return self._sent(await self._call("sendMessage", data=payload))

    async def send_media(
        self,
        chat_id: int,
        method: DeliveryMethod,
        path: Path,
        *,
        caption: str | None = None,
    ) -> SentMessage:
        api_method, field = _MEDIA_METHODS[method]
        data: dict[str, Any] = {"chat_id": str(chat_id)}
        if caption:
            data["caption"] = caption
        if method == "video":
            data["supports_streaming"] = "true"

        with open(path, "rb") as fh:
            result = await self._call(
                api_method,
                data=data,
                files={field: (path.name, fh)},
            )
        return self._sent(result)

    async def edit_message(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        *,
        parse_mode: str | None = None,
        reply_markup: InlineKeyboardMarkup | None = None,
    ) -> None:
        payload: dict[str, Any] = {"chat_id": chat_id, "message_id": message_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup.to_payload()
        await self._call("editMessageText", data=payload)

    async def answer_callback(self, callback_id: str, text: str | None = None) -> None:
        payload: dict[str, Any] = {"callback_query_id": callback_id}
        if text:
            payload["text"] = text
        await self._call("answerCallbackQuery", data=payload)

    async def get_membership_status(self, user_id: int, channel_id: str) -> MembershipStatus:
        result = await self._call("getChatMember", data={"chat_id": channel_id, "user_id": user_id})
        status = result.get("status", "")
        if status == "restricted":
            return "member" if result.get("is_member") else "none"
        return _STATUS_MAP.get(status, "unknown")

    async def get_updates(self, offset: int | None, timeout: int) -> list[TelegramUpdate]:
        payload: dict[str, Any] = {
            "timeout": timeout,
            "allowed_updates": ["message", "callback_query"],
        }
        if offset is not None:
            payload["offset"] = offset
        # The HTTP timeout must outlive the long-poll timeout
        result = await self._call("getUpdates", data=payload, timeout=timeout + 10)
        return [TelegramUpdate.model_validate(item) for item in result or []]
