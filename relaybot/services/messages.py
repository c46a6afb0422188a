"""User-facing message templates (HTML parse mode)."""

from __future__ import annotations

from html import escape
from typing import Sequence

from relaybot.adapters.telegram.base import DeliveryMethod
from relaybot.core.config import ChannelRequirement
from relaybot.core.errors import (
    DISPATCH_FAILED,
    FETCH_FAILED,
    FILE_TOO_LARGE,
    LINK_INVALID,
    RESOLVE_FAILED,
    AppError,
)
from relaybot.schemas.content import FileInfo
from relaybot.schemas.telegram import InlineKeyboardButton, InlineKeyboardMarkup
from relaybot.utils.formatting import format_file_size, minutes_ceil

PARSE_MODE = "HTML"
CHECK_MEMBERSHIP_CALLBACK = "check_membership"

BOT_TITLE = "⚡ <b>Ultra-Fast Terabox Download Bot</b>"


def welcome(display_name: str) -> str:
    return (
        f"👋 Hello <b>{escape(display_name)}</b>!\n\n"
        f"{BOT_TITLE}\n\n"
        "I can download Terabox content and send it directly to you on Telegram.\n\n"
        "✨ <b>Features:</b>\n"
        "• Multiple file/folder support\n"
        "• Large file support (up to 2GB)\n"
        "• Media, documents, videos, photos\n\n"
        "To get started, please join our channels to use this bot."
    )


def help_text() -> str:
    return (
        f"{BOT_TITLE}\n\n"
        "<b>How to use this bot:</b>\n\n"
        "1. Send me any Terabox link (file or folder)\n"
        "2. I'll download the content from Terabox\n"
        "3. I'll send the content directly to you on Telegram\n\n"
        "<b>Commands:</b>\n"
        "/start - Start the bot\n"
        "/help - Show this help message\n"
        "/status - Check your membership status\n"
        "/verify - Verify your channel memberships"
    )


def _required_label(channel: ChannelRequirement) -> str:
    return "(Required)" if channel.required else "(Optional)"


def join_prompt() -> str:
    return "Please join all channels below to use the bot:"


def join_keyboard(channels: Sequence[ChannelRequirement]) -> InlineKeyboardMarkup:
    rows = [
        [InlineKeyboardButton(text=f"Join {c.name} {_required_label(c)}", url=c.invite_link)]
        for c in channels
    ]
    rows.append(
        [InlineKeyboardButton(text="✅ I Have Joined All Channels", callback_data=CHECK_MEMBERSHIP_CALLBACK)]
    )
    return InlineKeyboardMarkup(inline_keyboard=rows)


def _channel_lines(channels: Sequence[ChannelRequirement], per_channel: dict[str, bool]) -> str:
    lines = []
    for channel in channels:
        joined = per_channel.get(channel.id, False)
        mark = "✅" if joined else "❌"
        state = "Joined" if joined else "Not Joined"
        lines.append(f"{mark} {escape(channel.name)} {_required_label(channel)}: {state}")
    return "\n".join(lines)


def membership_status(
    channels: Sequence[ChannelRequirement],
    per_channel: dict[str, bool],
    all_required: bool,
) -> str:
    footer = (
        "✅ You can now use the bot!"
        if all_required
        else "❌ Please join all required channels to use the bot."
    )
    return f"<b>Your Membership Status:</b>\n\n{_channel_lines(channels, per_channel)}\n\n{footer}"


def verification_result(
    display_name: str,
    channels: Sequence[ChannelRequirement],
    per_channel: dict[str, bool],
    all_required: bool,
) -> str:
    footer = (
        "✅ All required channels verified! You can now use the bot."
        if all_required
        else "❌ Please join all required channels to use the bot."
    )
    return (
        f"<b>Verification Results for {escape(display_name)}:</b>\n\n"
        f"{_channel_lines(channels, per_channel)}\n\n{footer}"
    )


def verifying() -> str:
    return "🔍 Verifying your channel memberships..."


def callback_verified() -> str:
    return "✅ All required channels verified! You can now use the bot by sending Terabox links."


def callback_not_verified() -> str:
    return "❌ Not all required channels verified. Please join all channels and try again."


def cooldown(remaining_seconds: float) -> str:
    return f"Please wait {minutes_ceil(remaining_seconds)} minutes before trying to verify again."


def not_a_member() -> str:
    return "❌ Please join all required channels first to use this bot. Use /start to get the join links."


def rate_limited() -> str:
    return "⏳ Please wait a moment before sending another request."


def invalid_link() -> str:
    return "❌ Please send a valid Terabox link."


def processing() -> str:
    return "⏳ Processing your Terabox link..."


def summary(delivered: int, total: int) -> str:
    if delivered == total:
        return "✅ All files processed successfully!"
    if delivered == 0:
        return f"❌ None of your {total} link(s) could be delivered."
    return f"⚠️ Delivered {delivered} of {total} link(s). See the messages above for details."


def internal_error() -> str:
    return "❌ An error occurred while processing your request. Please try again later."


def link_failure(link: str, error: AppError) -> str:
    code, details = error.code, error.details or {}
    if code == FILE_TOO_LARGE and "size_bytes" in details:
        return (
            f"❌ File is too large ({format_file_size(details['size_bytes'])}). "
            f"Maximum allowed size is {format_file_size(details['max_bytes'])}."
        )
    if code == FILE_TOO_LARGE:
        return "❌ File is too large."
    if code == LINK_INVALID:
        return f"❌ Not a valid Terabox link: {escape(link)}"
    if code == RESOLVE_FAILED:
        return f"❌ Failed to process link: {escape(link)}\nError: {escape(error.message)}"
    if code == FETCH_FAILED:
        return f"❌ Download failed: {escape(error.message)}"
    if code == DISPATCH_FAILED:
        return "❌ Error sending file. Please try again later."
    return internal_error()


_CAPTION_ICONS: dict[str, str] = {"video": "🎥", "photo": "🖼️", "document": "📄"}


def caption(info: FileInfo, method: DeliveryMethod, size_bytes: int) -> str:
    """Caption for a delivered file; downgraded and folder deliveries use the folder icon."""
    if info.is_folder or (method == "document" and info.subtype in ("video", "image")):
        icon = "📁"
    else:
        icon = _CAPTION_ICONS[method]
    return f"{icon} {info.name}\nSize: {format_file_size(size_bytes)}"
