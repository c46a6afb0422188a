"""Inbound update dispatcher.

Updates are first converted into explicit task types (commands, link
messages, button callbacks) so the handlers never see transport payloads.
``UpdateDispatcher.dispatch`` is the single top-level boundary: whatever
goes wrong while handling a task is logged with its context and turned
into a generic error reply; it never propagates to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Union

from relaybot.adapters.telegram.base import AbstractMessenger
from relaybot.core.config import ChannelRequirement
from relaybot.core.errors import CooldownError, NotAMemberError, RateLimitedError
from relaybot.core.logging import correlation_scope
from relaybot.schemas.telegram import TelegramUpdate
from relaybot.services import messages
from relaybot.services.admission import AdmissionGate, AuthorizeRequest, AuthorizeResult
from relaybot.services.download_service import DownloadOrchestrator, LinkOutcome
from relaybot.services.verification import VerificationTracker
from relaybot.utils.links import extract_links

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandTask:
    user_id: int
    chat_id: int
    display_name: str
    command: str


@dataclass(frozen=True)
class LinksTask:
    user_id: int
    chat_id: int
    text: str


@dataclass(frozen=True)
class CallbackTask:
    user_id: int
    chat_id: int | None
    message_id: int | None
    callback_id: str
    display_name: str
    data: str


BotTask = Union[CommandTask, LinksTask, CallbackTask]


def task_from_update(update: TelegramUpdate) -> BotTask | None:
    """Convert a Telegram update into a task, or None if we ignore it."""
    callback = update.callback_query
    if callback is not None:
        message = callback.message
        return CallbackTask(
            user_id=callback.from_user.id,
            chat_id=message.chat.id if message else None,
            message_id=message.message_id if message else None,
            callback_id=callback.id,
            display_name=callback.from_user.display_name,
            data=callback.data or "",
        )

    message = update.message
    if message is None or message.from_user is None or message.from_user.is_bot:
        return None
    text = (message.text or message.caption or "").strip()
    if not text:
        return None

    if text.startswith("/"):
        # "/start@my_bot payload" -> "start"
        command = text.split(maxsplit=1)[0][1:].split("@", 1)[0].lower()
        return CommandTask(
            user_id=message.from_user.id,
            chat_id=message.chat.id,
            display_name=message.from_user.display_name,
            command=command,
        )

    return LinksTask(user_id=message.from_user.id, chat_id=message.chat.id, text=text)


class UpdateDispatcher:
    """Routes tasks to the admission gate, verification tracker and orchestrator."""

    def __init__(
        self,
        *,
        messenger: AbstractMessenger,
        tracker: VerificationTracker,
        gate: AdmissionGate,
        orchestrator: DownloadOrchestrator,
        channels: Sequence[ChannelRequirement],
    ) -> None:
        self._messenger = messenger
        self._tracker = tracker
        self._gate = gate
        self._orchestrator = orchestrator
        self._channels = tuple(channels)

    async def handle_update(self, update: TelegramUpdate) -> None:
        """Entry point for webhook and polling sources."""
        with correlation_scope(f"update:{update.update_id}"):
            task = task_from_update(update)
            if task is None:
                logger.debug("dispatcher.update_ignored")
                return
            await self.dispatch(task)

    async def dispatch(self, task: BotTask) -> None:
        logger.info(
            "dispatcher.task_received",
            extra={"task_type": type(task).__name__, "user_id": task.user_id},
        )
        try:
            if isinstance(task, CommandTask):
                await self._handle_command(task)
            elif isinstance(task, CallbackTask):
                await self._handle_callback(task)
            else:
                await self._handle_links(task)
        except Exception as exc:
            logger.exception(
                "dispatcher.unhandled_exception",
                extra={
                    "task_type": type(task).__name__,
                    "user_id": task.user_id,
                    "error_type": type(exc).__name__,
                },
            )
            await self._report_internal_error(task)

    async def _report_internal_error(self, task: BotTask) -> None:
        try:
            if isinstance(task, CallbackTask):
                await self._messenger.answer_callback(task.callback_id, messages.internal_error())
            else:
                await self._messenger.send_text(task.chat_id, messages.internal_error())
        except Exception as exc:
            logger.error(
                "dispatcher.error_reply_failed",
                extra={"user_id": task.user_id, "error_type": type(exc).__name__},
            )

    async def _send_join_buttons(self, chat_id: int) -> None:
        await self._messenger.send_text(
            chat_id,
            messages.join_prompt(),
            reply_markup=messages.join_keyboard(self._channels),
        )

    # ------------------------------------------------------------------ commands

    async def _handle_command(self, task: CommandTask) -> None:
        if task.command == "start":
            await self._messenger.send_text(
                task.chat_id, messages.welcome(task.display_name), parse_mode=messages.PARSE_MODE
            )
            await self._send_join_buttons(task.chat_id)
        elif task.command == "status":
            await self._handle_status(task)
        elif task.command == "verify":
            await self._handle_verify(task)
        else:
            await self._messenger.send_text(
                task.chat_id, messages.help_text(), parse_mode=messages.PARSE_MODE
            )

    async def _handle_status(self, task: CommandTask) -> None:
        report = await self._tracker.check_status(task.user_id)
        await self._messenger.send_text(
            task.chat_id,
            messages.membership_status(self._channels, report.per_channel, report.all_required_satisfied),
            parse_mode=messages.PARSE_MODE,
        )
        if not report.all_required_satisfied:
            await self._send_join_buttons(task.chat_id)

    async def _handle_verify(self, task: CommandTask) -> None:
        remaining = self._tracker.remaining_cooldown(task.user_id)
        if remaining > 0:
            await self._messenger.send_text(task.chat_id, messages.cooldown(remaining))
            return

        progress = await self._messenger.send_text(task.chat_id, messages.verifying())
        report = await self._tracker.verify(task.user_id)
        await self._messenger.edit_message(
            progress.chat_id,
            progress.message_id,
            messages.verification_result(
                task.display_name, self._channels, report.per_channel, report.all_required_satisfied
            ),
            parse_mode=messages.PARSE_MODE,
        )
        if not report.all_required_satisfied:
            await self._send_join_buttons(task.chat_id)

    # ----------------------------------------------------------------- callbacks

    async def _handle_callback(self, task: CallbackTask) -> None:
        if task.data != messages.CHECK_MEMBERSHIP_CALLBACK:
            await self._messenger.answer_callback(task.callback_id)
            return

        remaining = self._tracker.remaining_cooldown(task.user_id)
        if remaining > 0:
            await self._messenger.answer_callback(task.callback_id, messages.cooldown(remaining))
            return

        await self._messenger.answer_callback(task.callback_id, messages.verifying())
        report = await self._tracker.verify(task.user_id)
        text = messages.callback_verified() if report.all_required_satisfied else messages.callback_not_verified()

        if task.chat_id is not None and task.message_id is not None:
            await self._messenger.edit_message(task.chat_id, task.message_id, text)
            if not report.all_required_satisfied:
                await self._send_join_buttons(task.chat_id)

    # --------------------------------------------------------------------- links

    async def _reply_denied(self, task: LinksTask, result: AuthorizeResult) -> None:
        error = result.error
        if isinstance(error, CooldownError):
            await self._messenger.send_text(task.chat_id, messages.cooldown(error.details["retry_after"]))
        elif isinstance(error, RateLimitedError):
            await self._messenger.send_text(task.chat_id, messages.rate_limited())
        elif isinstance(error, NotAMemberError):
            await self._messenger.send_text(task.chat_id, messages.not_a_member())
            await self._send_join_buttons(task.chat_id)

    async def _handle_links(self, task: LinksTask) -> None:
        links = extract_links(task.text)
        if not links:
            await self._messenger.send_text(task.chat_id, messages.invalid_link())
            return

        result = await self._gate.authorize(AuthorizeRequest(user_id=task.user_id))
        if not result.allowed:
            await self._reply_denied(task, result)
            return

        progress = await self._messenger.send_text(task.chat_id, messages.processing())

        async def report_failure(outcome: LinkOutcome) -> None:
            if outcome.delivered or outcome.error is None:
                return
            try:
                await self._messenger.send_text(
                    task.chat_id,
                    messages.link_failure(outcome.link, outcome.error),
                    parse_mode=messages.PARSE_MODE,
                )
            except Exception as exc:
                logger.warning(
                    "dispatcher.failure_reply_failed",
                    extra={"user_id": task.user_id, "error_type": type(exc).__name__},
                )

        report = await self._orchestrator.process_links(task.chat_id, links, on_outcome=report_failure)
        await self._messenger.edit_message(
            progress.chat_id,
            progress.message_id,
            messages.summary(report.delivered_count, len(report.outcomes)),
        )
