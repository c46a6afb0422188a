"""Webhook secret-token authentication.

Telegram echoes the ``secret_token`` given to setWebhook in the
``X-Telegram-Bot-Api-Secret-Token`` header of every webhook call. When
``BOT_WEBHOOK_SECRET`` is configured, calls without the matching header are
rejected before the update is parsed.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Annotated

from fastapi import Header, HTTPException, status

from relaybot.core.config import settings
from relaybot.core.errors import ValidationAppError

logger = logging.getLogger(__name__)

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def _fingerprint(value: str) -> str:
    """Short hash for logs without exposing the value."""
    return hashlib.sha256(value.encode()).hexdigest()[:16]


def validate_webhook_secret(provided: str | None, expected: str | None) -> None:
    """Compare the provided secret with the configured one.

    Pure validation logic without FastAPI dependencies for easy testing.
    No configured secret means webhook calls are accepted as-is.

    Raises:
        ValidationAppError: If a secret is configured and doesn't match.
    """
    if not expected:
        return

    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.warning(
            "webhook_auth.rejected",
            extra={
                "secret_present": bool(provided),
                "secret_hash": _fingerprint(provided) if provided else None,
            },
        )
        raise ValidationAppError(
            code="invalid_webhook_secret",
            message="Invalid or missing webhook secret token",
        )


async def verify_webhook_secret(
    secret_token: Annotated[str | None, Header(alias=SECRET_HEADER)] = None,
) -> None:
    """FastAPI dependency enforcing the webhook secret.

    Raises:
        HTTPException: 403 Forbidden if the secret doesn't match.
    """
    try:
        validate_webhook_secret(secret_token, settings.bot.webhook_secret)
    except ValidationAppError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=exc.message,
        ) from exc
