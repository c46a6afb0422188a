"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and user-facing replies.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict

# Stable, machine-readable error codes
NOT_A_MEMBER = "not_a_member"
COOLDOWN = "cooldown"
RATE_LIMITED = "rate_limited"
LINK_INVALID = "link_invalid"
RESOLVE_FAILED = "resolve_failed"
FILE_TOO_LARGE = "file_too_large"
FETCH_FAILED = "fetch_failed"
DISPATCH_FAILED = "dispatch_failed"
INTERNAL_ERROR = "internal_error"


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and replies."""

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: float
    link: str
    size_bytes: int
    max_bytes: int
    attempts: int
    method: str
    channel_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class TransportAppError(AppError):
    """Raised when a messaging platform call fails."""


class ContentProviderError(AppError):
    """Raised by content providers when resolving or fetching fails."""


class AdmissionAppError(AppError):
    """Base for admission gate denials. Terminal for the request."""


class NotAMemberError(AdmissionAppError):
    def __init__(self, message: str = "Join all required channels first.") -> None:
        super().__init__(code=NOT_A_MEMBER, message=message)


class CooldownError(AdmissionAppError):
    def __init__(self, retry_after: float) -> None:
        super().__init__(
            code=COOLDOWN,
            message="Too many failed verification attempts.",
            details={"retry_after": retry_after},
        )


class RateLimitedError(AdmissionAppError):
    def __init__(self, retry_after: float | None = None) -> None:
        super().__init__(
            code=RATE_LIMITED,
            message="Rate limit exceeded. Try again later.",
            details={"retry_after": retry_after} if retry_after is not None else None,
        )


class DownloadAppError(AppError):
    """Base for per-link download failures. Scoped to the link that raised it."""


class LinkInvalidError(DownloadAppError):
    def __init__(self, link: str) -> None:
        super().__init__(
            code=LINK_INVALID,
            message="Not a supported share link.",
            details={"link": link},
        )


class ResolveFailedError(DownloadAppError):
    def __init__(self, link: str, reason: str = "Failed to get file information") -> None:
        super().__init__(code=RESOLVE_FAILED, message=reason, details={"link": link})


class FileTooLargeError(DownloadAppError):
    def __init__(self, size_bytes: int, max_bytes: int) -> None:
        super().__init__(
            code=FILE_TOO_LARGE,
            message="File exceeds the maximum transferable size.",
            details={"size_bytes": size_bytes, "max_bytes": max_bytes},
        )


class FetchFailedError(DownloadAppError):
    def __init__(self, link: str, attempts: int, reason: str = "Download failed") -> None:
        super().__init__(
            code=FETCH_FAILED,
            message=reason,
            details={"link": link, "attempts": attempts},
        )


class DispatchFailedError(DownloadAppError):
    def __init__(self, method: str, reason: str = "Error sending file") -> None:
        super().__init__(code=DISPATCH_FAILED, message=reason, details={"method": method})
