"""Download orchestration: resolve, size-check, fetch, deliver, clean up.

Each link in a request is an independent job. A job's failure is reported
as that link's outcome and processing moves on to the next link. Fetches
share one global pool of ``concurrent_downloads`` slots across all users;
waiting for a slot counts against the per-attempt timeout, so callers get
backpressure rather than immediate rejection.

Every job fetches into its own directory under the temp root, and that
directory is removed before the job returns, whatever the outcome.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Sequence

from relaybot.adapters.content.base import AbstractContentProvider
from relaybot.adapters.telegram.base import AbstractMessenger, DeliveryMethod
from relaybot.core.config import MediaLimitSettings
from relaybot.core.errors import (
    INTERNAL_ERROR,
    AppError,
    ContentProviderError,
    DispatchFailedError,
    DownloadAppError,
    FetchFailedError,
    FileTooLargeError,
    LinkInvalidError,
    ResolveFailedError,
    TransportAppError,
)
from relaybot.schemas.content import FileInfo
from relaybot.services import messages
from relaybot.utils.links import is_valid_link
from relaybot.utils.temp_storage import clear_directory, temp_job_dir

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkOutcome:
    """Result of processing one link."""

    link: str
    delivered: bool
    file_info: FileInfo | None = None
    method: DeliveryMethod | None = None
    error: AppError | None = None

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error else None


@dataclass(frozen=True)
class DownloadReport:
    """Per-link outcomes of one request, in input order."""

    outcomes: list[LinkOutcome] = field(default_factory=list)

    @property
    def delivered_count(self) -> int:
        return sum(1 for o in self.outcomes if o.delivered)

    @property
    def failed_count(self) -> int:
        return len(self.outcomes) - self.delivered_count


OutcomeCallback = Callable[[LinkOutcome], Awaitable[None]]


def choose_delivery_method(info: FileInfo, size_bytes: int, limits: MediaLimitSettings, *, is_archive: bool = False) -> DeliveryMethod:
    """Pick how a fetched artifact is delivered.

    Videos and images use their type-specific method while within that
    method's ceiling and fall back to a generic document above it; they are
    never rejected here. Folders, archives and every other subtype go out
    as documents.
    """
    if info.is_folder or is_archive:
        return "document"
    if info.subtype == "video" and size_bytes <= limits.max_video_size_bytes:
        return "video"
    if info.subtype == "image" and size_bytes <= limits.max_photo_size_bytes:
        return "photo"
    return "document"


class DownloadOrchestrator:
    """Runs download jobs under a global concurrency cap."""

    def __init__(
        self,
        provider: AbstractContentProvider,
        messenger: AbstractMessenger,
        *,
        temp_root: Path,
        media_limits: MediaLimitSettings,
        concurrent_downloads: int = 3,
        timeout_seconds: float = 300.0,
        retry_attempts: int = 3,
        retry_delay_seconds: float = 5.0,
        max_file_size_bytes: int = 2000 * 1024 * 1024,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if concurrent_downloads < 1:
            raise ValueError("concurrent_downloads must be >= 1")
        if retry_attempts < 1:
            raise ValueError("retry_attempts must be >= 1")

        self._provider = provider
        self._messenger = messenger
        self._temp_root = temp_root
        self._limits = media_limits
        self._concurrent_downloads = concurrent_downloads
        self._timeout_seconds = timeout_seconds
        self._retry_attempts = retry_attempts
        self._retry_delay_seconds = retry_delay_seconds
        self._max_file_size_bytes = max_file_size_bytes
        self._sleep = sleep
        self._slots = asyncio.Semaphore(concurrent_downloads)
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        return self._peak_in_flight

    @property
    def concurrent_downloads(self) -> int:
        return self._concurrent_downloads

    async def resolve(self, link: str) -> FileInfo:
        """Validate the link shape, then ask the provider for metadata.

        Raises:
            LinkInvalidError: Link doesn't look like a supported share link.
            ResolveFailedError: Provider could not resolve it.
        """
        if not is_valid_link(link):
            raise LinkInvalidError(link)
        try:
            return await self._provider.resolve_link(link)
        except ContentProviderError as exc:
            raise ResolveFailedError(link, exc.message) from exc

    def enforce_size_limit(self, info: FileInfo) -> None:
        if info.size_bytes > self._max_file_size_bytes:
            raise FileTooLargeError(info.size_bytes, self._max_file_size_bytes)

    async def _fetch_attempt(self, link: str, info: FileInfo, job_dir: Path) -> Path:
        async with self._slots:
            self._in_flight += 1
            self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
            try:
                return await self._provider.fetch_to_path(link, job_dir, info=info)
            finally:
                self._in_flight -= 1

    async def fetch(self, link: str, info: FileInfo, job_dir: Path) -> Path:
        """Fetch into ``job_dir`` with per-attempt timeout and bounded retries.

        Each attempt waits for a pool slot and runs the transfer within
        ``timeout_seconds``; a timed-out attempt is cancelled, which releases
        its slot. Attempt ``n`` is followed by a ``retry_delay * n`` pause.

        Raises:
            FetchFailedError: Every attempt failed or timed out.
        """
        last_reason = "Download failed"
        for attempt in range(1, self._retry_attempts + 1):
            try:
                artifact = await asyncio.wait_for(
                    self._fetch_attempt(link, info, job_dir),
                    timeout=self._timeout_seconds,
                )
                logger.info(
                    "download.fetched",
                    extra={"attempt": attempt, "kind": info.kind, "size_bytes": info.size_bytes},
                )
                return artifact
            except asyncio.TimeoutError:
                last_reason = f"Download timed out after {self._timeout_seconds:g}s"
            except (ContentProviderError, OSError) as exc:
                last_reason = getattr(exc, "message", None) or str(exc) or "Download failed"

            logger.warning(
                "download.fetch_retry" if attempt < self._retry_attempts else "download.fetch_exhausted",
                extra={"attempt": attempt, "max_attempts": self._retry_attempts, "reason": last_reason},
            )
            # Discard partial output before the next attempt
            clear_directory(job_dir)
            if attempt < self._retry_attempts:
                await self._sleep(self._retry_delay_seconds * attempt)

        raise FetchFailedError(link, self._retry_attempts, last_reason)

    async def dispatch(self, chat_id: int, artifact: Path, info: FileInfo) -> DeliveryMethod:
        """Deliver a fetched artifact, routing by subtype and on-disk size.

        Raises:
            FileTooLargeError: Artifact exceeds the platform maximum.
            DispatchFailedError: Artifact vanished or the upload failed.
        """
        try:
            size_bytes = artifact.stat().st_size
        except OSError as exc:
            raise DispatchFailedError("unknown", "File not found") from exc

        if size_bytes > self._limits.max_file_size_bytes:
            raise FileTooLargeError(size_bytes, self._limits.max_file_size_bytes)

        method = choose_delivery_method(
            info, size_bytes, self._limits, is_archive=artifact.suffix.lower() == ".zip"
        )
        try:
            await self._messenger.send_media(
                chat_id, method, artifact, caption=messages.caption(info, method, size_bytes)
            )
        except (TransportAppError, OSError) as exc:
            raise DispatchFailedError(method) from exc

        logger.info(
            "download.delivered",
            extra={"method": method, "subtype": info.subtype, "size_bytes": size_bytes},
        )
        return method

    async def process_link(self, chat_id: int, link: str) -> LinkOutcome:
        """Run one job end to end; failures become the link's outcome."""
        info: FileInfo | None = None
        try:
            info = await self.resolve(link)
            self.enforce_size_limit(info)
            with temp_job_dir(self._temp_root) as job_dir:
                artifact = await self.fetch(link, info, job_dir)
                method = await self.dispatch(chat_id, artifact, info)
            return LinkOutcome(link=link, delivered=True, file_info=info, method=method)
        except DownloadAppError as exc:
            logger.warning(
                "download.link_failed",
                extra={"error_code": exc.code, "error_msg": exc.message},
            )
            return LinkOutcome(link=link, delivered=False, file_info=info, error=exc)

    async def process_links(
        self,
        chat_id: int,
        links: Sequence[str],
        *,
        on_outcome: OutcomeCallback | None = None,
    ) -> DownloadReport:
        """Process links one after another; one link's failure never stops the rest."""
        outcomes: list[LinkOutcome] = []
        for link in links:
            try:
                outcome = await self.process_link(chat_id, link)
            except Exception as exc:
                logger.exception(
                    "download.unexpected_error",
                    extra={"error_type": type(exc).__name__},
                )
                outcome = LinkOutcome(
                    link=link,
                    delivered=False,
                    error=AppError(code=INTERNAL_ERROR, message="Unexpected error"),
                )
            outcomes.append(outcome)
            if on_outcome is not None:
                await on_outcome(outcome)

        report = DownloadReport(outcomes=outcomes)
        logger.info(
            "download.request_complete",
            extra={"links": len(outcomes), "delivered": report.delivered_count, "failed": report.failed_count},
        )
        return report
