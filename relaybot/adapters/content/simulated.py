"""Simulated content provider for development and demos.

The real host's API is not implemented. This provider fabricates metadata
from the link shape and writes a small placeholder artifact after a delay
proportional to the reported size, so the whole pipeline (slots, timeouts,
delivery routing, cleanup) can be exercised end to end.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path

from relaybot.adapters.content.base import AbstractContentProvider
from relaybot.schemas.content import FileInfo, MediaSubtype

logger = logging.getLogger(__name__)

MIB = 1024 * 1024

VIDEO_EXTENSIONS = (".mp4", ".mkv", ".avi", ".mov", ".webm")
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")
DOCUMENT_EXTENSIONS = (".pdf", ".doc", ".docx", ".txt", ".zip")

_ARTIFACT_EXTENSION: dict[str, str] = {
    "video": ".mp4",
    "image": ".jpg",
    "document": ".pdf",
    "other": ".bin",
}


def _subtype_for(name: str) -> tuple[MediaSubtype, int]:
    lowered = name.lower()
    if lowered.endswith(VIDEO_EXTENSIONS):
        return "video", 100 * MIB
    if lowered.endswith(IMAGE_EXTENSIONS):
        return "image", 5 * MIB
    if lowered.endswith(DOCUMENT_EXTENSIONS):
        return "document", 10 * MIB
    return "other", 50 * MIB


class SimulatedContentProvider(AbstractContentProvider):
    """Provider returning fabricated data; links under ``/s/`` are folders."""

    def __init__(self, *, seconds_per_mib: float = 0.1, max_delay_seconds: float = 30.0) -> None:
        self._seconds_per_mib = seconds_per_mib
        self._max_delay_seconds = max_delay_seconds

    async def resolve_link(self, url: str) -> FileInfo:
        if "/s/" in url:
            return FileInfo(kind="folder", name="Shared Folder", size_bytes=150 * MIB, file_count=3)

        name = url.rstrip("/").rsplit("/", 1)[-1].split("?", 1)[0] or "shared_file"
        subtype, size_bytes = _subtype_for(name)
        return FileInfo(kind="file", name=name, size_bytes=size_bytes, subtype=subtype)

    async def fetch_to_path(self, url: str, destination_dir: Path, *, info: FileInfo) -> Path:
        delay = min(self._max_delay_seconds, info.size_bytes / MIB * self._seconds_per_mib)
        logger.info(
            "content.simulated_fetch",
            extra={"kind": info.kind, "delay_s": round(delay, 2)},
        )
        await asyncio.sleep(delay)

        extension = ".zip" if info.is_folder else _ARTIFACT_EXTENSION[info.subtype]
        target = destination_dir / f"simulated_{uuid.uuid4().hex[:8]}{extension}"
        target.write_bytes(b"Simulated content")
        return target
