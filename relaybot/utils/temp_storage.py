"""Temporary storage for fetched artifacts.

Each download job gets a private directory under the temp root. The
directory is removed when the job's ``with`` block exits, on every path.
``sweep_stale_entries`` is the safety net for jobs that died before their
cleanup ran (process crash, kill -9).
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

JOB_DIR_PREFIX = "job_"


@dataclass(frozen=True)
class SweepStats:
    """Outcome of one temp-storage sweep."""

    removed: int
    failed: int
    reclaimed_bytes: int


def remove_path(path: Path) -> bool:
    """Delete a file or directory tree if it exists.

    Returns:
        True if something was removed.
    """
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
        return True
    if path.exists() or path.is_symlink():
        path.unlink()
        return True
    return False


def clear_directory(path: Path) -> None:
    """Remove everything inside ``path`` but keep the directory itself."""
    for child in path.iterdir():
        remove_path(child)


def _tree_size(path: Path) -> int:
    if path.is_file():
        return path.stat().st_size
    return sum(p.stat().st_size for p in path.rglob("*") if p.is_file())


@contextmanager
def temp_job_dir(root: Path) -> Iterator[Path]:
    """Create a job-private directory under ``root`` and always remove it.

    Example:
        >>> with temp_job_dir(Path("/tmp/relaybot")) as job_dir:
        ...     artifact = job_dir / "file.bin"
    """
    root.mkdir(parents=True, exist_ok=True)
    job_dir = Path(tempfile.mkdtemp(prefix=JOB_DIR_PREFIX, dir=root))
    try:
        yield job_dir
    finally:
        try:
            remove_path(job_dir)
        except OSError as exc:
            # Left for the temp-storage sweep
            logger.warning(
                "temp_storage.cleanup_failed",
                extra={"path": str(job_dir), "error": str(exc)},
            )


def sweep_stale_entries(root: Path, retention_seconds: float, *, now: float | None = None) -> SweepStats:
    """Delete direct children of ``root`` last modified before the retention threshold.

    A failure on one entry is logged and the sweep moves on to the next.

    Args:
        root: Temp storage root.
        retention_seconds: Minimum age (by mtime) before an entry is removed.
        now: Current UNIX time; defaults to ``time.time()``.

    Returns:
        SweepStats with removed/failed counts and reclaimed bytes.
    """
    if not root.is_dir():
        return SweepStats(removed=0, failed=0, reclaimed_bytes=0)

    cutoff = (time.time() if now is None else now) - retention_seconds
    removed = failed = reclaimed = 0

    for entry in root.iterdir():
        try:
            if entry.lstat().st_mtime >= cutoff:
                continue
            size = _tree_size(entry)
            if remove_path(entry):
                removed += 1
                reclaimed += size
        except OSError as exc:
            failed += 1
            logger.warning(
                "temp_storage.sweep_entry_failed",
                extra={"path": str(entry), "error": str(exc)},
            )

    if removed or failed:
        logger.info(
            "temp_storage.swept",
            extra={"removed": removed, "failed": failed, "reclaimed_bytes": reclaimed},
        )
    return SweepStats(removed=removed, failed=failed, reclaimed_bytes=reclaimed)
