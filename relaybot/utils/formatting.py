"""Human-readable formatting helpers for user-facing text."""

from __future__ import annotations

import math

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def format_file_size(size_bytes: int) -> str:
    """Format a byte count using 1024-based units.

    Examples:
        >>> format_file_size(0)
        '0 Bytes'
        >>> format_file_size(1536)
        '1.5 KB'
        >>> format_file_size(2000 * 1024 * 1024)
        '1.95 GB'
    """
    if size_bytes <= 0:
        return "0 Bytes"

    exponent = 0
    while exponent < len(_SIZE_UNITS) - 1 and size_bytes >= 1024 ** (exponent + 1):
        exponent += 1
    value = round(size_bytes / 1024**exponent, 2)
    # Drop trailing zeros: 1.50 -> 1.5, 2.00 -> 2
    return f"{value:g} {_SIZE_UNITS[exponent]}"


def minutes_ceil(seconds: float) -> int:
    """Round a duration up to whole minutes (at least 1 for positive input)."""
    if seconds <= 0:
        return 0
    return max(1, math.ceil(seconds / 60))
