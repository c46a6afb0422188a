"""Share-link detection and extraction."""

from __future__ import annotations

import re

# TeraBox share links, including the 1024tera mirror domain
LINK_PATTERN = re.compile(
    r"https?://(?:www\.)?(?:terabox|1024tera)\.com/(?:s/|sharing/)?[^\s]+",
    re.IGNORECASE,
)


def is_valid_link(link: str) -> bool:
    """Return True if ``link`` is exactly one supported share link."""
    return bool(LINK_PATTERN.fullmatch(link.strip()))


def extract_links(text: str | None) -> list[str]:
    """Find supported share links in free text.

    Duplicates are dropped while keeping first-seen order.

    Examples:
        >>> extract_links("get https://terabox.com/s/abc and https://terabox.com/s/abc")
        ['https://terabox.com/s/abc']
        >>> extract_links("no links here")
        []
    """
    if not text:
        return []
    return list(dict.fromkeys(LINK_PATTERN.findall(text)))
