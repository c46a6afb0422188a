"""Tests for link extraction, size formatting and user-facing templates."""

import pytest

from relaybot.core.config import ChannelRequirement
from relaybot.core.errors import DispatchFailedError, FetchFailedError, FileTooLargeError
from relaybot.schemas.content import FileInfo
from relaybot.services import messages
from relaybot.utils.formatting import format_file_size, minutes_ceil
from relaybot.utils.links import extract_links, is_valid_link


class TestLinks:
    @pytest.mark.parametrize(
        "link",
        [
            "https://terabox.com/s/1abcDEF",
            "https://www.terabox.com/sharing/link?surl=abc",
            "http://1024tera.com/s/xyz",
            "https://TeraBox.com/s/upper",
        ],
    )
    def test_supported_links_are_valid(self, link):
        assert is_valid_link(link) is True

    @pytest.mark.parametrize(
        "link",
        ["https://example.com/s/abc", "terabox.com/s/abc", "see https://terabox.com/s/abc", ""],
    )
    def test_other_text_is_not_a_link(self, link):
        assert is_valid_link(link) is False

    def test_extract_keeps_order_and_drops_duplicates(self):
        text = (
            "first https://terabox.com/s/aaa then https://1024tera.com/s/bbb "
            "and again https://terabox.com/s/aaa"
        )
        assert extract_links(text) == ["https://terabox.com/s/aaa", "https://1024tera.com/s/bbb"]

    def test_extract_from_empty_text(self):
        assert extract_links("") == []
        assert extract_links(None) == []
        assert extract_links("hello there") == []


class TestFormatting:
    @pytest.mark.parametrize(
        "size,expected",
        [
            (0, "0 Bytes"),
            (512, "512 Bytes"),
            (1024, "1 KB"),
            (1536, "1.5 KB"),
            (1024 * 1024, "1 MB"),
            (2000 * 1024 * 1024, "1.95 GB"),
        ],
    )
    def test_format_file_size(self, size, expected):
        assert format_file_size(size) == expected

    @pytest.mark.parametrize("seconds,expected", [(0, 0), (1, 1), (60, 1), (61, 2), (300, 5)])
    def test_minutes_ceil(self, seconds, expected):
        assert minutes_ceil(seconds) == expected


class TestMessages:
    def test_join_keyboard_lists_channels_then_check_button(self):
        channels = [
            ChannelRequirement(id="-1", name="News", invite_link="https://t.me/+n"),
            ChannelRequirement(id="-2", name="Extras", invite_link="https://t.me/+e", required=False),
        ]

        payload = messages.join_keyboard(channels).to_payload()
        rows = payload["inline_keyboard"]

        assert rows[0][0] == {"text": "Join News (Required)", "url": "https://t.me/+n"}
        assert rows[1][0]["text"] == "Join Extras (Optional)"
        assert rows[2][0]["callback_data"] == messages.CHECK_MEMBERSHIP_CALLBACK
        assert "url" not in rows[2][0]

    def test_cooldown_rounds_minutes_up(self):
        assert messages.cooldown(61) == "Please wait 2 minutes before trying to verify again."

    def test_summary_variants(self):
        assert messages.summary(2, 2) == "✅ All files processed successfully!"
        assert "1 of 2" in messages.summary(1, 2)
        assert "None" in messages.summary(0, 2)

    def test_welcome_escapes_display_name(self):
        assert "&lt;b&gt;" in messages.welcome("<b>")

    def test_link_failure_texts(self):
        too_large = FileTooLargeError(size_bytes=3 * 1024**3, max_bytes=2000 * 1024 * 1024)

        assert messages.link_failure("l", too_large) == (
            "❌ File is too large (3 GB). Maximum allowed size is 1.95 GB."
        )
        assert messages.link_failure("l", FetchFailedError("l", 3, "timed out")) == "❌ Download failed: timed out"
        assert "Error sending file" in messages.link_failure("l", DispatchFailedError("video"))

    def test_too_large_text_reflects_the_limit_that_was_exceeded(self):
        too_large = FileTooLargeError(size_bytes=60 * 1024**2, max_bytes=50 * 1024**2)

        assert messages.link_failure("l", too_large) == (
            "❌ File is too large (60 MB). Maximum allowed size is 50 MB."
        )

    def test_caption_icons(self):
        video = FileInfo(kind="file", name="clip.mp4", size_bytes=10, subtype="video")
        folder = FileInfo(kind="folder", name="Stuff", size_bytes=10)

        assert messages.caption(video, "video", 1536) == "🎥 clip.mp4\nSize: 1.5 KB"
        assert messages.caption(video, "document", 1536).startswith("📁")
        assert messages.caption(folder, "document", 10).startswith("📁 Stuff")
