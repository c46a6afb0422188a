"""Factory pattern for creating content provider instances."""

from relaybot.adapters.content.base import AbstractContentProvider
from relaybot.adapters.content.simulated import SimulatedContentProvider
from relaybot.core.config import DownloadSettings, settings
from relaybot.core.errors import ValidationAppError


def create_content_provider(download_settings: DownloadSettings | None = None) -> AbstractContentProvider:
    """Instantiate the content provider selected by ``DOWNLOAD_PROVIDER``.

    Returns:
        AbstractContentProvider: Configured provider instance.

    Raises:
        ValidationAppError: If the provider name is unknown.
    """
    cfg = download_settings or settings.download
    provider = cfg.provider.lower()

    if provider == "simulated":
        return SimulatedContentProvider(max_delay_seconds=cfg.simulated_max_delay_seconds)

    raise ValidationAppError(
        code="unknown_content_provider",
        message=f"Unknown content provider: '{provider}'. Supported providers: simulated",
    )
