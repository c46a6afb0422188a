"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)

MIB = 1024 * 1024


class ChannelRequirement(BaseModel):
    """A community the user may have to join before using the bot.

    Order in the configured list only matters for display.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Chat id (e.g. -1001234567890) or @username")
    name: str = Field(..., description="Display name shown on join buttons")
    invite_link: str = Field(..., description="Invite URL for the join button")
    required: bool = Field(True, description="Whether membership is mandatory")


class BotSettings(BaseSettings):
    """Telegram Bot API connection settings."""

    token: str = Field(
        "",
        description="Bot token issued by @BotFather",
    )
    api_base_url: str = Field(
        "https://api.telegram.org",
        description="Bot API base URL (override for a local Bot API server)",
    )
    mode: str = Field(
        "webhook",
        description="How updates are received: webhook, polling or disabled",
    )
    webhook_secret: str | None = Field(
        None,
        description="Expected X-Telegram-Bot-Api-Secret-Token header value",
    )
    polling_timeout_seconds: int = Field(
        30,
        description="Long-poll timeout passed to getUpdates",
        ge=0,
    )
    request_timeout_seconds: float = Field(
        60.0,
        description="HTTP timeout for Bot API calls (uploads included)",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="BOT_",
        case_sensitive=False,
    )


class ChannelSettings(BaseSettings):
    """Channels/groups gating access to the bot.

    ``CHANNEL_REQUIREMENTS`` is a JSON list, e.g.
    ``[{"id": "-100123", "name": "Premium", "invite_link": "https://t.me/+abc"}]``.
    """

    requirements: list[ChannelRequirement] = Field(
        default_factory=list,
        description="Ordered list of channel requirements",
    )

    model_config = SettingsConfigDict(
        env_prefix="CHANNEL_",
        case_sensitive=False,
    )


class VerificationSettings(BaseSettings):
    """Membership verification attempt limiting."""

    max_attempts: int = Field(
        3,
        description="Failed verifications allowed before a cooldown starts",
        ge=1,
    )
    cooldown_seconds: float = Field(
        300.0,
        description="Cooldown length after max_attempts failures",
        gt=0,
    )
    check_interval_seconds: float = Field(
        60.0,
        description="Interval of the background re-validation sweep",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="VERIFY_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Per-user sliding-window rate limit."""

    max_requests: int = Field(
        5,
        description="Maximum requests allowed per user within the window",
        ge=1,
    )
    window_seconds: float = Field(
        60.0,
        description="Sliding window length in seconds",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class DownloadSettings(BaseSettings):
    """Content fetching behaviour."""

    provider: str = Field(
        "simulated",
        description="Content provider implementation name",
    )
    concurrent_downloads: int = Field(
        3,
        description="Global cap on in-flight fetches",
        ge=1,
    )
    timeout_seconds: float = Field(
        300.0,
        description="Per-attempt timeout (slot wait plus fetch)",
        gt=0,
    )
    retry_attempts: int = Field(
        3,
        description="Total fetch attempts before giving up",
        ge=1,
    )
    retry_delay_seconds: float = Field(
        5.0,
        description="Base delay between fetch attempts (multiplied by attempt number)",
        ge=0,
    )
    max_file_size_bytes: int = Field(
        2000 * MIB,
        description="Largest resolved size accepted for download",
        ge=1,
    )
    simulated_max_delay_seconds: float = Field(
        30.0,
        description="Upper bound of the simulated provider's fetch delay",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="DOWNLOAD_",
        case_sensitive=False,
    )


class MediaLimitSettings(BaseSettings):
    """Messaging platform size ceilings per delivery type."""

    max_file_size_bytes: int = Field(2000 * MIB, ge=1)
    max_photo_size_bytes: int = Field(10 * MIB, ge=1)
    max_video_size_bytes: int = Field(2000 * MIB, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="MEDIA_",
        case_sensitive=False,
    )


class StorageSettings(BaseSettings):
    """Temporary storage for fetched artifacts."""

    temp_dir: Path = Field(
        Path("/tmp/relaybot_downloads"),
        description="Root directory for per-job temp artifacts",
    )
    cleanup_interval_seconds: float = Field(
        3600.0,
        description="Interval of the temp-storage GC sweep",
        gt=0,
    )
    retention_seconds: float = Field(
        3600.0,
        description="Entries older than this are removed by the GC sweep",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="json or plain")
    output: str = Field("stdout", description="stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10 * MIB, description="Rotate after this many bytes (0 disables)")
    backup_count: int = Field(5, description="Rotated files to keep")
    request_id_header: str = Field("X-Request-ID", description="Correlation header name")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    Nested settings are created via default_factory so env loading works.
    """

    app_env: str = APP_ENV
    bot: BotSettings = Field(default_factory=BotSettings)
    channels: ChannelSettings = Field(default_factory=ChannelSettings)
    verification: VerificationSettings = Field(default_factory=VerificationSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    download: DownloadSettings = Field(default_factory=DownloadSettings)
    media: MediaLimitSettings = Field(default_factory=MediaLimitSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
