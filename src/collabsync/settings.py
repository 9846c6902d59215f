"""Shared settings loaded from environment / .env file."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from collabsync import __version__

DEFAULT_USER_AGENT = f"collabsync/{__version__}"
DEFAULT_ICON_MAX_BYTES = 1 * 1024 * 1024  # 1 MB
DEFAULT_ICON_CONTENT_TYPES = ("image/jpeg", "image/png", "image/svg+xml")


class Settings(BaseSettings):
    """Configuration for the collabsync client layer.

    Values are read from environment variables and from a ``.env`` file
    in the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Shared
    log_level: str = "INFO"

    # Remote service
    api_base_url: str = "http://localhost:3000"
    request_timeout_seconds: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT

    # Cache
    cache_stale_seconds: float | None = None  # None: stale only after invalidation
    max_stale_retries: int = 3

    # Project icon upload
    icon_max_bytes: int = DEFAULT_ICON_MAX_BYTES
    icon_content_types: list[str] = list(DEFAULT_ICON_CONTENT_TYPES)

    # Mutations
    suppress_superseded_notifications: bool = False
