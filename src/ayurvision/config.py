"""Environment-based configuration for AyurVision."""

from __future__ import annotations

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_SESSION_SECRET = "change-me-in-production"  # noqa: S105


class Settings(BaseSettings):
    """Application settings loaded from AYURVISION_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="AYURVISION_",
        case_sensitive=False,
    )

    # Server
    host: str = "0.0.0.0"  # noqa: S104
    port: int = Field(default=8000, ge=1, le=65535)

    # Generative AI provider (None = not configured)
    api_key: str | None = None
    model: str = "gemini-2.5-flash"
    api_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    request_timeout: float = Field(default=60.0, gt=0)

    # Input limits
    max_file_size: int = Field(default=10_485_760, ge=1)

    # Browser sessions
    session_secret: str = DEFAULT_SESSION_SECRET
    max_sessions: int = Field(default=1000, ge=1)
    session_idle_timeout: float = Field(default=3600.0, gt=0)

    log_level: str = "INFO"

    @property
    def api_key_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    @property
    def session_secret_is_default(self) -> bool:
        return self.session_secret == DEFAULT_SESSION_SECRET


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()


def warn_if_unconfigured(settings: Settings) -> bool:
    """Log warnings for missing or placeholder configuration.

    Returns True when the provider credential is present. Startup continues
    either way; identification calls made without it fail with a configuration
    error.
    """
    if settings.session_secret_is_default:
        logger.warning(
            "AYURVISION_SESSION_SECRET is not set. Session cookies are signed with a public default key."
        )
    if settings.api_key_configured:
        return True
    logger.warning("AYURVISION_API_KEY is not set. Plant identification requests will fail until it is configured.")
    return False
