"""Application configuration using Pydantic BaseSettings.

Two layers live here:

- ``Settings`` loads process configuration from the environment.
- ``ProviderConfig`` is the validated, immutable value the Messenger
  provider is constructed with. It is only ever produced by
  ``build_provider_config``, which merges overrides over defaults and
  rejects empty credentials.
"""

from functools import lru_cache
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.constants import (
    DEFAULT_GRAPH_API_VERSION,
    DEFAULT_PORT,
    DEFAULT_PROVIDER_NAME,
    FACEBOOK_API_TIMEOUT_SECONDS,
)
from src.services.exceptions import ConfigValidationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        # Load .env first, then .env.local (for local/test overrides)
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Messenger Configuration
    messenger_access_token: str = Field(
        default="", description="Facebook Page access token"
    )
    messenger_page_id: str = Field(default="", description="Facebook Page ID")
    messenger_verify_token: str = Field(
        default="", description="Webhook verification token"
    )
    messenger_api_version: str = Field(
        default=DEFAULT_GRAPH_API_VERSION, description="Graph API version"
    )
    port: int = Field(default=DEFAULT_PORT, description="HTTP port for webhooks")

    # Directory for downloaded media (system temp dir when unset)
    media_download_dir: str | None = Field(
        default=None, description="Where save_media writes files by default"
    )

    # Environment
    env: Literal["local", "railway", "prod"] = Field(
        default="local", description="Current environment"
    )
    log_level: str = Field(default="INFO", description="Python logging level")

    # Sentry Configuration
    sentry_dsn: str | None = Field(
        default=None, description="Sentry DSN for error tracking (optional)"
    )
    sentry_traces_sample_rate: float = Field(
        default=1.0, description="Sentry traces sample rate (0.0 to 1.0)"
    )

    # Logfire Configuration
    logfire_token: str | None = Field(
        default=None, description="Pydantic Logfire token for observability"
    )

    facebook_api_timeout_seconds: float = Field(
        default=FACEBOOK_API_TIMEOUT_SECONDS,
        description="Timeout for Facebook Graph API calls (seconds)",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class ProviderDefaults(BaseModel):
    """Documented defaults the caller's configuration is merged over."""

    model_config = ConfigDict(frozen=True)

    name: str = DEFAULT_PROVIDER_NAME
    port: int = DEFAULT_PORT
    version: str = DEFAULT_GRAPH_API_VERSION
    access_token: str | None = None
    page_id: str | None = None
    verify_token: str | None = None


class ProviderConfig(BaseModel):
    """Validated Messenger provider configuration."""

    model_config = ConfigDict(frozen=True)

    name: str
    port: int
    version: str
    access_token: str
    page_id: str
    verify_token: str
    timeout_seconds: float = FACEBOOK_API_TIMEOUT_SECONDS


# Preconditions checked in order; the first failing one is reported.
_REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("access_token", "Must provide Facebook Page Access Token"),
    ("page_id", "Must provide Facebook Page ID"),
    ("verify_token", "Must provide Messenger Verify Token"),
)


def build_provider_config(
    defaults: ProviderDefaults | None = None,
    overrides: dict[str, Any] | None = None,
) -> ProviderConfig:
    """
    Merge overrides over defaults and validate the result.

    Keys whose value is ``None`` in ``overrides`` do not replace the default.

    Args:
        defaults: Baseline values (``ProviderDefaults()`` when omitted)
        overrides: Caller-supplied values

    Returns:
        Immutable ProviderConfig

    Raises:
        ConfigValidationError: access token, page ID or verify token is empty
    """
    merged = (defaults or ProviderDefaults()).model_dump()
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value

    for field_name, message in _REQUIRED_FIELDS:
        value = merged.get(field_name)
        if not isinstance(value, str) or not value.strip():
            raise ConfigValidationError(message, field=field_name)

    return ProviderConfig(**merged)


def provider_config_from_settings(settings: Settings) -> ProviderConfig:
    """Build the provider configuration from environment settings."""
    return build_provider_config(
        overrides={
            "access_token": settings.messenger_access_token,
            "page_id": settings.messenger_page_id,
            "verify_token": settings.messenger_verify_token,
            "version": settings.messenger_api_version,
            "port": settings.port,
            "timeout_seconds": settings.facebook_api_timeout_seconds,
        }
    )
