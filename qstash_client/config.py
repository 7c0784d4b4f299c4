"""
Client configuration using Pydantic Settings.
Loads configuration from QSTASH_* environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from qstash_client.constants import (
    DEFAULT_CLIENT_RETRIES,
    DEFAULT_CLIENT_TIMEOUT_SECONDS,
    DEFAULT_MAX_BACKOFF_SECONDS,
    DEFAULT_MIN_BACKOFF_SECONDS,
    DEFAULT_QSTASH_URL,
    MIN_DURATION_SECONDS,
)
from qstash_client.errors import ConfigurationError


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="QSTASH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Publisher
    token: str = ""
    url: str = DEFAULT_QSTASH_URL
    verbose: bool = False

    # HTTP client
    client_timeout_seconds: float = DEFAULT_CLIENT_TIMEOUT_SECONDS
    client_min_backoff_seconds: float = DEFAULT_MIN_BACKOFF_SECONDS
    client_max_backoff_seconds: float = DEFAULT_MAX_BACKOFF_SECONDS
    client_retries: int = DEFAULT_CLIENT_RETRIES

    # Receiver
    signing_key: str = ""
    next_signing_key: str = ""
    clock_skew_seconds: float = 0.0

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"  # json or console
    otel_enabled: bool = False
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "qstash-client"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def validate_publisher_settings(settings: Settings, topic: str) -> None:
    """
    Check that the settings can back a publisher.

    Args:
        settings: The settings to check.
        topic: The topic the publisher will post to.

    Raises:
        ConfigurationError: If a required value is missing or out of range.
    """
    if not settings.token:
        raise ConfigurationError("'QSTASH_TOKEN' is required")
    if not settings.url:
        raise ConfigurationError("qstash url is required")
    if not topic:
        raise ConfigurationError("topic is required")
    if settings.client_timeout_seconds < MIN_DURATION_SECONDS:
        raise ConfigurationError("http client timeout must be at least 1 millisecond")
    if settings.client_retries < 0:
        raise ConfigurationError("http client retries must be at least 0")
    if settings.client_min_backoff_seconds < MIN_DURATION_SECONDS:
        raise ConfigurationError("http client min back off must be at least 1 millisecond")
    if settings.client_max_backoff_seconds < MIN_DURATION_SECONDS:
        raise ConfigurationError("http client max back off must be at least 1 millisecond")
    if settings.client_min_backoff_seconds > settings.client_max_backoff_seconds:
        raise ConfigurationError(
            "http client min back off must be less than or equal to max back off"
        )


def validate_receiver_settings(settings: Settings) -> None:
    """
    Check that the settings can back a receiver.

    Raises:
        ConfigurationError: If either signing key is missing.
    """
    if not settings.signing_key:
        raise ConfigurationError("'QSTASH_SIGNING_KEY' is required")
    if not settings.next_signing_key:
        raise ConfigurationError("'QSTASH_NEXT_SIGNING_KEY' is required")
    if settings.clock_skew_seconds < 0:
        raise ConfigurationError("clock skew must not be negative")
