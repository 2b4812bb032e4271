"""
Shared configuration management for the admin data access layer.
"""

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="DATA_ACCESS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")
    log_json: bool = Field(default=True)

    # Remote API
    api_base_url: str = Field(default="http://localhost:8000/api/v1")
    request_timeout: float = Field(default=30.0)

    # Query cache windows (seconds)
    default_stale_time: float = Field(default=30.0)
    default_cache_time: float = Field(default=300.0)
    detail_stale_time: float = Field(default=60.0)

    # List queries
    keep_previous_data: bool = Field(default=True)
    refetch_on_window_focus: bool = Field(default=False)

    # Observability
    metrics_enabled: bool = Field(default=True)


def get_config(**overrides: Any) -> BaseConfig:
    """Get configuration, with explicit overrides taking precedence over the environment."""
    return BaseConfig(**overrides)
