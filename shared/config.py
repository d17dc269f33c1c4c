"""
Shared configuration management for the Sentimatrix Access Layer.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AccessConfig(BaseSettings):
    """Settings for the email access layer.

    Every field can be overridden with a ``SENTIMATRIX_``-prefixed environment
    variable or a ``.env`` file, e.g. ``SENTIMATRIX_REDIS_URL``.
    """

    model_config = SettingsConfigDict(
        env_prefix="SENTIMATRIX_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    service_name: str = Field(default="emails")
    log_level: str = Field(default="info")
    json_logs: bool = Field(default=True)

    # Cache store
    cache_backend: Literal["redis", "memory"] = Field(default="redis")
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_instance_name: str = Field(default="SentimatrixCache_")
    redis_socket_timeout: float = Field(default=5.0)

    # Document store
    store_backend: Literal["postgres", "memory"] = Field(default="postgres")
    postgres_dsn: str = Field(default="postgres://localhost:5432/sentimatrix")
    emails_table: str = Field(default="emails")
    postgres_command_timeout: float = Field(default=30.0)

    # Expiration policy
    cache_sliding_expiration_seconds: int = Field(default=600)
    cache_absolute_expiration_seconds: int = Field(default=1800)

    # Cache circuit breaker
    cache_failure_threshold: int = Field(default=5)
    cache_recovery_timeout: float = Field(default=30.0)

    @field_validator(
        "cache_sliding_expiration_seconds",
        "cache_absolute_expiration_seconds",
        "cache_failure_threshold",
    )
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("emails_table")
    @classmethod
    def _identifier(cls, value: str) -> str:
        # Interpolated into SQL, so only plain identifiers are accepted.
        if not value.replace("_", "").isalnum():
            raise ValueError("table name must be alphanumeric or underscore")
        return value


def get_config(**overrides) -> AccessConfig:
    """Load configuration from the environment, applying explicit overrides."""
    return AccessConfig(**overrides)
