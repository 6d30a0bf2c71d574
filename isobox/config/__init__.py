"""Configuration management for isobox.

This module provides a flat Settings class read from the environment (and an
optional .env file), with grouped views for each component.

Usage:
    from isobox.config import settings

    # Grouped settings, handed to components at construction time
    settings.sandbox.isolate_binary
    settings.logging.log_format

    # Or flat access
    settings.isolate_binary
"""

from pathlib import Path

from pydantic import Field, validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .logging import LoggingConfig
from .sandbox import SandboxConfig


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Sandbox (isolate) Configuration
    isolate_binary: str = Field(
        default="/usr/local/bin/isolate",
        description="Path to the isolate binary",
    )
    run_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per command before giving up on transient isolate errors",
    )
    run_retry_backoff: float = Field(
        default=0.2,
        ge=0,
        le=10,
        description="Seconds to wait between command attempts",
    )
    max_init_attempts: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Upper bound on self-healing box --init attempts",
    )

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    @validator("isolate_binary")
    def validate_isolate_binary(cls, v):
        """Ensure the isolate binary is configured as a path, not a bare name."""
        if not v or not Path(v).is_absolute():
            raise ValueError("isolate_binary must be an absolute path")
        return v

    @property
    def sandbox(self) -> SandboxConfig:
        """Access sandbox (isolate) configuration group."""
        return SandboxConfig(
            isolate_binary=self.isolate_binary,
            run_retries=self.run_retries,
            run_retry_backoff=self.run_retry_backoff,
            max_init_attempts=self.max_init_attempts,
        )

    @property
    def logging(self) -> LoggingConfig:
        """Access logging configuration group."""
        return LoggingConfig(
            log_level=self.log_level,
            log_format=self.log_format,
        )


# Global settings instance
settings = Settings()

__all__ = [
    "Settings",
    "settings",
    "SandboxConfig",
    "LoggingConfig",
]
