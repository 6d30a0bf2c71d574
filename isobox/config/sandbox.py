"""Sandbox (isolate) configuration."""

from pydantic import Field
from pydantic_settings import BaseSettings


class SandboxConfig(BaseSettings):
    """isolate sandbox execution settings."""

    isolate_binary: str = Field(
        default="/usr/local/bin/isolate", alias="isolate_binary"
    )
    run_retries: int = Field(default=3, ge=1, le=10, alias="run_retries")
    run_retry_backoff: float = Field(
        default=0.2, ge=0, le=10, alias="run_retry_backoff"
    )
    max_init_attempts: int = Field(default=5, ge=1, le=20, alias="max_init_attempts")

    class Config:
        env_prefix = ""
        extra = "ignore"
