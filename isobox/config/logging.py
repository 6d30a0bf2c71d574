"""Logging configuration."""

from pydantic import Field, validator
from pydantic_settings import BaseSettings


class LoggingConfig(BaseSettings):
    """structlog output settings."""

    log_level: str = Field(default="INFO", alias="log_level")
    log_format: str = Field(default="json", alias="log_format")

    @validator("log_level")
    def normalize_level(cls, v):
        return v.upper()

    @validator("log_format")
    def validate_format(cls, v):
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return v

    class Config:
        env_prefix = ""
        extra = "ignore"
