"""Unit tests for settings and logging setup."""

import logging

import pytest
import structlog
from pydantic import ValidationError

from isobox.config import LoggingConfig, SandboxConfig, Settings
from isobox.utils.logging import get_logger, setup_logging


class TestSettings:
    """Test Settings defaults and environment overrides."""

    def test_defaults(self, monkeypatch):
        for name in ("ISOLATE_BINARY", "RUN_RETRIES", "RUN_RETRY_BACKOFF", "MAX_INIT_ATTEMPTS"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)
        assert settings.isolate_binary == "/usr/local/bin/isolate"
        assert settings.run_retries == 3
        assert settings.run_retry_backoff == 0.2
        assert settings.max_init_attempts == 5

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("ISOLATE_BINARY", "/opt/isolate/bin/isolate")
        monkeypatch.setenv("RUN_RETRY_BACKOFF", "0.5")
        settings = Settings(_env_file=None)
        assert settings.isolate_binary == "/opt/isolate/bin/isolate"
        assert settings.sandbox.run_retry_backoff == 0.5

    def test_relative_binary_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, isolate_binary="isolate")

    def test_retries_bounds(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, run_retries=0)

    def test_grouped_access(self):
        settings = Settings(_env_file=None, isolate_binary="/bin/isolate", log_format="console")
        assert isinstance(settings.sandbox, SandboxConfig)
        assert settings.sandbox.isolate_binary == "/bin/isolate"
        assert isinstance(settings.logging, LoggingConfig)
        assert settings.logging.log_format == "console"


class TestLoggingConfig:
    """Test LoggingConfig validation."""

    def test_level_normalized(self):
        assert LoggingConfig(log_level="debug").log_level == "DEBUG"

    def test_bad_format(self):
        with pytest.raises(ValidationError):
            LoggingConfig(log_format="xml")


class TestSetupLogging:
    """Test structlog configuration."""

    @pytest.fixture(autouse=True)
    def reset_structlog(self):
        yield
        structlog.reset_defaults()

    def test_json_format(self):
        setup_logging(LoggingConfig(log_level="WARNING", log_format="json"))
        assert logging.getLogger().level == logging.WARNING
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_format(self):
        setup_logging(LoggingConfig(log_level="INFO", log_format="console"))
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_get_logger(self):
        assert get_logger("isobox.test") is not None
