"""Data models for isobox."""

from .execution import DirectoryRule, ExecutionReport, ReportStatus, RunConfig
from .errors import (
    ErrorType,
    ErrorDetail,
    SandboxException,
    IsolateNotFoundError,
    IsolatePermissionError,
    BoxInitError,
    BoxCleanupError,
    BoxInUseError,
    BoxClosedError,
    IsolateExecutionError,
    CommandNotFoundError,
)

__all__ = [
    # Execution models
    "DirectoryRule",
    "ExecutionReport",
    "ReportStatus",
    "RunConfig",
    # Error models
    "ErrorType",
    "ErrorDetail",
    "SandboxException",
    "IsolateNotFoundError",
    "IsolatePermissionError",
    "BoxInitError",
    "BoxCleanupError",
    "BoxInUseError",
    "BoxClosedError",
    "IsolateExecutionError",
    "CommandNotFoundError",
]
