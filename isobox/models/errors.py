"""Error models and exception classes for isobox."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ErrorType(str, Enum):
    """Error type enumeration."""

    SETUP = "setup"
    PERMISSION = "permission"
    BOX_INIT = "box_init"
    BOX_CLEANUP = "box_cleanup"
    BOX_CONFLICT = "box_conflict"
    BOX_CLOSED = "box_closed"
    EXECUTION_FAILED = "execution_failed"
    COMMAND_NOT_FOUND = "command_not_found"


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: Optional[str] = Field(None, description="Field name for validation errors")
    message: str = Field(..., description="Human-readable error message")
    code: Optional[str] = Field(None, description="Machine-readable error code")


# Custom Exception Classes


class SandboxException(Exception):
    """Base exception for isobox."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.SETUP,
        details: Optional[List[ErrorDetail]] = None,
        box_id: Optional[int] = None,
    ):
        self.message = message
        self.error_type = error_type
        self.details = details or []
        self.box_id = box_id
        super().__init__(message)


def _output_details(output: str) -> List[ErrorDetail]:
    """Wrap isolate's own output, if any, as error details."""
    if not output.strip():
        return []
    return [ErrorDetail(field="output", message=output.strip(), code="isolate_output")]


class IsolateNotFoundError(SandboxException):
    """The isolate binary does not exist at the configured path."""

    def __init__(self, path: str, **kwargs):
        self.path = path
        super().__init__(
            message=f"sandbox binary not found: {path}",
            error_type=ErrorType.SETUP,
            **kwargs,
        )


class IsolatePermissionError(SandboxException):
    """isolate needs root and could not be given it."""

    def __init__(self, message: str = "Couldn't chown root the isolate binary", **kwargs):
        super().__init__(message=message, error_type=ErrorType.PERMISSION, **kwargs)


class BoxInitError(SandboxException):
    """isolate --init failed in a way that cannot be self-healed."""

    def __init__(self, message: str, output: str = "", **kwargs):
        self.output = output
        kwargs.setdefault("details", _output_details(output))
        super().__init__(message=message, error_type=ErrorType.BOX_INIT, **kwargs)


class BoxCleanupError(SandboxException):
    """isolate --cleanup exited non-zero."""

    def __init__(self, message: str, output: str = "", **kwargs):
        self.output = output
        kwargs.setdefault("details", _output_details(output))
        super().__init__(message=message, error_type=ErrorType.BOX_CLEANUP, **kwargs)


class BoxInUseError(SandboxException):
    """A box with this id is already held open by the manager."""

    def __init__(self, box_id: int, **kwargs):
        super().__init__(
            message=f"Box {box_id} is already in use",
            error_type=ErrorType.BOX_CONFLICT,
            box_id=box_id,
            **kwargs,
        )


class BoxClosedError(SandboxException):
    """Operation attempted on a box after it was torn down."""

    def __init__(self, box_id: int, **kwargs):
        super().__init__(
            message=f"Box {box_id} has been closed",
            error_type=ErrorType.BOX_CLOSED,
            box_id=box_id,
            **kwargs,
        )


class IsolateExecutionError(SandboxException):
    """The isolate process itself could not be started."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message, error_type=ErrorType.EXECUTION_FAILED, **kwargs
        )


class CommandNotFoundError(SandboxException):
    """A command could not be resolved to an executable on the host."""

    def __init__(self, command: str, message: Optional[str] = None, **kwargs):
        self.command = command
        super().__init__(
            message=message or f"Command not found: {command}",
            error_type=ErrorType.COMMAND_NOT_FOUND,
            **kwargs,
        )
