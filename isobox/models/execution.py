"""Execution request and report models."""

from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field


class ReportStatus(str, Enum):
    """Two-letter status codes written by isolate to the meta file."""

    OK = "OK"
    RUNTIME_ERROR = "RE"
    SIGNALED = "SG"
    TIMED_OUT = "TO"
    INTERNAL_ERROR = "XX"


class DirectoryRule(BaseModel):
    """A directory rule exposing (or hiding) a host path inside a box.

    The ``in``/``out``/``opts`` aliases match the keys used by judge
    configuration files, so rules can be loaded straight from them.
    """

    model_config = ConfigDict(populate_by_name=True)

    inside: str = Field(..., alias="in", description="Path inside the box")
    outside: str = Field(
        default="", alias="out", description="Host path; defaults to `inside`"
    )
    options: str = Field(
        default="", alias="opts", description="Mount options, e.g. 'rw' or 'noexec'"
    )
    removes: bool = Field(
        default=False, description="Remove this path from the box instead of binding it"
    )
    # Verbatim doesn't set outside to inside implicitly if it isn't set
    verbatim: bool = Field(default=False)


class RunConfig(BaseModel):
    """Limits and redirections for one command run inside a box.

    Empty stdio paths are treated as /dev/null, never as the host's streams.
    """

    input_path: str = Field(default="", description="stdin, relative to the box")
    output_path: str = Field(default="", description="stdout, relative to the box")
    stderr_path: str = Field(default="", description="stderr, relative to the box")
    stderr_to_stdout: bool = Field(default=False)

    memory_limit: int = Field(default=0, ge=0, description="Memory limit in KiB")
    time_limit: float = Field(default=0, ge=0, description="CPU time limit in seconds")
    wall_time_limit: float = Field(
        default=0, ge=0, description="Wall clock limit in seconds"
    )

    inherit_env: bool = Field(default=False)
    env_to_inherit: List[str] = Field(default_factory=list)
    env_to_set: Dict[str, str] = Field(default_factory=dict)

    directories: List[DirectoryRule] = Field(default_factory=list)


class ExecutionReport(BaseModel):
    """Statistics for a single isolate run, decoded from its meta file."""

    model_config = ConfigDict(frozen=True)

    memory: int = Field(default=0, description="Peak cgroup memory in KiB")
    exit_code: int = Field(default=0)
    exit_signal: int = Field(default=0)
    killed: bool = Field(default=False)
    message: str = Field(default="")
    status: str = Field(default="")
    time: float = Field(default=0.0, description="CPU time in seconds")

    # isolate's own stdout/stderr, not the program's
    internal_message: str = Field(default="", serialization_alias="internal_msg")

    @property
    def is_infrastructure_error(self) -> bool:
        return self.status == ReportStatus.INTERNAL_ERROR.value

    @property
    def timed_out(self) -> bool:
        return self.status == ReportStatus.TIMED_OUT.value
