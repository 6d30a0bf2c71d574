"""isobox: run untrusted programs in isolate boxes."""

from .models import DirectoryRule, ExecutionReport, ReportStatus, RunConfig
from .services.sandbox import BoxManager, IsolateBox, resolve_command

__version__ = "0.1.0"

__all__ = [
    "BoxManager",
    "IsolateBox",
    "DirectoryRule",
    "ExecutionReport",
    "ReportStatus",
    "RunConfig",
    "resolve_command",
]
