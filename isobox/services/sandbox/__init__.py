"""Sandbox management services using isolate.

This package provides isolate-based box management functionality:
- isolate.py: IsolateFlagBuilder and isolate output classification
- report.py: meta file decoding into ExecutionReport
- files.py: file staging helpers for box roots
- executor.py: Command execution in boxes, with retries
- box.py: IsolateBox handle
- manager.py: Box lifecycle management
"""

from .box import IsolateBox
from .executor import IsolateExecutor
from .isolate import IsolateCondition, IsolateFlagBuilder, classify_isolate_output
from .manager import BoxManager, resolve_command
from .report import parse_report

__all__ = [
    "BoxManager",
    "IsolateBox",
    "IsolateExecutor",
    "IsolateFlagBuilder",
    "IsolateCondition",
    "classify_isolate_output",
    "parse_report",
    "resolve_command",
]
