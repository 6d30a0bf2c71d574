"""Decoding of isolate meta files.

isolate writes one ``key:value`` pair per line after every run. Parsing is
lenient: unknown keys are logged and skipped, and malformed numbers become
zero, so a partially written file still yields a usable report.
"""

import re
from typing import Any, Dict, Optional

import structlog

from ...models.execution import ExecutionReport

logger = structlog.get_logger(__name__)

# Keys isolate may emit that the report does not carry
_IGNORED_KEYS = frozenset(
    {
        "time-wall",
        "max-rss",
        "csw-voluntary",
        "csw-forced",
        "cg-enabled",
        "cg-oom-killed",
    }
)


_INT_RE = re.compile(r"[+-]?\d+", re.ASCII)
_FLOAT_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


def _to_int(value: str) -> int:
    # int() alone would also take padding and digit separators
    if not _INT_RE.fullmatch(value):
        return 0
    return int(value)


def _to_float(value: str) -> float:
    if not _FLOAT_RE.fullmatch(value):
        return 0.0
    return float(value)


def parse_report(
    text: Optional[str], internal_message: str = ""
) -> Optional[ExecutionReport]:
    """Parse the contents of a meta file.

    Args:
        text: Raw meta file contents, or None if there is no file to read
        internal_message: isolate's own combined stdout/stderr

    Returns:
        ExecutionReport, or None when ``text`` is None
    """
    if text is None:
        return None

    fields: Dict[str, Any] = {"internal_message": internal_message}

    # Only \n separates records; a message may carry other line breaks
    for line in text.split("\n"):
        line = line.removesuffix("\r")
        key, sep, val = line.partition(":")
        if not sep:
            continue

        if key == "cg-mem":
            fields["memory"] = _to_int(val)
        elif key == "exitcode":
            fields["exit_code"] = _to_int(val)
        elif key == "exitsig":
            fields["exit_signal"] = _to_int(val)
        elif key == "killed":
            fields["killed"] = True
        elif key == "message":
            fields["message"] = val
        elif key == "status":
            fields["status"] = val
        elif key == "time":
            fields["time"] = _to_float(val)
        elif key in _IGNORED_KEYS:
            continue
        else:
            logger.warning("Unknown isolate stat", key=key, value=val)

    return ExecutionReport(**fields)
