"""Blocking file helpers for staging data in and out of a box root.

These are called from IsolateBox through the thread-pool executor while the
box lock is held.
"""

import os
from typing import Union

import structlog

logger = structlog.get_logger(__name__)


def box_file_path(root: str, box_path: str) -> str:
    """Map an in-box path onto the host filesystem under ``root``.

    ``..`` components are resolved against the box's own ``/`` first, so
    the result never leaves ``root``.
    """
    normalized = os.path.normpath("/" + box_path).lstrip("/")
    return os.path.join(root, normalized)


def write_file(path: str, content: Union[bytes, str], mode: int = 0o644) -> None:
    """Write ``content`` to ``path`` synchronously, truncating any old data."""
    if isinstance(content, str):
        content = content.encode("utf-8")

    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC | os.O_SYNC, mode)
    with os.fdopen(fd, "wb") as f:
        f.write(content)
        f.flush()
        os.fsync(f.fileno())


def read_file(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def check_file(path: str) -> bool:
    """Return True if ``path`` exists. Unexpected stat errors count as missing."""
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning("File stat returned unexpected error", path=path, error=str(e))
        return False
    return True
