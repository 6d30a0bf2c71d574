"""Utility modules for isobox."""

from .concurrency import run_in_executor
from .logging import setup_logging, get_logger

__all__ = [
    "run_in_executor",
    "setup_logging",
    "get_logger",
]
