"""Pytest configuration and shared fixtures."""

import os
from typing import Callable, List, Optional, Sequence
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment before importing config
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from isobox.config import SandboxConfig
from isobox.services.sandbox.executor import IsolateExecutor
from isobox.services.sandbox.box import IsolateBox


def make_process(returncode: int = 0, output: bytes = b"") -> MagicMock:
    """Build a stand-in for an asyncio subprocess."""
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(output, None))
    proc.wait = AsyncMock(return_value=returncode)
    proc.kill = MagicMock()
    return proc


def meta_path_from(args: Sequence[str]) -> Optional[str]:
    for arg in args:
        if arg.startswith("--meta="):
            return arg[len("--meta="):]
    return None


def isolate_run_stub(
    attempts: List[dict], calls: Optional[list] = None
) -> Callable:
    """Fake create_subprocess_exec for ``isolate --run``.

    Each entry of ``attempts`` describes one isolate invocation:
    ``meta`` (written to the --meta file), ``remove_meta`` (delete the
    --meta file instead), ``output`` (isolate's own stdout/stderr) and
    ``returncode``. The last entry repeats.
    """

    async def fake_exec(binary, *args, **kwargs):
        index = len(calls) if calls is not None else 0
        if calls is not None:
            calls.append(list(args))
        attempt = attempts[min(index, len(attempts) - 1)]
        meta_path = meta_path_from(args)
        if meta_path and attempt.get("meta") is not None:
            with open(meta_path, "w") as f:
                f.write(attempt["meta"])
        if meta_path and attempt.get("remove_meta"):
            os.remove(meta_path)
        return make_process(
            attempt.get("returncode", 0), attempt.get("output", b"")
        )

    return fake_exec


@pytest.fixture
def isolate_binary(tmp_path):
    """An existing file standing in for the isolate binary."""
    binary = tmp_path / "bin" / "isolate"
    binary.parent.mkdir()
    binary.write_text("#!/bin/sh\n")
    binary.chmod(0o755)
    return str(binary)


@pytest.fixture
def sandbox_config(isolate_binary):
    """Sandbox settings pointing at the fake isolate binary."""
    return SandboxConfig(
        isolate_binary=isolate_binary,
        run_retries=3,
        run_retry_backoff=0.2,
        max_init_attempts=5,
    )


@pytest.fixture
def box_root(tmp_path):
    """A box root with the /box working directory inside it."""
    root = tmp_path / "isolate" / "7"
    (root / "box").mkdir(parents=True)
    return root


@pytest.fixture
def executor(sandbox_config):
    return IsolateExecutor(sandbox_config)


@pytest.fixture
def box(box_root, executor):
    """An open box whose cleanup is a mock."""
    return IsolateBox(7, str(box_root), executor, AsyncMock())


@pytest.fixture
def process_factory():
    """Factory for fake asyncio subprocesses."""
    return make_process


@pytest.fixture
def run_stub():
    """Factory for fake ``isolate --run`` invocations."""
    return isolate_run_stub
