"""Handle for a single isolate box."""

import asyncio
from typing import Awaitable, Callable, Optional, Sequence, Union

import structlog

from ...models.errors import BoxClosedError
from ...models.execution import ExecutionReport, RunConfig
from ...utils.concurrency import run_in_executor
from . import files
from .executor import IsolateExecutor

logger = structlog.get_logger(__name__)


class IsolateBox:
    """Represents one initialized isolate box.

    All file and run operations on a box are serialized by its lock; isolate
    makes no promises about concurrent use of the same box. Boxes with
    different ids share nothing and may be used in parallel.
    """

    def __init__(
        self,
        box_id: int,
        path: str,
        executor: IsolateExecutor,
        cleanup: Callable[["IsolateBox"], Awaitable[None]],
    ):
        """
        Args:
            box_id: Numeric box identity
            path: Box root on the host, as printed by ``isolate --init``
            executor: Executor used for ``run``
            cleanup: Coroutine function that tears the box down
        """
        self.box_id = box_id
        self.path = path
        self._executor = executor
        self._cleanup = cleanup
        self._lock = asyncio.Lock()
        self._closed = False

    def __repr__(self) -> str:
        return f"IsolateBox(box_id={self.box_id}, path={self.path!r})"

    @property
    def closed(self) -> bool:
        return self._closed

    def get_file_path(self, box_path: str) -> str:
        """Return the host location of a file inside the box."""
        return files.box_file_path(self.path, box_path)

    def _ensure_open(self) -> None:
        if self._closed:
            raise BoxClosedError(self.box_id)

    async def write_file(
        self, box_path: str, content: Union[bytes, str], mode: int = 0o644
    ) -> None:
        """Write a file at ``box_path`` inside the box."""
        async with self._lock:
            self._ensure_open()
            await run_in_executor(
                files.write_file, self.get_file_path(box_path), content, mode
            )

    async def read_file(self, box_path: str) -> bytes:
        """Read a file at ``box_path`` inside the box."""
        async with self._lock:
            self._ensure_open()
            return await run_in_executor(files.read_file, self.get_file_path(box_path))

    async def file_exists(self, box_path: str) -> bool:
        async with self._lock:
            self._ensure_open()
            return await run_in_executor(files.check_file, self.get_file_path(box_path))

    async def run(
        self, command: Sequence[str], config: Optional[RunConfig] = None
    ) -> Optional[ExecutionReport]:
        """Run a command inside the box.

        A None result, or a report whose status is "XX", means isolate kept
        failing until the retries ran out. That case does not raise.

        Args:
            command: Command and arguments, as seen from inside the box
            config: Limits and redirections; defaults to an empty RunConfig

        Returns:
            ExecutionReport for the run, or None
        """
        async with self._lock:
            self._ensure_open()
            return await self._executor.run(self, command, config or RunConfig())

    async def close(self) -> None:
        """Tear the box down with ``isolate --cleanup``.

        The handle must not be used afterwards.
        """
        async with self._lock:
            self._ensure_open()
            await self._cleanup(self)
            self._closed = True

    async def __aenter__(self) -> "IsolateBox":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if not self._closed:
            await self.close()
