"""Box lifecycle management using isolate."""

import asyncio
import os
import shutil
from typing import Dict, List, Optional, Sequence, Set, Tuple

import structlog

from ...config import SandboxConfig, settings
from ...models.errors import (
    BoxCleanupError,
    BoxInitError,
    BoxInUseError,
    CommandNotFoundError,
    IsolateExecutionError,
    IsolateNotFoundError,
    IsolatePermissionError,
)
from .box import IsolateBox
from .executor import IsolateExecutor
from .isolate import IsolateCondition, IsolateFlagBuilder, classify_isolate_output

logger = structlog.get_logger(__name__)

VERSION_PLACEHOLDER = "precompiled?"
_VERSION_PREFIX = "The process isolator "


def resolve_command(command: Sequence[str]) -> List[str]:
    """Return a copy of ``command`` with its executable as a full, symlink-free path.

    Some runtimes live behind several layers of symlinks, and the box only
    sees what is bound into it, so the real location has to be used.
    Commands already pointing into the box are returned unchanged.

    Raises:
        CommandNotFoundError: If the executable cannot be found
    """
    if not command:
        raise CommandNotFoundError("", message="Empty command")

    resolved = list(command)
    if resolved[0].startswith("/box"):
        return resolved

    found = shutil.which(resolved[0])
    if found is None:
        raise CommandNotFoundError(resolved[0])

    resolved[0] = os.path.realpath(found)
    return resolved


class BoxManager:
    """Manages isolate box lifecycle operations.

    Initializes numbered boxes, recovering from stale or mismatched boxes
    left behind by earlier runs, and tears them down again.
    """

    def __init__(self, config: Optional[SandboxConfig] = None):
        """Initialize the box manager.

        Args:
            config: Sandbox settings; defaults to the global settings group

        Raises:
            IsolateNotFoundError: If the isolate binary does not exist
        """
        self._config = config or settings.sandbox
        self._executor = IsolateExecutor(self._config, IsolateFlagBuilder())
        self._boxes: Dict[int, IsolateBox] = {}
        self._pending: Set[int] = set()

        if not self.is_available():
            logger.error(
                "isolate binary not found",
                isolate_binary=self._config.isolate_binary,
            )
            raise IsolateNotFoundError(self._config.isolate_binary)

    @property
    def executor(self) -> IsolateExecutor:
        """Get the isolate executor."""
        return self._executor

    @property
    def isolate_binary(self) -> str:
        return self._config.isolate_binary

    def is_available(self) -> bool:
        """Check if the isolate binary exists."""
        return os.path.isfile(self._config.isolate_binary)

    def get_initialization_error(self) -> Optional[str]:
        """Get an error message if isolate is unusable, else None."""
        if not self.is_available():
            return (
                f"isolate binary not found: {self._config.isolate_binary}. "
                "Ensure isolate is installed."
            )
        return None

    def get_box(self, box_id: int) -> Optional[IsolateBox]:
        """Return the open box with this id, if the manager holds one."""
        return self._boxes.get(box_id)

    async def _isolate(self, *args: str) -> Tuple[int, str]:
        """Run isolate with ``args`` and return (exit code, combined output)."""
        try:
            proc = await asyncio.create_subprocess_exec(
                self._config.isolate_binary,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except FileNotFoundError as e:
            raise IsolateNotFoundError(self._config.isolate_binary) from e
        except OSError as e:
            raise IsolateExecutionError(f"Failed to start isolate: {e}") from e

        output, _ = await proc.communicate()
        return proc.returncode, output.decode("utf-8", errors="replace")

    async def _reset_box(self, box_id: int, control_groups: bool) -> None:
        """Clean up a stale box found during init. Failures are only logged."""
        args = ["--cg"] if control_groups else []
        args += [f"--box-id={box_id}", "--cleanup"]
        returncode, output = await self._isolate(*args)
        if returncode != 0:
            logger.warning(
                "Box reset cleanup failed",
                box_id=box_id,
                returncode=returncode,
                output=output.strip(),
            )

    async def create_box(self, box_id: int) -> IsolateBox:
        """Initialize the box with the given id.

        A box left over from an earlier run is cleaned up and initialized
        again, so the new box never contains stale files.

        Args:
            box_id: Numeric box identity

        Returns:
            IsolateBox bound to ``box_id`` and its root path

        Raises:
            BoxInUseError: If this manager already holds the box open
            IsolatePermissionError: If isolate needs root and cannot be chowned
            BoxInitError: If init fails, or self-healing does not converge
        """
        if box_id in self._boxes or box_id in self._pending:
            raise BoxInUseError(box_id)

        self._pending.add(box_id)
        try:
            path = await self._init_box(box_id)
        finally:
            self._pending.discard(box_id)

        box = IsolateBox(box_id, path, self._executor, self._cleanup_box)
        self._boxes[box_id] = box

        logger.info("Created box", box_id=box_id, path=path)
        return box

    async def _init_box(self, box_id: int) -> str:
        max_attempts = self._config.max_init_attempts

        for attempt in range(1, max_attempts + 1):
            returncode, output = await self._isolate(
                "--cg", f"--box-id={box_id}", "--init"
            )
            condition = classify_isolate_output(output)

            if condition == IsolateCondition.BOX_EXISTS:
                logger.info("Box reset", box_id=box_id, attempt=attempt)
                await self._reset_box(box_id, control_groups=True)
                continue

            if condition == IsolateCondition.INCOMPATIBLE_CG_MODE:
                logger.info(
                    "Box reset", box_id=box_id, attempt=attempt, reason="cg mode"
                )
                await self._reset_box(box_id, control_groups=False)
                continue

            if condition == IsolateCondition.NEEDS_ROOT:
                try:
                    os.chown(self._config.isolate_binary, 0, 0)
                except OSError as e:
                    logger.error(
                        "Couldn't chown root the isolate binary",
                        isolate_binary=self._config.isolate_binary,
                        error=str(e),
                    )
                    raise IsolatePermissionError(
                        f"Couldn't chown root the isolate binary: {e}",
                        box_id=box_id,
                    ) from e
                continue

            if returncode != 0:
                raise BoxInitError(
                    f"isolate --init exited with status {returncode}",
                    output=output,
                    box_id=box_id,
                )

            lines = [line.strip() for line in output.splitlines() if line.strip()]
            if not lines:
                raise BoxInitError(
                    "isolate --init did not report a box path",
                    output=output,
                    box_id=box_id,
                )
            return lines[-1]

        raise BoxInitError(
            f"Box {box_id} could not be initialized after {max_attempts} attempts",
            box_id=box_id,
        )

    async def _cleanup_box(self, box: IsolateBox) -> None:
        """Run ``isolate --cleanup`` for a box. Called with the box lock held."""
        returncode, output = await self._isolate(
            "--cg", f"--box-id={box.box_id}", "--cleanup"
        )
        if returncode != 0:
            raise BoxCleanupError(
                f"isolate --cleanup exited with status {returncode}",
                output=output,
                box_id=box.box_id,
            )

        if self._boxes.get(box.box_id) is box:
            del self._boxes[box.box_id]
        logger.debug("Destroyed box", box_id=box.box_id)

    async def destroy_box(self, box: IsolateBox) -> None:
        """Tear down a box. Equivalent to ``await box.close()``."""
        await box.close()

    async def get_isolate_version(self) -> str:
        """Return isolate's version string, or a placeholder if it has none."""
        try:
            returncode, output = await self._isolate("--version")
        except (IsolateNotFoundError, IsolateExecutionError):
            return VERSION_PLACEHOLDER
        if returncode != 0:
            return VERSION_PLACEHOLDER

        first_line = output.split("\n", 1)[0]
        if first_line.startswith(_VERSION_PREFIX):
            first_line = first_line[len(_VERSION_PREFIX):]
        return first_line

    async def close(self) -> None:
        """Tear down every box this manager still holds open."""
        for box in list(self._boxes.values()):
            try:
                await box.close()
            except Exception as e:
                logger.warning(
                    "Failed to destroy box",
                    box_id=box.box_id,
                    error=str(e),
                )
