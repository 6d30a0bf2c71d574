"""Command execution in isolate boxes.

Uses asyncio subprocess to invoke ``isolate --run`` and decodes the meta file
it leaves behind. Runs that fail for known-transient isolate reasons are
retried a fixed number of times.
"""

import asyncio
import os
import tempfile
from typing import TYPE_CHECKING, Optional, Sequence

import structlog

from ...config import SandboxConfig, settings
from ...models.errors import IsolateExecutionError
from ...models.execution import ExecutionReport, RunConfig
from ...utils.concurrency import run_in_executor
from .files import box_file_path
from .isolate import IsolateCondition, IsolateFlagBuilder, classify_isolate_output
from .report import parse_report

if TYPE_CHECKING:
    from .box import IsolateBox

logger = structlog.get_logger(__name__)

# Exit code isolate reports when the program could not be executed at all
EXEC_FAILURE_EXIT_CODE = 127


def _read_meta(path: str) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


class IsolateExecutor:
    """Handles command execution inside isolate boxes.

    Spawns one isolate subprocess per attempt. Callers are expected to hold
    the box lock (IsolateBox.run does this).
    """

    def __init__(
        self,
        config: Optional[SandboxConfig] = None,
        flag_builder: Optional[IsolateFlagBuilder] = None,
    ):
        """Initialize executor.

        Args:
            config: Sandbox settings; defaults to the global settings group
            flag_builder: Builder for isolate arguments
        """
        self._config = config or settings.sandbox
        self._flag_builder = flag_builder or IsolateFlagBuilder()

    @property
    def flag_builder(self) -> IsolateFlagBuilder:
        return self._flag_builder

    async def run(
        self,
        box: "IsolateBox",
        command: Sequence[str],
        config: RunConfig,
    ) -> Optional[ExecutionReport]:
        """Run a command in the box, retrying transient isolate failures.

        Args:
            box: Box to run in
            command: Command and arguments, as seen from inside the box
            config: Limits and redirections for the run

        Returns:
            The accepted ExecutionReport. When every attempt fails, the last
            report obtained (which may be None or carry status "XX") is
            returned without raising.

        Raises:
            IsolateExecutionError: If the isolate process cannot be started
        """
        if not command:
            raise ValueError("command must not be empty")

        await self._check_executable(box, command[0])

        retries = self._config.run_retries
        backoff = self._config.run_retry_backoff
        report: Optional[ExecutionReport] = None

        for attempt in range(1, retries + 1):
            try:
                fd, meta_path = tempfile.mkstemp(prefix="sandbox-meta-")
            except OSError as e:
                logger.warning(
                    "Could not initialize temporary file",
                    box_id=box.box_id,
                    error=str(e),
                )
                continue
            os.close(fd)

            try:
                args = self._flag_builder.build_args(
                    box.box_id, config, meta_path=meta_path, command=command
                )
                report = await self._run_isolate(box.box_id, args, meta_path)
            finally:
                try:
                    os.remove(meta_path)
                except OSError:
                    pass

            if report is not None and not report.is_infrastructure_error:
                if (
                    report.exit_code == EXEC_FAILURE_EXIT_CODE
                    and classify_isolate_output(report.internal_message)
                    == IsolateCondition.EXEC_FAILED
                ):
                    await asyncio.sleep(backoff)
                    continue
                return report

            # The first failure is common enough in production to not be worth a log line
            if attempt > 1:
                logger.warning(
                    f"Run error in box, retrying ({attempt}/{retries})",
                    box_id=box.box_id,
                )
            await asyncio.sleep(backoff)

        logger.warning(
            "Run retries exhausted",
            box_id=box.box_id,
            retries=retries,
            status=report.status if report else None,
        )
        return report

    async def _run_isolate(
        self, box_id: int, args: Sequence[str], meta_path: str
    ) -> Optional[ExecutionReport]:
        """Spawn isolate once and decode its meta file."""
        logger.debug("Running isolate", box_id=box_id, args=list(args))

        try:
            proc = await asyncio.create_subprocess_exec(
                self._config.isolate_binary,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            logger.error("Failed to start isolate", box_id=box_id, error=str(e))
            raise IsolateExecutionError(
                f"Failed to start isolate: {e}", box_id=box_id
            ) from e

        try:
            output, _ = await proc.communicate()
        except asyncio.CancelledError:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
            raise

        # A non-zero exit from isolate just means the program failed; the
        # meta file says how.
        internal_message = output.decode("utf-8", errors="replace") if output else ""

        try:
            text = await run_in_executor(_read_meta, meta_path)
        except OSError as e:
            logger.warning("Could not read meta file", box_id=box_id, error=str(e))
            text = None

        return parse_report(text, internal_message)

    async def _check_executable(self, box: "IsolateBox", executable: str) -> None:
        """Warn if an in-box executable is missing. Never blocks the run."""
        if not executable.startswith("/box"):
            return
        try:
            await run_in_executor(os.stat, box_file_path(box.path, executable))
        except FileNotFoundError:
            logger.warning(
                "Executable does not exist in sandbox and will probably error",
                box_id=box.box_id,
                executable=executable,
            )
        except OSError as e:
            logger.warning(
                "Could not stat executable in sandbox",
                box_id=box.box_id,
                executable=executable,
                error=str(e),
            )
