"""isolate command-line construction and output classification.

IsolateFlagBuilder turns a RunConfig into the flags for ``isolate --run``.
classify_isolate_output maps isolate's free-form diagnostics onto the small
set of conditions the manager and executor know how to recover from.
"""

from decimal import Decimal
from enum import Enum
from typing import List, Optional, Sequence

from ...models.execution import DirectoryRule, RunConfig

NULL_DEVICE = "/dev/null"


class IsolateCondition(str, Enum):
    """Recoverable conditions recognized in isolate output."""

    NONE = "none"
    BOX_EXISTS = "box_exists"
    INCOMPATIBLE_CG_MODE = "incompatible_cg_mode"
    NEEDS_ROOT = "needs_root"
    EXEC_FAILED = "exec_failed"


def classify_isolate_output(output: str) -> IsolateCondition:
    """Classify isolate's combined stdout/stderr.

    Args:
        output: Text printed by isolate (not by the sandboxed program)

    Returns:
        The matching IsolateCondition, or IsolateCondition.NONE
    """
    if not output:
        return IsolateCondition.NONE
    if output.startswith("Box already exists"):
        return IsolateCondition.BOX_EXISTS
    # Box was created without --cg
    if "incompatible control group mode" in output:
        return IsolateCondition.INCOMPATIBLE_CG_MODE
    if output.startswith("Must be started as root"):
        return IsolateCondition.NEEDS_ROOT
    # Usually "Text file busy" on a freshly written executable
    if "execve" in output or "Text file busy" in output:
        return IsolateCondition.EXEC_FAILED
    return IsolateCondition.NONE


def format_seconds(value: float) -> str:
    """Shortest plain decimal that round-trips, e.g. 1.5 -> "1.5", 2.0 -> "2"."""
    text = format(Decimal(repr(float(value))), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


class IsolateFlagBuilder:
    """Builds isolate CLI arguments from a RunConfig.

    The order of the emitted flags is fixed; directory rules keep the order
    they were given in.
    """

    @staticmethod
    def effective_config(config: RunConfig) -> RunConfig:
        """Return a copy of ``config`` with empty stdio paths set to /dev/null.

        The caller's config is left untouched.
        """
        update = {}
        if not config.input_path:
            update["input_path"] = NULL_DEVICE
        if not config.output_path:
            update["output_path"] = NULL_DEVICE
        if not config.stderr_to_stdout and not config.stderr_path:
            update["stderr_path"] = NULL_DEVICE
        return config.model_copy(update=update, deep=True)

    @staticmethod
    def directory_flag(rule: DirectoryRule) -> str:
        if rule.removes:
            return f"--dir={rule.inside}="

        flag = "--dir=" + rule.inside
        if rule.outside:
            flag += "=" + rule.outside
        elif not rule.verbatim:
            flag += "=" + rule.inside
        if rule.options:
            flag += ":" + rule.options
        return flag

    def build_args(
        self,
        box_id: int,
        config: RunConfig,
        meta_path: Optional[str] = None,
        command: Optional[Sequence[str]] = None,
    ) -> List[str]:
        """Build isolate CLI arguments.

        Args:
            box_id: Numeric box identity
            config: Limits and redirections for the run
            meta_path: Host path isolate should write its meta file to
            command: Command and arguments to run inside the box

        Returns:
            List of isolate CLI arguments (not including the binary itself)
        """
        config = self.effective_config(config)

        args: List[str] = [f"--box-id={box_id}", "--cg", "--processes"]

        for rule in config.directories:
            args.append(self.directory_flag(rule))

        # Environment: each source is independent of the others
        if config.inherit_env:
            args.append("--full-env")
        for name in config.env_to_inherit:
            args.append(f"--env={name}")
        for key, value in config.env_to_set.items():
            args.append(f"--env={key}={value}")

        if config.time_limit:
            args.append(f"--time={format_seconds(config.time_limit)}")
        if config.wall_time_limit:
            args.append(f"--wall-time={format_seconds(config.wall_time_limit)}")
        if config.memory_limit:
            args.append(f"--cg-mem={config.memory_limit}")

        args.append(f"--stdin={config.input_path}")
        args.append(f"--stdout={config.output_path}")
        if config.stderr_to_stdout:
            args.append("--stderr-to-stdout")
        else:
            args.append(f"--stderr={config.stderr_path}")

        if meta_path:
            args.append(f"--meta={meta_path}")

        args.extend(["--silent", "--run", "--"])

        if command:
            args.extend(command)

        return args
