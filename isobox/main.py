"""Demo: run a small Python program in an isolate box.

Needs root and an installed isolate binary:

    sudo python -m isobox.main
"""

import asyncio
import sys

import structlog

from .models import DirectoryRule, RunConfig
from .models.errors import SandboxException
from .services.sandbox import BoxManager, resolve_command
from .utils.logging import setup_logging

setup_logging()
logger = structlog.get_logger()

DEMO_BOX_ID = 50


async def main() -> int:
    manager = BoxManager()
    logger.info("Using isolate", version=await manager.get_isolate_version())

    async with await manager.create_box(DEMO_BOX_ID) as box:
        await box.write_file("/box/prog.in", "hello from the host")
        await box.write_file("/box/main.py", "print(input())")

        command = resolve_command(["python3", "/box/main.py"])
        report = await box.run(
            command,
            RunConfig(
                input_path="/box/prog.in",
                output_path="/box/prog.out",
                stderr_to_stdout=True,
                memory_limit=1024 * 1024,
                time_limit=1.5,
                # sleep() does not count towards the CPU limit
                wall_time_limit=1.5 * 2,
                inherit_env=True,
                # python needs /etc
                directories=[DirectoryRule(inside="/etc")],
            ),
        )
        if report is None or report.is_infrastructure_error:
            logger.error("isolate kept failing, giving up", box_id=box.box_id)
            return 1

        logger.info(
            "Run finished",
            status=report.status,
            exit_code=report.exit_code,
            time=report.time,
            memory=report.memory,
        )
        output = await box.read_file("/box/prog.out")
        logger.info("Got response from sandbox", output=output.decode())

    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except SandboxException as e:
        logger.error("Sandbox error", error=e.message, error_type=e.error_type.value)
        sys.exit(1)
