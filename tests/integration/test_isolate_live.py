"""
Integration tests against a real isolate installation.

These need the isolate binary at the configured path and root privileges;
they are skipped otherwise.
"""

import asyncio
import os
import shutil

import pytest
import pytest_asyncio

from isobox.config import settings
from isobox.models import DirectoryRule, ReportStatus, RunConfig
from isobox.services.sandbox import BoxManager, resolve_command

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not os.path.isfile(settings.isolate_binary) or os.geteuid() != 0,
        reason="needs isolate and root",
    ),
]

BOX_ID = 91


@pytest_asyncio.fixture
async def manager():
    manager = BoxManager(settings.sandbox)
    yield manager
    await manager.close()


@pytest.mark.asyncio
async def test_echo_program(manager):
    """Stage stdin and a program, run it with limits, read its output."""
    box = await manager.create_box(BOX_ID)
    await box.write_file("/box/prog.in", "hello\n")
    await box.write_file("/box/main.py", "print(input())")

    report = await box.run(
        resolve_command(["python3", "/box/main.py"]),
        RunConfig(
            input_path="/box/prog.in",
            output_path="/box/prog.out",
            stderr_to_stdout=True,
            time_limit=1,
            wall_time_limit=2,
            memory_limit=256 * 1024,
            directories=[DirectoryRule(inside="/etc")],
        ),
    )

    assert report is not None
    assert report.status == ReportStatus.OK
    assert report.exit_code == 0
    assert await box.read_file("/box/prog.out") == b"hello\n"


@pytest.mark.asyncio
async def test_recreate_leaves_no_stale_files(manager):
    box = await manager.create_box(BOX_ID)
    await box.write_file("/box/stale.txt", "old")
    # Drop the handle without cleanup so isolate still has the box
    manager._boxes.pop(BOX_ID)

    box = await manager.create_box(BOX_ID)
    assert await box.file_exists("/box/stale.txt") is False


@pytest.mark.asyncio
async def test_time_limit(manager):
    box = await manager.create_box(BOX_ID)
    shell = shutil.which("sh")
    report = await box.run(
        [os.path.realpath(shell), "-c", "while :; do :; done"],
        RunConfig(time_limit=0.5, wall_time_limit=1),
    )
    assert report.status == ReportStatus.TIMED_OUT


@pytest.mark.asyncio
async def test_version(manager):
    version = await manager.get_isolate_version()
    assert version
    assert not version.startswith("The process isolator")


@pytest.mark.asyncio
async def test_two_boxes_in_parallel(manager):
    boxes = await asyncio.gather(
        manager.create_box(BOX_ID), manager.create_box(BOX_ID + 1)
    )
    await asyncio.gather(
        *(b.write_file("/box/id.txt", str(b.box_id)) for b in boxes)
    )
    for b in boxes:
        assert await b.read_file("/box/id.txt") == str(b.box_id).encode()
