"""Helpers for running blocking work from async code."""

import asyncio


async def run_in_executor(func, *args):
    """
    Run a blocking function in the default thread pool executor.

    Args:
        func: Blocking function to run
        *args: Arguments to pass to the function

    Returns:
        Result of the function
    """
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, func, *args)
