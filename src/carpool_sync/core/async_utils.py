"""Async utilities for bridging blocking HTTP calls into the event loop."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Used to wrap the blocking ``requests`` calls of the remote store so
    local saves keep flowing while a remote write is in flight.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        status = await run_sync(remote.read)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
