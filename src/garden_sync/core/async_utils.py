"""Async helpers for running the blocking GitHub client off the event loop."""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Sequence, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)

# Bounds concurrent remote calls during file fan-out; set by init_semaphore()
_semaphore: asyncio.Semaphore | None = None


def init_semaphore(max_parallel: int = 1) -> None:
    """Create the semaphore that bounds ``run_sync_limited`` calls."""
    global _semaphore
    _semaphore = asyncio.Semaphore(max_parallel)
    logger.info(
        "Remote request semaphore initialized: max_parallel=%d",
        max_parallel,
    )


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a blocking function in a worker thread.

    Used for every ``RemoteRepository`` call made by the workflow and the
    publisher so a slow HTTP round-trip never stalls the event loop.

    Example:
        client = GitHubClient(config, "me", "garden")
        release = await run_sync(client.get_latest_release)
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def run_sync_limited(
    func: Callable[..., T],
    *args: Any,
    semaphore: asyncio.Semaphore | None = None,
    **kwargs: Any,
) -> T:
    """Like ``run_sync`` but bounded by a semaphore.

    *semaphore* takes precedence over the module semaphore; with neither
    set the call is unbounded.
    """
    limit = semaphore if semaphore is not None else _semaphore
    if limit is None:
        return await asyncio.to_thread(func, *args, **kwargs)
    async with limit:
        return await asyncio.to_thread(func, *args, **kwargs)


async def gather_limited(
    coros: Sequence[Coroutine[Any, Any, T]],
) -> list[T]:
    """Run coroutines concurrently and return results in input order.

    Each coroutine should use ``run_sync_limited`` internally.  The first
    exception propagates; calls already in flight finish on their own.
    """
    return list(await asyncio.gather(*coros))
