"""Fan-out / fan-in helpers for concurrent pool fetches.

The aggregator fetches independent content pools in parallel and waits for
all of them before normalizing, so a slow pool never serializes behind a fast
one.  Unlike a best-effort search fan-out, a pool failure must reach the
caller: :func:`gather_all` is fail-fast and cancels the siblings of a failed
awaitable.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

import structlog

from src.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)


async def gather_all(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore | None = None,
) -> list[_T]:
    """Run awaitables concurrently and return their results in input order.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Optional semaphore bounding how many run at once.  ``None`` runs
        everything immediately.

    Raises
    ------
    Exception
        The first exception raised by any awaitable.  Remaining tasks are
        cancelled before it propagates.
    """
    if not coros:
        return []

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        if semaphore is None:
            return await coro
        async with semaphore:
            return await coro

    tasks = [asyncio.ensure_future(_wrapped(c)) for c in coros]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        _logger.debug("gather_all_cancelled", pending=sum(1 for t in tasks if not t.done()))
        raise
