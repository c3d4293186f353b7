"""Shared concurrency primitives for the generation pipeline.

Two fan-out patterns are exposed:

1. **gather_in_batches** -- run an async worker over a list of items in
   fixed-width batches.  Items inside a batch run concurrently; batches run
   one after another with an optional pause in between.  Used by the image
   downloader so at most ``batch_size`` requests hit the cover hosts at
   once.

2. **gather_settled** -- ``asyncio.gather`` with ``return_exceptions=True``
   that logs every failure and replaces it with ``None``.  Used for
   uncapped fan-out where one failed item must not sink the others (cover
   URL lookups).
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Sequence, TypeVar

import structlog

from patchwork.utils.logging import get_logger

_T = TypeVar("_T")
_R = TypeVar("_R")

_logger: structlog.BoundLogger = get_logger(__name__)


async def gather_in_batches(
    items: Sequence[_T],
    worker: Callable[[_T], Awaitable[_R]],
    batch_size: int,
    pause: float = 0.0,
) -> list[_R]:
    """Apply *worker* to every item, ``batch_size`` items at a time.

    Parameters
    ----------
    items:
        Inputs, processed in order.
    worker:
        Async callable applied to each item.  Exceptions propagate; workers
        that must not abort the batch should catch their own errors.
    batch_size:
        Number of concurrent workers per batch.  Must be positive.
    pause:
        Seconds to sleep between two batches (not after the last one).

    Returns
    -------
    list
        Worker results in the same order as *items*.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    results: list[_R] = []
    for start in range(0, len(items), batch_size):
        batch = items[start:start + batch_size]
        results.extend(await asyncio.gather(*(worker(item) for item in batch)))

        if pause > 0 and start + batch_size < len(items):
            await asyncio.sleep(pause)

    return results


async def gather_settled(
    coros: Sequence[Awaitable[_R]],
    logger: structlog.BoundLogger | None = None,
    error_msg: str = "concurrent_task_failed",
) -> list[_R | None]:
    """Run *coros* concurrently; failed ones come back as ``None``.

    Parameters
    ----------
    coros:
        Awaitables to run, all started at once.
    logger:
        Optional structured logger for failure warnings.
    error_msg:
        Event name logged for each failure.

    Returns
    -------
    list
        One slot per input, in input order.
    """
    if logger is None:
        logger = _logger

    raw_results = await asyncio.gather(*coros, return_exceptions=True)

    settled: list[_R | None] = []
    for idx, result in enumerate(raw_results):
        if isinstance(result, BaseException):
            logger.warning(error_msg, index=idx, error=str(result))
            settled.append(None)
        else:
            settled.append(result)
    return settled
