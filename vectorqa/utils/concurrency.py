"""Request pacing for crawling.

``paced_batches`` is an async generator that yields fixed-size batches and
sleeps between them.  The sitemap crawler uses it to pace requests against
a single origin.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Sequence, TypeVar

import structlog

from vectorqa.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)


async def paced_batches(
    items: Sequence[_T],
    batch_size: int,
    delay: float,
) -> AsyncIterator[list[_T]]:
    """Yield *items* in batches of *batch_size*, sleeping *delay* seconds between batches.

    No sleep happens before the first batch or after the last one.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    for start in range(0, len(items), batch_size):
        if start and delay > 0:
            _logger.debug("batch_pacing_sleep", delay=delay, next_offset=start)
            await asyncio.sleep(delay)
        yield list(items[start : start + batch_size])
