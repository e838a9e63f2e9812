"""Bounded polling for writes that become visible eventually."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_until_found(
    fetch: Callable[[], Awaitable[T | None]],
    *,
    attempts: int,
    interval: float,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T | None:
    """Call ``fetch`` until it returns something other than None.

    Makes at most ``attempts`` calls, pausing ``interval`` seconds after every
    miss except the last, so the total wait is bounded by
    ``(attempts - 1) * interval``. Exceptions from ``fetch`` propagate
    immediately. Returns None when every attempt missed.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        found = await fetch()
        if found is not None:
            if attempt > 1:
                logger.info("Lookup succeeded after %s attempts", attempt)
            return found
        if attempt < attempts:
            await sleep(interval)
    return None
