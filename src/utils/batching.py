"""Rate-limited batch fetching.

Splits work into fixed-size chunks, runs each chunk concurrently and waits
a fixed delay between chunks. Each external service gets its own chunk
size and delay (see Config).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from src.core.exceptions import AuthConfigurationError

logger = logging.getLogger("backlogtracker.batching")

__all__ = ["chunked", "fetch_in_chunks", "gather_or_cancel"]

T = TypeVar("T")
R = TypeVar("R")


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Splits a sequence into consecutive chunks of at most ``size`` items.

    Args:
        items: Items to split.
        size: Maximum chunk length.

    Returns:
        List of chunks in input order.

    Raises:
        ValueError: If size is smaller than 1.
    """
    if size < 1:
        raise ValueError(f"chunk size must be at least 1, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


async def fetch_in_chunks(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R | None]],
    *,
    chunk_size: int,
    delay: float,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "",
) -> list[R | None]:
    """Runs ``worker`` over all items with bounded concurrency.

    Items in a chunk run concurrently; ``delay`` seconds pass between
    consecutive chunks, never after the last one. A failing item yields
    None in its slot and does not affect its siblings. Nothing is retried.

    Args:
        items: Work items.
        worker: Async function producing a result (or None) for one item.
        chunk_size: Maximum number of concurrent items per chunk.
        delay: Seconds to wait between chunks.
        sleep: Awaitable sleep, injectable for tests.
        label: Service name used in log messages.

    Returns:
        One outcome per input item, in input order.

    Raises:
        AuthConfigurationError: If any worker reports a configuration error.
            This aborts the whole batch.
        ValueError: If chunk_size is smaller than 1.
    """
    chunks = chunked(items, chunk_size)
    results: list[R | None] = []

    for index, chunk in enumerate(chunks):
        outcomes = await asyncio.gather(*(worker(item) for item in chunk), return_exceptions=True)

        for item, outcome in zip(chunk, outcomes):
            if isinstance(outcome, AuthConfigurationError):
                raise outcome
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning("%s: request for %r failed: %s", label or "batch", item, outcome)
                results.append(None)
            else:
                results.append(outcome)

        logger.debug("%s: chunk %d/%d done (%d items)", label or "batch", index + 1, len(chunks), len(chunk))
        if index < len(chunks) - 1:
            await sleep(delay)

    return results


async def gather_or_cancel(*aws: Awaitable[Any]) -> list[Any]:
    """Awaits several legs concurrently; the first failure cancels the rest.

    The remaining tasks are cancelled and awaited before the exception
    propagates, so no leg outlives the call.

    Returns:
        Results in argument order.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
