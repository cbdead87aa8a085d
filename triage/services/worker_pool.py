"""Bounded worker pool for fanning work out over asyncio tasks."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def run_bounded(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    parallelism: int,
) -> list[R]:
    """Run *worker* over *items* with at most *parallelism* in flight.

    Workers pull ``(index, item)`` pairs from a shared queue and write each
    result into its own slot, so results come back in input order.  An
    exception raised by *worker* propagates to the caller.
    """
    if not items:
        return []

    queue: asyncio.Queue[tuple[int, T]] = asyncio.Queue()
    for pair in enumerate(items):
        queue.put_nowait(pair)

    results: list[R | None] = [None] * len(items)

    async def _drain() -> None:
        while True:
            try:
                index, item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            results[index] = await worker(item)

    worker_count = max(1, min(parallelism, len(items)))
    await asyncio.gather(*(_drain() for _ in range(worker_count)))
    return results  # type: ignore[return-value]


def chunked(items: Sequence[T], size: int) -> list[Sequence[T]]:
    """Split *items* into consecutive chunks of at most *size*."""
    size = max(1, size)
    return [items[i : i + size] for i in range(0, len(items), size)]
