"""Tests for the bounded worker pool."""

import asyncio

import pytest

from triage.services.worker_pool import chunked, run_bounded


async def test_results_keep_input_order():
    async def worker(n: int) -> int:
        await asyncio.sleep(0.001 * (5 - n))
        return n * 10

    assert await run_bounded([1, 2, 3, 4], worker, parallelism=3) == [10, 20, 30, 40]


async def test_parallelism_is_bounded():
    in_flight = 0
    peak = 0

    async def worker(n: int) -> int:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.001)
        in_flight -= 1
        return n

    await run_bounded(list(range(10)), worker, parallelism=3)
    assert peak == 3


async def test_empty_input():
    async def worker(n):
        raise AssertionError("not called")

    assert await run_bounded([], worker, parallelism=4) == []


async def test_worker_exception_propagates():
    async def worker(n: int) -> int:
        if n == 2:
            raise RuntimeError("boom")
        return n

    with pytest.raises(RuntimeError, match="boom"):
        await run_bounded([1, 2, 3], worker, parallelism=2)


def test_chunked():
    assert chunked([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
    assert chunked([], 3) == []
    assert chunked([1, 2], 0) == [[1], [2]]
