from __future__ import annotations

import asyncio

import pytest

from agency_api.core.concurrency import fan_out


@pytest.mark.asyncio
async def test_results_follow_argument_order() -> None:
    async def delayed(value: int, delay: float) -> int:
        await asyncio.sleep(delay)
        return value

    results = await fan_out(delayed(1, 0.03), delayed(2, 0.0), delayed(3, 0.01), max_concurrency=5)

    assert results == [1, 2, 3]


@pytest.mark.asyncio
async def test_in_flight_reads_are_bounded() -> None:
    in_flight = 0
    peak = 0

    async def read() -> None:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1

    await fan_out(*(read() for _ in range(7)), max_concurrency=2)

    assert peak == 2


@pytest.mark.asyncio
async def test_failure_cancels_pending_reads_and_reraises_original() -> None:
    cancelled = asyncio.Event()

    async def slow() -> None:
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    async def failing() -> None:
        await asyncio.sleep(0.01)
        raise LookupError("renewal store down")

    with pytest.raises(LookupError, match="renewal store down"):
        await fan_out(slow(), failing(), max_concurrency=5)

    assert cancelled.is_set()


@pytest.mark.asyncio
async def test_caller_cancellation_reaches_in_flight_reads() -> None:
    started = asyncio.Event()
    cancelled = asyncio.Event()

    async def slow() -> None:
        started.set()
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    task = asyncio.ensure_future(fan_out(slow(), slow(), max_concurrency=1))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert cancelled.is_set()


@pytest.mark.asyncio
async def test_no_awaitables_returns_empty_list() -> None:
    assert await fan_out(max_concurrency=3) == []
