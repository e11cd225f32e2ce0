# File: tests/test_executor.py
import asyncio

import pytest

from context_scribe.crawler.cancellation import CancelToken, ScrapeCancelled
from context_scribe.crawler.executor import run_bounded


@pytest.mark.asyncio()
async def test_never_exceeds_limit():
    in_flight = 0
    peak = 0
    done = []

    async def task(item):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        done.append(item)

    await run_bounded(list(range(20)), 3, task, CancelToken())

    assert peak == 3
    assert sorted(done) == list(range(20))


@pytest.mark.asyncio()
async def test_failure_does_not_abort_siblings():
    done = []

    async def task(item):
        if item == 2:
            raise RuntimeError("boom")
        done.append(item)

    await run_bounded([1, 2, 3, 4], 2, task, CancelToken())
    assert sorted(done) == [1, 3, 4]


@pytest.mark.asyncio()
async def test_cancellation_stops_admission_but_lets_in_flight_finish():
    cancel = CancelToken()
    started = []
    finished = []

    async def task(item):
        started.append(item)
        if item == 1:
            cancel.cancel()
        await asyncio.sleep(0.01)
        finished.append(item)

    await run_bounded(list(range(10)), 2, task, cancel)

    # items 0 and 1 were admitted before the token was raised
    assert sorted(started) == [0, 1]
    assert sorted(finished) == [0, 1]


@pytest.mark.asyncio()
async def test_task_cancellation_abandons_only_that_task():
    cancel = CancelToken()
    finished = []

    async def task(item):
        if item == 0:
            await asyncio.sleep(0.001)
            cancel.cancel()
            raise ScrapeCancelled()
        await asyncio.sleep(0.01)
        finished.append(item)

    await run_bounded([0, 1, 2, 3], 2, task, cancel)
    assert finished == [1]


@pytest.mark.asyncio()
async def test_empty_items():
    async def task(item):  # pragma: no cover
        raise AssertionError

    await run_bounded([], 5, task, CancelToken())


@pytest.mark.asyncio()
async def test_guard_abandons_awaitable_on_cancel():
    cancel = CancelToken()
    slow_cancelled = asyncio.Event()

    async def slow():
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            slow_cancelled.set()
            raise

    asyncio.get_running_loop().call_later(0.01, cancel.cancel)
    with pytest.raises(ScrapeCancelled):
        await cancel.guard(slow())
    assert slow_cancelled.is_set()


@pytest.mark.asyncio()
async def test_guard_returns_result():
    async def quick():
        return 42

    assert await CancelToken().guard(quick()) == 42
