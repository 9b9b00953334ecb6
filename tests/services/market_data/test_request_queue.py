# tests/services/market_data/test_request_queue.py
"""
Tests for RequestQueue ordering and pacing.

A fake clock/sleep pair makes spacing observable without real waiting.
"""

import asyncio

import pytest

from portfolio_tracker.services.market_data.request_queue import RequestQueue


class FakeTime:
    """Monotonic clock that only moves when the queue sleeps."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
def queue(fake_time) -> RequestQueue:
    return RequestQueue(min_interval=0.2, clock=fake_time.clock, sleep=fake_time.sleep, name="test")


class TestRequestQueue:

    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError):
            RequestQueue(min_interval=-1)

    def test_fifo_order_and_spacing(self, queue, fake_time):
        starts: list[tuple[str, float]] = []

        async def job(name: str) -> str:
            starts.append((name, fake_time.now))
            return name.upper()

        async def run():
            return await asyncio.gather(*(queue.submit(job, n) for n in ("a", "b", "c")))

        results = asyncio.run(run())

        assert results == ["A", "B", "C"]
        assert [name for name, _ in starts] == ["a", "b", "c"]
        times = [t for _, t in starts]
        assert times[0] == 0.0
        assert all(later - earlier >= 0.2 - 1e-9 for earlier, later in zip(times, times[1:]))

    def test_no_wait_when_interval_already_elapsed(self, queue, fake_time):
        async def job() -> None:
            return None

        async def run():
            await queue.submit(job)
            fake_time.now += 1.0
            await queue.submit(job)

        asyncio.run(run())

        assert fake_time.sleeps == []

    def test_spacing_measured_from_previous_start(self, queue, fake_time):
        async def job() -> None:
            return None

        async def run():
            await queue.submit(job)
            fake_time.now += 0.05
            await queue.submit(job)

        asyncio.run(run())

        assert fake_time.sleeps == [pytest.approx(0.15)]

    def test_exception_goes_to_its_caller_only(self, queue):
        async def ok(value: int) -> int:
            return value

        async def fail() -> None:
            raise RuntimeError("boom")

        async def run():
            return await asyncio.gather(
                queue.submit(ok, 1),
                queue.submit(fail),
                queue.submit(ok, 3),
                return_exceptions=True,
            )

        first, second, third = asyncio.run(run())

        assert first == 1
        assert isinstance(second, RuntimeError)
        assert third == 3

    def test_cancelled_caller_is_skipped(self, queue):
        started: list[str] = []

        async def job(name: str) -> str:
            started.append(name)
            return name

        async def run():
            tasks = [asyncio.ensure_future(queue.submit(job, n)) for n in ("a", "b", "c")]
            # Let every submit enqueue before the worker starts
            await asyncio.sleep(0)
            tasks[1].cancel()
            return await asyncio.gather(*tasks, return_exceptions=True)

        results = asyncio.run(run())

        assert started == ["a", "c"]
        assert results[0] == "a"
        assert isinstance(results[1], asyncio.CancelledError)
        assert results[2] == "c"

    def test_worker_exits_when_drained(self, queue):
        async def job() -> int:
            return 1

        async def run():
            await queue.submit(job)
            await asyncio.sleep(0)
            return queue._worker

        worker = asyncio.run(run())

        assert queue.pending_count == 0
        assert worker is not None and worker.done()
