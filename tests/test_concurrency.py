"""Tests for the concurrency driver."""

from __future__ import annotations

import asyncio
import threading
import time

import pytest

from pg_benchmark.concurrency import ConcurrencyDriver
from pg_benchmark.exceptions import WorkloadError


class TestTasks:
    """Units as asyncio tasks on the running loop."""

    async def test_units_run_concurrently(self):
        active = 0
        peak = 0

        async def workload() -> None:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1

        await ConcurrencyDriver().run_batch(workload, concurrency=8)
        assert peak == 8

    async def test_batch_time_covers_slowest_unit_not_sum(self):
        async def workload() -> None:
            await asyncio.sleep(0.05)

        elapsed = await ConcurrencyDriver().run_batch(workload, concurrency=10)
        assert elapsed >= 45.0
        # Sequential execution would take ~500ms
        assert elapsed < 400.0

    async def test_ops_per_unit(self):
        calls = 0

        async def workload() -> None:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0)

        await ConcurrencyDriver().run_batch(workload, concurrency=5, ops_per_unit=20)
        assert calls == 100

    async def test_third_unit_failing_fails_the_batch(self):
        started = 0
        finished = 0

        async def workload() -> None:
            nonlocal started, finished
            started += 1
            unit = started
            if unit == 3:
                raise RuntimeError("unit 3 failed")
            await asyncio.sleep(0.5)
            finished += 1

        with pytest.raises(WorkloadError) as exc_info:
            await ConcurrencyDriver().run_batch(workload, concurrency=10)

        assert "Unit 3 of 10" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        # Remaining units were cancelled, not awaited to completion
        assert finished == 0

    async def test_pending_units_are_cancelled(self):
        started = 0
        cancelled = 0

        async def workload() -> None:
            nonlocal started, cancelled
            started += 1
            if started == 1:
                raise ValueError("bad")
            try:
                await asyncio.sleep(1)
            except asyncio.CancelledError:
                cancelled += 1
                raise

        with pytest.raises(WorkloadError):
            await ConcurrencyDriver().run_batch(workload, concurrency=5)
        assert cancelled == 4

    @pytest.mark.parametrize("concurrency,ops", [(0, 1), (1, 0)])
    async def test_invalid_arguments(self, concurrency, ops):
        async def workload() -> None:
            pass

        with pytest.raises(ValueError):
            await ConcurrencyDriver().run_batch(workload, concurrency=concurrency, ops_per_unit=ops)


class TestThreads:
    """Units on worker threads, for blocking client libraries."""

    async def test_blocking_units_overlap(self):
        async def workload() -> None:
            time.sleep(0.05)

        elapsed = await ConcurrencyDriver().run_batch(workload, concurrency=8, threaded=True)
        # Eight blocking sleeps in sequence would take ~400ms
        assert elapsed < 300.0

    async def test_each_unit_runs_on_its_own_thread(self):
        threads = set()
        lock = threading.Lock()

        async def workload() -> None:
            with lock:
                threads.add(threading.get_ident())
            time.sleep(0.02)

        await ConcurrencyDriver().run_batch(workload, concurrency=4, threaded=True)
        assert len(threads) == 4
        assert threading.get_ident() not in threads

    async def test_failing_unit_fails_the_batch(self):
        lock = threading.Lock()
        counter = 0

        async def workload() -> None:
            nonlocal counter
            with lock:
                counter += 1
                mine = counter
            if mine == 3:
                raise RuntimeError("thread unit failed")
            time.sleep(0.01)

        with pytest.raises(WorkloadError) as exc_info:
            await ConcurrencyDriver().run_batch(workload, concurrency=6, threaded=True)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    async def test_failed_batch_joins_running_threads(self):
        lock = threading.Lock()
        calls = 0

        async def workload() -> None:
            nonlocal calls
            with lock:
                calls += 1
                mine = calls
            if mine == 1:
                raise RuntimeError("first unit failed")
            time.sleep(0.2)

        with pytest.raises(WorkloadError):
            await ConcurrencyDriver().run_batch(workload, concurrency=6, ops_per_unit=5, threaded=True)

        alive = [t.name for t in threading.enumerate() if t.name.startswith("bench-unit")]
        assert alive == []
        calls_at_failure = calls
        # Units stop before their next operation instead of running all five
        assert calls_at_failure < 6 * 5
        time.sleep(0.3)
        assert calls == calls_at_failure
