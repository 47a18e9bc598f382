"""
Concurrency driver: launches a bounded batch of execution units and times it.

Two execution models are supported:

- tasks: every unit is an asyncio task on the running event loop. Used for
  async client libraries whose pools are bound to that loop.
- threads: every unit runs on its own worker thread of a ThreadPoolExecutor
  sized to the concurrency level, driving the workload on a private event
  loop. Used for blocking client libraries (their "async" methods never
  suspend, so tasks would just run one after another).

Only the duration of the whole batch is meaningful; units are unordered.
"""

from __future__ import annotations

import asyncio
import functools
import threading
import time
from collections.abc import Awaitable, Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from .exceptions import WorkloadError
from .logging_config import get_logger

Workload = Callable[[], Awaitable[Any]]

logger = get_logger(__name__)


class ConcurrencyDriver:
    """Runs C copies of a workload at the same time and measures the batch."""

    async def run_batch(
        self,
        workload: Workload,
        concurrency: int,
        ops_per_unit: int = 1,
        *,
        threaded: bool = False,
    ) -> float:
        """
        Run one batch and return its wall-clock duration in milliseconds.

        Args:
            workload: Zero-argument callable returning an awaitable.
            concurrency: Number of execution units started together.
            ops_per_unit: Workload calls made sequentially by each unit.
            threaded: Use OS threads instead of asyncio tasks.

        Raises:
            WorkloadError: If any unit fails. The batch is discarded as a
                whole; queued units are cancelled, running ones are joined
                before it is raised, and no time is reported.
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        if ops_per_unit < 1:
            raise ValueError(f"ops_per_unit must be >= 1, got {ops_per_unit}")

        if threaded:
            return await self._run_threads(workload, concurrency, ops_per_unit)
        return await self._run_tasks(workload, concurrency, ops_per_unit)

    async def _run_tasks(self, workload: Workload, concurrency: int, ops_per_unit: int) -> float:
        async def unit() -> None:
            for _ in range(ops_per_unit):
                await workload()

        start = time.perf_counter()
        units = [asyncio.ensure_future(unit()) for _ in range(concurrency)]
        await asyncio.wait(units, return_when=asyncio.FIRST_EXCEPTION)
        end = time.perf_counter()

        await self._check_batch(units, concurrency)
        return (end - start) * 1000

    async def _run_threads(self, workload: Workload, concurrency: int, ops_per_unit: int) -> float:
        stop = threading.Event()

        async def drive() -> None:
            for _ in range(ops_per_unit):
                if stop.is_set():
                    return
                await workload()

        def unit() -> None:
            asyncio.run(drive())

        loop = asyncio.get_running_loop()
        executor = ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="bench-unit")
        failed = True
        try:
            start = time.perf_counter()
            units = [loop.run_in_executor(executor, unit) for _ in range(concurrency)]
            await asyncio.wait(units, return_when=asyncio.FIRST_EXCEPTION)
            end = time.perf_counter()

            await self._check_batch(units, concurrency)
            failed = False
        finally:
            if failed:
                # Running threads cannot be interrupted: they stop before their
                # next operation and are joined off the loop, so none of them
                # still holds a connection once the batch has failed.
                stop.set()
                await loop.run_in_executor(None, functools.partial(executor.shutdown, wait=True, cancel_futures=True))
            else:
                executor.shutdown(wait=True)
        return (end - start) * 1000

    async def _check_batch(self, units: Iterable[asyncio.Future[Any]], concurrency: int) -> None:
        """Raise WorkloadError for the first failed unit, cancelling the rest."""
        units = list(units)
        failure: tuple[int, BaseException] | None = None
        for index, fut in enumerate(units):
            if fut.done() and not fut.cancelled() and fut.exception() is not None:
                if failure is None:
                    failure = (index, fut.exception())

        if failure is None:
            return

        pending = [fut for fut in units if not fut.done()]
        for fut in pending:
            fut.cancel()
        if pending:
            # Let cancelled tasks unwind and mark their exceptions retrieved.
            await asyncio.gather(*pending, return_exceptions=True)

        index, exc = failure
        logger.debug("Batch failed on unit %d of %d; %d units cancelled", index + 1, concurrency, len(pending))
        raise WorkloadError(f"Unit {index + 1} of {concurrency} failed: {exc!r}") from exc
