"""Trial runner: unrecorded warm-up calls followed by timed measurement calls."""

from __future__ import annotations

import time
from collections.abc import Awaitable
from typing import Any, Callable

from .concurrency import ConcurrencyDriver, Workload
from .exceptions import WorkloadError
from .logging_config import get_logger

logger = get_logger(__name__)

WARMUP = "warm-up"
MEASUREMENT = "measurement"


class TrialRunner:
    """
    Runs a workload repeatedly and returns the elapsed time of each call.

    The runner holds no connection state of its own: every workload
    invocation is expected to acquire and release whatever it needs.
    A failing invocation aborts the whole run with WorkloadError; a partial
    sample set is never returned.
    """

    def __init__(self, driver: ConcurrencyDriver | None = None) -> None:
        self.driver = driver or ConcurrencyDriver()

    async def run(
        self,
        workload: Workload,
        warmup: int,
        iterations: int,
        *,
        scenario_id: str | None = None,
    ) -> list[float]:
        """Run ``warmup`` untimed calls, then ``iterations`` timed calls (ms)."""
        _check_counts(warmup, iterations)

        for i in range(warmup):
            await self._invoke(workload, scenario_id, WARMUP, i)

        times: list[float] = []
        for i in range(iterations):
            start = time.perf_counter()
            await self._invoke(workload, scenario_id, MEASUREMENT, i)
            end = time.perf_counter()
            times.append((end - start) * 1000)
        return times

    async def run_batches(
        self,
        workload: Workload,
        concurrency: int,
        warmup: int,
        iterations: int,
        *,
        ops_per_unit: int = 1,
        threaded: bool = False,
        scenario_id: str | None = None,
    ) -> list[float]:
        """Like run(), but every sample is one concurrent batch timed by the driver."""
        _check_counts(warmup, iterations)

        async def batch() -> float:
            return await self.driver.run_batch(
                workload, concurrency, ops_per_unit, threaded=threaded
            )

        for i in range(warmup):
            await self._invoke(batch, scenario_id, WARMUP, i)

        times: list[float] = []
        for i in range(iterations):
            times.append(await self._invoke(batch, scenario_id, MEASUREMENT, i))
        return times

    async def _invoke(
        self,
        func: Callable[[], Awaitable[Any]],
        scenario_id: str | None,
        phase: str,
        iteration: int,
    ) -> Any:
        try:
            return await func()
        except Exception as exc:
            logger.debug(
                "Workload for %s failed in %s iteration %d: %r", scenario_id, phase, iteration, exc
            )
            raise WorkloadError(
                f"Workload failed during {phase} iteration {iteration}: {exc}",
                scenario_id=scenario_id,
                phase=phase,
                iteration=iteration,
            ) from exc


def _check_counts(warmup: int, iterations: int) -> None:
    if warmup < 0:
        raise ValueError(f"warmup must be >= 0, got {warmup}")
    if iterations < 0:
        raise ValueError(f"iterations must be >= 0, got {iterations}")
