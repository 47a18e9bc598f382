"""
Benchmark harness: drives selected scenarios through the runner, summarizes
their samples and collects everything in a report.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from contextlib import AbstractAsyncContextManager, AsyncExitStack
from typing import Any, Callable

from .config import BenchmarkSettings, CleanupPolicy
from .exceptions import EmptySampleError, WorkloadError
from .logging_config import get_logger, log_performance
from .registry import Hook, Scenario, ScenarioRegistry
from .report import BenchmarkReport
from .runner import TrialRunner
from .stats import summarize

logger = get_logger(__name__)

CONNECT = "connect"
SETUP = "setup"
TEARDOWN = "teardown"
CLEANUP = "cleanup"

Connector = Callable[[], AbstractAsyncContextManager[Any]]


class BenchmarkHarness:
    """
    Runs scenarios one library at a time.

    For every library with selected scenarios the harness enters its
    connector (opening the client's pool), runs the scenarios in order and
    exits the connector again, so only one library holds server connections
    at any moment. A scenario that fails is recorded in the report and the
    run continues with the next one.

    Args:
        registry: Scenarios to choose from; also fixes report order.
        settings: Sample counts, warm-up and cleanup policy.
        runner: Trial runner, replaceable in tests.
        connectors: Library name -> zero-argument callable returning an async
            context manager that holds the library's connections open.
        cleanups: Library name -> coroutine function deleting the rows its
            scenarios inserted.
    """

    def __init__(
        self,
        registry: ScenarioRegistry,
        settings: BenchmarkSettings,
        runner: TrialRunner | None = None,
        connectors: Mapping[str, Connector] | None = None,
        cleanups: Mapping[str, Hook] | None = None,
    ) -> None:
        self.registry = registry
        self.settings = settings
        self.runner = runner or TrialRunner()
        self.connectors = dict(connectors or {})
        self.cleanups = dict(cleanups or {})
        self.cleanup_errors: list[WorkloadError] = []

    async def run(self, scenarios: Iterable[Scenario] | None = None) -> BenchmarkReport:
        """Run ``scenarios`` (every registered one by default) and finalize the report."""
        selected = list(self.registry if scenarios is None else scenarios)
        report = BenchmarkReport(self.registry)

        by_library: dict[str, list[Scenario]] = {}
        for scenario in selected:
            by_library.setdefault(scenario.library, []).append(scenario)

        logger.info("Running %d scenarios for %d libraries", len(selected), len(by_library))
        progress = _Progress(len(selected))
        for library, scenarios_of_library in by_library.items():
            await self._run_library(library, scenarios_of_library, report, progress)

        report.finalize()
        logger.info("Finished: %d succeeded, %d failed", len(report.results()), len(report.failures()))
        return report

    async def _run_library(
        self,
        library: str,
        scenarios: list[Scenario],
        report: BenchmarkReport,
        progress: _Progress,
    ) -> None:
        async with AsyncExitStack() as stack:
            connector = self.connectors.get(library)
            if connector is not None:
                try:
                    await stack.enter_async_context(connector())
                except Exception as exc:
                    logger.error("Could not connect %s: %s", library, exc)
                    for scenario in scenarios:
                        error = WorkloadError(
                            f"{CONNECT} failed: {exc}", scenario_id=scenario.id, phase=CONNECT
                        )
                        error.__cause__ = exc
                        report.add_failure(scenario, error)
                    progress.skip(len(scenarios))
                    return

            for scenario in scenarios:
                progress.show(scenario)
                await self.run_scenario(scenario, report)

            if self.settings.cleanup is CleanupPolicy.RUN and any(s.mutates for s in scenarios):
                try:
                    await self._cleanup(library)
                except WorkloadError as exc:
                    logger.error("Cleanup for %s failed: %s", library, exc)
                    self.cleanup_errors.append(exc)

    async def run_scenario(self, scenario: Scenario, report: BenchmarkReport) -> None:
        """Run one scenario and add its summary or failure to ``report``."""
        try:
            try:
                if scenario.setup is not None:
                    await self._hook(scenario, scenario.setup, SETUP)
                samples = await self._measure(scenario)
            except WorkloadError:
                await self._finish(scenario, propagate=False)
                raise
            await self._finish(scenario)
            summary = summarize(scenario.id, samples)
        except (WorkloadError, EmptySampleError) as exc:
            logger.warning("Scenario %s failed: %s", scenario.id, exc)
            report.add_failure(scenario, exc)
            return

        report.add_summary(scenario, summary, samples if self.settings.save_raw else None)
        logger.debug(
            "%s: mean=%.3fms median=%.3fms n=%d", scenario.id, summary.mean, summary.median, summary.sample_count
        )

    async def _measure(self, scenario: Scenario) -> list[float]:
        iterations = self.settings.samples_for(scenario.iterations)
        warmup = min(scenario.warmup, self.settings.warmup)
        if scenario.is_concurrent or scenario.ops_per_unit > 1:
            return await self.runner.run_batches(
                scenario.workload,
                scenario.concurrency,
                warmup,
                iterations,
                ops_per_unit=scenario.ops_per_unit,
                threaded=scenario.threaded,
                scenario_id=scenario.id,
            )
        return await self.runner.run(scenario.workload, warmup, iterations, scenario_id=scenario.id)

    async def _finish(self, scenario: Scenario, propagate: bool = True) -> None:
        """
        Teardown hook, then per-scenario cleanup when the policy asks for it.

        With ``propagate`` false the scenario has already failed; errors here
        are only logged so the original failure is the one reported.
        """
        failure: WorkloadError | None = None
        if scenario.teardown is not None:
            try:
                await self._hook(scenario, scenario.teardown, TEARDOWN)
            except WorkloadError as exc:
                failure = exc
        if scenario.mutates and self.settings.cleanup is CleanupPolicy.SCENARIO:
            try:
                await self._cleanup(scenario.library, scenario.id)
            except WorkloadError as exc:
                failure = failure or exc
        if failure is None:
            return
        if propagate:
            raise failure
        logger.error("%s after failed scenario %s also failed: %s", failure.phase, scenario.id, failure)

    async def _hook(self, scenario: Scenario, hook: Hook, phase: str) -> None:
        try:
            await hook()
        except Exception as exc:
            raise WorkloadError(f"{phase} failed: {exc}", scenario_id=scenario.id, phase=phase) from exc

    @log_performance(logger, "cleanup")
    async def _cleanup(self, library: str, scenario_id: str | None = None) -> None:
        cleanup = self.cleanups.get(library)
        if cleanup is None:
            return
        try:
            await cleanup()
        except Exception as exc:
            raise WorkloadError(
                f"{CLEANUP} for {library} failed: {exc}", scenario_id=scenario_id, phase=CLEANUP
            ) from exc


class _Progress:
    """Console progress lines, one per scenario."""

    def __init__(self, total: int) -> None:
        self.total = total
        self.done = 0

    def show(self, scenario: Scenario) -> None:
        self.done += 1
        print(f"[{self.done}/{self.total}] {scenario.id}", flush=True)

    def skip(self, count: int) -> None:
        self.done += count
