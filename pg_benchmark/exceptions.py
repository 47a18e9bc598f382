"""Custom exceptions for pg-benchmark."""

from __future__ import annotations


class BenchmarkError(Exception):
    """Base exception for benchmark harness errors."""

    pass


class ConfigurationError(BenchmarkError):
    """Raised when benchmark settings or library names are invalid."""

    pass


class WorkloadError(BenchmarkError):
    """
    Raised when an invocation of a workload function fails.

    Scenario-fatal but run-recoverable: the harness records the failure and
    moves on to the next scenario.
    """

    def __init__(
        self,
        message: str,
        *,
        scenario_id: str | None = None,
        phase: str | None = None,
        iteration: int | None = None,
    ) -> None:
        super().__init__(message)
        self.scenario_id = scenario_id
        self.phase = phase
        self.iteration = iteration


class EmptySampleError(BenchmarkError):
    """Raised when a sample set with no measurements is summarized."""

    pass


class DuplicateScenarioError(BenchmarkError):
    """Raised when a scenario id is registered twice."""

    def __init__(self, scenario_id: str) -> None:
        super().__init__(f"Scenario already registered: {scenario_id}")
        self.scenario_id = scenario_id


class ReportFinalizedError(BenchmarkError):
    """Raised when results are added to a report that was already finalized."""

    pass
