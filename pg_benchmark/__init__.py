"""
pg-benchmark: latency and throughput comparison of PostgreSQL client libraries.

Workloads are timed by a trial runner (or the concurrency driver for
parallel scenarios), summarized, and collected in a deterministic report.
"""

from .concurrency import ConcurrencyDriver, Workload
from .config import DEFAULT_DATABASE_URL, LIBRARIES, BenchmarkSettings, CleanupPolicy
from .exceptions import (
    BenchmarkError,
    ConfigurationError,
    DuplicateScenarioError,
    EmptySampleError,
    ReportFinalizedError,
    WorkloadError,
)
from .harness import BenchmarkHarness
from .registry import GROUP_ORDER, Scenario, ScenarioGroup, ScenarioRegistry, scenario_id
from .report import BenchmarkReport, ScenarioFailure, ScenarioResult
from .runner import TrialRunner
from .stats import Summary, summarize

__version__ = "0.1.0"

__all__ = [
    # Core
    "TrialRunner",
    "ConcurrencyDriver",
    "Workload",
    "Summary",
    "summarize",
    "Scenario",
    "ScenarioGroup",
    "ScenarioRegistry",
    "GROUP_ORDER",
    "scenario_id",
    "BenchmarkReport",
    "ScenarioResult",
    "ScenarioFailure",
    "BenchmarkHarness",
    # Configuration
    "BenchmarkSettings",
    "CleanupPolicy",
    "DEFAULT_DATABASE_URL",
    "LIBRARIES",
    # Exceptions
    "BenchmarkError",
    "ConfigurationError",
    "WorkloadError",
    "EmptySampleError",
    "DuplicateScenarioError",
    "ReportFinalizedError",
    # Version
    "__version__",
]
