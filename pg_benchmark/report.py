"""
Result aggregation and rendering.

The report is append-only while a run is in progress. Finalizing it freezes
the content and fixes the order: groups in their declared order, scenarios
within a group in registration order, so repeated runs produce diffable
output.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .exceptions import ReportFinalizedError
from .logging_config import get_logger
from .registry import GROUP_ORDER, Scenario, ScenarioGroup, ScenarioRegistry
from .stats import Summary

logger = get_logger(__name__)

UNIT = "ms"


@dataclass(frozen=True)
class ScenarioResult:
    """A successful scenario run."""

    scenario: Scenario
    summary: Summary
    samples: tuple[float, ...] | None = None

    @property
    def throughput(self) -> float:
        return self.summary.throughput(self.scenario.elements)

    def to_record(self) -> dict[str, Any]:
        s = self.summary
        low, high = s.confidence_interval()
        record: dict[str, Any] = {
            "id": self.scenario.id,
            "group": self.scenario.group.value,
            "library": self.scenario.library,
            "name": self.scenario.name,
            "parameter": self.scenario.parameter,
            "concurrency": self.scenario.concurrency,
            "sample_count": s.sample_count,
            "mean": s.mean,
            "median": s.median,
            "stddev": s.stddev,
            "min": s.min,
            "max": s.max,
            "unit": UNIT,
            "ci95": [low, high],
            "throughput_per_sec": self.throughput,
        }
        if self.samples is not None:
            record["samples"] = list(self.samples)
        return record


@dataclass(frozen=True)
class ScenarioFailure:
    """A scenario that could not complete."""

    scenario: Scenario
    error_type: str
    message: str

    @classmethod
    def from_exception(cls, scenario: Scenario, exc: BaseException) -> ScenarioFailure:
        return cls(scenario=scenario, error_type=type(exc).__name__, message=str(exc))

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.scenario.id,
            "group": self.scenario.group.value,
            "library": self.scenario.library,
            "error": self.error_type,
            "message": self.message,
        }


class BenchmarkReport:
    """Collects per-scenario outcomes of one run."""

    def __init__(self, registry: ScenarioRegistry) -> None:
        self.registry = registry
        self.started_at = datetime.now(timezone.utc)
        self.finished_at: datetime | None = None
        self._results: dict[str, ScenarioResult] = {}
        self._failures: dict[str, ScenarioFailure] = {}

    # -- collection ---------------------------------------------------------

    def add_summary(
        self, scenario: Scenario, summary: Summary, samples: Sequence[float] | None = None
    ) -> ScenarioResult:
        self._check_open()
        result = ScenarioResult(
            scenario=scenario,
            summary=summary,
            samples=tuple(samples) if samples is not None else None,
        )
        self._results[scenario.id] = result
        self._failures.pop(scenario.id, None)
        return result

    def add_failure(self, scenario: Scenario, exc: BaseException) -> ScenarioFailure:
        self._check_open()
        failure = ScenarioFailure.from_exception(scenario, exc)
        self._failures[scenario.id] = failure
        self._results.pop(scenario.id, None)
        return failure

    def finalize(self) -> BenchmarkReport:
        if self.finished_at is None:
            self.finished_at = datetime.now(timezone.utc)
        return self

    @property
    def finalized(self) -> bool:
        return self.finished_at is not None

    def _check_open(self) -> None:
        if self.finalized:
            raise ReportFinalizedError("Report is finalized; no more results can be added")

    # -- retrieval ----------------------------------------------------------

    def get(self, scenario_id: str) -> ScenarioResult | ScenarioFailure | None:
        return self._results.get(scenario_id) or self._failures.get(scenario_id)

    def results(self) -> list[ScenarioResult]:
        return sorted(self._results.values(), key=lambda r: self._sort_key(r.scenario))

    def failures(self) -> list[ScenarioFailure]:
        return sorted(self._failures.values(), key=lambda f: self._sort_key(f.scenario))

    def by_group(self, group: ScenarioGroup | str) -> list[ScenarioResult]:
        wanted = ScenarioGroup.parse(group)
        return [r for r in self.results() if r.scenario.group is wanted]

    def _sort_key(self, scenario: Scenario) -> tuple[int, int]:
        try:
            position = self.registry.position(scenario.id)
        except KeyError:
            position = len(self.registry)
        return scenario.group.order, position

    @property
    def has_failures(self) -> bool:
        return bool(self._failures)

    @property
    def exit_code(self) -> int:
        return 1 if self._failures else 0

    def __len__(self) -> int:
        return len(self._results) + len(self._failures)

    # -- machine-readable output --------------------------------------------

    def to_dict(self, system_info: Mapping[str, Any] | None = None) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "unit": UNIT,
            "results": [r.to_record() for r in self.results()],
            "failures": [f.to_record() for f in self.failures()],
            "system": dict(system_info) if system_info else {},
        }

    def write(self, output_dir: Path, system_info: Mapping[str, Any] | None = None) -> list[Path]:
        """Write results.json and SUMMARY.md into ``output_dir``."""
        self.finalize()
        output_dir.mkdir(parents=True, exist_ok=True)

        json_path = output_dir / "results.json"
        json_path.write_text(json.dumps(self.to_dict(system_info), indent=2, default=str) + "\n")

        markdown_path = output_dir / "SUMMARY.md"
        markdown_path.write_text(render_markdown(self, system_info))

        logger.info("Report written to %s", output_dir)
        return [json_path, markdown_path]


# -- human-readable output ----------------------------------------------------


def comparison_table(results: Sequence[ScenarioResult]) -> dict[str, list[tuple[ScenarioResult, float]]]:
    """
    Group results by benchmark (name plus parameter) and rate every library
    against the fastest one: ``ratio`` is mean / fastest mean.
    """
    benchmarks: dict[str, list[ScenarioResult]] = {}
    for result in results:
        key = result.scenario.name
        if result.scenario.parameter is not None:
            key = f"{key}/{result.scenario.parameter}"
        benchmarks.setdefault(key, []).append(result)

    table: dict[str, list[tuple[ScenarioResult, float]]] = {}
    for key, entries in benchmarks.items():
        fastest = min(r.summary.mean for r in entries)
        ranked = sorted(entries, key=lambda r: r.summary.mean)
        table[key] = [(r, r.summary.mean / fastest if fastest > 0 else 1.0) for r in ranked]
    return table


def render_markdown(report: BenchmarkReport, system_info: Mapping[str, Any] | None = None) -> str:
    lines = ["# PostgreSQL Library Benchmark Results", ""]
    lines.append(f"Run started: {report.started_at:%Y-%m-%d %H:%M:%S} UTC")
    libraries = sorted({r.scenario.library for r in report.results()} | {f.scenario.library for f in report.failures()})
    if libraries:
        lines.append(f"Libraries: {', '.join(libraries)}")
    lines.append("")
    lines.append("Times are in milliseconds; lower is better. Concurrent scenarios time whole batches.")
    lines.append("")

    for group in GROUP_ORDER:
        group_results = report.by_group(group)
        if not group_results:
            continue
        lines.append(f"## {group.value.capitalize()}")
        lines.append("")
        lines.append("| Scenario | Library | Samples | Mean | Median | Std Dev | Min | Max | Throughput (/s) |")
        lines.append("|---|---|---:|---:|---:|---:|---:|---:|---:|")
        for r in group_results:
            s = r.summary
            lines.append(
                f"| {r.scenario.label} | {r.scenario.library} | {s.sample_count} | {s.mean:.3f} | "
                f"{s.median:.3f} | {s.stddev:.3f} | {s.min:.3f} | {s.max:.3f} | {r.throughput:,.1f} |"
            )
        lines.append("")

    table = comparison_table(report.results())
    if table:
        lines.append("## Speed comparison")
        lines.append("")
        lines.append("Mean time relative to the fastest library for each benchmark.")
        lines.append("")
        for key, ranked in table.items():
            cells = ", ".join(
                f"{r.scenario.library} {ratio:.2f}x" if ratio > 1 else f"**{r.scenario.library}** (fastest)"
                for r, ratio in ranked
            )
            lines.append(f"- `{key}`: {cells}")
        lines.append("")

    failures = report.failures()
    if failures:
        lines.append("## Failed scenarios")
        lines.append("")
        lines.append("| Scenario | Group | Error | Message |")
        lines.append("|---|---|---|---|")
        for f in failures:
            message = f.message.replace("|", "\\|").replace("\n", " ")
            lines.append(f"| {f.scenario.id} | {f.scenario.group.value} | {f.error_type} | {message} |")
        lines.append("")

    if system_info:
        lines.append("## Hardware/Software Information")
        lines.append("")
        lines.append("```")
        for key, value in system_info.items():
            lines.append(f"{key}: {value}")
        lines.append("```")
        lines.append("")

    return "\n".join(lines)


def format_console_tables(report: BenchmarkReport) -> str:
    """Fixed-width per-benchmark tables, fastest library first."""
    out: list[str] = []
    for key, ranked in comparison_table(report.results()).items():
        first = ranked[0][0]
        out.append("")
        out.append("=" * 88)
        out.append(f"Benchmark: {key} [{first.scenario.group.value}] ({first.summary.sample_count} samples)")
        out.append("=" * 88)
        out.append(
            f"{'Library':<14} {'Mean (ms)':<12} {'Median (ms)':<12} "
            f"{'Min (ms)':<12} {'Max (ms)':<12} {'Std Dev':<12} {'vs fastest':<10}"
        )
        out.append("-" * 88)
        for r, ratio in ranked:
            s = r.summary
            out.append(
                f"{r.scenario.library:<14} {s.mean:<12.3f} {s.median:<12.3f} "
                f"{s.min:<12.3f} {s.max:<12.3f} {s.stddev:<12.3f} {ratio:<10.2f}"
            )

    failures = report.failures()
    if failures:
        out.append("")
        out.append("=" * 88)
        out.append(f"FAILED SCENARIOS ({len(failures)})")
        out.append("=" * 88)
        for f in failures:
            out.append(f"  {f.scenario.id}: {f.error_type}: {f.message}")
    return "\n".join(out)
