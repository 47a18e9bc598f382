#!/usr/bin/env python3
"""
Performance benchmarks comparing PostgreSQL client libraries.

Compares:
1. asyncpg - low-level async driver with its own pool
2. psycopg - psycopg 3 async connections from psycopg_pool
3. psycopg2 - synchronous driver with a threaded pool
4. sqlalchemy - SQLAlchemy 2 asyncio ORM on the asyncpg dialect

Benchmark groups, in report order:
- insert: single and batched user inserts
- select: lookups by id, limited and filtered scans
- update: updating existing users
- join: two- and three-table joins
- aggregate: posts per user
- transaction: user plus posts in one transaction
- concurrent: many pooled operations at once
- heavy: long sequential read/write mixes

Commands:
    run_benchmarks.py [full]          all benchmarks, full sample counts
    run_benchmarks.py quick           smoke test: 10 samples, 1 warm-up
    run_benchmarks.py check           verify the database is reachable and seeded
    run_benchmarks.py --group select  one group only
    run_benchmarks.py --list          show scenario ids without running
"""

from __future__ import annotations

import argparse
import asyncio
import functools
import sys
from collections.abc import Mapping, Sequence

import asyncpg
from implementations import TABLES, AsyncpgImplementation, BaseClientImplementation, create_implementation
from scenarios import build_registry

from pg_benchmark.config import LIBRARIES, BenchmarkSettings, CleanupPolicy
from pg_benchmark.exceptions import ConfigurationError
from pg_benchmark.harness import BenchmarkHarness
from pg_benchmark.logging_config import get_logger, setup_logging
from pg_benchmark.registry import Scenario, ScenarioGroup, ScenarioRegistry
from pg_benchmark.report import format_console_tables
from pg_benchmark.system_info import collect_system_info

logger = get_logger(__name__)

COMMANDS = ("full", "quick", "check")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Benchmark PostgreSQL client libraries against a shared schema.",
    )
    parser.add_argument("command", nargs="?", choices=COMMANDS, default="full", help="What to run (default: full)")
    parser.add_argument("--group", choices=[g.value for g in ScenarioGroup], help="Only run this benchmark group")
    parser.add_argument("--filter", help="Only run scenarios whose id contains this text")
    parser.add_argument(
        "--library",
        action="append",
        choices=LIBRARIES,
        help="Only run this client library (repeatable; default: all)",
    )
    parser.add_argument("--list", action="store_true", help="List the selected scenarios and exit")
    parser.add_argument("--database-url", help="PostgreSQL connection string (default: $PG_BENCHMARK_DATABASE_URL)")
    parser.add_argument("--output-dir", help="Report directory (default: benchmark-results-<timestamp>)")
    parser.add_argument("--save-raw", action="store_true", help="Include raw samples in results.json")
    parser.add_argument(
        "--cleanup",
        choices=[p.value for p in CleanupPolicy],
        help="When inserted rows are deleted (default: scenario)",
    )
    parser.add_argument("--warmup", type=int, help="Untimed calls before each scenario's samples")
    parser.add_argument("--sample-scale", type=float, help="Multiply every scenario's sample count")
    parser.add_argument("--pool-size", type=int, help="Connections per pool (default: highest concurrency level)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> BenchmarkSettings:
    settings = BenchmarkSettings.from_env(
        database_url=args.database_url,
        libraries=tuple(args.library) if args.library else None,
        output_dir=args.output_dir,
        save_raw=True if args.save_raw else None,
        cleanup=args.cleanup,
        warmup=args.warmup,
        sample_scale=args.sample_scale,
        pool_size=args.pool_size,
    )
    if args.command == "quick":
        settings = settings.quick()
    return settings


def print_scenarios(scenarios: Sequence[Scenario]) -> None:
    for scenario in scenarios:
        print(f"{scenario.id:<58} {scenario.group.value:<12} {scenario.label}")
    print(f"\n{len(scenarios)} scenarios")


async def check_database(settings: BenchmarkSettings) -> int:
    """Connect with asyncpg and print the row count of every benchmark table."""
    print(f"Checking {settings.database_url} ...")
    try:
        async with AsyncpgImplementation().connected(settings.database_url, pool_size=1) as impl:
            for table in TABLES:
                print(f"  {table:<12} {await impl.count_rows(table):>10,} rows")
    except (OSError, asyncpg.PostgresError) as e:
        print(f"Database check failed: {e}", file=sys.stderr)
        return 1
    print("Database is ready.")
    return 0


async def run_all_benchmarks(
    registry: ScenarioRegistry,
    scenarios: Sequence[Scenario],
    implementations: Mapping[str, BaseClientImplementation],
    settings: BenchmarkSettings,
) -> int:
    """Run the selected scenarios, print the results and write the report."""
    pool_size = settings.pool_size or registry.max_concurrency(scenarios)
    harness = BenchmarkHarness(
        registry,
        settings,
        connectors={
            name: functools.partial(impl.connected, settings.database_url, pool_size)
            for name, impl in implementations.items()
        },
        cleanups={name: impl.cleanup for name, impl in implementations.items()},
    )

    print(f"\n{'#' * 80}")
    print(f"# Running {len(scenarios)} scenarios")
    print(f"# Libraries: {', '.join(settings.libraries)}")
    print(f"# Cleanup: {settings.cleanup.value}, pool size: {pool_size}")
    print(f"{'#' * 80}")

    report = await harness.run(scenarios)

    print("\n\n" + "#" * 80)
    print("# DETAILED RESULTS")
    print("#" * 80)
    print(format_console_tables(report))

    output_dir = settings.resolve_output_dir()
    for path in report.write(output_dir, collect_system_info()):
        print(f"Wrote {path}")

    if harness.cleanup_errors:
        print(f"{len(harness.cleanup_errors)} cleanup errors; see the log", file=sys.stderr)
    if report.has_failures:
        print(f"{len(report.failures())} scenarios failed", file=sys.stderr)
    return report.exit_code


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging("DEBUG" if args.verbose else None)

    try:
        settings = build_settings(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.command == "check":
        return asyncio.run(check_database(settings))

    implementations = {name: create_implementation(name) for name in settings.libraries}
    registry = build_registry(implementations, settings)
    scenarios = registry.select(group=args.group, pattern=args.filter, libraries=settings.libraries)

    if args.list:
        print_scenarios(scenarios)
        return 0
    if not scenarios:
        print("No scenarios match the selection.", file=sys.stderr)
        return 2

    return asyncio.run(run_all_benchmarks(registry, scenarios, implementations, settings))


if __name__ == "__main__":
    sys.exit(main())
