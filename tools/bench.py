#!/usr/bin/env python3
"""Run the PostgreSQL client benchmarks."""

import argparse
import subprocess
import sys

from common import BENCHMARKS_DIR, database_env, print_error, print_header, print_success, python, run


def run_benchmarks(command: str, extra: list[str], database_url: str | None) -> bool:
    """Run benchmarks/run_benchmarks.py; a non-zero exit means some scenario failed."""
    print_header(f"Running benchmarks ({command})")
    try:
        run(python(str(BENCHMARKS_DIR / "run_benchmarks.py"), command, *extra), env=database_env(database_url))
    except subprocess.CalledProcessError as e:
        print_error(f"Benchmarks failed with exit status {e.returncode}")
        return False
    print_success("Benchmarks completed")
    return True


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Run PostgreSQL client benchmarks",
        epilog="Arguments after -- are passed to run_benchmarks.py, e.g. -- --group select --library asyncpg",
    )
    parser.add_argument(
        "--install-deps",
        action="store_true",
        help="Install dependencies before running (runs tools/install.py)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--quick", "-q", action="store_true", help="Smoke-test run with few samples")
    mode.add_argument("--check", action="store_true", help="Only check that the database is reachable")
    parser.add_argument("--database-url", "-d", help="PostgreSQL connection string")
    parser.add_argument("extra", nargs=argparse.REMAINDER, help="Passed through to run_benchmarks.py")
    args = parser.parse_args()

    if args.install_deps:
        print_header("Installing dependencies")
        try:
            run(python("tools/install.py"))
        except subprocess.CalledProcessError as e:
            print_error(f"Failed to install dependencies: {e}")
            return 1

    command = "check" if args.check else "quick" if args.quick else "full"
    extra = [arg for arg in args.extra if arg != "--"]
    return 0 if run_benchmarks(command, extra, args.database_url) else 1


if __name__ == "__main__":
    sys.exit(main())
