#!/usr/bin/env python3
"""Shared helpers for the tools scripts."""

import os
import subprocess
import sys
from pathlib import Path

# Project root directory
ROOT_DIR = Path(__file__).parent.parent.resolve()
BENCHMARKS_DIR = ROOT_DIR / "benchmarks"
DATABASE_ENV = "PG_BENCHMARK_DATABASE_URL"


def run(
    cmd: list[str], cwd: Path | None = None, check: bool = True, env: dict[str, str] | None = None
) -> subprocess.CompletedProcess:
    """Run a command from the project root and echo it first."""
    cwd = cwd or ROOT_DIR
    print(f"+ {' '.join(cmd)}")
    return subprocess.run(cmd, cwd=cwd, check=check, env={**os.environ, **(env or {})})


def python(*args: str) -> list[str]:
    """Command line running this interpreter, so the active environment is used."""
    return [sys.executable, *args]


def database_env(database_url: str | None) -> dict[str, str]:
    """Environment override pointing the benchmarks and tests at a database."""
    return {DATABASE_ENV: database_url} if database_url else {}


def print_header(title: str) -> None:
    """Print a section header."""
    print()
    print("=" * 60)
    print(f"  {title}")
    print("=" * 60)
    print()


def print_success(message: str) -> None:
    print(f"✓ {message}")


def print_error(message: str) -> None:
    print(f"✗ {message}", file=sys.stderr)
