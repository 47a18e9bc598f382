#!/usr/bin/env python3
"""Remove caches, build output and benchmark reports."""

import argparse
import shutil
import sys

from common import ROOT_DIR, print_header, print_success


def clean_python() -> None:
    """Remove Python build and tool caches."""
    print_header("Cleaning Python artifacts")

    dirs_to_remove = [
        ROOT_DIR / "build",
        ROOT_DIR / "dist",
        ROOT_DIR / ".pytest_cache",
        ROOT_DIR / ".ruff_cache",
    ]
    dirs_to_remove.extend(ROOT_DIR.glob("*.egg-info"))
    dirs_to_remove.extend(ROOT_DIR.rglob("__pycache__"))

    for d in dirs_to_remove:
        if d.exists():
            print(f"  Removing {d.relative_to(ROOT_DIR)}")
            shutil.rmtree(d)

    print_success("Python artifacts cleaned")


def clean_results() -> None:
    """Remove timestamped report directories written by run_benchmarks.py."""
    print_header("Cleaning benchmark results")
    for d in sorted(ROOT_DIR.glob("benchmark-results-*")):
        if d.is_dir():
            print(f"  Removing {d.relative_to(ROOT_DIR)}")
            shutil.rmtree(d)
    print_success("Benchmark results cleaned")


def main() -> int:
    parser = argparse.ArgumentParser(description="Clean build artifacts and benchmark results")
    parser.add_argument("--results", action="store_true", help="Also delete benchmark-results-* directories")
    args = parser.parse_args()

    clean_python()
    if args.results:
        clean_results()

    print_header("Clean complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
