#!/usr/bin/env python3
"""Run linters over the harness, benchmarks and tests."""

import subprocess
import sys

from common import print_error, print_header, print_success, run

CHECKS = [
    (["ruff", "check", "."], "ruff check"),
    (["ruff", "format", "--check", "."], "ruff format check"),
]


def main() -> int:
    print_header("Running linters")
    failed = []
    for cmd, label in CHECKS:
        try:
            run(cmd)
            print_success(f"{label} passed")
        except (subprocess.CalledProcessError, FileNotFoundError):
            print_error(f"{label} failed")
            failed.append(label)

    print_header("Some linters failed" if failed else "All linters passed")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
