#!/usr/bin/env python3
"""Format code with ruff and apply safe lint fixes."""

import subprocess
import sys

from common import print_error, print_header, print_success, run


def main() -> int:
    print_header("Formatting code")
    success = True
    for cmd in (["ruff", "format", "."], ["ruff", "check", "--fix", "."]):
        try:
            run(cmd)
            print_success(f"{' '.join(cmd)} completed")
        except (subprocess.CalledProcessError, FileNotFoundError):
            print_error(f"{' '.join(cmd)} failed")
            success = False

    print_header("Formatting complete" if success else "Formatting completed with errors")
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
