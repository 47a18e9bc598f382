#!/usr/bin/env python3
"""Install the benchmark harness and the client libraries it compares."""

import argparse
import subprocess
import sys

from common import print_error, print_header, print_success, python, run


def install(dev: bool) -> bool:
    """Editable install; ``dev`` adds pytest, pytest-asyncio and ruff."""
    print_header("Installing Python package")
    try:
        run(python("-m", "pip", "install", "-e", ".[dev]" if dev else "."))
    except subprocess.CalledProcessError as e:
        print_error(f"Failed to install Python package: {e}")
        return False
    print_success("Python package installed")
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="Install the benchmark harness")
    parser.add_argument("--no-dev", action="store_true", help="Skip development dependencies")
    args = parser.parse_args()

    success = install(dev=not args.no_dev)
    print_header("Installation complete" if success else "Installation completed with errors")
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
