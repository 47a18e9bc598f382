#!/usr/bin/env python3
"""Run the test suite."""

import argparse
import subprocess
import sys

from common import DATABASE_ENV, database_env, print_error, print_header, print_success, python, run


def run_tests(verbose: bool, database_url: str | None, keyword: str | None) -> bool:
    """
    Run pytest over tests/.

    Client tests against PostgreSQL run only when a database URL is given
    here or already set in the environment; otherwise they are skipped.
    """
    print_header("Running tests")
    cmd = python("-m", "pytest", "tests/")
    if verbose:
        cmd.append("-v")
    if keyword:
        cmd += ["-k", keyword]
    if not database_url:
        print(f"  ({DATABASE_ENV} not given; database tests skip unless it is set)")
    try:
        run(cmd, env=database_env(database_url))
    except subprocess.CalledProcessError:
        print_error("Tests failed")
        return False
    print_success("Tests passed")
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="Run the benchmark harness tests")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("-k", dest="keyword", help="Only run tests matching this pytest expression")
    parser.add_argument("--database-url", "-d", help="Also run the client tests against this database")
    args = parser.parse_args()

    success = run_tests(args.verbose, args.database_url, args.keyword)
    print_header("All tests passed" if success else "Some tests failed")
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
