"""Tests for the benchmark command line."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Add benchmarks to path for the entry point
sys.path.insert(0, str(Path(__file__).parent.parent / "benchmarks"))

from run_benchmarks import build_settings, main, parse_args

from pg_benchmark.config import LIBRARIES, CleanupPolicy


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "PG_BENCHMARK_DATABASE_URL",
        "DATABASE_URL",
        "PG_BENCHMARK_WARMUP",
        "PG_BENCHMARK_CLEANUP",
        "PG_BENCHMARK_OUTPUT_DIR",
        "PG_BENCHMARK_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


class TestArguments:
    """Parsing and settings."""

    def test_defaults(self):
        args = parse_args([])
        assert args.command == "full"
        assert args.group is None
        assert args.library is None
        assert not args.list

        settings = build_settings(args)
        assert settings.libraries == LIBRARIES
        assert settings.cleanup is CleanupPolicy.SCENARIO
        assert settings.max_samples is None

    def test_quick_caps_samples(self):
        settings = build_settings(parse_args(["quick", "--warmup", "5"]))
        assert settings.max_samples == 10
        assert settings.warmup == 1

    def test_overrides(self):
        settings = build_settings(
            parse_args(
                [
                    "--library", "asyncpg",
                    "--library", "psycopg2",
                    "--cleanup", "run",
                    "--save-raw",
                    "--database-url", "postgresql://u:p@db/bench",
                    "--pool-size", "20",
                ]
            )
        )
        assert settings.libraries == ("asyncpg", "psycopg2")
        assert settings.cleanup is CleanupPolicy.RUN
        assert settings.save_raw
        assert settings.database_url == "postgresql://u:p@db/bench"
        assert settings.pool_size == 20

    @pytest.mark.parametrize(
        "argv",
        [["--library", "mysql"], ["--group", "delete"], ["--cleanup", "always"], ["bogus"]],
    )
    def test_invalid_choices(self, argv):
        with pytest.raises(SystemExit) as exc_info:
            parse_args(argv)
        assert exc_info.value.code == 2


class TestMain:
    """Entry point behavior that needs no database."""

    def test_list(self, capsys):
        assert main(["--list", "--group", "select", "--library", "asyncpg"]) == 0
        out = capsys.readouterr().out
        assert "select_user_by_id/asyncpg" in out
        assert "select_users_limit/asyncpg/1000" in out
        assert "psycopg" not in out
        assert "insert_single_user" not in out
        assert "7 scenarios" in out

    def test_list_filter(self, capsys):
        assert main(["--list", "--filter", "concurrent_reads"]) == 0
        out = capsys.readouterr().out
        assert f"{3 * len(LIBRARIES)} scenarios" in out

    def test_empty_selection(self, capsys):
        assert main(["--filter", "no_such_benchmark"]) == 2
        assert "No scenarios match" in capsys.readouterr().err

    def test_invalid_settings(self, capsys):
        assert main(["--list", "--warmup", "-1"]) == 2
        assert "warmup" in capsys.readouterr().err
