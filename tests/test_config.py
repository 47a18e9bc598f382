"""Tests for benchmark settings."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from pg_benchmark.config import DEFAULT_DATABASE_URL, LIBRARIES, BenchmarkSettings, CleanupPolicy
from pg_benchmark.exceptions import ConfigurationError


class TestDefaults:
    def test_defaults(self):
        settings = BenchmarkSettings()
        assert settings.database_url == DEFAULT_DATABASE_URL
        assert settings.libraries == LIBRARIES
        assert settings.cleanup is CleanupPolicy.SCENARIO
        assert settings.max_samples is None
        assert settings.run_token

    def test_cleanup_accepts_strings(self):
        assert BenchmarkSettings(cleanup="run").cleanup is CleanupPolicy.RUN

    @pytest.mark.parametrize(
        "fields",
        [
            {"libraries": ("asyncpg", "jdbc")},
            {"libraries": ()},
            {"warmup": -1},
            {"sample_scale": 0},
            {"max_samples": 0},
            {"pool_size": 0},
        ],
    )
    def test_invalid_values(self, fields):
        with pytest.raises(ConfigurationError):
            BenchmarkSettings(**fields)


class TestFromEnv:
    def test_reads_environment(self):
        settings = BenchmarkSettings.from_env(
            {
                "PG_BENCHMARK_DATABASE_URL": "postgresql://u:p@db:5432/bench",
                "PG_BENCHMARK_WARMUP": "7",
                "PG_BENCHMARK_CLEANUP": "NONE",
                "PG_BENCHMARK_OUTPUT_DIR": "/tmp/results",
            }
        )
        assert settings.database_url == "postgresql://u:p@db:5432/bench"
        assert settings.warmup == 7
        assert settings.cleanup is CleanupPolicy.NONE
        assert settings.output_dir == Path("/tmp/results")

    def test_database_url_fallback(self):
        settings = BenchmarkSettings.from_env({"DATABASE_URL": "postgresql://fallback/db"})
        assert settings.database_url == "postgresql://fallback/db"

    def test_specific_variable_wins(self):
        settings = BenchmarkSettings.from_env(
            {"DATABASE_URL": "postgresql://fallback/db", "PG_BENCHMARK_DATABASE_URL": "postgresql://main/db"}
        )
        assert settings.database_url == "postgresql://main/db"

    def test_empty_environment_gives_defaults(self):
        assert BenchmarkSettings.from_env({}).database_url == DEFAULT_DATABASE_URL

    def test_overrides_beat_environment_and_none_is_ignored(self):
        settings = BenchmarkSettings.from_env(
            {"PG_BENCHMARK_WARMUP": "7", "PG_BENCHMARK_DATABASE_URL": "postgresql://env/db"},
            warmup=2,
            database_url=None,
        )
        assert settings.warmup == 2
        assert settings.database_url == "postgresql://env/db"

    @pytest.mark.parametrize(
        "environ",
        [{"PG_BENCHMARK_WARMUP": "three"}, {"PG_BENCHMARK_CLEANUP": "sometimes"}],
    )
    def test_invalid_environment(self, environ):
        with pytest.raises(ConfigurationError):
            BenchmarkSettings.from_env(environ)


class TestSampling:
    def test_quick_mode(self):
        quick = BenchmarkSettings(warmup=3).quick()
        assert quick.warmup == 1
        assert quick.samples_for(200) == 10
        assert quick.samples_for(5) == 5

    def test_quick_keeps_zero_warmup(self):
        assert BenchmarkSettings(warmup=0).quick().warmup == 0

    def test_sample_scale(self):
        settings = BenchmarkSettings(sample_scale=0.5)
        assert settings.samples_for(100) == 50
        assert settings.samples_for(1) == 1

    def test_unscaled(self):
        assert BenchmarkSettings().samples_for(30) == 30


class TestOutputDir:
    def test_timestamped_default(self):
        path = BenchmarkSettings().resolve_output_dir(datetime(2024, 5, 6, 7, 8, 9))
        assert path == Path("benchmark-results-20240506-070809")

    def test_explicit(self, tmp_path):
        assert BenchmarkSettings(output_dir=tmp_path).resolve_output_dir() == tmp_path
