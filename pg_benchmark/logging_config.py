"""
Centralized logging configuration for pg-benchmark.

Console progress tables are printed directly by the benchmark scripts; this
module configures the diagnostic log stream (scenario failures, pool setup,
cleanup) and keeps the client libraries' own loggers quiet so they do not
interleave with benchmark output.
"""

from __future__ import annotations

import functools
import inspect
import logging
import logging.config
import os
import sys
import time
from typing import Any, Callable, Dict, Optional

LOGGER_NAMESPACE = "pg_benchmark"


def get_log_level() -> str:
    """Get log level from environment variable or default to INFO."""
    return os.getenv("PG_BENCHMARK_LOG_LEVEL", "INFO").upper()


def get_log_format() -> str:
    """Get log format based on environment."""
    env = os.getenv("PG_BENCHMARK_ENV", "development").lower()

    if env == "production":
        return "%(asctime)s | %(name)s | %(levelname)s | %(message)s | %(pathname)s:%(lineno)d"
    return "%(asctime)s | %(name)-28s | %(levelname)-8s | %(message)s"


def get_logging_config() -> Dict[str, Any]:
    """Get the logging configuration dictionary."""
    log_level = get_log_level()

    config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": get_log_format(),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": "%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "standard",
                "stream": sys.stderr,
            },
        },
        "loggers": {
            LOGGER_NAMESPACE: {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,
            },
            # Driver loggers: only warnings and up
            "asyncpg": {"level": "WARNING", "handlers": ["console"], "propagate": False},
            "psycopg": {"level": "WARNING", "handlers": ["console"], "propagate": False},
            "psycopg.pool": {"level": "WARNING", "handlers": ["console"], "propagate": False},
            "sqlalchemy.engine": {"level": "WARNING", "handlers": ["console"], "propagate": False},
        },
        "root": {
            "level": "WARNING",
            "handlers": ["console"],
        },
    }

    log_file = os.getenv("PG_BENCHMARK_LOG_FILE")
    if log_file:
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": "detailed",
            "filename": log_file,
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
        }
        config["loggers"][LOGGER_NAMESPACE]["handlers"].append("file")

    return config


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure logging for a benchmark run.

    Args:
        level: Overrides PG_BENCHMARK_LOG_LEVEL when given (e.g. from --verbose).
    """
    if level:
        os.environ["PG_BENCHMARK_LOG_LEVEL"] = level.upper()
    logging.config.dictConfig(get_logging_config())

    logger = logging.getLogger(f"{LOGGER_NAMESPACE}.logging")
    logger.debug("Logging configured with level: %s", get_log_level())
    if os.getenv("PG_BENCHMARK_LOG_FILE"):
        logger.info("File logging enabled: %s", os.getenv("PG_BENCHMARK_LOG_FILE"))


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the pg_benchmark namespace.

    Args:
        name: Logger name (typically __name__ of the module)
    """
    if not name.startswith(LOGGER_NAMESPACE):
        name = f"{LOGGER_NAMESPACE}.main" if name == "__main__" else f"{LOGGER_NAMESPACE}.{name}"
    return logging.getLogger(name)


def log_performance(logger: logging.Logger, operation: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator to log how long an operation took.

    Intended for setup-type work (connecting pools, cleanup), never for the
    timed workload calls themselves.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                duration = time.perf_counter() - start_time
                logger.error("Operation '%s' failed after %.3fs: %s", operation, duration, e)
                raise
            logger.debug("Operation '%s' completed in %.3fs", operation, time.perf_counter() - start_time)
            return result

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration = time.perf_counter() - start_time
                logger.error("Operation '%s' failed after %.3fs: %s", operation, duration, e)
                raise
            logger.debug("Operation '%s' completed in %.3fs", operation, time.perf_counter() - start_time)
            return result

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
