"""Hardware and software details recorded alongside benchmark results."""

from __future__ import annotations

import platform
from datetime import datetime
from importlib import metadata
from pathlib import Path
from typing import Any

import psutil

# Distribution names of the client libraries, as installed
DISTRIBUTIONS: dict[str, str] = {
    "asyncpg": "asyncpg",
    "psycopg": "psycopg",
    "psycopg_pool": "psycopg-pool",
    "psycopg2": "psycopg2-binary",
    "sqlalchemy": "SQLAlchemy",
}


def _cpu_model() -> str:
    cpuinfo = Path("/proc/cpuinfo")
    if cpuinfo.exists():
        for line in cpuinfo.read_text(encoding="utf-8", errors="replace").splitlines():
            if line.startswith("model name"):
                return line.split(":", 1)[1].strip()
    return platform.processor() or platform.machine() or "unknown"


def library_versions() -> dict[str, str]:
    versions = {}
    for name, dist in DISTRIBUTIONS.items():
        try:
            versions[name] = metadata.version(dist)
        except metadata.PackageNotFoundError:
            # psycopg2 may be installed from source under its plain name
            try:
                versions[name] = metadata.version(name)
            except metadata.PackageNotFoundError:
                versions[name] = "not installed"
    return versions


def collect_system_info() -> dict[str, Any]:
    """Flat mapping of labels to values, ready to print."""
    freq = psutil.cpu_freq()
    info: dict[str, Any] = {
        "Date": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "OS": f"{platform.system()} {platform.release()}",
        "Architecture": platform.machine(),
        "CPU": _cpu_model(),
        "CPU cores (physical/logical)": f"{psutil.cpu_count(logical=False)}/{psutil.cpu_count(logical=True)}",
        "CPU max MHz": round(freq.max, 1) if freq else "unknown",
        "Memory (GiB)": round(psutil.virtual_memory().total / 2**30, 1),
        "Python": f"{platform.python_implementation()} {platform.python_version()}",
    }
    for name, version in library_versions().items():
        info[name] = version
    return info
