"""Host, git and client-library metadata for run reports."""

from __future__ import annotations

import os
import platform
import subprocess

import redis

from .schema import HardwareInfo


def capture_hardware() -> HardwareInfo:
    return HardwareInfo(
        cpu=_cpu_model(),
        cores=os.cpu_count() or 0,
        ram_gb=round(_ram_gb(), 1),
        os=platform.system().lower(),
        arch=platform.machine(),
    )


def git_short_commit() -> str | None:
    return _git("rev-parse", "--short", "HEAD")


def git_branch() -> str | None:
    return _git("rev-parse", "--abbrev-ref", "HEAD")


def git_is_dirty() -> bool | None:
    out = _git("status", "--porcelain")
    if out is None:
        return None
    return bool(out.strip())


def client_version() -> str:
    return getattr(redis, "__version__", "unknown")


# -------------------------------------------------------------------
# Internals
# -------------------------------------------------------------------

def _git(*args: str) -> str | None:
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True, text=True, timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def _proc_field(path: str, prefix: str) -> str | None:
    """Return the value after ``prefix:`` in a /proc style file."""
    try:
        with open(path) as f:
            for line in f:
                if line.startswith(prefix):
                    return line.split(":", 1)[1].strip()
    except OSError:
        pass
    return None


def _cpu_model() -> str:
    return _proc_field("/proc/cpuinfo", "model name") or platform.processor() or "unknown"


def _ram_gb() -> float:
    raw = _proc_field("/proc/meminfo", "MemTotal")
    if raw is None:
        return 0.0
    try:
        return int(raw.split()[0]) / (1024 ** 2)
    except (ValueError, IndexError):
        return 0.0
