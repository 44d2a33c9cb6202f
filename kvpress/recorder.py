"""ResultRecorder — writes one benchmark run as a JSON report."""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from .schema import BenchmarkReport, BenchmarkResult, RunMetadata
from .system_info import (
    capture_hardware,
    client_version,
    git_branch,
    git_is_dirty,
    git_short_commit,
)


def report_stem(result: BenchmarkResult) -> str:
    """``kvpress/get/w5-p10`` -> ``get-w5-p10``."""
    _, _, rest = result.benchmark.partition("/")
    return (rest or result.operation).replace("/", "-")


class ResultRecorder:
    """Collects the results of one operation's run against one server.

    Host, git and server metadata are captured at construction. The report
    is named after the last recorded benchmark, so runs of one operation at
    different concurrency settings sort side by side in *output_dir*.
    """

    def __init__(
        self,
        operation: str,
        *,
        server: str | None = None,
        server_version: str | None = None,
    ):
        self.operation = operation
        now = datetime.now(timezone.utc)
        self._report = BenchmarkReport(
            metadata=RunMetadata(
                timestamp=now.isoformat(),
                git_commit=git_short_commit(),
                git_branch=git_branch(),
                git_dirty=git_is_dirty(),
                client_version=client_version(),
                server=server,
                server_version=server_version,
                hardware=capture_hardware(),
            ),
        )
        self._stamp = now.strftime("%Y%m%dT%H%M%SZ")

    @property
    def report(self) -> BenchmarkReport:
        return self._report

    def record(self, result: BenchmarkResult) -> None:
        if result.operation != self.operation:
            raise ValueError(
                f"recorder for {self.operation!r} got a {result.operation!r} result"
            )
        self._report.results.append(result)

    def file_name(self) -> str:
        results = self._report.results
        stem = report_stem(results[-1]) if results else self.operation
        return f"{stem}-{self._stamp}.json"

    def save(self, output_dir: str | Path) -> Path:
        """Write the report atomically and return its path."""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / self.file_name()

        fd, tmp = tempfile.mkstemp(dir=output_dir, prefix=".kvpress-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(self._report.to_dict(), f, indent=2)
                f.write("\n")
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        return path
