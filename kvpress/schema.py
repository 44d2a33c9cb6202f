"""Measurement and run-report data types."""

from __future__ import annotations

from dataclasses import dataclass, field, asdict


@dataclass(frozen=True)
class Sample:
    """Timing of one unit of work: a single command or one pipelined batch."""

    duration_s: float
    operation: str
    succeeded: bool
    timestamp_ns: int


@dataclass
class HardwareInfo:
    cpu: str = ""
    cores: int = 0
    ram_gb: float = 0.0
    os: str = ""
    arch: str = ""


@dataclass
class RunMetadata:
    timestamp: str = ""
    git_commit: str | None = None
    git_branch: str | None = None
    git_dirty: bool | None = None
    client: str = "redis-py"
    client_version: str = ""
    server: str | None = None           # "host:port" under test
    server_version: str | None = None
    hardware: HardwareInfo = field(default_factory=HardwareInfo)


@dataclass
class BenchmarkResult:
    benchmark: str          # e.g. "kvpress/get/w5-p10"
    operation: str          # e.g. "get"
    parameters: dict = field(default_factory=dict)
    metrics: dict = field(default_factory=dict)
    fill: dict | None = None


@dataclass
class BenchmarkReport:
    schema_version: int = 1
    metadata: RunMetadata = field(default_factory=RunMetadata)
    results: list[BenchmarkResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        d = asdict(self)
        for r in d["results"]:
            if r.get("fill") is None:
                del r["fill"]
        meta = d["metadata"]
        for key in list(meta):
            if meta[key] is None:
                del meta[key]
        return d
