"""RunPlan — the read-only parameters of one benchmark run, derived once."""

from __future__ import annotations

import argparse
import math
from dataclasses import dataclass
from functools import cached_property

from .config import METRICS_BATCH_SIZE
from .errors import ConfigError


def split_work(total: int, workers: int, pipeline: int) -> tuple[int, int]:
    """Return ``(round_count, pipeline_count)`` for each of *workers*.

    Every worker gets ``total // workers`` requests; the remainder of that
    integer division is not scheduled. With pipelining the per-worker share
    is rounded *up* to whole rounds, so a worker may issue up to
    ``pipeline_count - 1`` extra requests but never fewer than its share.
    ``pipeline_count`` is 0 when pipelining is off (one request per round).
    """
    if workers < 1:
        raise ConfigError(f"worker count must be >= 1, got {workers}")
    per_worker = total // workers
    pipeline_count = min(per_worker, max(0, pipeline))
    if pipeline_count == 0:
        return per_worker, 0
    return math.ceil(per_worker / pipeline_count), pipeline_count


@dataclass(frozen=True)
class RunPlan:
    worker_count: int
    total_requests: int
    pipeline_depth: int = 0
    unique_key_budget: int | None = None
    payload_size: int = 2048

    def __post_init__(self) -> None:
        if self.worker_count < 1:
            raise ConfigError(f"--worker must be >= 1, got {self.worker_count}")
        if self.total_requests < 1:
            raise ConfigError(f"--total must be >= 1, got {self.total_requests}")
        if self.pipeline_depth < 0:
            raise ConfigError(f"--pipeline must be >= 0, got {self.pipeline_depth}")
        if self.unique_key_budget is None:
            object.__setattr__(self, "unique_key_budget", self.total_requests)
        if self.unique_key_budget < 1:
            raise ConfigError(f"--total-key must be >= 1, got {self.unique_key_budget}")
        if self.payload_size < 1:
            raise ConfigError(f"payload size must be >= 1 byte, got {self.payload_size}")

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> RunPlan:
        return cls(
            worker_count=args.worker,
            total_requests=args.total,
            pipeline_depth=args.pipeline,
            unique_key_budget=args.total_key,
            payload_size=args.data_size * 1024,
        )

    # -- Derived -----------------------------------------------------------

    @cached_property
    def _split(self) -> tuple[int, int]:
        return split_work(self.total_requests, self.worker_count, self.pipeline_depth)

    @property
    def per_worker_total(self) -> int:
        return self.total_requests // self.worker_count

    @property
    def round_count(self) -> int:
        return self._split[0]

    @property
    def pipeline_count(self) -> int:
        return self._split[1]

    @property
    def requests_per_round(self) -> int:
        return self.pipeline_count or 1

    @property
    def scheduled_requests(self) -> int:
        """Requests actually issued across all workers."""
        return self.round_count * self.requests_per_round * self.worker_count

    @property
    def total_samples(self) -> int:
        """One sample per round per worker."""
        return self.round_count * self.worker_count

    @property
    def expected_flushes(self) -> int:
        """Full metrics batches the run will produce; partial batches never flush."""
        return self.total_samples // METRICS_BATCH_SIZE
