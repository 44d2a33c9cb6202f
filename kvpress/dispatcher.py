"""Dispatcher — runs the benchmark operation across concurrent workers."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

from redis.exceptions import RedisError

from .plan import RunPlan, split_work
from .schema import Sample
from .workload import KeyCorpus, OperationDescriptor, WorkloadContext

logger = logging.getLogger(__name__)

__all__ = ["Dispatcher", "split_work"]


class Dispatcher:
    """Starts ``plan.worker_count`` daemon threads against a shared client.

    Each worker runs ``plan.round_count`` rounds. A round is one call, or
    with pipelining ``plan.pipeline_count`` calls committed in one round
    trip and timed as a unit. Every round submits exactly one
    :class:`Sample` to *metrics*.
    """

    def __init__(
        self,
        client: Any,
        metrics,
        corpus: KeyCorpus,
        *,
        progress: Callable[[int], Any] | None = None,
    ) -> None:
        self._client = client
        self._metrics = metrics
        self._corpus = corpus
        self._progress = progress

    def run(self, plan: RunPlan, operation: OperationDescriptor) -> list[threading.Thread]:
        """Start the workers and return them without joining."""
        ctx = WorkloadContext(
            corpus=self._corpus,
            key_budget=plan.unique_key_budget,
            payload_size=plan.payload_size,
        )
        workers = []
        for i in range(plan.worker_count):
            t = threading.Thread(
                target=self._work,
                args=(plan.round_count, plan.pipeline_count, operation, ctx),
                name=f"kvpress-worker-{i}",
                daemon=True,
            )
            t.start()
            workers.append(t)
        return workers

    # -- Worker ------------------------------------------------------------

    def _work(
        self,
        rounds: int,
        depth: int,
        operation: OperationDescriptor,
        ctx: WorkloadContext,
    ) -> None:
        if depth > 0:
            pipe = self._client.pipeline(transaction=False)
            for _ in range(rounds):
                self._run_batch(pipe, operation, ctx, depth)
        else:
            for _ in range(rounds):
                self._run_single(operation, ctx)

    def _run_single(self, operation: OperationDescriptor, ctx: WorkloadContext) -> None:
        t0 = time.perf_counter()
        ok = operation.run(self._client, ctx)
        elapsed = time.perf_counter() - t0
        self._record(operation, elapsed, ok, 1)

    def _run_batch(
        self,
        pipe: Any,
        operation: OperationDescriptor,
        ctx: WorkloadContext,
        depth: int,
    ) -> None:
        t0 = time.perf_counter()
        queued = sum(1 for _ in range(depth) if operation.run(pipe, ctx))
        if queued == 0:
            # Nothing to commit: every read found an empty corpus.
            ok = False
        else:
            try:
                pipe.execute()
                ok = True
            except RedisError as e:
                logger.debug("%s pipeline commit failed: %s", operation.name, e)
                ok = False
        elapsed = time.perf_counter() - t0
        self._record(operation, elapsed, ok, depth)

    def _record(self, operation: OperationDescriptor, elapsed: float, ok: bool, n: int) -> None:
        self._metrics.submit(Sample(
            duration_s=elapsed,
            operation=operation.name,
            succeeded=ok,
            timestamp_ns=time.time_ns(),
        ))
        if self._progress is not None:
            self._progress(n)
