"""Filler — seeds fake data so read benchmarks have keys to target."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, NamedTuple

from redis.exceptions import RedisError

from .config import FILL_BATCH_SIZE, FILL_WORKERS
from .workload import KeyCorpus, OperationDescriptor, WorkloadContext

logger = logging.getLogger(__name__)


class FillResult(NamedTuple):
    succeeded: int
    failed: int


def _shares(total: int, parts: int) -> list[int]:
    """Split *total* into *parts* near-equal shares that sum to *total*."""
    base, extra = divmod(total, parts)
    return [base + (1 if i < extra else 0) for i in range(parts)]


class Filler:
    """Writes ``total_count`` records with the target's seed operation.

    Records are written in pipelined batches of *batch_size* by a fixed
    pool of *workers* threads. A batch whose commit fails counts entirely
    as failed; nothing is retried.
    """

    def __init__(
        self,
        client: Any,
        corpus: KeyCorpus,
        *,
        payload_size: int,
        workers: int = FILL_WORKERS,
        batch_size: int = FILL_BATCH_SIZE,
        progress: Callable[[int], Any] | None = None,
    ) -> None:
        self._client = client
        self._corpus = corpus
        self._payload_size = payload_size
        self._workers = workers
        self._batch_size = batch_size
        self._progress = progress

    def fill(
        self,
        target: OperationDescriptor,
        total_count: int,
        key_budget: int,
    ) -> FillResult:
        seed = target.seed
        ctx = WorkloadContext(
            corpus=self._corpus,
            key_budget=key_budget,
            payload_size=self._payload_size,
            record=True,
        )
        succeeded = failed = 0
        with ThreadPoolExecutor(
            max_workers=self._workers, thread_name_prefix="kvpress-fill",
        ) as pool:
            futures = [
                pool.submit(self._fill_share, seed, ctx, n)
                for n in _shares(total_count, self._workers)
                if n > 0
            ]
            for future in as_completed(futures):
                ok, bad = future.result()
                succeeded += ok
                failed += bad
        return FillResult(succeeded, failed)

    def _fill_share(
        self,
        seed: OperationDescriptor,
        ctx: WorkloadContext,
        count: int,
    ) -> tuple[int, int]:
        pipe = self._client.pipeline(transaction=False)
        ok = bad = 0
        for start in range(0, count, self._batch_size):
            n = min(self._batch_size, count - start)
            for _ in range(n):
                seed.run(pipe, ctx)
            try:
                pipe.execute()
            except RedisError as e:
                logger.warning("fill batch of %d %s writes failed: %s", n, seed.name, e)
                bad += n
                continue
            ok += n
            if self._progress is not None:
                self._progress(n)
        return ok, bad
