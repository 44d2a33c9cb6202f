"""Metrics pipeline — batches latency samples and flushes them to InfluxDB.

Workers call :meth:`MetricsPipeline.submit`, which never blocks. A single
loop thread drains the intake into fixed-size batches and hands each full
batch to a bounded flush pool. Every successful flush posts one completion
on a result queue, which :meth:`MetricsPipeline.wait_for_flushes` counts.
A trailing partial batch is never flushed; it is reported as ``unflushed``.
"""

from __future__ import annotations

import logging
import math
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from influxdb import InfluxDBClient
from influxdb.exceptions import InfluxDBClientError

from .config import FLUSH_WORKERS, MEASUREMENT, METRICS_BATCH_SIZE
from .errors import FlushTimeout, SinkWriteError
from .plan import RunPlan
from .schema import Sample

logger = logging.getLogger(__name__)

_STOP = object()


# ---------------------------------------------------------------------------
# Points and the InfluxDB sink
# ---------------------------------------------------------------------------

def make_point(sample: Sample) -> dict:
    return {
        "measurement": MEASUREMENT,
        "tags": {
            "op": sample.operation,
            "failed": "true" if not sample.succeeded else "false",
        },
        "fields": {"latency_seconds": sample.duration_s},
        "time": sample.timestamp_ns,
    }


class PointBatch:
    def __init__(self) -> None:
        self.points: list[dict] = []

    def add(self, point: dict) -> None:
        self.points.append(point)

    def size(self) -> int:
        return len(self.points)


class InfluxSink:
    """Writes point batches to an InfluxDB UDP listener.

    UDP writes are fire-and-forget, so a send only fails on a local socket
    or serialization error.
    """

    def __init__(self, host: str, port: int, database: str) -> None:
        self._client = InfluxDBClient(
            host=host,
            database=database,
            use_udp=True,
            udp_port=port,
        )

    def new_batch(self) -> PointBatch:
        return PointBatch()

    def send(self, batch: PointBatch) -> None:
        try:
            self._client.write_points(batch.points)
        except (InfluxDBClientError, OSError, ValueError) as e:
            raise SinkWriteError(f"failed to write {batch.size()} points: {e}") from e

    def close(self) -> None:
        self._client.close()


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------

def percentiles(durations_s: list[float]) -> dict[str, float]:
    """Nearest-rank p50/p95/p99/p99.9 of *durations_s*, in microseconds."""
    if not durations_s:
        return {"p50_us": 0.0, "p95_us": 0.0, "p99_us": 0.0, "p99_9_us": 0.0}
    ordered = sorted(durations_s)
    n = len(ordered)

    def _pct(p: float) -> float:
        idx = min(max(math.ceil(p / 100.0 * n) - 1, 0), n - 1)
        return ordered[idx] * 1e6

    return {
        "p50_us": round(_pct(50), 2),
        "p95_us": round(_pct(95), 2),
        "p99_us": round(_pct(99), 2),
        "p99_9_us": round(_pct(99.9), 2),
    }


@dataclass
class PipelineStats:
    received: int = 0
    failed_samples: int = 0
    dropped: int = 0
    flushed_batches: int = 0
    failed_batches: int = 0
    flushed_samples: int = 0
    unflushed: int = 0
    latency: dict[str, float] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# MetricsPipeline
# ---------------------------------------------------------------------------

class MetricsPipeline:
    def __init__(
        self,
        sink,
        capacity: int,
        *,
        batch_size: int = METRICS_BATCH_SIZE,
        flush_workers: int = FLUSH_WORKERS,
    ) -> None:
        self._sink = sink
        self._batch_size = batch_size
        # Queue(maxsize=0) would be unbounded.
        self._intake: queue.Queue = queue.Queue(maxsize=max(1, capacity))
        self._results: queue.Queue = queue.Queue()
        self._executor = ThreadPoolExecutor(
            max_workers=flush_workers, thread_name_prefix="kvpress-flush",
        )
        self._lock = threading.Lock()
        self._batch = sink.new_batch()
        self._durations: list[float] = []
        self._stats = PipelineStats()
        self._thread: threading.Thread | None = None

    @classmethod
    def for_plan(cls, sink, plan: RunPlan, **kwargs) -> MetricsPipeline:
        return cls(sink, capacity=plan.total_samples, **kwargs)

    @staticmethod
    def expected_flushes(plan: RunPlan) -> int:
        return plan.expected_flushes

    # -- Intake ------------------------------------------------------------

    def submit(self, sample: Sample) -> None:
        """Enqueue *sample* without blocking; a full intake drops it."""
        try:
            self._intake.put_nowait(sample)
        except queue.Full:
            with self._lock:
                self._stats.dropped += 1
            logger.warning("metrics intake full, dropped sample for %s", sample.operation)

    # -- Loop --------------------------------------------------------------

    def start(self) -> threading.Thread:
        self._thread = threading.Thread(
            target=self.run_loop, name="kvpress-metrics", daemon=True,
        )
        self._thread.start()
        return self._thread

    def run_loop(self) -> None:
        while True:
            item = self._intake.get()
            if item is _STOP:
                return
            self._accept(item)

    def _accept(self, sample: Sample) -> None:
        full = None
        with self._lock:
            self._batch.add(make_point(sample))
            self._durations.append(sample.duration_s)
            self._stats.received += 1
            if not sample.succeeded:
                self._stats.failed_samples += 1
            if self._batch.size() >= self._batch_size:
                full, self._batch = self._batch, self._sink.new_batch()
        if full is not None:
            self._executor.submit(self._flush, full)

    def _flush(self, batch) -> None:
        try:
            self._sink.send(batch)
        except SinkWriteError as e:
            logger.error("metrics flush failed: %s", e)
            self._flush_failed()
            return
        except Exception:
            logger.exception("metrics flush of %d points crashed", batch.size())
            self._flush_failed()
            return
        with self._lock:
            self._stats.flushed_batches += 1
            self._stats.flushed_samples += batch.size()
        self._results.put(True)

    def _flush_failed(self) -> None:
        with self._lock:
            self._stats.failed_batches += 1
        self._results.put(False)

    # -- Completion --------------------------------------------------------

    def wait_for_flushes(self, expected: int, idle_timeout: float | None = None) -> int:
        """Block until *expected* batches have flushed successfully.

        Raises :class:`FlushTimeout` if *idle_timeout* seconds pass without
        any flush finishing. Failed flushes never count toward *expected*.
        """
        completed = 0
        while completed < expected:
            try:
                ok = self._results.get(timeout=idle_timeout)
            except queue.Empty:
                raise FlushTimeout(completed, expected, idle_timeout) from None
            if ok:
                completed += 1
        return completed

    def stats(self) -> PipelineStats:
        with self._lock:
            snapshot = PipelineStats(**{
                k: v for k, v in vars(self._stats).items() if k != "latency"
            })
            snapshot.unflushed = self._batch.size()
            durations = list(self._durations)
        snapshot.latency = percentiles(durations)
        return snapshot

    def close(self, timeout: float | None = None) -> None:
        """Stop the loop and wait for in-flight flushes."""
        if self._thread is not None:
            self._intake.put(_STOP)
            self._thread.join(timeout)
        self._executor.shutdown(wait=True)
