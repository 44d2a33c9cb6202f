"""CLI entry point: kvpress --op get --total 100000 --worker 20 --need-fakedata"""

from __future__ import annotations

import argparse
import logging
import sys
import threading
import time
from dataclasses import dataclass, field
from typing import Any

from tqdm import tqdm

from . import __version__
from .config import (
    DEFAULT_DATA_SIZE_KB,
    DEFAULT_FLUSH_TIMEOUT_S,
    DEFAULT_HOST,
    DEFAULT_INFLUXDB_DATABASE,
    DEFAULT_INFLUXDB_HOST,
    DEFAULT_INFLUXDB_PORT,
    DEFAULT_PIPELINE,
    DEFAULT_PORT,
    DEFAULT_WORKERS,
    POOL_SIZE,
    WRITE_TIMEOUT_S,
)
from .dispatcher import Dispatcher
from .errors import FillError, FlushTimeout, KvpressError
from .filler import FillResult, Filler
from .metrics import InfluxSink, MetricsPipeline, PipelineStats
from .plan import RunPlan
from .recorder import ResultRecorder
from .schema import BenchmarkResult
from .store import connect, server_version, timeout_for
from .workload import KeyCorpus, OperationDescriptor, lookup, operation_names

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Orchestration
# ------------------------------------------------------------------

@dataclass
class RunOutcome:
    plan: RunPlan
    operation: str
    stats: PipelineStats
    completed_flushes: int
    elapsed_s: float
    stalled: bool = False
    fill: FillResult | None = None
    workers: list[threading.Thread] = field(default_factory=list)


def execute_run(
    plan: RunPlan,
    operation: OperationDescriptor,
    *,
    client: Any,
    sink: Any,
    corpus: KeyCorpus | None = None,
    fill_client: Any = None,
    fill_count: int = 0,
    flush_timeout: float | None = DEFAULT_FLUSH_TIMEOUT_S,
    show_progress: bool = False,
) -> RunOutcome:
    """Seed (optionally), start workers, and wait for the expected flushes.

    Workers are not joined: the run ends once ``plan.expected_flushes``
    metrics batches have been written, or when flushing stalls for
    *flush_timeout* seconds.
    """
    corpus = corpus if corpus is not None else KeyCorpus()

    if plan.pipeline_count > 0:
        print(f"Use Pipeline: {plan.pipeline_count}")

    fill = None
    if not operation.is_write:
        if fill_client is not None and fill_count > 0:
            fill = _fill(operation, corpus, fill_client, fill_count, plan, show_progress)
        elif len(corpus) == 0:
            logger.warning(
                "%s reads from an empty key corpus; every call will fail "
                "(pass --need-fakedata to seed it)", operation.name,
            )

    metrics = MetricsPipeline.for_plan(sink, plan)
    bar = tqdm(total=plan.scheduled_requests, desc="Benchmark", disable=not show_progress)
    dispatcher = Dispatcher(client, metrics, corpus, progress=bar.update)

    metrics.start()
    t0 = time.perf_counter()
    workers = dispatcher.run(plan, operation)
    print("Start sending metrics...")

    stalled = False
    completed = 0
    try:
        completed = metrics.wait_for_flushes(plan.expected_flushes, idle_timeout=flush_timeout)
    except FlushTimeout as e:
        print(f"WARNING: {e}", file=sys.stderr)
        completed = e.completed
        stalled = True
    finally:
        bar.close()
    elapsed = time.perf_counter() - t0

    metrics.close()
    return RunOutcome(
        plan=plan,
        operation=operation.name,
        stats=metrics.stats(),
        completed_flushes=completed,
        elapsed_s=elapsed,
        stalled=stalled,
        fill=fill,
        workers=workers,
    )


def _fill(
    operation: OperationDescriptor,
    corpus: KeyCorpus,
    client: Any,
    count: int,
    plan: RunPlan,
    show_progress: bool,
) -> FillResult:
    print("Start to fill up fake data.")
    with tqdm(total=count, desc="Fill up fake data", disable=not show_progress) as bar:
        filler = Filler(client, corpus, payload_size=plan.payload_size, progress=bar.update)
        result = filler.fill(operation, count, plan.unique_key_budget)
    print(
        f"Inserting fake data. Success: {result.succeeded}, "
        f"Failure: {result.failed}."
    )
    if result.succeeded == 0:
        raise FillError(f"no {operation.seed.name} records were written, aborting")
    return result


# ------------------------------------------------------------------
# Reporting
# ------------------------------------------------------------------

def build_result(outcome: RunOutcome, extra_params: dict | None = None) -> BenchmarkResult:
    plan, stats = outcome.plan, outcome.stats
    elapsed = outcome.elapsed_s
    throughput = plan.scheduled_requests / elapsed if elapsed > 0 else 0.0
    metrics: dict[str, object] = {
        "elapsed_s": round(elapsed, 3),
        "throughput_ops": round(throughput, 1),
        "scheduled_requests": plan.scheduled_requests,
        "expected_samples": plan.total_samples,
        "samples": stats.received,
        "failed_samples": stats.failed_samples,
        "dropped_samples": stats.dropped,
        "expected_flushes": plan.expected_flushes,
        "completed_flushes": outcome.completed_flushes,
        "failed_flushes": stats.failed_batches,
        "unflushed_samples": stats.unflushed,
        "stalled": outcome.stalled,
    }
    metrics.update(stats.latency)
    parameters = {
        "workers": plan.worker_count,
        "total": plan.total_requests,
        "pipeline": plan.pipeline_count,
        "rounds_per_worker": plan.round_count,
        "unique_keys": plan.unique_key_budget,
        "payload_bytes": plan.payload_size,
    }
    parameters.update(extra_params or {})
    fill = outcome.fill._asdict() if outcome.fill is not None else None
    return BenchmarkResult(
        benchmark=f"kvpress/{outcome.operation}/w{plan.worker_count}-p{plan.pipeline_count}",
        operation=outcome.operation,
        parameters=parameters,
        metrics=metrics,
        fill=fill,
    )


def print_summary(result: BenchmarkResult) -> None:
    m = result.metrics
    print(f"\n{'='*60}")
    print(f"  {result.benchmark}")
    print(f"{'='*60}")
    print(f"  Elapsed:   {m['elapsed_s']:.3f}s  ({m['throughput_ops']:.0f} ops/s)")
    print(f"  Samples:   {m['samples']}/{m['expected_samples']}  "
          f"failed={m['failed_samples']}  dropped={m['dropped_samples']}")
    print(f"  Flushes:   {m['completed_flushes']}/{m['expected_flushes']}  "
          f"failed={m['failed_flushes']}  unflushed samples={m['unflushed_samples']}")
    print(f"\n  {'--- Latency (microseconds) ---':^50}")
    print(f"  {'p50':>10} {'p95':>10} {'p99':>10} {'p99.9':>10}")
    print(f"  {m['p50_us']:>10.1f} {m['p95_us']:>10.1f} "
          f"{m['p99_us']:>10.1f} {m['p99_9_us']:>10.1f}")
    print(f"{'='*60}\n")


# ------------------------------------------------------------------
# CLI
# ------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kvpress",
        description="Pressure-test a Redis-protocol key-value store.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--host", default=DEFAULT_HOST, help="Store host (default: %(default)s)")
    parser.add_argument("-p", "--port", type=int, default=DEFAULT_PORT,
                        help="Store port (default: %(default)s)")
    parser.add_argument("-w", "--worker", type=int, default=DEFAULT_WORKERS,
                        help="Number of concurrent workers (default: %(default)s)")
    parser.add_argument("--total", type=int, required=True, help="Total request count")
    parser.add_argument(
        "--op", required=True,
        help=f"Operation to benchmark. Supported: {', '.join(operation_names())}",
    )
    parser.add_argument("--total-key", type=int, default=None,
                        help="Unique key count (default: --total)")
    parser.add_argument("--pipeline", type=int, default=DEFAULT_PIPELINE,
                        help="Requests per pipeline, 0 disables pipelining (default: %(default)s)")
    parser.add_argument("--data-size", type=int, default=DEFAULT_DATA_SIZE_KB,
                        help="String value size in KB (default: %(default)s)")
    parser.add_argument("--total-data", type=int, default=None,
                        help="Fake records to seed for READ operations (default: --total)")
    parser.add_argument("--need-fakedata", action="store_true",
                        help="Seed fake data before a READ benchmark")
    parser.add_argument("--influxdb-host", default=DEFAULT_INFLUXDB_HOST,
                        help="InfluxDB host (default: %(default)s)")
    parser.add_argument("--influxdb-port", type=int, default=DEFAULT_INFLUXDB_PORT,
                        help="InfluxDB UDP port (default: %(default)s)")
    parser.add_argument("--influxdb-database", default=DEFAULT_INFLUXDB_DATABASE,
                        help="InfluxDB database (default: %(default)s)")
    parser.add_argument("--flush-timeout", type=float, default=DEFAULT_FLUSH_TIMEOUT_S,
                        help="Give up after this many seconds without a metrics flush "
                             "(default: %(default)s)")
    parser.add_argument("--output-dir", type=str, default="results",
                        help="Directory for result JSON files (default: results/)")
    parser.add_argument("--no-progress", action="store_true", help="Hide progress bars")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Diagnostic log level (default: %(default)s)")
    return parser


def run(args: argparse.Namespace) -> int:
    operation = lookup(args.op)
    plan = RunPlan.from_args(args)

    client = connect(
        args.host, args.port,
        timeout=timeout_for(operation.is_write),
        pool_size=max(POOL_SIZE, plan.worker_count),
    )
    fill_client = None
    fill_count = 0
    if not operation.is_write and args.need_fakedata:
        fill_client = connect(args.host, args.port, timeout=WRITE_TIMEOUT_S)
        fill_count = args.total_data if args.total_data is not None else args.total

    sink = InfluxSink(args.influxdb_host, args.influxdb_port, args.influxdb_database)
    try:
        outcome = execute_run(
            plan, operation,
            client=client,
            sink=sink,
            fill_client=fill_client,
            fill_count=fill_count,
            flush_timeout=args.flush_timeout,
            show_progress=not args.no_progress,
        )
    finally:
        sink.close()

    result = build_result(outcome)
    print_summary(result)
    in_flight = outcome.plan.total_samples - outcome.stats.received - outcome.stats.dropped
    if in_flight > 0:
        print(f"{in_flight} samples were still in flight at exit.")

    recorder = ResultRecorder(
        operation=operation.name,
        server=f"{args.host}:{args.port}",
        server_version=server_version(client),
    )
    recorder.record(result)
    path = recorder.save(args.output_dir)
    print(f"Results saved to {path}")
    return 1 if outcome.stalled else 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return run(args)
    except KvpressError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
