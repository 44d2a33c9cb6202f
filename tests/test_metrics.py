"""Tests for the metrics pipeline and the InfluxDB sink adapter."""

from __future__ import annotations

import time
import unittest
from unittest import mock

from fakes import FakeSink

from kvpress.config import MEASUREMENT
from kvpress.errors import FlushTimeout, SinkWriteError
from kvpress.metrics import InfluxSink, MetricsPipeline, PointBatch, make_point, percentiles
from kvpress.plan import RunPlan
from kvpress.schema import Sample


def _sample(ok=True, duration=0.001, op="set"):
    return Sample(duration_s=duration, operation=op, succeeded=ok, timestamp_ns=time.time_ns())


class TestMakePoint(unittest.TestCase):
    def test_point_shape(self):
        s = Sample(duration_s=0.25, operation="get", succeeded=False, timestamp_ns=123)
        self.assertEqual(make_point(s), {
            "measurement": MEASUREMENT,
            "tags": {"op": "get", "failed": "true"},
            "fields": {"latency_seconds": 0.25},
            "time": 123,
        })

    def test_success_tag(self):
        self.assertEqual(make_point(_sample(ok=True))["tags"]["failed"], "false")


class TestPercentiles(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(percentiles([])["p99_us"], 0.0)

    def test_nearest_rank(self):
        durations = [i / 1e6 for i in range(1, 101)]  # 1..100 us
        pct = percentiles(durations)
        self.assertAlmostEqual(pct["p50_us"], 50.0)
        self.assertAlmostEqual(pct["p95_us"], 95.0)
        self.assertAlmostEqual(pct["p99_us"], 99.0)
        self.assertAlmostEqual(pct["p99_9_us"], 100.0)


class TestMetricsPipeline(unittest.TestCase):
    def _pipeline(self, sink, capacity=1000):
        pipeline = MetricsPipeline(sink, capacity=capacity)
        pipeline.start()
        self.addCleanup(pipeline.close)
        return pipeline

    def test_flush_every_full_batch(self):
        sink = FakeSink()
        pipeline = self._pipeline(sink)
        for i in range(250):
            pipeline.submit(_sample(ok=i % 10 != 0))
        self.assertEqual(pipeline.wait_for_flushes(2, idle_timeout=5), 2)
        pipeline.close()
        self.assertEqual(sink.sent, [100, 100])
        stats = pipeline.stats()
        self.assertEqual(stats.received, 250)
        self.assertEqual(stats.failed_samples, 25)
        self.assertEqual(stats.flushed_batches, 2)
        self.assertEqual(stats.flushed_samples, 200)
        self.assertEqual(stats.unflushed, 50)

    def test_no_empty_or_oversized_batches(self):
        sink = FakeSink()
        pipeline = self._pipeline(sink, capacity=10)
        self.assertEqual(pipeline.wait_for_flushes(0, idle_timeout=0.1), 0)
        pipeline.close()
        self.assertEqual(sink.sent, [])

        sink = FakeSink()
        pipeline = self._pipeline(sink)
        for _ in range(1000):
            pipeline.submit(_sample())
        pipeline.wait_for_flushes(10, idle_timeout=5)
        pipeline.close()
        self.assertEqual(sink.sent, [100] * 10)
        self.assertEqual(pipeline.stats().unflushed, 0)

    def test_sink_failure_withholds_completion(self):
        sink = FakeSink(fail=True)
        pipeline = self._pipeline(sink)
        for _ in range(100):
            pipeline.submit(_sample())
        with self.assertRaises(FlushTimeout) as ctx:
            pipeline.wait_for_flushes(1, idle_timeout=0.5)
        self.assertEqual(ctx.exception.completed, 0)
        self.assertEqual(ctx.exception.expected, 1)
        pipeline.close()
        stats = pipeline.stats()
        self.assertEqual(stats.failed_batches, 1)
        self.assertEqual(stats.flushed_batches, 0)

    def test_unexpected_sink_error_is_logged_and_counted(self):
        sink = mock.Mock(wraps=FakeSink())
        sink.send.side_effect = [RuntimeError("encoder bug"), None]
        pipeline = self._pipeline(sink)
        with self.assertLogs("kvpress.metrics", level="ERROR") as logs:
            for _ in range(200):
                pipeline.submit(_sample())
            self.assertEqual(pipeline.wait_for_flushes(1, idle_timeout=5), 1)
            pipeline.close()
        self.assertIn("encoder bug", str(logs.records[0].exc_info[1]))
        stats = pipeline.stats()
        self.assertEqual(stats.failed_batches, 1)
        self.assertEqual(stats.flushed_batches, 1)

    def test_submit_never_blocks_when_full(self):
        pipeline = MetricsPipeline(FakeSink(), capacity=2)  # loop not started
        self.addCleanup(pipeline.close)
        for _ in range(5):
            pipeline.submit(_sample())
        self.assertEqual(pipeline.stats().dropped, 3)

    def test_expected_flushes_comes_from_plan(self):
        plan = RunPlan(worker_count=4, total_requests=400)
        self.assertEqual(MetricsPipeline.expected_flushes(plan), 4)
        pipeline = MetricsPipeline.for_plan(FakeSink(), plan)
        self.addCleanup(pipeline.close)
        self.assertEqual(pipeline._intake.maxsize, 400)


class TestInfluxSink(unittest.TestCase):
    def test_send_writes_points(self):
        with mock.patch("kvpress.metrics.InfluxDBClient") as client_cls:
            sink = InfluxSink("10.0.0.1", 8089, "udp")
            client_cls.assert_called_once_with(
                host="10.0.0.1", database="udp", use_udp=True, udp_port=8089,
            )
            batch = sink.new_batch()
            batch.add(make_point(_sample()))
            self.assertEqual(batch.size(), 1)
            sink.send(batch)
            client_cls.return_value.write_points.assert_called_once_with(batch.points)
            sink.close()
            client_cls.return_value.close.assert_called_once()

    def test_send_failure_raises_sink_write_error(self):
        with mock.patch("kvpress.metrics.InfluxDBClient") as client_cls:
            client_cls.return_value.write_points.side_effect = OSError("network unreachable")
            sink = InfluxSink("10.0.0.1", 8089, "udp")
            with self.assertRaises(SinkWriteError):
                sink.send(PointBatch())


if __name__ == "__main__":
    unittest.main()
