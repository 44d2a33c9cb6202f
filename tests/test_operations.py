"""Tests for the operation catalog and key/value synthesis."""

from __future__ import annotations

import re
import unittest

from fakes import FakeStore

from kvpress.config import MAX_FANOUT, MIN_FANOUT
from kvpress.errors import UnknownOperation
from kvpress.workload import CATALOG, KeyCorpus, WorkloadContext, lookup, split_record

KEY_RE = re.compile(r"^(?P<op>[a-z]+)-(?P<idx>\d{20})$")

WRITE_OPS = {"set", "mset", "lpush", "rpush", "sadd", "zadd", "hset", "hmset"}
COMPOSITE_WRITES = {"zadd", "hset", "hmset"}


def _ctx(corpus=None, budget=50, record=True, payload=32):
    return WorkloadContext(
        corpus=corpus if corpus is not None else KeyCorpus(),
        key_budget=budget,
        payload_size=payload,
        record=record,
    )


class TestLookup(unittest.TestCase):
    def test_case_insensitive(self):
        self.assertIs(lookup("ZRangeByScore"), CATALOG["zrangebyscore"])
        self.assertIs(lookup("GET"), CATALOG["get"])

    def test_unknown_operation(self):
        with self.assertRaises(UnknownOperation) as ctx:
            lookup("flushall")
        self.assertIn("flushall", str(ctx.exception))
        self.assertIsInstance(ctx.exception, KeyError)

    def test_write_classification(self):
        self.assertEqual({n for n, d in CATALOG.items() if d.is_write}, WRITE_OPS)

    def test_every_read_is_seeded_by_a_write(self):
        for name, desc in CATALOG.items():
            self.assertTrue(desc.seed.is_write, name)
            if desc.is_write:
                self.assertIs(desc.seed, desc)

    def test_seed_mapping(self):
        expected = {
            "get": "set", "mget": "set", "lrange": "lpush",
            "smembers": "sadd", "scard": "sadd",
            "zcard": "zadd", "zscore": "zadd", "zrank": "zadd",
            "hget": "hset", "hmget": "hset", "hgetall": "hset",
        }
        for read, write in expected.items():
            self.assertEqual(lookup(read).seed.name, write)


class TestWriteGenerators(unittest.TestCase):
    def test_writes_populate_corpus_with_own_keys(self):
        for name in WRITE_OPS:
            with self.subTest(op=name):
                corpus = KeyCorpus()
                store = FakeStore()
                for _ in range(5):
                    self.assertTrue(CATALOG[name].run(store, _ctx(corpus, budget=7)))
                self.assertGreater(len(corpus), 0)
                for _ in range(20):
                    key, member = split_record(corpus.sample_random())
                    m = KEY_RE.match(key)
                    self.assertIsNotNone(m, key)
                    self.assertEqual(m.group("op"), name)
                    self.assertLess(int(m.group("idx")), 7)
                    if name in COMPOSITE_WRITES:
                        self.assertIsNotNone(member)
                    else:
                        self.assertIsNone(member)

    def test_no_recording_when_disabled(self):
        corpus = KeyCorpus()
        CATALOG["set"].run(FakeStore(), _ctx(corpus, record=False))
        self.assertEqual(len(corpus), 0)

    def test_set_value_is_padded_to_payload_size(self):
        store = FakeStore()
        CATALOG["set"].run(store, _ctx(payload=64))
        name, args, _ = store.calls[0]
        self.assertEqual(name, "set")
        self.assertEqual(len(args[1]), 64)
        self.assertTrue(args[1].isdigit())

    def test_container_fanout_bounds(self):
        store = FakeStore()
        for _ in range(200):
            CATALOG["sadd"].run(store, _ctx(record=False))
        for name, args, _ in store.calls:
            self.assertTrue(MIN_FANOUT <= len(args) - 1 <= MAX_FANOUT)

    def test_zadd_members_unique(self):
        store = FakeStore()
        CATALOG["zadd"].run(store, _ctx(record=False))
        _, args, _ = store.calls[0]
        members = args[1]
        self.assertEqual(len(members), len(set(members)))

    def test_store_error_reported_as_failure(self):
        store = FakeStore(fail_commands={"set"})
        corpus = KeyCorpus()
        self.assertFalse(CATALOG["set"].run(store, _ctx(corpus)))
        self.assertEqual(len(corpus), 0)


class TestReadGenerators(unittest.TestCase):
    def test_reads_fail_on_empty_corpus(self):
        store = FakeStore()
        for name, desc in CATALOG.items():
            if desc.is_write:
                continue
            with self.subTest(op=name):
                self.assertFalse(desc.run(store, _ctx(record=False)))
        self.assertEqual(store.calls, [])

    def test_reads_target_seeded_keys(self):
        for name, desc in CATALOG.items():
            if desc.is_write:
                continue
            with self.subTest(op=name):
                corpus = KeyCorpus()
                seed_store = FakeStore()
                for _ in range(10):
                    desc.seed.run(seed_store, _ctx(corpus))
                written_keys = {split_record(r)[0] for r in corpus._records}

                store = FakeStore()
                self.assertTrue(desc.run(store, _ctx(corpus, record=False)))
                self.assertEqual(len(store.calls), 1)
                called, args, _ = store.calls[0]
                self.assertEqual(called, name)
                keys = args[0] if name == "mget" else [args[0]]
                for key in keys:
                    self.assertIn(key, written_keys)

    def test_point_reads_use_recorded_member(self):
        corpus = KeyCorpus()
        CATALOG["hset"].run(FakeStore(), _ctx(corpus))
        key, member = split_record(corpus.sample_random())
        store = FakeStore()
        CATALOG["hget"].run(store, _ctx(corpus, record=False))
        self.assertEqual(store.calls[0][1], (key, member))

    def test_score_ranges_are_ordered(self):
        corpus = KeyCorpus()
        CATALOG["zadd"].run(FakeStore(), _ctx(corpus))
        store = FakeStore()
        for _ in range(50):
            CATALOG["zcount"].run(store, _ctx(corpus, record=False))
            CATALOG["zrevrangebyscore"].run(store, _ctx(corpus, record=False))
        for name, args, _ in store.calls:
            if name == "zcount":
                self.assertLessEqual(args[1], args[2])
            else:
                self.assertGreaterEqual(args[1], args[2])


if __name__ == "__main__":
    unittest.main()
