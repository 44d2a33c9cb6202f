"""Tests for fake-data seeding."""

from __future__ import annotations

import unittest

from fakes import FakeStore

from kvpress.filler import Filler, FillResult, _shares
from kvpress.workload import KeyCorpus, lookup


class TestShares(unittest.TestCase):
    def test_shares_sum_to_total(self):
        for total in (0, 1, 7, 100, 1001):
            shares = _shares(total, 4)
            self.assertEqual(len(shares), 4)
            self.assertEqual(sum(shares), total)
            self.assertLessEqual(max(shares) - min(shares), 1)


class TestFiller(unittest.TestCase):
    def test_fill_for_get_seeds_set_records(self):
        store = FakeStore()
        corpus = KeyCorpus()
        progressed = []
        filler = Filler(store, corpus, payload_size=16, progress=progressed.append)
        result = filler.fill(lookup("get"), 1000, key_budget=1000)
        self.assertEqual(result, FillResult(succeeded=1000, failed=0))
        self.assertEqual(store.count("set"), 1000)
        self.assertEqual(store.count("get"), 0)
        self.assertEqual(len(corpus), 1000)
        self.assertEqual(sum(progressed), 1000)
        # 4 fillers x 250 records in batches of 100, 100, 50.
        self.assertEqual(store.executes, 12)
        self.assertLessEqual(max(progressed), 100)

    def test_failed_commit_discards_whole_batch(self):
        store = FakeStore(fail_execute=True)
        filler = Filler(store, KeyCorpus(), payload_size=16, workers=2, batch_size=100)
        succeeded, failed = filler.fill(lookup("hget"), 450, key_budget=10)
        self.assertEqual(succeeded, 0)
        self.assertEqual(failed, 450)
        self.assertEqual(store.executes, 6)

    def test_fill_uses_fixed_worker_pool(self):
        store = FakeStore()
        filler = Filler(store, KeyCorpus(), payload_size=16, workers=3, batch_size=10)
        result = filler.fill(lookup("zscore"), 2, key_budget=10)
        self.assertEqual(result.succeeded, 2)
        self.assertEqual(store.count("zadd"), 2)
        self.assertEqual(store.executes, 2)


if __name__ == "__main__":
    unittest.main()
