"""KeyCorpus — append-only record of written keys that read operations target."""

from __future__ import annotations

import random
import threading

from ..errors import EmptyCorpus

# Separates key and member in composite records (hash / sorted-set ops).
MEMBER_SEP = ":"


def join_record(key: str, member: str) -> str:
    return f"{key}{MEMBER_SEP}{member}"


def split_record(record: str) -> tuple[str, str | None]:
    """Return ``(key, member)``; *member* is None for bare-key records."""
    key, sep, member = record.partition(MEMBER_SEP)
    return key, (member if sep else None)


class KeyCorpus:
    """Thread-safe, append-only list of key records.

    Writers append from any thread; readers sample a uniformly random
    record. The length snapshot used for sampling is taken under the same
    lock that serializes appends, so a sample never indexes past the end.
    """

    def __init__(self) -> None:
        self._records: list[str] = []
        self._lock = threading.Lock()

    def append(self, record: str) -> None:
        with self._lock:
            self._records.append(record)

    def sample_random(self) -> str:
        with self._lock:
            n = len(self._records)
            if n == 0:
                raise EmptyCorpus("no keys have been written yet")
            return self._records[random.randrange(n)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
