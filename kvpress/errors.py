"""Exception hierarchy for kvpress."""

from __future__ import annotations

from redis.exceptions import RedisError

# Any transport/protocol failure from a store call or a pipeline commit.
StoreCallError = RedisError


class KvpressError(Exception):
    """Base class for kvpress errors."""


class ConfigError(KvpressError, ValueError):
    """Invalid run configuration."""


class UnknownOperation(KvpressError, KeyError):
    """The requested operation is not in the catalog."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"unknown operation: {self.name!r}"


class EmptyCorpus(KvpressError, LookupError):
    """A read operation found no previously written key to target."""


class SinkWriteError(KvpressError):
    """A metrics batch could not be written to the sink."""


class FlushTimeout(KvpressError):
    """Metrics flushes stopped completing before the expected count."""

    def __init__(self, completed: int, expected: int, idle_s: float) -> None:
        super().__init__(
            f"metrics flushes stalled at {completed}/{expected} "
            f"(no progress for {idle_s:g}s)"
        )
        self.completed = completed
        self.expected = expected


class FillError(KvpressError):
    """Fake-data seeding wrote nothing, so a read benchmark cannot run."""
