"""Operation catalog: every benchmarkable command, its kind, and how to seed it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from redis.exceptions import RedisError

from ..config import MAX_FANOUT
from ..errors import EmptyCorpus, UnknownOperation
from .corpus import KeyCorpus, join_record, split_record
from .keys import fanout, make_key, make_member, make_score, make_value, score_range

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# WorkloadContext: everything a generator needs besides the store handle
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WorkloadContext:
    corpus: KeyCorpus
    key_budget: int
    payload_size: int = 15
    record: bool = False  # append written keys to the corpus


# ---------------------------------------------------------------------------
# Write generators
#
# ``handle`` is either a redis client or a pipeline; on a pipeline the
# command is only queued and errors surface at execute().
# ---------------------------------------------------------------------------

def _set(handle: Any, ctx: WorkloadContext) -> None:
    key = make_key("set", ctx.key_budget)
    handle.set(key, make_value(ctx.payload_size))
    if ctx.record:
        ctx.corpus.append(key)


def _mset(handle: Any, ctx: WorkloadContext) -> None:
    mapping = {
        make_key("mset", ctx.key_budget): make_value(ctx.payload_size)
        for _ in range(fanout())
    }
    handle.mset(mapping)
    if ctx.record:
        for key in mapping:
            ctx.corpus.append(key)


def _push(handle: Any, ctx: WorkloadContext, op: str) -> None:
    key = make_key(op, ctx.key_budget)
    values = [make_value() for _ in range(fanout())]
    getattr(handle, op)(key, *values)
    if ctx.record:
        ctx.corpus.append(key)


def _lpush(handle: Any, ctx: WorkloadContext) -> None:
    _push(handle, ctx, "lpush")


def _rpush(handle: Any, ctx: WorkloadContext) -> None:
    _push(handle, ctx, "rpush")


def _sadd(handle: Any, ctx: WorkloadContext) -> None:
    key = make_key("sadd", ctx.key_budget)
    handle.sadd(key, *(make_value() for _ in range(fanout())))
    if ctx.record:
        ctx.corpus.append(key)


def _zadd(handle: Any, ctx: WorkloadContext) -> None:
    key = make_key("zadd", ctx.key_budget)
    members = {make_member(): make_score() for _ in range(fanout())}
    handle.zadd(key, members)
    if ctx.record:
        for member in members:
            ctx.corpus.append(join_record(key, member))


def _hset(handle: Any, ctx: WorkloadContext) -> None:
    key = make_key("hset", ctx.key_budget)
    field = make_member()
    handle.hset(key, field, make_value())
    if ctx.record:
        ctx.corpus.append(join_record(key, field))


def _hmset(handle: Any, ctx: WorkloadContext) -> None:
    key = make_key("hmset", ctx.key_budget)
    mapping = {make_member(): make_value() for _ in range(fanout())}
    handle.hset(key, mapping=mapping)
    if ctx.record:
        for field in mapping:
            ctx.corpus.append(join_record(key, field))


# ---------------------------------------------------------------------------
# Read generators: targets always come from the corpus
# ---------------------------------------------------------------------------

def _sample_key(ctx: WorkloadContext) -> str:
    return split_record(ctx.corpus.sample_random())[0]


def _sample_member(ctx: WorkloadContext) -> tuple[str, str]:
    key, member = split_record(ctx.corpus.sample_random())
    return key, member if member is not None else make_member()


def _get(handle: Any, ctx: WorkloadContext) -> None:
    handle.get(_sample_key(ctx))


def _mget(handle: Any, ctx: WorkloadContext) -> None:
    handle.mget([_sample_key(ctx) for _ in range(fanout())])


def _lrange(handle: Any, ctx: WorkloadContext) -> None:
    handle.lrange(_sample_key(ctx), 0, MAX_FANOUT)


def _smembers(handle: Any, ctx: WorkloadContext) -> None:
    handle.smembers(_sample_key(ctx))


def _scard(handle: Any, ctx: WorkloadContext) -> None:
    handle.scard(_sample_key(ctx))


def _zcard(handle: Any, ctx: WorkloadContext) -> None:
    handle.zcard(_sample_key(ctx))


def _zcount(handle: Any, ctx: WorkloadContext) -> None:
    lo, hi = score_range()
    handle.zcount(_sample_key(ctx), lo, hi)


def _zscore(handle: Any, ctx: WorkloadContext) -> None:
    handle.zscore(*_sample_member(ctx))


def _zrange(handle: Any, ctx: WorkloadContext) -> None:
    handle.zrange(_sample_key(ctx), 0, MAX_FANOUT)


def _zrangebyscore(handle: Any, ctx: WorkloadContext) -> None:
    lo, hi = score_range()
    handle.zrangebyscore(_sample_key(ctx), lo, hi)


def _zrevrangebyscore(handle: Any, ctx: WorkloadContext) -> None:
    lo, hi = score_range()
    handle.zrevrangebyscore(_sample_key(ctx), hi, lo)


def _zrank(handle: Any, ctx: WorkloadContext) -> None:
    handle.zrank(*_sample_member(ctx))


def _hget(handle: Any, ctx: WorkloadContext) -> None:
    handle.hget(*_sample_member(ctx))


def _hmget(handle: Any, ctx: WorkloadContext) -> None:
    key, field = _sample_member(ctx)
    # Two extra fields drawn from other records; they usually miss.
    fields = [field] + [_sample_member(ctx)[1] for _ in range(2)]
    handle.hmget(key, fields)


def _hgetall(handle: Any, ctx: WorkloadContext) -> None:
    handle.hgetall(_sample_key(ctx))


# ---------------------------------------------------------------------------
# OperationDescriptor
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OperationDescriptor:
    """One benchmarkable command.

    Read operations name the write operation (``seed_name``) whose keys they
    consume; write operations seed themselves.
    """

    name: str
    is_write: bool
    generator: Callable[[Any, WorkloadContext], None]
    seed_name: str | None = None

    @property
    def seed(self) -> OperationDescriptor:
        if self.is_write:
            return self
        return CATALOG[self.seed_name]

    def run(self, handle: Any, ctx: WorkloadContext) -> bool:
        """Issue one call; return False on a store error or an empty corpus."""
        try:
            self.generator(handle, ctx)
        except (RedisError, EmptyCorpus) as e:
            logger.debug("%s failed: %s", self.name, e)
            return False
        return True


def _write(name: str, generator: Callable) -> OperationDescriptor:
    return OperationDescriptor(name=name, is_write=True, generator=generator)


def _read(name: str, generator: Callable, seed: str) -> OperationDescriptor:
    return OperationDescriptor(name=name, is_write=False, generator=generator, seed_name=seed)


CATALOG: dict[str, OperationDescriptor] = {
    d.name: d
    for d in (
        _write("set", _set),
        _write("mset", _mset),
        _write("lpush", _lpush),
        _write("rpush", _rpush),
        _write("sadd", _sadd),
        _write("zadd", _zadd),
        _write("hset", _hset),
        _write("hmset", _hmset),
        _read("get", _get, seed="set"),
        _read("mget", _mget, seed="set"),
        _read("lrange", _lrange, seed="lpush"),
        _read("smembers", _smembers, seed="sadd"),
        _read("scard", _scard, seed="sadd"),
        _read("zcard", _zcard, seed="zadd"),
        _read("zcount", _zcount, seed="zadd"),
        _read("zscore", _zscore, seed="zadd"),
        _read("zrange", _zrange, seed="zadd"),
        _read("zrangebyscore", _zrangebyscore, seed="zadd"),
        _read("zrevrangebyscore", _zrevrangebyscore, seed="zadd"),
        _read("zrank", _zrank, seed="zadd"),
        _read("hget", _hget, seed="hset"),
        _read("hmget", _hmget, seed="hset"),
        _read("hgetall", _hgetall, seed="hset"),
    )
}


def lookup(name: str) -> OperationDescriptor:
    """Return the descriptor for *name* (case-insensitive)."""
    try:
        return CATALOG[name.lower()]
    except KeyError:
        raise UnknownOperation(name) from None


def operation_names() -> list[str]:
    return list(CATALOG)
