"""Store connector — builds the shared redis-py client used by all workers."""

from __future__ import annotations

import logging

import redis
from redis.exceptions import RedisError

from .config import CONNECT_TIMEOUT_S, POOL_SIZE, READ_TIMEOUT_S, WRITE_TIMEOUT_S

logger = logging.getLogger(__name__)


def connect(
    host: str,
    port: int,
    *,
    timeout: float,
    pool_size: int = POOL_SIZE,
) -> redis.Redis:
    """Return a client backed by a blocking, thread-safe connection pool.

    *timeout* bounds every socket read/write; a call that exceeds it raises
    ``redis.TimeoutError`` and is counted as a failed sample. Workers beyond
    *pool_size* wait for a free connection instead of erroring.
    """
    pool = redis.BlockingConnectionPool(
        host=host,
        port=port,
        db=0,
        max_connections=pool_size,
        timeout=None,
        socket_timeout=timeout,
        socket_connect_timeout=CONNECT_TIMEOUT_S,
    )
    return redis.Redis(connection_pool=pool)


def timeout_for(is_write: bool) -> float:
    return WRITE_TIMEOUT_S if is_write else READ_TIMEOUT_S


def server_version(client: redis.Redis) -> str | None:
    """Return the server's ``redis_version``, or None if it can't be read."""
    try:
        info = client.info("server")
    except RedisError as e:
        logger.warning("could not read server info: %s", e)
        return None
    return info.get("redis_version")
