"""Redis access for the summary cache.

The cache is an optimisation only, so every helper here is fail-open: a Redis
outage degrades to "no cache" and is logged, never raised. Passing
``client=None`` to a helper means caching is switched off.
"""

import logging

import redis.asyncio as redis
from fastapi import Request
from redis.asyncio import ConnectionPool
from redis.exceptions import RedisError

from dealer_analytics.core.config import settings

logger = logging.getLogger(__name__)

POOL_OPTIONS = {
    "decode_responses": True,
    "socket_timeout": 5.0,
    "socket_connect_timeout": 5.0,
    "retry_on_timeout": True,
    "max_connections": 10,
}


def create_redis_client(url: str | None = None) -> redis.Redis:
    """Build a client over its own connection pool; close it with ``close_redis``."""
    pool = ConnectionPool.from_url(url or settings.REDIS_URL, **POOL_OPTIONS)
    return redis.Redis(connection_pool=pool)


async def get_redis_dep(request: Request) -> redis.Redis | None:
    """FastAPI dependency - the lifespan-managed client, or None before startup."""
    return getattr(request.app.state, "redis", None)


async def close_redis(client: redis.Redis | None) -> None:
    if client is None:
        return
    try:
        await client.aclose()
        await client.connection_pool.disconnect()
    except RedisError as e:
        logger.warning(f"Redis shutdown failed: {e}")


async def safe_redis_get(key: str, *, client: redis.Redis | None) -> str | None:
    """Read a cached value; errors count as a miss."""
    if client is None:
        return None
    try:
        value: str | None = await client.get(key)
    except RedisError as e:
        logger.warning(f"Cache read failed for {key}: {e}")
        return None
    return value


async def safe_redis_setex(
    key: str,
    ttl: int,
    value: str,
    *,
    client: redis.Redis | None,
) -> bool:
    """Store ``value`` under ``key`` for ``ttl`` seconds.

    Returns:
        Whether the value was written.
    """
    if client is None:
        return False
    try:
        await client.setex(key, ttl, value)
    except RedisError as e:
        logger.warning(f"Cache write failed for {key}: {e}")
        return False
    return True


async def safe_redis_delete(*keys: str, client: redis.Redis | None) -> int:
    """Drop cached keys and return how many existed."""
    if client is None or not keys:
        return 0
    try:
        removed: int = await client.delete(*keys)
    except RedisError as e:
        logger.warning(f"Cache delete failed for {', '.join(keys)}: {e}")
        return 0
    return removed
