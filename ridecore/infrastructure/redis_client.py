"""Redis async connection pool backing the dispatch locks."""

import redis.asyncio as aioredis

from ridecore.config import settings

_pool = aioredis.ConnectionPool.from_url(
    settings.redis_url,
    decode_responses=True,
    max_connections=settings.redis_max_connections,
)


async def get_redis() -> aioredis.Redis:
    """Lock client sharing the module-level pool."""
    return aioredis.Redis(connection_pool=_pool)


async def close_redis() -> None:
    await _pool.disconnect()
