"""Redis client construction.

Redis is only used to share rate-limit buckets between API instances.
The client is built by the service container when REDIS_URL is set and
closed by the application lifespan; otherwise the in-memory limiter is
used and no Redis server is needed.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


def build_redis(redis_url: str) -> aioredis.Redis:  # type: ignore[type-arg]
    client = aioredis.from_url(
        redis_url,
        decode_responses=True,
        max_connections=20,
    )
    logger.info("Redis client configured")
    return client


async def check_redis(client: aioredis.Redis) -> bool:  # type: ignore[type-arg]
    """Ping Redis at startup; a failure is logged, not raised."""
    try:
        await client.ping()  # type: ignore[misc]
    except aioredis.RedisError:
        logger.exception("Redis connection failed on startup")
        return False
    logger.info("Redis connected")
    return True
