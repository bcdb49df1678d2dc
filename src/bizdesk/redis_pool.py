"""Redis connection — shared counters for rate limiting.

Learn: The pool is created in the app lifespan. Redis is optional:
when it is not initialized, get_redis() raises and the rate limiter
lets requests through (e.g. in tests).
"""

from typing import Optional

import redis.asyncio as aioredis

from bizdesk.config import settings

# Global Redis connection pool (initialized in lifespan)
_redis: Optional[aioredis.Redis] = None


async def init_redis() -> aioredis.Redis:
    """Initialize the Redis connection pool."""
    global _redis
    client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    await client.ping()
    _redis = client
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    """Get the Redis connection (must be initialized first)."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


async def ping_redis() -> None:
    """Ping the shared pool, or a one-off connection if there is none."""
    if _redis is not None:
        await _redis.ping()
        return
    client = aioredis.from_url(settings.redis_url)
    try:
        await client.ping()
    finally:
        await client.aclose()
