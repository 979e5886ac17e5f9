"""Redis connection pool.

Redis backs the per-IP rate limiter only; no auth state lives there.
Tokens are stateless and memberships are read from the database, so the
app keeps working (without rate limiting) when Redis is down.
"""

from typing import Optional

import redis.asyncio as aioredis

from wedsite.config import settings

# Global Redis connection pool (initialized in lifespan)
_redis: Optional[aioredis.Redis] = None


async def init_redis(url: Optional[str] = None) -> aioredis.Redis:
    """Initialize the Redis connection pool and verify it answers."""
    global _redis
    client = aioredis.from_url(
        url or settings.redis_url,
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


def set_redis(client: Optional[aioredis.Redis]) -> None:
    """Install a client directly (tests use an in-memory fake)."""
    global _redis
    _redis = client
