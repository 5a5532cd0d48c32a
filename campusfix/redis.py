"""Redis connection management."""

import redis.asyncio as aioredis

_redis: aioredis.Redis | None = None


def get_redis() -> aioredis.Redis:
    """Get the shared Redis connection. Must be initialized first via init_redis()."""
    if _redis is None:
        raise RuntimeError("Redis not initialized")
    return _redis


async def init_redis(url: str) -> aioredis.Redis:
    """Initialize the global Redis connection and verify it answers."""
    global _redis
    client = aioredis.from_url(url, decode_responses=True)
    await client.ping()
    _redis = client
    return _redis


async def close_redis() -> None:
    """Close the Redis connection."""
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
