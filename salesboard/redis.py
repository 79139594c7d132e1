"""Redis connection used for rate-limit windows."""

import os

import redis.asyncio as aioredis

from salesboard.logging_config import get_logger

logger = get_logger(__name__)

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

_redis: aioredis.Redis | None = None


def get_redis() -> aioredis.Redis:
    """Return the shared client; raises RuntimeError before init_redis()."""
    if _redis is None:
        raise RuntimeError("Redis not initialized; call init_redis() first")
    return _redis


async def init_redis(url: str = REDIS_URL) -> aioredis.Redis:
    global _redis
    client = aioredis.from_url(url, decode_responses=True)
    await client.ping()
    _redis = client
    logger.info("redis_connected", url=url)
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
