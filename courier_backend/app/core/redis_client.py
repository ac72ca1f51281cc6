"""
Redis client for the courier service

Shared store for rate-limit counters when more than one API instance runs.
Returns None when REDIS_URL is not configured (graceful degradation to the
process-local store).
"""
import logging
from typing import Optional
import redis.asyncio as redis
from app.core.config import settings

logger = logging.getLogger(__name__)

# Global Redis client (initialized lazily)
_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get Redis client, initializing if needed.

    Returns None if REDIS_URL not configured or unreachable.
    """
    global _redis_client

    if not settings.REDIS_URL:
        return None

    if _redis_client is None:
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True
        )
        try:
            await client.ping()
        except (redis.RedisError, OSError) as e:
            logger.warning(f"Redis connection failed: {e}. Falling back to in-memory.")
            await client.aclose()
            return None
        _redis_client = client
        logger.info("Redis connection established")

    return _redis_client


async def close_redis():
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
