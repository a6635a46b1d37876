"""Redis client helper -- provides async Redis connection."""
import logging

from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError

from app.config import settings

logger = logging.getLogger(__name__)

_redis: Redis | None = None


class RedisUnavailable(RedisError):
    """Raised when Redis is disabled by configuration or cannot be reached."""


async def get_redis() -> Redis:
    """Get or create async Redis client."""
    global _redis
    if not settings.REDIS_ENABLED:
        raise RedisUnavailable("Redis disabled (REDIS_ENABLED=false)")
    if _redis is None:
        client = from_url(settings.REDIS_URL, decode_responses=True)
        try:
            await client.ping()
        except (RedisError, OSError) as exc:
            logger.warning("Redis unavailable, operations will use fallback: %s", exc)
            await client.aclose()
            raise RedisUnavailable(str(exc)) from exc
        logger.info("Redis connected: %s", settings.REDIS_URL)
        _redis = client
    return _redis


async def close_redis():
    """Close Redis connection."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None
