"""
Cache Service Singleton - Cocoa Contest Evaluation Engine
cocoa_contest/services/cache.py

Provides a singleton Redis cache for computed rankings.
Gracefully handles Redis being disabled or unavailable.
"""
import logging
import redis
from typing import Optional
from cocoa_contest.services.redis_cache import RedisCache
from cocoa_contest.config import settings

logger = logging.getLogger(__name__)

# Singleton instance
_cache: Optional[RedisCache] = None


def get_cache() -> Optional[RedisCache]:
    """
    Get or create Redis cache instance.

    Returns:
        RedisCache instance if caching is enabled and Redis answers a ping,
        None otherwise.

    Note:
        Returns None if Redis is unavailable, allowing rankings to be
        recomputed on every read instead (graceful degradation).
    """
    global _cache
    if not settings.CACHE_ENABLED:
        return None
    if _cache is None:
        try:
            _cache = RedisCache()
            _cache.client.ping()  # Test connection
        except (redis.RedisError, ConnectionError) as e:
            logger.warning("Redis unavailable, ranking cache disabled: %s", e)
            _cache = None
    return _cache


def reset_cache() -> None:
    """
    Reset the cache singleton.

    Useful for testing or when Redis connection needs to be re-established.
    """
    global _cache
    _cache = None
