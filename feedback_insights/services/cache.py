"""
Cache Service Singleton - Feedback Insights Engine
feedback_insights/services/cache.py

Provides a singleton Redis cache instance.
Gracefully handles Redis unavailability.
"""
import logging
import redis
from typing import Optional
from feedback_insights.services.redis_cache import RedisCache

logger = logging.getLogger(__name__)

# Singleton instance
_cache: Optional[RedisCache] = None


def get_cache() -> Optional[RedisCache]:
    """
    Get or create Redis cache instance.

    Returns:
        RedisCache instance if Redis is available, None otherwise.

    Note:
        Returns None if Redis is unavailable, so callers can fall back to
        an in-process snapshot store.
    """
    global _cache
    if _cache is None:
        try:
            _cache = RedisCache()
            _cache.client.ping()  # Test connection
        except (redis.RedisError, ConnectionError) as e:
            logger.warning("redis_unavailable", extra={"error": str(e)})
            _cache = None
    return _cache


def reset_cache() -> None:
    """
    Reset the cache singleton.

    Useful for testing or when Redis connection needs to be re-established.
    """
    global _cache
    _cache = None
