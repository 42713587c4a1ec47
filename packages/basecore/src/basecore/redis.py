"""
Redis client utilities for basecore.

Provides lazy-initialized Redis client to avoid import-time connections.
"""

import functools

import redis

from basecore.settings import get_settings


@functools.lru_cache()
def get_redis_url() -> str:
    """Get Redis URL from settings (empty string when Redis is not configured)."""
    return get_settings().REDIS_URL


@functools.lru_cache()
def get_redis_client() -> redis.Redis | None:
    """
    Get Redis client (cached).

    This function lazily initializes the Redis client to avoid import-time connections.
    Returns None when REDIS_URL is not set.
    """
    url = get_redis_url()
    if not url:
        return None
    return redis.from_url(url, decode_responses=True)
