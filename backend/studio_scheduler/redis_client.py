# backend/studio_scheduler/redis_client.py
"""
Redis connection for the slot cache.

The cache is optional: with no REDIS_URL configured, get_redis() returns None
and every availability read is computed fresh from configuration.
"""

from functools import lru_cache

from redis import Redis

from .config import settings


@lru_cache
def _client(url: str) -> Redis:
    return Redis.from_url(url, decode_responses=True)


def get_redis() -> Redis | None:
    """FastAPI dependency: shared Redis client or None when caching is off."""
    if not settings.redis_url:
        return None
    return _client(settings.redis_url)
