"""Shared Redis client factory for the access-token blocklist."""

import redis
from django.conf import settings

_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """Return a singleton Redis client using REDIS_URL from settings."""

    global _client
    if _client is None:
        _client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _client


def close_redis_client() -> None:
    """Drop the singleton so the next call reconnects (used on shutdown)."""

    global _client
    if _client is not None:
        _client.close()
        _client = None


__all__ = ["get_redis_client", "close_redis_client"]
