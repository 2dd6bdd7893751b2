"""Thin response cache on top of Django's cache framework.

Keys are namespaced and versioned: bumping a namespace version makes every
previously cached entry in it unreachable, so writers never need to know
which query strings were cached.
"""

import hashlib
import logging
import time
from typing import Any, Callable

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)


def _version_key(namespace: str) -> str:
    return f"{namespace}:version"


def _seed_version() -> int:
    # Microseconds since the epoch: larger than any version handed out before,
    # so a lost version key never points back at entries still in the cache.
    return time.time_ns() // 1000


def _current_version(namespace: str) -> int:
    version = cache.get(_version_key(namespace))
    if version is None:
        cache.add(_version_key(namespace), _seed_version(), timeout=None)
        version = cache.get(_version_key(namespace))
    return int(version)


def cache_key(namespace: str, *parts: Any) -> str:
    raw = "|".join(str(part) for part in parts)
    digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()[:32]
    return f"{namespace}:v{_current_version(namespace)}:{digest}"


def cached(namespace: str, parts: tuple, producer: Callable[[], Any]) -> Any:
    """Return the cached value for ``parts`` or compute, store and return it.

    Cache outages degrade to calling ``producer`` directly.
    """
    try:
        key = cache_key(namespace, *parts)
        value = cache.get(key)
    except Exception as exc:  # pragma: no cover - cache backend outage
        logger.warning("Cache unavailable for %s: %s", namespace, exc)
        return producer()
    if value is not None:
        return value
    value = producer()
    try:
        cache.set(key, value, timeout=settings.CACHE_TTL_SECONDS)
    except Exception as exc:  # pragma: no cover - cache backend outage
        logger.warning("Could not store %s in cache: %s", namespace, exc)
    return value


def invalidate(namespace: str) -> None:
    """Make every cached entry of ``namespace`` stale."""
    try:
        try:
            cache.incr(_version_key(namespace))
        except ValueError:
            cache.add(_version_key(namespace), _seed_version(), timeout=None)
    except Exception as exc:  # pragma: no cover - cache backend outage
        logger.warning("Could not invalidate cache namespace %s: %s", namespace, exc)


STORY_LIST = "stories:list"
CATEGORY_LIST = "categories:list"

__all__ = ["cached", "invalidate", "cache_key", "STORY_LIST", "CATEGORY_LIST"]
