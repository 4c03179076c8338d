"""Cache statistics and health check used by the health endpoint."""

from __future__ import annotations

import logging
from typing import Any

from ...errors import CacheUnavailable
from .backends import RedisCache
from .keys import ALL_PREFIXES
from .tiered import TwoTierCache

logger = logging.getLogger(__name__)

_CHECK_KEY = "health:check"


def cache_stats(cache: TwoTierCache) -> dict[str, Any]:
    """Entry counts per key prefix for both tiers.

    ``redis_keys`` is ``None`` when no shared tier is configured or it cannot
    be scanned; the scan error is reported under ``redis_error``.
    """
    memory_by_prefix = {prefix: cache.fallback.count(prefix) for prefix in ALL_PREFIXES}
    stats: dict[str, Any] = {
        "memory_entries": len(cache.fallback),
        "memory_by_prefix": memory_by_prefix,
        "redis_configured": isinstance(cache.primary, RedisCache),
        "redis_keys": None,
        "redis_by_prefix": None,
    }
    if isinstance(cache.primary, RedisCache):
        try:
            by_prefix = {prefix: cache.primary.count(prefix) for prefix in ALL_PREFIXES}
        except CacheUnavailable as exc:
            logger.warning(f"cache_unavailable op=stats: {exc}")
            stats["redis_error"] = str(exc)
        else:
            stats["redis_by_prefix"] = by_prefix
            stats["redis_keys"] = sum(by_prefix.values())
    return stats


def check_cache_health(cache: TwoTierCache) -> dict[str, Any]:
    """Round-trip a marker entry through the in-process tier and ping Redis."""
    cache.fallback.set(_CHECK_KEY, {"ok": True}, 60)
    memory_ok = cache.fallback.get(_CHECK_KEY) == {"ok": True}
    cache.fallback.delete(_CHECK_KEY)

    redis_configured = isinstance(cache.primary, RedisCache)
    redis_ok = False
    result: dict[str, Any] = {}
    if redis_configured:
        try:
            redis_ok = cache.primary.ping()
        except CacheUnavailable as exc:
            result["error"] = str(exc)

    result.update(
        {
            "healthy": memory_ok and (redis_ok or not redis_configured),
            "memory": memory_ok,
            "redis_configured": redis_configured,
            "redis": redis_ok,
        }
    )
    return result
