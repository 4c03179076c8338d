"""Two-tier cache for zone resolution and pricing results."""

from __future__ import annotations

import functools

from ...db.redis import get_redis_client
from .backends import CacheBackend, RedisCache, TTLCache
from .keys import (
    ALL_PREFIXES,
    PRICING_DATA_PREFIX,
    SERVICE_PRICES_PREFIX,
    ZONE_LIST_PREFIX,
    ZONE_RESOLUTION_PREFIX,
    pricing_data_key,
    service_prices_key,
    ttl_seconds,
    zone_list_key,
    zone_resolution_key,
)
from .stats import cache_stats, check_cache_health
from .sweeper import CacheSweeper
from .tiered import TwoTierCache


@functools.lru_cache(maxsize=1)
def get_cache() -> TwoTierCache:
    client = get_redis_client()
    primary = RedisCache(client) if client is not None else None
    return TwoTierCache(primary, TTLCache())


def reset_cache() -> None:
    get_cache.cache_clear()


__all__ = [
    "ALL_PREFIXES",
    "CacheBackend",
    "CacheSweeper",
    "PRICING_DATA_PREFIX",
    "RedisCache",
    "SERVICE_PRICES_PREFIX",
    "TTLCache",
    "TwoTierCache",
    "cache_stats",
    "check_cache_health",
    "ZONE_LIST_PREFIX",
    "ZONE_RESOLUTION_PREFIX",
    "get_cache",
    "pricing_data_key",
    "reset_cache",
    "service_prices_key",
    "ttl_seconds",
    "zone_list_key",
    "zone_resolution_key",
]
