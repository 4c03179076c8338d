"""Cache key builders and per-tier TTLs."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from ...config import settings

ZONE_RESOLUTION_PREFIX = "zone:resolution:"
PRICING_DATA_PREFIX = "pricing:data:"
ZONE_LIST_PREFIX = "zones:list:"
SERVICE_PRICES_PREFIX = "service:prices:"

ALL_PREFIXES = (
    ZONE_RESOLUTION_PREFIX,
    PRICING_DATA_PREFIX,
    ZONE_LIST_PREFIX,
    SERVICE_PRICES_PREFIX,
)


def ttl_seconds(prefix: str) -> int:
    ttls = {
        ZONE_RESOLUTION_PREFIX: settings.zone_resolution_ttl_seconds,
        PRICING_DATA_PREFIX: settings.pricing_data_ttl_seconds,
        ZONE_LIST_PREFIX: settings.zone_list_ttl_seconds,
        SERVICE_PRICES_PREFIX: settings.service_prices_ttl_seconds,
    }
    return ttls[prefix]


def zone_resolution_key(lat: float, lng: float, precision: Optional[int] = None) -> str:
    """Coordinates rounded to a fixed precision; 4 decimals is roughly 11 m."""
    digits = settings.cache_coordinate_precision if precision is None else precision
    return f"{ZONE_RESOLUTION_PREFIX}{lat:.{digits}f}_{lng:.{digits}f}"


def pricing_data_key(zone_id: Optional[str], service_ids: Iterable[str], target: Optional[datetime] = None) -> str:
    services = ",".join(sorted(service_ids))
    moment = target.isoformat() if target is not None else "now"
    return f"{PRICING_DATA_PREFIX}{zone_id or 'global'}:{services}:{moment}"


def zone_list_key() -> str:
    return f"{ZONE_LIST_PREFIX}active"


def service_prices_key(service_id: str) -> str:
    return f"{SERVICE_PRICES_PREFIX}{service_id}"
