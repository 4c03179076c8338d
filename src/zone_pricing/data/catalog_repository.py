"""Service catalog lookups, database first with a seed file fallback."""

from __future__ import annotations

import functools
import json
import logging
from pathlib import Path
from typing import Optional

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import ServiceBasePrice, parse_active_flag

logger = logging.getLogger(__name__)


def _load_service_from_database(service_id: str) -> ServiceBasePrice | None:
    """Raises on query failure so the caller can fall back to the seed file."""
    supabase = get_supabase_client()
    if not supabase:
        raise LookupError("database not configured")

    response = (
        supabase.table("services")
        .select("id,name,price_cents,discount_percentage")
        .eq("id", service_id)
        .eq("active", True)
        .limit(1)
        .execute()
    )
    rows = response.data or []
    return ServiceBasePrice.from_record(rows[0]) if rows else None


@functools.lru_cache(maxsize=1)
def _load_services_from_file(source: Optional[Path] = None) -> dict[str, ServiceBasePrice]:
    path = source or settings.services_file
    if not path.exists():
        logger.warning(f"Service seed file not found: {path}")
        return {}

    with path.open("r", encoding="utf-8") as handle:
        rows = json.load(handle)

    services: dict[str, ServiceBasePrice] = {}
    for row in rows:
        try:
            if not parse_active_flag(row.get("active")):
                continue
            service = ServiceBasePrice.from_record(row)
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Skipping invalid service row: {e}")
            continue
        services[service.service_id] = service
    return services


def get_service_base_price(service_id: str) -> ServiceBasePrice | None:
    """Get a service's catalog price, or None when the service is unknown or inactive."""
    try:
        return _load_service_from_database(service_id)
    except LookupError:
        pass
    except Exception as e:
        logger.warning(f"Service query failed, falling back to seed file: {e}")
    return _load_services_from_file().get(service_id)


def clear_catalog_cache() -> None:
    _load_services_from_file.cache_clear()
