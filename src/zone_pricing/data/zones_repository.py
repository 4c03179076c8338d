"""Zone and price override loader with database-first approach, falling back to a JSON seed file."""

from __future__ import annotations

import functools
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, Optional

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import ServiceZonePrice, Zone

logger = logging.getLogger(__name__)


def build_zones(rows: Iterable[dict[str, Any]]) -> tuple[Zone, ...]:
    """Turn raw rows into active zones in priority order, skipping invalid rows."""

    zones: list[Zone] = []
    for row in rows:
        try:
            zone = Zone.from_record(row)
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Skipping invalid zone row {row.get('id') or row.get('zone_id')!r}: {e}")
            continue
        if zone.active:
            zones.append(zone)
    return tuple(sorted(zones, key=lambda zone: zone.priority_key))


class ZoneStore(ABC):
    """Read-only access to zones and service/zone price overrides."""

    @abstractmethod
    def find_active_zones_ordered_by_priority(self) -> tuple[Zone, ...]:
        raise NotImplementedError

    @abstractmethod
    def find_override(self, service_id: str, zone_id: str) -> Optional[ServiceZonePrice]:
        raise NotImplementedError


class StaticZoneStore(ZoneStore):
    """Zones and overrides held in memory, loaded from rows or a seed file."""

    def __init__(
        self,
        zone_rows: Iterable[dict[str, Any]] = (),
        override_rows: Iterable[dict[str, Any]] = (),
    ) -> None:
        self._zones = build_zones(zone_rows)
        self._overrides: dict[tuple[str, str], ServiceZonePrice] = {}
        for row in override_rows:
            try:
                override = ServiceZonePrice.from_record(row)
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping invalid service zone price row: {e}")
                continue
            self._overrides[(override.service_id, override.zone_id)] = override

    @classmethod
    def from_file(cls, source: Path | None = None) -> "StaticZoneStore":
        path = source or settings.zones_file
        if not path.exists():
            logger.warning(f"Zone seed file not found: {path}")
            return cls()
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        return cls(payload.get("zones", []), payload.get("service_zone_prices", []))

    def find_active_zones_ordered_by_priority(self) -> tuple[Zone, ...]:
        return self._zones

    def find_override(self, service_id: str, zone_id: str) -> Optional[ServiceZonePrice]:
        override = self._overrides.get((service_id, zone_id))
        if override is None or not override.active:
            return None
        return override


class SupabaseZoneStore(ZoneStore):
    """Zones from the ``zones`` table and overrides from ``service_zone_prices``.

    Query failures propagate so the caller can fall back.
    """

    def __init__(self, client: Any) -> None:
        self.client = client

    def find_active_zones_ordered_by_priority(self) -> tuple[Zone, ...]:
        response = (
            self.client.table("zones")
            .select("*")
            .eq("active", True)
            .order("sort_order")
            .execute()
        )
        return build_zones(response.data or [])

    def find_override(self, service_id: str, zone_id: str) -> Optional[ServiceZonePrice]:
        response = (
            self.client.table("service_zone_prices")
            .select("*")
            .eq("service_id", service_id)
            .eq("zone_id", zone_id)
            .eq("active", True)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        if not rows:
            return None
        return ServiceZonePrice.from_record(rows[0])


class FallbackZoneStore(ZoneStore):
    """Try the database first, fall back to the seed file if it is missing or failing."""

    def __init__(self, primary: ZoneStore | None, fallback: ZoneStore) -> None:
        self.primary = primary
        self.fallback = fallback

    def find_active_zones_ordered_by_priority(self) -> tuple[Zone, ...]:
        if self.primary is not None:
            try:
                return self.primary.find_active_zones_ordered_by_priority()
            except Exception as e:
                logger.warning(f"Zone query failed, falling back to seed file: {e}")
        return self.fallback.find_active_zones_ordered_by_priority()

    def find_override(self, service_id: str, zone_id: str) -> Optional[ServiceZonePrice]:
        if self.primary is not None:
            try:
                return self.primary.find_override(service_id, zone_id)
            except Exception as e:
                logger.warning(f"Override query failed, falling back to seed file: {e}")
        return self.fallback.find_override(service_id, zone_id)


@functools.lru_cache(maxsize=1)
def get_zone_store() -> ZoneStore:
    client = get_supabase_client()
    primary = SupabaseZoneStore(client) if client else None
    return FallbackZoneStore(primary, StaticZoneStore.from_file())
