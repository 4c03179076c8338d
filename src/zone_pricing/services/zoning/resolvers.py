"""Zone resolver implementations and the factory that picks one."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from ...db.supabase import get_supabase_client
from ...errors import SpatialEngineFailure
from ...models.domain import Zone
from .locator import locate
from .spatial import PostgisSpatialEngine, ShapelySpatialEngine, SpatialEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolverResult:
    zone_id: str | None
    source: str
    degraded: bool = False


class ZoneResolver(ABC):
    """Contract shared by every way of mapping a coordinate to a zone."""

    name: str = "resolver"

    @abstractmethod
    def resolve(self, lat: float, lng: float, zones: Sequence[Zone]) -> str | None:
        raise NotImplementedError

    def resolve_with_source(self, lat: float, lng: float, zones: Sequence[Zone]) -> ResolverResult:
        return ResolverResult(self.resolve(lat, lng, zones), self.name)


class PointLocatorResolver(ZoneResolver):
    name = "point_locator"

    def resolve(self, lat: float, lng: float, zones: Sequence[Zone]) -> str | None:
        return locate(lat, lng, zones)


class SpatialQueryResolver(ZoneResolver):
    """First zone returned by a spatial engine; engine errors become SpatialEngineFailure."""

    def __init__(self, engine: SpatialEngine) -> None:
        self.engine = engine
        self.name = f"spatial_{engine.name}"

    def resolve(self, lat: float, lng: float, zones: Sequence[Zone]) -> str | None:
        try:
            matches = self.engine.zones_containing(lat, lng, zones)
        except Exception as exc:
            raise SpatialEngineFailure(f"{self.engine.name} query failed: {exc}") from exc
        return matches[0] if matches else None


class FallbackZoneResolver(ZoneResolver):
    """Primary resolver with the point locator behind it.

    A primary answer of ``None`` is final; only failures fall through.
    """

    def __init__(self, primary: ZoneResolver, fallback: ZoneResolver | None = None) -> None:
        self.primary = primary
        self.fallback = fallback or PointLocatorResolver()
        self.name = primary.name

    def resolve(self, lat: float, lng: float, zones: Sequence[Zone]) -> str | None:
        return self.resolve_with_source(lat, lng, zones).zone_id

    def resolve_with_source(self, lat: float, lng: float, zones: Sequence[Zone]) -> ResolverResult:
        try:
            return ResolverResult(self.primary.resolve(lat, lng, zones), self.primary.name)
        except SpatialEngineFailure as exc:
            logger.warning(f"Spatial engine failed, falling back to point locator: {exc}")
        return ResolverResult(self.fallback.resolve(lat, lng, zones), self.fallback.name, degraded=True)


def get_resolver(engine: str) -> ZoneResolver:
    match engine:
        case "shapely":
            return FallbackZoneResolver(SpatialQueryResolver(ShapelySpatialEngine()))
        case "postgis":
            client = get_supabase_client()
            if client is None:
                logger.warning("PostGIS engine selected but Supabase is not configured; using point locator")
                return PointLocatorResolver()
            return FallbackZoneResolver(SpatialQueryResolver(PostgisSpatialEngine(client)))
        case "none":
            return PointLocatorResolver()
        case _:
            raise ValueError(f"Unknown spatial engine '{engine}'.")
