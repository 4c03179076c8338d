"""Geometry-aware query engines used ahead of the in-process locator."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Sequence

from shapely.geometry import Point, Polygon, box
from shapely.strtree import STRtree

from ...models.domain import Zone

logger = logging.getLogger(__name__)


class SpatialEngine(ABC):
    """Answers "which zones contain this point", in priority order."""

    name: str = "spatial"

    @abstractmethod
    def zones_containing(self, lat: float, lng: float, zones: Sequence[Zone]) -> list[str]:
        raise NotImplementedError


@dataclass(frozen=True)
class _ShapelyIndex:
    zones: tuple[Zone, ...]
    boxes: list[Any]
    polygons: list[Polygon | None]
    tree: STRtree | None

    @classmethod
    def build(cls, zones: tuple[Zone, ...]) -> "_ShapelyIndex":
        boxes = [
            box(z.bounds.min_longitude, z.bounds.min_latitude, z.bounds.max_longitude, z.bounds.max_latitude)
            for z in zones
        ]
        polygons = [Polygon(z.polygon) if z.polygon else None for z in zones]
        return cls(zones=zones, boxes=boxes, polygons=polygons, tree=STRtree(boxes) if boxes else None)


class ShapelySpatialEngine(SpatialEngine):
    """STRtree index over zone bounding boxes, refined with polygon containment.

    A box matches when it ``covers`` the point (edges included); a polygon
    must ``contain`` it (edges excluded). The index is rebuilt whenever a
    different zone list is passed in.
    """

    name = "shapely"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._index: _ShapelyIndex | None = None

    def _index_for(self, zones: Sequence[Zone]) -> _ShapelyIndex:
        ordered = tuple(sorted((z for z in zones if z.active), key=lambda z: z.priority_key))
        with self._lock:
            if self._index is None or self._index.zones != ordered:
                logger.debug("Rebuilding spatial index for %d zones", len(ordered))
                self._index = _ShapelyIndex.build(ordered)
            return self._index

    def zones_containing(self, lat: float, lng: float, zones: Sequence[Zone]) -> list[str]:
        index = self._index_for(zones)
        if index.tree is None:
            return []
        point = Point(lng, lat)
        matches: list[str] = []
        for position in sorted(int(i) for i in index.tree.query(point)):
            if not index.boxes[position].covers(point):
                continue
            polygon = index.polygons[position]
            if polygon is not None and not polygon.contains(point):
                continue
            matches.append(index.zones[position].zone_id)
        return matches


class PostgisSpatialEngine(SpatialEngine):
    """PostGIS containment query exposed as the ``zones_containing_point`` RPC.

    The database function is expected to apply the same bounding-box and
    ``ST_Contains`` rules and to order by ``sort_order, id``.
    """

    name = "postgis"

    def __init__(self, client: Any) -> None:
        if client is None:
            raise ValueError("PostGIS engine requires a configured Supabase client.")
        self.client = client

    def zones_containing(self, lat: float, lng: float, zones: Sequence[Zone]) -> list[str]:
        response = self.client.rpc("zones_containing_point", {"lat": lat, "lng": lng}).execute()
        known = {zone.zone_id for zone in zones if zone.active}
        return [str(row["id"]) for row in (response.data or []) if str(row["id"]) in known]
