"""In-process point locator: bounding-box pre-filter plus ray casting."""

from __future__ import annotations

from typing import Sequence

from ...models.domain import Zone
from ..geospatial import point_in_polygon


def zone_contains(zone: Zone, lat: float, lng: float) -> bool:
    if not zone.bounds.contains(lat, lng):
        return False
    if zone.polygon is None:
        return True
    return point_in_polygon(lat, lng, zone.polygon)


def locate(lat: float, lng: float, zones: Sequence[Zone]) -> str | None:
    """Return the id of the first active zone, in priority order, containing the point.

    Coordinates must already be validated. Zones may overlap; the priority
    order decides.
    """

    for zone in sorted(zones, key=lambda z: z.priority_key):
        if not zone.active:
            continue
        if zone_contains(zone, lat, lng):
            return zone.zone_id
    return None
