"""Geospatial helper functions for zone matching."""

from __future__ import annotations

import json
import math
import re
from fractions import Fraction
from typing import Any, Sequence

from shapely.geometry import Polygon

from ..errors import InvalidCoordinate, PolygonParseError

Ring = tuple[tuple[float, float], ...]
"""Polygon ring as (longitude, latitude) vertices, implicitly closed."""

_WKT_POLYGON = re.compile(r"^\s*POLYGON\s*\(\(([^)]+)\)", re.IGNORECASE)


def _as_float(value: Any, field: str) -> float:
    if value is None or isinstance(value, bool):
        raise InvalidCoordinate(f"{field} is required", field=field)
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidCoordinate(f"{field} must be a number", field=field) from exc
    if not math.isfinite(number):
        raise InvalidCoordinate(f"{field} must be finite", field=field)
    return number


def validate_coordinates(lat: Any, lng: Any) -> tuple[float, float]:
    """Return (lat, lng) as floats or raise InvalidCoordinate. Values are never clamped."""

    latitude = _as_float(lat, "lat")
    longitude = _as_float(lng, "lng")
    if not -90.0 <= latitude <= 90.0:
        raise InvalidCoordinate("lat must be between -90 and 90", field="lat")
    if not -180.0 <= longitude <= 180.0:
        raise InvalidCoordinate("lng must be between -180 and 180", field="lng")
    return latitude, longitude


def _ring_from_pairs(pairs: Sequence[Any]) -> Ring:
    vertices: list[tuple[float, float]] = []
    for pair in pairs:
        if not isinstance(pair, (list, tuple)) or len(pair) < 2:
            raise PolygonParseError(f"vertex {pair!r} is not a [lng, lat] pair")
        try:
            lng, lat = float(pair[0]), float(pair[1])
        except (TypeError, ValueError) as exc:
            raise PolygonParseError(f"vertex {pair!r} is not numeric") from exc
        if not (math.isfinite(lng) and math.isfinite(lat)):
            raise PolygonParseError(f"vertex {pair!r} is not finite")
        vertices.append((lng, lat))

    if len(vertices) > 1 and vertices[0] == vertices[-1]:
        vertices.pop()
    if len(set(vertices)) < 3:
        raise PolygonParseError("polygon needs at least 3 distinct vertices")

    shape = Polygon(vertices)
    if not shape.is_valid or shape.area == 0:
        raise PolygonParseError("polygon ring is self-intersecting or degenerate")
    return tuple(vertices)


def _ring_from_wkt(wkt: str) -> Ring:
    match = _WKT_POLYGON.match(wkt)
    if not match:
        raise PolygonParseError("unsupported WKT geometry")
    pairs = [part.split() for part in match.group(1).split(",")]
    return _ring_from_pairs(pairs)


def parse_polygon(raw: Any) -> Ring | None:
    """Parse a zone polygon into a ring of (lng, lat) vertices.

    Accepts a GeoJSON ``Polygon`` (dict or JSON string; the exterior ring is
    used), a bare list of ``[lng, lat]`` pairs, or a WKT ``POLYGON((lng lat,
    ...))`` string. Returns ``None`` when no polygon is present and raises
    ``PolygonParseError`` when one is present but unusable.
    """

    if raw is None or raw == "" or raw == []:
        return None

    if isinstance(raw, str):
        text = raw.strip()
        if text.upper().startswith("POLYGON"):
            return _ring_from_wkt(text)
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise PolygonParseError(f"polygon is not valid JSON: {exc}") from exc

    if isinstance(raw, dict):
        if str(raw.get("type", "")).lower() != "polygon":
            raise PolygonParseError(f"unsupported geometry type {raw.get('type')!r}")
        rings = raw.get("coordinates")
        if not isinstance(rings, list) or not rings:
            raise PolygonParseError("GeoJSON polygon has no coordinates")
        return _ring_from_pairs(rings[0])

    if isinstance(raw, (list, tuple)):
        return _ring_from_pairs(raw)

    raise PolygonParseError(f"unsupported polygon value of type {type(raw).__name__}")


def ring_to_geojson(ring: Ring) -> dict:
    closed = [list(vertex) for vertex in ring] + [list(ring[0])]
    return {"type": "Polygon", "coordinates": [closed]}


_ExactVertex = tuple[Fraction, Fraction]


def _exact_ring(ring: Ring) -> list[_ExactVertex]:
    return [(Fraction(lng), Fraction(lat)) for lng, lat in ring]


def _on_segment(lat: Fraction, lng: Fraction, start: _ExactVertex, end: _ExactVertex) -> bool:
    (lng_a, lat_a), (lng_b, lat_b) = start, end
    if (lng_b - lng_a) * (lat - lat_a) != (lat_b - lat_a) * (lng - lng_a):
        return False
    return (
        min(lng_a, lng_b) <= lng <= max(lng_a, lng_b)
        and min(lat_a, lat_b) <= lat <= max(lat_a, lat_b)
    )


def point_on_segment(
    lat: float, lng: float, start: tuple[float, float], end: tuple[float, float]
) -> bool:
    """True if (lat, lng) lies exactly on the segment between two (lng, lat) vertices."""

    return _on_segment(
        Fraction(lat),
        Fraction(lng),
        (Fraction(start[0]), Fraction(start[1])),
        (Fraction(end[0]), Fraction(end[1])),
    )


def _on_boundary(lat: Fraction, lng: Fraction, exact: list[_ExactVertex]) -> bool:
    return any(_on_segment(lat, lng, exact[i], exact[i - 1]) for i in range(len(exact)))


def point_on_boundary(lat: float, lng: float, ring: Ring) -> bool:
    return _on_boundary(Fraction(lat), Fraction(lng), _exact_ring(ring))


def point_in_polygon(lat: float, lng: float, ring: Ring) -> bool:
    """Ray-casting test against a (lng, lat) ring.

    Points on an edge or vertex are outside, matching shapely's ``contains``.
    Comparisons are exact on the input floats.
    """

    exact = _exact_ring(ring)
    lat_q, lng_q = Fraction(lat), Fraction(lng)
    if _on_boundary(lat_q, lng_q, exact):
        return False

    inside = False
    for i in range(len(exact)):
        j = i - 1
        lng_i, lat_i = exact[i]
        lng_j, lat_j = exact[j]
        if ((lng_i > lng_q) != (lng_j > lng_q)) and (
            lat_q < (lat_j - lat_i) * (lng_q - lng_i) / (lng_j - lng_i) + lat_i
        ):
            inside = not inside
    return inside
