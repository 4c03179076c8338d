import json
import math

import pytest

from zone_pricing.errors import InvalidCoordinate, PolygonParseError
from zone_pricing.services.geospatial import (
    parse_polygon,
    point_in_polygon,
    point_on_boundary,
    validate_coordinates,
)

# (lng, lat) vertices
SQUARE = ((0.0, 0.0), (0.0, 10.0), (10.0, 10.0), (10.0, 0.0))
ELL = ((0.0, 0.0), (10.0, 0.0), (10.0, 4.0), (4.0, 4.0), (4.0, 10.0), (0.0, 10.0))


def test_square_contains_center_point():
    assert point_in_polygon(5, 5, SQUARE)


def test_square_excludes_far_point():
    assert not point_in_polygon(15, 15, SQUARE)


@pytest.mark.parametrize(
    "lat,lng",
    [(0, 0), (0, 10), (10, 10), (10, 0), (0, 5), (5, 0), (10, 5), (5, 10)],
)
def test_points_on_edges_and_vertices_are_outside(lat, lng):
    assert not point_in_polygon(lat, lng, SQUARE)


def test_concave_polygon_notch_is_outside():
    assert point_in_polygon(2, 7, ELL)
    assert point_in_polygon(7, 2, ELL)
    assert not point_in_polygon(7, 7, ELL)


def test_parse_polygon_accepts_supported_forms():
    closed = [[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]]
    expected = ((0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0))
    geojson = {"type": "Polygon", "coordinates": [closed]}

    assert parse_polygon(geojson) == expected
    assert parse_polygon(json.dumps(geojson)) == expected
    assert parse_polygon(closed) == expected
    assert parse_polygon(closed[:-1]) == expected
    assert parse_polygon("POLYGON((0 0, 10 0, 10 10, 0 10, 0 0))") == expected


def test_parse_polygon_without_geometry_returns_none():
    assert parse_polygon(None) is None
    assert parse_polygon("") is None


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        {"type": "Point", "coordinates": [1, 2]},
        {"type": "Polygon", "coordinates": []},
        [[0, 0], [10, 10]],
        [[0, 0], [10, 0], [float("nan"), 10]],
        [[0, 0], [10, 10], [10, 0], [0, 10]],  # bow tie
        [[0, 0], [5, 5], [10, 10]],  # collinear
        [[0, 0], ["a", 1], [1, 1]],
        "POLYGON EMPTY",
        42,
    ],
)
def test_parse_polygon_rejects_unusable_geometry(raw):
    with pytest.raises(PolygonParseError):
        parse_polygon(raw)


def test_validate_coordinates_accepts_extremes():
    assert validate_coordinates(90, -180) == (90.0, -180.0)
    assert validate_coordinates("25.2", "55.3") == (25.2, 55.3)


@pytest.mark.parametrize(
    "lat,lng,field",
    [
        (91, 0, "lat"),
        (-90.0001, 0, "lat"),
        (0, 180.5, "lng"),
        (math.nan, 0, "lat"),
        (0, math.inf, "lng"),
        (None, 0, "lat"),
        (0, "east", "lng"),
        (True, 0, "lat"),
    ],
)
def test_validate_coordinates_rejects_without_clamping(lat, lng, field):
    with pytest.raises(InvalidCoordinate) as excinfo:
        validate_coordinates(lat, lng)
    assert excinfo.value.field == field


def test_points_a_hair_from_an_edge_are_not_treated_as_on_it():
    triangle = ((0.0, 0.0), (10.0, 0.0), (10.0, 10.0))

    assert point_in_polygon(5 - 1e-14, 5, triangle)
    assert not point_in_polygon(5 + 1e-14, 5, triangle)
    assert not point_in_polygon(5, 5, triangle)
    assert point_on_boundary(5, 5, triangle)
    assert not point_on_boundary(5 - 1e-14, 5, triangle)
