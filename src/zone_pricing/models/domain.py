"""Domain models for zones, price overrides and pricing settings."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from ..errors import PolygonParseError
from ..services.geospatial import Ring, parse_polygon, ring_to_geojson

logger = logging.getLogger(__name__)


def clamp_percentage(value: Any) -> float:
    """Clamp to [0, 100]; missing, non-numeric, non-finite or negative becomes 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number <= 0:
        return 0.0
    return min(number, 100.0)


_TRUE_STRINGS = frozenset({"true", "t", "yes", "y", "1"})
_FALSE_STRINGS = frozenset({"false", "f", "no", "n", "0"})


def parse_active_flag(value: Any, default: bool = True) -> bool:
    """Read an ``active`` column that may arrive as a bool, 0/1 or a string.

    Anything unrecognised raises ``ValueError`` so the row is skipped rather
    than silently switched on.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ValueError(f"unrecognised active flag: {value!r}")


def _optional_percentage(value: Any) -> Optional[float]:
    if value is None:
        return None
    return clamp_percentage(value)


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned latitude/longitude rectangle, inclusive on every edge."""

    min_latitude: float
    max_latitude: float
    min_longitude: float
    max_longitude: float

    def __post_init__(self) -> None:
        values = (self.min_latitude, self.max_latitude, self.min_longitude, self.max_longitude)
        if not all(math.isfinite(v) for v in values):
            raise ValueError("bounding box values must be finite")
        if self.min_latitude > self.max_latitude:
            raise ValueError("min_latitude must be <= max_latitude")
        if self.min_longitude > self.max_longitude:
            raise ValueError("min_longitude must be <= max_longitude")

    def contains(self, lat: float, lng: float) -> bool:
        return (
            self.min_latitude <= lat <= self.max_latitude
            and self.min_longitude <= lng <= self.max_longitude
        )


@dataclass(frozen=True, slots=True)
class Zone:
    """Admin-defined pricing region."""

    zone_id: str
    name: str
    bounds: BoundingBox
    description: Optional[str] = None
    code: Optional[str] = None
    polygon: Optional[Ring] = None
    price_multiplier: float = 1.0
    active: bool = True
    sort_order: int = 0

    def __post_init__(self) -> None:
        if not self.zone_id:
            raise ValueError("zone_id is required")
        if not math.isfinite(self.price_multiplier) or self.price_multiplier < 0:
            raise ValueError("price_multiplier must be a finite number >= 0")

    @property
    def priority_key(self) -> tuple[int, int, str]:
        return (0 if self.active else 1, self.sort_order, self.zone_id)

    @classmethod
    def from_record(cls, row: dict[str, Any]) -> "Zone":
        """Build a zone from a store row.

        Raises ``KeyError``/``ValueError``/``TypeError`` for rows that violate
        the bounding box or identity rules. A malformed polygon does not fail
        the row; the zone is kept with bounding-box matching only.
        """

        zone_id = str(row.get("id") or row.get("zone_id") or "")
        bounds = BoundingBox(
            min_latitude=float(row["min_latitude"]),
            max_latitude=float(row["max_latitude"]),
            min_longitude=float(row["min_longitude"]),
            max_longitude=float(row["max_longitude"]),
        )

        raw_polygon = row.get("polygon", row.get("polygon_json"))
        try:
            polygon = parse_polygon(raw_polygon)
        except PolygonParseError as exc:
            logger.warning("Zone %s has an unusable polygon, matching by bounding box only: %s", zone_id, exc)
            polygon = None

        multiplier = row.get("price_multiplier")
        return cls(
            zone_id=zone_id,
            name=str(row.get("name") or zone_id),
            description=row.get("description"),
            code=row.get("code"),
            bounds=bounds,
            polygon=polygon,
            price_multiplier=1.0 if multiplier is None else float(multiplier),
            active=parse_active_flag(row.get("active")),
            sort_order=int(row.get("sort_order") or 0),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.zone_id,
            "name": self.name,
            "description": self.description,
            "code": self.code,
            "min_latitude": self.bounds.min_latitude,
            "max_latitude": self.bounds.max_latitude,
            "min_longitude": self.bounds.min_longitude,
            "max_longitude": self.bounds.max_longitude,
            "polygon": ring_to_geojson(self.polygon) if self.polygon else None,
            "price_multiplier": self.price_multiplier,
            "active": self.active,
            "sort_order": self.sort_order,
        }


@dataclass(frozen=True, slots=True)
class ServiceZonePrice:
    """Explicit price for a service inside a zone."""

    service_id: str
    zone_id: str
    price_cents: int
    discount_percentage: Optional[float] = None
    active: bool = True

    def __post_init__(self) -> None:
        if self.price_cents < 0:
            raise ValueError("price_cents must be >= 0")

    @classmethod
    def from_record(cls, row: dict[str, Any]) -> "ServiceZonePrice":
        return cls(
            service_id=str(row["service_id"]),
            zone_id=str(row["zone_id"]),
            price_cents=int(row["price_cents"]),
            discount_percentage=_optional_percentage(row.get("discount_percentage")),
            active=parse_active_flag(row.get("active")),
        )


@dataclass(frozen=True, slots=True)
class ServiceBasePrice:
    """Catalog price for a service before any zone adjustment."""

    service_id: str
    price_cents: int
    discount_percentage: Optional[float] = None
    name: Optional[str] = None

    @classmethod
    def from_record(cls, row: dict[str, Any]) -> "ServiceBasePrice":
        return cls(
            service_id=str(row.get("id") or row["service_id"]),
            name=row.get("name"),
            price_cents=int(row["price_cents"]),
            discount_percentage=_optional_percentage(row.get("discount_percentage")),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.service_id,
            "name": self.name,
            "price_cents": self.price_cents,
            "discount_percentage": self.discount_percentage,
        }


@dataclass(frozen=True, slots=True)
class PricingAdjustmentConfig:
    """Point-in-time snapshot of tax and payment fee settings."""

    tax_percentage: Optional[float] = None
    stripe_fee_percentage: Optional[float] = None
    extra_fee_amount_cents: Optional[int] = None
    source: Literal["settings", "default"] = field(default="settings", compare=False)

    @classmethod
    def missing(cls) -> "PricingAdjustmentConfig":
        """All-zero adjustments used when the settings store cannot be read."""
        return cls(source="default")
