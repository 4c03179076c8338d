"""Per-service price inside a resolved zone."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

from ...data.zones_repository import ZoneStore
from ...models.domain import Zone
from .pipeline import to_decimal, round_half_up

PriceSource = Literal["ZONE_PRICE", "BASE_PRICE"]


@dataclass(frozen=True, slots=True)
class ResolvedPrice:
    service_id: str
    price_cents: int
    discount_percentage: Optional[float]
    source: PriceSource
    zone_id: Optional[str] = None
    zone_adjusted: bool = False


def resolve_price(
    service_id: str,
    zone: Zone | None,
    fallback_price_cents: int,
    fallback_discount: Optional[float],
    store: ZoneStore,
) -> ResolvedPrice:
    """Explicit override if one is active, otherwise the base price times the zone multiplier."""

    if zone is None:
        return ResolvedPrice(
            service_id=service_id,
            price_cents=fallback_price_cents,
            discount_percentage=fallback_discount,
            source="BASE_PRICE",
        )

    override = store.find_override(service_id, zone.zone_id)
    if override is not None and override.active:
        return ResolvedPrice(
            service_id=service_id,
            price_cents=override.price_cents,
            discount_percentage=override.discount_percentage,
            source="ZONE_PRICE",
            zone_id=zone.zone_id,
        )

    adjusted = zone.price_multiplier != 1.0
    price_cents = (
        round_half_up(to_decimal(fallback_price_cents) * to_decimal(zone.price_multiplier))
        if adjusted
        else fallback_price_cents
    )
    return ResolvedPrice(
        service_id=service_id,
        price_cents=price_cents,
        discount_percentage=fallback_discount,
        source="BASE_PRICE",
        zone_id=zone.zone_id if adjusted else None,
        zone_adjusted=adjusted,
    )
