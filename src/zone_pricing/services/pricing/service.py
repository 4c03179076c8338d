"""High-level orchestration for location-based pricing requests."""

from __future__ import annotations

import functools
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from ...config import settings
from ...data.catalog_repository import get_service_base_price
from ...data.settings_repository import load_pricing_adjustment_config
from ...data.zones_repository import ZoneStore, build_zones, get_zone_store
from ...models.domain import PricingAdjustmentConfig, ServiceBasePrice, Zone
from ...schemas.pricing import (
    PricingByLocationRequest,
    PricingByLocationResponse,
    PricingExplanation,
    ServicePrice,
    ZoneSummary,
)
from ...schemas.zones import Coordinates, ZoneLookupResponse
from ..cache import (
    ALL_PREFIXES,
    PRICING_DATA_PREFIX,
    SERVICE_PRICES_PREFIX,
    ZONE_LIST_PREFIX,
    ZONE_RESOLUTION_PREFIX,
    TwoTierCache,
    get_cache,
    pricing_data_key,
    service_prices_key,
    ttl_seconds,
    zone_list_key,
    zone_resolution_key,
)
from ..geospatial import validate_coordinates
from ..zoning.resolvers import ZoneResolver, get_resolver
from .pipeline import compute_final_price
from .zone_price import ResolvedPrice, resolve_price

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class ZoneResolution:
    zone: Optional[Zone]
    source: str
    explanation: str
    cached: bool = False

    @property
    def zone_id(self) -> Optional[str]:
        return self.zone.zone_id if self.zone else None

    @property
    def method(self) -> str:
        return "polygon_match" if self.zone else "none"


@dataclass(frozen=True, slots=True)
class ZonePriceList:
    prices: tuple[ResolvedPrice, ...]
    unknown_service_ids: tuple[str, ...]
    cached: bool = False


def _zone_summary(zone: Optional[Zone]) -> Optional[ZoneSummary]:
    if zone is None:
        return None
    return ZoneSummary(id=zone.zone_id, name=zone.name, description=zone.description, code=zone.code)


class PricingEngine:
    """Zone resolution, zone pricing and fee stacking behind the cache."""

    def __init__(
        self,
        store: ZoneStore,
        cache: TwoTierCache,
        resolver: ZoneResolver,
        base_price_lookup: Callable[[str], Optional[ServiceBasePrice]] = get_service_base_price,
        adjustments_loader: Callable[[], PricingAdjustmentConfig] = load_pricing_adjustment_config,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.cache = cache
        self.resolver = resolver
        self.base_price_lookup = base_price_lookup
        self.adjustments_loader = adjustments_loader
        self.clock = clock

    def get_active_zones(self) -> tuple[Zone, ...]:
        key = zone_list_key()
        cached = self.cache.get(key)
        if cached is not None:
            return build_zones(cached)
        zones = self.store.find_active_zones_ordered_by_priority()
        self.cache.set(key, [zone.to_record() for zone in zones], ttl_seconds(ZONE_LIST_PREFIX))
        return zones

    def resolve_zone(self, lat: float, lng: float) -> ZoneResolution:
        """Resolve validated coordinates to at most one zone."""
        lat, lng = validate_coordinates(lat, lng)
        zones = self.get_active_zones()
        by_id = {zone.zone_id: zone for zone in zones}

        key = zone_resolution_key(lat, lng)
        cached = self.cache.get(key)
        if cached is not None:
            zone = by_id.get(cached.get("zone_id")) if cached.get("zone_id") else None
            explanation = "Resolved from cache" if zone else "No zone found for coordinates (cached)"
            return ZoneResolution(zone=zone, source="cache", explanation=explanation, cached=True)

        result = self.resolver.resolve_with_source(lat, lng, zones)
        self.cache.set(key, {"zone_id": result.zone_id}, ttl_seconds(ZONE_RESOLUTION_PREFIX))

        zone = by_id.get(result.zone_id) if result.zone_id else None
        if zone is None:
            explanation = "No zone found for coordinates"
        elif result.degraded:
            explanation = "Coordinates matched by point locator (spatial engine unavailable)"
        else:
            explanation = f"Coordinates matched to zone using {result.source}"
        return ZoneResolution(zone=zone, source=result.source, explanation=explanation)

    def get_service_base_price(self, service_id: str) -> Optional[ServiceBasePrice]:
        key = service_prices_key(service_id)
        cached = self.cache.get(key)
        if cached is not None:
            return ServiceBasePrice.from_record(cached)
        service = self.base_price_lookup(service_id)
        if service is not None:
            self.cache.set(key, service.to_record(), ttl_seconds(SERVICE_PRICES_PREFIX))
        return service

    def get_zone_prices(
        self,
        zone: Optional[Zone],
        service_ids: Sequence[str],
        target: Optional[datetime] = None,
    ) -> ZonePriceList:
        key = pricing_data_key(zone.zone_id if zone else None, service_ids, target)
        cached = self.cache.get(key)
        if cached is not None:
            return ZonePriceList(
                prices=tuple(ResolvedPrice(**item) for item in cached["prices"]),
                unknown_service_ids=tuple(cached["unknown_service_ids"]),
                cached=True,
            )

        prices: list[ResolvedPrice] = []
        unknown: list[str] = []
        for service_id in service_ids:
            service = self.get_service_base_price(service_id)
            if service is None:
                logger.info(f"Service {service_id!r} not found in catalog, skipping")
                unknown.append(service_id)
                continue
            prices.append(
                resolve_price(service_id, zone, service.price_cents, service.discount_percentage, self.store)
            )

        self.cache.set(
            key,
            {"prices": [asdict(price) for price in prices], "unknown_service_ids": unknown},
            ttl_seconds(PRICING_DATA_PREFIX),
        )
        return ZonePriceList(prices=tuple(prices), unknown_service_ids=tuple(unknown))

    def price_by_location(self, request: PricingByLocationRequest) -> PricingByLocationResponse:
        requested_at = self.clock()
        resolution = self.resolve_zone(request.lat, request.lng)
        price_list = self.get_zone_prices(resolution.zone, request.service_ids, request.datetime)
        adjustments = self.adjustments_loader()

        prices = [
            ServicePrice(
                service_id=price.service_id,
                price=price.price_cents,
                final_price=compute_final_price(
                    price.price_cents,
                    price.discount_percentage,
                    adjustments=adjustments,
                ),
                source=price.source,
                zone_id=price.zone_id,
                discount_percentage=price.discount_percentage,
                zone_adjusted=price.zone_adjusted,
            )
            for price in price_list.prices
        ]

        return PricingByLocationResponse(
            zone=_zone_summary(resolution.zone),
            prices=prices,
            currency_symbol=settings.currency_symbol,
            requested_at=requested_at,
            target_datetime=request.datetime or requested_at,
            explanation=PricingExplanation(
                zone_resolved_by=resolution.method,
                matched_zone_count=1 if resolution.zone else 0,
                total_services_requested=len(request.service_ids),
                total_prices_returned=len(prices),
                zone_resolution_explanation=resolution.explanation,
                resolver_source=resolution.source,
                pricing_cached=price_list.cached,
                adjustments_source=adjustments.source,
                unknown_service_ids=list(price_list.unknown_service_ids),
            ),
        )

    def lookup_zone(self, lat: float, lng: float) -> ZoneLookupResponse:
        resolution = self.resolve_zone(lat, lng)
        return ZoneLookupResponse(
            coordinates=Coordinates(lat=lat, lng=lng),
            zone=_zone_summary(resolution.zone),
            is_supported=resolution.zone is not None,
            resolution_method=resolution.method,
            explanation=resolution.explanation,
            source=resolution.source,
            cached=resolution.cached,
            resolved_at=self.clock(),
        )

    def clear_caches(self) -> int:
        removed = sum(self.cache.invalidate(prefix) for prefix in ALL_PREFIXES)
        logger.info(f"Cleared {removed} pricing and zone cache entries")
        return removed


@functools.lru_cache(maxsize=1)
def get_pricing_engine() -> PricingEngine:
    return PricingEngine(
        store=get_zone_store(),
        cache=get_cache(),
        resolver=get_resolver(settings.spatial_engine),
    )
