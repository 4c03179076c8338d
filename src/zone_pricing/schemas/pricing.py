"""Pydantic request/response models for pricing endpoints."""

from __future__ import annotations

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ..config import settings


class ZoneSummary(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    code: Optional[str] = None


class PricingByLocationRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90, allow_inf_nan=False, description="Customer latitude.")
    lng: float = Field(..., ge=-180, le=180, allow_inf_nan=False, description="Customer longitude.")
    service_ids: list[str] = Field(..., min_length=1, max_length=settings.max_service_ids)
    datetime: Optional[dt.datetime] = Field(default=None, description="Price at this moment (ISO 8601).")

    @field_validator("service_ids")
    @classmethod
    def validate_service_ids(cls, value: list[str]) -> list[str]:
        cleaned = [item.strip() for item in value]
        if any(not item for item in cleaned):
            raise ValueError("service_ids must not contain empty values")
        return list(dict.fromkeys(cleaned))


class ServicePrice(BaseModel):
    service_id: str
    price: int = Field(..., description="Zone-resolved price in cents, before discount, tax and fees.")
    final_price: int = Field(..., description="Card-path payable amount in cents.")
    source: Literal["ZONE_PRICE", "BASE_PRICE"]
    zone_id: Optional[str] = None
    discount_percentage: Optional[float] = None
    zone_adjusted: bool = False


class PricingExplanation(BaseModel):
    zone_resolved_by: Literal["polygon_match", "none"]
    matched_zone_count: int
    total_services_requested: int
    total_prices_returned: int
    zone_resolution_explanation: str
    resolver_source: str
    pricing_cached: bool
    adjustments_source: Literal["settings", "default"]
    unknown_service_ids: list[str] = Field(default_factory=list)


class PricingByLocationResponse(BaseModel):
    zone: Optional[ZoneSummary]
    prices: list[ServicePrice]
    currency_symbol: str
    requested_at: dt.datetime
    target_datetime: dt.datetime
    explanation: PricingExplanation


class CacheClearResponse(BaseModel):
    message: str
    removed_entries: int
