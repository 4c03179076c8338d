"""API routes for location-based pricing."""

from __future__ import annotations

import logging
import secrets

from fastapi import APIRouter, Depends, Header, HTTPException, status

from ...config import settings
from ...errors import InvalidCoordinate
from ...schemas.pricing import CacheClearResponse, PricingByLocationRequest, PricingByLocationResponse
from ...services.pricing.service import PricingEngine, get_pricing_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pricing", tags=["pricing"])


def require_admin(x_admin_token: str | None = Header(default=None)) -> None:
    if not settings.admin_token:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access is not configured.")
    if not x_admin_token or not secrets.compare_digest(x_admin_token, settings.admin_token):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin token required.")


@router.post("/by-location", response_model=PricingByLocationResponse, status_code=status.HTTP_200_OK)
def pricing_by_location(
    payload: PricingByLocationRequest,
    engine: PricingEngine = Depends(get_pricing_engine),
) -> PricingByLocationResponse:
    """Resolve the customer's zone and price each requested service there."""
    try:
        return engine.price_by_location(payload)
    except InvalidCoordinate as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error pricing by location: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute prices for location",
        ) from exc


@router.delete("/cache", response_model=CacheClearResponse, dependencies=[Depends(require_admin)])
def clear_pricing_cache(engine: PricingEngine = Depends(get_pricing_engine)) -> CacheClearResponse:
    """Clear zone and pricing caches after an admin edit."""
    removed = engine.clear_caches()
    return CacheClearResponse(message="Cache cleared successfully", removed_entries=removed)
