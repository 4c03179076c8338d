"""API routes for zone lookup."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...errors import InvalidCoordinate
from ...schemas.zones import ZoneLookupResponse
from ...services.pricing.service import PricingEngine, get_pricing_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/zones", tags=["zones"])


@router.get("/lookup", response_model=ZoneLookupResponse, status_code=status.HTTP_200_OK)
def lookup_zone(
    lat: float = Query(..., description="Latitude, -90 to 90"),
    lng: float = Query(..., description="Longitude, -180 to 180"),
    engine: PricingEngine = Depends(get_pricing_engine),
) -> ZoneLookupResponse:
    """Tell whether a coordinate falls inside a supported zone."""
    try:
        return engine.lookup_zone(lat, lng)
    except InvalidCoordinate as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error looking up zone: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to look up zone",
        ) from exc
