"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...services.cache import cache_stats, check_cache_health, get_cache

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/cache", status_code=status.HTTP_200_OK)
def health_cache() -> dict:
    """Report which cache tiers are serving and how many entries each holds."""
    cache = get_cache()
    return {**check_cache_health(cache), **cache_stats(cache)}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check database connection and zone storage status."""
    from ...db.supabase import get_supabase_client
    from ...data.zones_repository import SupabaseZoneStore

    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "message": "Supabase not configured. Set ZPE_SUPABASE_URL and ZPE_SUPABASE_KEY environment variables.",
            "zones_count": 0,
        }

    try:
        zones = SupabaseZoneStore(supabase).find_active_zones_ordered_by_priority()
        return {
            "configured": True,
            "connected": True,
            "zones_count": len(zones),
            "message": f"Database connected. Found {len(zones)} active zones.",
        }
    except Exception as exc:
        return {
            "configured": True,
            "connected": False,
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }
