"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ZPE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Zone Pricing Engine API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for seed data files.")
    zones_file: Path = Field(
        default=Path("data/zones.json"),
        description="Zone and price override seed file used when the database is unavailable.",
    )
    services_file: Path = Field(
        default=Path("data/services.json"),
        description="Service catalog seed file used when the database is unavailable.",
    )
    pricing_settings_file: Path = Field(
        default=Path("data/pricing_settings.json"),
        description="Key/value pricing settings used when the database is unavailable.",
    )
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    # Cache configuration
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis URL for the shared cache tier. In-process cache only when unset.",
    )
    redis_timeout_seconds: float = Field(default=2.0, gt=0.0)
    zone_resolution_ttl_seconds: int = Field(default=5 * 60, ge=1)
    pricing_data_ttl_seconds: int = Field(default=10 * 60, ge=1)
    zone_list_ttl_seconds: int = Field(default=30 * 60, ge=1)
    service_prices_ttl_seconds: int = Field(default=15 * 60, ge=1)
    cache_coordinate_precision: int = Field(default=4, ge=0, le=8)
    cache_sweep_interval_seconds: float = Field(default=5 * 60, gt=0.0)
    cache_sweeper_enabled: bool = True

    spatial_engine: Literal["shapely", "postgis", "none"] = Field(
        default="shapely",
        description="Geometry engine tried before the in-process point locator.",
    )
    currency_symbol: str = "AED"
    max_service_ids: int = Field(default=50, ge=1)
    admin_token: Optional[str] = Field(
        default=None,
        description="Shared secret required in X-Admin-Token for admin endpoints.",
    )

    @field_validator("data_root", "zones_file", "services_file", "pricing_settings_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()
