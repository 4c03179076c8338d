"""Pricing adjustment settings read from the key/value settings store."""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any, Mapping, Optional

from ..config import settings
from ..db.supabase import get_supabase_client
from ..errors import PricingConfigMissing
from ..models.domain import PricingAdjustmentConfig
from ..services.pricing.pipeline import round_half_up, to_decimal

logger = logging.getLogger(__name__)

TAX_PERCENTAGE_SETTING_KEY = "tax_percentage"
STRIPE_FEE_PERCENTAGE_SETTING_KEY = "stripe_fee_percentage"
EXTRA_FEE_AMOUNT_SETTING_KEY = "extra_fee_amount"


def _parse_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    else:
        text = str(value).strip().replace(",", ".")
        if not text:
            return None
        try:
            parsed = float(text)
        except ValueError:
            return None
    return parsed if math.isfinite(parsed) else None


def parse_percentage_setting(value: Any) -> Optional[float]:
    """Percentages outside 0-100 are treated as unset."""
    parsed = _parse_number(value)
    if parsed is None or parsed < 0 or parsed > 100:
        return None
    return parsed


def parse_non_negative_number_setting(value: Any) -> Optional[float]:
    parsed = _parse_number(value)
    if parsed is None or parsed < 0:
        return None
    return parsed


def config_from_mapping(values: Mapping[str, Any]) -> PricingAdjustmentConfig:
    extra_fee_amount = parse_non_negative_number_setting(values.get(EXTRA_FEE_AMOUNT_SETTING_KEY))
    return PricingAdjustmentConfig(
        tax_percentage=parse_percentage_setting(values.get(TAX_PERCENTAGE_SETTING_KEY)),
        stripe_fee_percentage=parse_percentage_setting(values.get(STRIPE_FEE_PERCENTAGE_SETTING_KEY)),
        extra_fee_amount_cents=round_half_up(to_decimal(extra_fee_amount) * 100) if extra_fee_amount is not None else None,
        source="settings",
    )


def _read_settings_rows() -> dict[str, Any]:
    supabase = get_supabase_client()
    if supabase:
        try:
            response = supabase.table("settings").select("key,value").execute()
            return {row["key"]: row.get("value") for row in (response.data or [])}
        except Exception as e:
            logger.warning(f"Settings query failed, falling back to seed file: {e}")

    path: Path = settings.pricing_settings_file
    if not path.exists():
        raise PricingConfigMissing(f"no settings store available (database unset, {path} missing)")
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        raise PricingConfigMissing(f"settings file {path} unreadable: {exc}") from exc
    if not isinstance(payload, dict):
        raise PricingConfigMissing(f"settings file {path} must hold a JSON object")
    return payload


def load_pricing_adjustment_config() -> PricingAdjustmentConfig:
    """Load the current tax/fee snapshot.

    When no settings store can be read the result has ``source="default"``
    and no adjustments, logged as a missing configuration rather than a
    configured zero.
    """
    try:
        values = _read_settings_rows()
    except PricingConfigMissing as exc:
        logger.warning(f"pricing_config_missing, applying no tax or fees: {exc}")
        return PricingAdjustmentConfig.missing()

    config = config_from_mapping(values)
    logger.debug(
        "pricing_config_loaded tax=%s stripe_fee=%s extra_fee_cents=%s",
        config.tax_percentage,
        config.stripe_fee_percentage,
        config.extra_fee_amount_cents,
    )
    return config
