"""Hand-off from a computed price to the payment provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal, Optional, Protocol

from .pipeline import PaymentPath, PriceBreakdown

logger = logging.getLogger(__name__)


class PaymentProvider(Protocol):
    """Checkout orchestration lives outside this service; only charge creation is called."""

    def create_charge(self, amount_cents: int, metadata: dict[str, Any]) -> str:
        ...


@dataclass(frozen=True, slots=True)
class SettlementOutcome:
    status: Literal["free", "charged", "cash_due"]
    amount_cents: int
    charge_id: Optional[str] = None


def settle_payment(
    breakdown: PriceBreakdown,
    provider: PaymentProvider | None = None,
    metadata: dict[str, Any] | None = None,
) -> SettlementOutcome:
    """Record a free transaction for zero totals; otherwise charge card or mark cash due."""
    if breakdown.is_free:
        logger.info("Final price is zero, recording free transaction without a provider charge")
        return SettlementOutcome(status="free", amount_cents=0)

    if breakdown.path is PaymentPath.CASH:
        return SettlementOutcome(status="cash_due", amount_cents=breakdown.final_price_cents)

    if provider is None:
        raise ValueError("a payment provider is required for card payments")
    charge_id = provider.create_charge(breakdown.final_price_cents, dict(metadata or {}))
    return SettlementOutcome(status="charged", amount_cents=breakdown.final_price_cents, charge_id=charge_id)
