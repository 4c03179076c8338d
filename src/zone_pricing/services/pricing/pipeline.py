"""Fee-stacking pipeline that turns a base price into a chargeable amount.

The order of the steps and the rounding at each step are fixed, because a
historical invoice must reproduce the same number from the same pricing
snapshot:

1. percentage discount on the base price
2. coupon deduction, floored at zero
3. loyalty credit deduction, floored at zero
4. tax on the remaining amount
5. card path only: payment provider percentage fee, computed on the taxed
   amount minus the fixed extra fee

Every monetary value is integer cents, rounded half-up after each
multiplication or division.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from ...models.domain import PricingAdjustmentConfig, clamp_percentage

_HUNDRED = Decimal(100)


class PaymentPath(str, Enum):
    CARD = "CARD"
    CASH = "CASH"


def to_decimal(value: float | int | Decimal) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 2.9 as 2.9 instead of its binary expansion
    return Decimal(str(value))


def round_half_up(value: float | int | Decimal) -> int:
    return int(to_decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def normalize_cents(value: Any) -> int:
    """Non-negative integer cents; missing, non-finite or negative becomes 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number) or number <= 0:
        return 0
    return round_half_up(number)


def apply_percentage_discount(price_cents: int, discount_percentage: Any) -> int:
    discount = to_decimal(clamp_percentage(discount_percentage))
    return round_half_up(to_decimal(price_cents) * (_HUNDRED - discount) / _HUNDRED)


def percentage_of(amount_cents: int, percentage: float) -> int:
    return round_half_up(to_decimal(amount_cents) * to_decimal(percentage) / _HUNDRED)


@dataclass(frozen=True, slots=True)
class PriceBreakdown:
    """Every intermediate amount of one pipeline run."""

    path: PaymentPath
    base_price_cents: int
    discount_percentage: float
    discounted_cents: int
    coupon_discount_cents: int
    after_coupon_cents: int
    loyalty_credit_cents: int
    after_loyalty_cents: int
    tax_percentage: float
    tax_cents: int
    with_tax_cents: int
    fee_percentage: float
    fixed_fee_cents: int
    fee_base_cents: int
    fee_cents: int
    final_price_cents: int

    @property
    def is_free(self) -> bool:
        return self.final_price_cents == 0

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["path"] = self.path.value
        data["is_free"] = self.is_free
        return data


@dataclass(frozen=True, slots=True)
class NetBreakdown:
    """Result of backing tax and fees out of a gross amount."""

    path: PaymentPath
    gross_cents: int
    fee_cents: int
    with_tax_cents: int
    tax_cents: int
    net_cents: int


def compute_price_breakdown(
    base_price_cents: Any,
    discount_percentage: Any = None,
    coupon_discount_cents: Any = None,
    loyalty_credit_cents: Any = None,
    adjustments: PricingAdjustmentConfig | None = None,
    path: PaymentPath = PaymentPath.CARD,
) -> PriceBreakdown:
    adjustments = adjustments or PricingAdjustmentConfig.missing()
    path = PaymentPath(path)

    base = normalize_cents(base_price_cents)
    discount = clamp_percentage(discount_percentage)
    coupon = normalize_cents(coupon_discount_cents)
    loyalty = normalize_cents(loyalty_credit_cents)
    tax_percentage = clamp_percentage(adjustments.tax_percentage)

    discounted = apply_percentage_discount(base, discount)
    after_coupon = max(0, discounted - coupon)
    after_loyalty = max(0, after_coupon - loyalty)
    tax_cents = percentage_of(after_loyalty, tax_percentage)
    with_tax = after_loyalty + tax_cents

    if path is PaymentPath.CARD:
        fee_percentage = clamp_percentage(adjustments.stripe_fee_percentage)
        fixed_fee = normalize_cents(adjustments.extra_fee_amount_cents)
        fee_base = max(0, with_tax - fixed_fee)
        fee_cents = percentage_of(fee_base, fee_percentage)
    else:
        fee_percentage = 0.0
        fixed_fee = 0
        fee_base = 0
        fee_cents = 0

    return PriceBreakdown(
        path=path,
        base_price_cents=base,
        discount_percentage=discount,
        discounted_cents=discounted,
        coupon_discount_cents=coupon,
        after_coupon_cents=after_coupon,
        loyalty_credit_cents=loyalty,
        after_loyalty_cents=after_loyalty,
        tax_percentage=tax_percentage,
        tax_cents=tax_cents,
        with_tax_cents=with_tax,
        fee_percentage=fee_percentage,
        fixed_fee_cents=fixed_fee,
        fee_base_cents=fee_base,
        fee_cents=fee_cents,
        final_price_cents=with_tax + fee_cents,
    )


def compute_final_price(
    base_price_cents: Any,
    discount_percentage: Any = None,
    coupon_discount_cents: Any = None,
    loyalty_credit_cents: Any = None,
    adjustments: PricingAdjustmentConfig | None = None,
    path: PaymentPath = PaymentPath.CARD,
) -> int:
    return compute_price_breakdown(
        base_price_cents,
        discount_percentage,
        coupon_discount_cents,
        loyalty_credit_cents,
        adjustments,
        path,
    ).final_price_cents


def recover_cash_net(gross_cents: Any, tax_percentage: Any) -> int:
    """Pre-tax amount of a tax-inclusive cash collection: round(gross / (1 + tax))."""
    gross = normalize_cents(gross_cents)
    tax_decimal = to_decimal(clamp_percentage(tax_percentage)) / _HUNDRED
    return round_half_up(to_decimal(gross) / (1 + tax_decimal))


def back_out_gross(
    gross_cents: Any,
    adjustments: PricingAdjustmentConfig | None = None,
    path: PaymentPath = PaymentPath.CARD,
) -> NetBreakdown:
    """Invert the tax and fee steps to recover the base used for commission.

    For the card path the fee step is inverted first:
    ``gross = w + f * (w - fixed)`` gives ``w = (gross + f * fixed) / (1 + f)``
    while ``w`` stays above the fixed fee, and ``w = gross`` otherwise.
    """
    adjustments = adjustments or PricingAdjustmentConfig.missing()
    path = PaymentPath(path)
    gross = normalize_cents(gross_cents)
    tax_percentage = clamp_percentage(adjustments.tax_percentage)

    if path is PaymentPath.CARD:
        fee_rate = to_decimal(clamp_percentage(adjustments.stripe_fee_percentage)) / _HUNDRED
        fixed_fee = normalize_cents(adjustments.extra_fee_amount_cents)
        if gross > fixed_fee:
            with_tax = round_half_up((to_decimal(gross) + fee_rate * fixed_fee) / (1 + fee_rate))
        else:
            with_tax = gross
        fee_cents = gross - with_tax
    else:
        with_tax = gross
        fee_cents = 0

    net = recover_cash_net(with_tax, tax_percentage)
    return NetBreakdown(
        path=path,
        gross_cents=gross,
        fee_cents=fee_cents,
        with_tax_cents=with_tax,
        tax_cents=with_tax - net,
        net_cents=net,
    )
