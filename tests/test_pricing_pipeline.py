import math
from unittest.mock import MagicMock

import pytest

from zone_pricing.models.domain import PricingAdjustmentConfig
from zone_pricing.services.pricing.pipeline import (
    PaymentPath,
    back_out_gross,
    compute_final_price,
    compute_price_breakdown,
    recover_cash_net,
    round_half_up,
)
from zone_pricing.services.pricing.settlement import settle_payment


def _config(tax=5.0, stripe=2.9, extra_cents=100) -> PricingAdjustmentConfig:
    return PricingAdjustmentConfig(
        tax_percentage=tax,
        stripe_fee_percentage=stripe,
        extra_fee_amount_cents=extra_cents,
    )


def test_card_breakdown_follows_fixed_step_order():
    breakdown = compute_price_breakdown(10000, 20, 500, 300, _config())

    assert breakdown.discounted_cents == 8000
    assert breakdown.after_coupon_cents == 7500
    assert breakdown.after_loyalty_cents == 7200
    assert breakdown.tax_cents == 360
    assert breakdown.with_tax_cents == 7560
    assert breakdown.fee_base_cents == 7460
    assert breakdown.fee_cents == 216
    assert breakdown.final_price_cents == 7776
    assert breakdown.is_free is False


def test_compute_final_price_matches_breakdown():
    assert compute_final_price(10000, 20, 500, 300, _config()) == 7776


def test_cash_path_has_no_payment_fees():
    breakdown = compute_price_breakdown(10000, 20, 500, 300, _config(), PaymentPath.CASH)

    assert breakdown.fee_cents == 0
    assert breakdown.fixed_fee_cents == 0
    assert breakdown.final_price_cents == 7560


def test_cash_net_recovery_inverts_tax():
    assert recover_cash_net(7560, 5) == 7200


def test_cash_round_trip_stays_within_one_cent():
    config = _config()
    for net in (1, 99, 1234, 7200, 99999):
        gross = compute_final_price(net, adjustments=config, path=PaymentPath.CASH)
        assert abs(recover_cash_net(gross, config.tax_percentage) - net) <= 1


def test_card_gross_backs_out_to_net():
    result = back_out_gross(7776, _config())

    assert result.with_tax_cents == 7560
    assert result.fee_cents == 216
    assert result.tax_cents == 360
    assert result.net_cents == 7200


def test_card_back_out_below_fixed_fee_keeps_gross_as_taxed_amount():
    result = back_out_gross(80, _config())

    assert result.fee_cents == 0
    assert result.with_tax_cents == 80


def test_missing_adjustments_leave_price_after_deductions():
    assert compute_final_price(10000, 20, 500, 300) == 7200
    assert compute_final_price(10000, 20, adjustments=PricingAdjustmentConfig.missing()) == 8000


@pytest.mark.parametrize(
    "discount,expected",
    [(150, 0), (100, 0), (-5, 10000), (math.nan, 10000), ("abc", 10000), (None, 10000), (12.5, 8750)],
)
def test_discount_is_clamped_into_valid_range(discount, expected):
    assert compute_price_breakdown(10000, discount).discounted_cents == expected


def test_negative_and_non_finite_amounts_are_treated_as_zero():
    breakdown = compute_price_breakdown(-500, coupon_discount_cents=math.inf, loyalty_credit_cents=-20)

    assert breakdown.base_price_cents == 0
    assert breakdown.coupon_discount_cents == 0
    assert breakdown.loyalty_credit_cents == 0
    assert breakdown.final_price_cents == 0


def test_out_of_range_rates_are_clamped():
    config = PricingAdjustmentConfig(tax_percentage=250, stripe_fee_percentage=-3, extra_fee_amount_cents=None)
    breakdown = compute_price_breakdown(1000, adjustments=config)

    assert breakdown.tax_percentage == 100.0
    assert breakdown.tax_cents == 1000
    assert breakdown.fee_cents == 0
    assert breakdown.final_price_cents == 2000


def test_fixed_fee_larger_than_total_floors_fee_base_at_zero():
    breakdown = compute_price_breakdown(50, adjustments=_config(tax=0, extra_cents=100))

    assert breakdown.fee_base_cents == 0
    assert breakdown.fee_cents == 0
    assert breakdown.final_price_cents == 50


def test_every_step_rounds_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert compute_price_breakdown(1005, 50).discounted_cents == 503


def test_final_price_is_never_negative():
    for coupon in (0, 5000, 10000, 50000):
        for loyalty in (0, 2500, 90000):
            assert compute_final_price(10000, 10, coupon, loyalty, _config()) >= 0


def test_zero_total_settles_as_free_without_calling_provider():
    provider = MagicMock()
    breakdown = compute_price_breakdown(5000, coupon_discount_cents=6000, adjustments=_config())

    outcome = settle_payment(breakdown, provider)

    assert breakdown.is_free
    assert breakdown.final_price_cents == 0
    assert outcome.status == "free"
    assert outcome.amount_cents == 0
    provider.create_charge.assert_not_called()


def test_card_total_is_charged_through_provider():
    provider = MagicMock()
    provider.create_charge.return_value = "ch_123"
    breakdown = compute_price_breakdown(10000, 20, 500, 300, _config())

    outcome = settle_payment(breakdown, provider, {"booking_id": "b-1"})

    assert outcome.status == "charged"
    assert outcome.charge_id == "ch_123"
    provider.create_charge.assert_called_once_with(7776, {"booking_id": "b-1"})


def test_cash_total_is_left_due_without_provider():
    provider = MagicMock()
    breakdown = compute_price_breakdown(10000, adjustments=_config(), path=PaymentPath.CASH)

    outcome = settle_payment(breakdown, provider)

    assert outcome.status == "cash_due"
    assert outcome.amount_cents == 10500
    provider.create_charge.assert_not_called()


def test_card_payment_without_provider_is_rejected():
    breakdown = compute_price_breakdown(1000, adjustments=_config())

    with pytest.raises(ValueError):
        settle_payment(breakdown)


def test_breakdown_serializes_path_and_free_flag():
    data = compute_price_breakdown(0).as_dict()

    assert data["path"] == "CARD"
    assert data["is_free"] is True
