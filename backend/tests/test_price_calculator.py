from decimal import Decimal

import pytest
from hypothesis import given, strategies as st

from courier_billing.services.price_calculator import compute_price, round2, to_decimal


def test_breakdown_applies_fuel_handling_and_gst_in_order():
    breakdown = compute_price(Decimal("100"), Decimal("10"), Decimal("5"), Decimal("18"))

    assert breakdown.base_rate == Decimal("100.00")
    assert breakdown.fuel_amount == Decimal("10.00")
    assert breakdown.pre_gst_total == Decimal("115.00")
    assert breakdown.gst_amount == Decimal("20.70")
    assert breakdown.total == Decimal("135.70")


def test_zero_surcharges_return_base_rate():
    breakdown = compute_price("42.50")

    assert breakdown.fuel_amount == Decimal("0.00")
    assert breakdown.gst_amount == Decimal("0.00")
    assert breakdown.total == Decimal("42.50")


def test_each_step_rounds_half_up():
    # 33.33 * 7.5% = 2.49975 -> 2.50; (33.33 + 2.50) * 18% = 6.4494 -> 6.45
    breakdown = compute_price("33.33", "7.5", "0", "18")

    assert breakdown.fuel_amount == Decimal("2.50")
    assert breakdown.pre_gst_total == Decimal("35.83")
    assert breakdown.gst_amount == Decimal("6.45")
    assert breakdown.total == Decimal("42.28")


@pytest.mark.parametrize("value, expected", [
    ("0.005", Decimal("0.01")),
    ("0.004", Decimal("0.00")),
    ("2.675", Decimal("2.68")),
    (2.675, Decimal("2.68")),
    (10, Decimal("10.00")),
])
def test_round2_is_half_up(value, expected):
    assert round2(value) == expected


def test_float_inputs_use_their_shortest_repr():
    assert to_decimal(0.1) == Decimal("0.1")


money = st.decimals(min_value=0, max_value=100000, places=2, allow_nan=False, allow_infinity=False)
percent = st.decimals(min_value=0, max_value=100, places=2, allow_nan=False, allow_infinity=False)


@given(base=money, fuel=percent, handling=money, gst=percent)
def test_breakdown_reconciles_to_the_cent(base, fuel, handling, gst):
    breakdown = compute_price(base, fuel, handling, gst)

    assert breakdown.pre_gst_total == breakdown.base_rate + breakdown.fuel_amount + round2(handling)
    assert breakdown.total == breakdown.pre_gst_total + breakdown.gst_amount
    for amount in (breakdown.fuel_amount, breakdown.gst_amount, breakdown.total):
        assert amount == amount.quantize(Decimal("0.01"))


@given(base=money, fuel=percent, handling=money, gst=percent)
def test_pricing_is_deterministic(base, fuel, handling, gst):
    assert compute_price(base, fuel, handling, gst) == compute_price(base, fuel, handling, gst)
