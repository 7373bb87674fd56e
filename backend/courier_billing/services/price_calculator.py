"""
Price calculator - turns a rate row into a charge breakdown.

Business rules:
1. fuel = base * fuel% / 100
2. pre-GST total = base + fuel + handling
3. GST = pre-GST total * GST% / 100
4. total = pre-GST total + GST
Every step is rounded to paise (2 dp, half-up) before it feeds the next one,
so the breakdown reconciles exactly with invoice-level cent accounting.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # repr-based conversion avoids binary float expansion
        return Decimal(repr(value))
    return Decimal(str(value))


def round2(value: Number) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    base_rate: Decimal
    fuel_amount: Decimal
    pre_gst_total: Decimal
    gst_amount: Decimal
    total: Decimal


def compute_price(
    base_rate: Number,
    fuel_pct: Number = 0,
    handling: Number = 0,
    gst_pct: Number = 0,
) -> PriceBreakdown:
    base = to_decimal(base_rate)
    fuel_amount = round2(base * to_decimal(fuel_pct) / HUNDRED)
    pre_gst_total = round2(base + fuel_amount + to_decimal(handling))
    gst_amount = round2(pre_gst_total * to_decimal(gst_pct) / HUNDRED)
    total = round2(pre_gst_total + gst_amount)
    return PriceBreakdown(
        base_rate=round2(base),
        fuel_amount=fuel_amount,
        pre_gst_total=pre_gst_total,
        gst_amount=gst_amount,
        total=total,
    )
