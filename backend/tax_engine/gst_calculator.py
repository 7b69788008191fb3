from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Tuple

from backend.models.invoice import LineItem
from backend.models.totals import InvoiceTotals, LineBreakdown


def _multiplier(tax_rate: Optional[float]) -> float:
    return 1 + (tax_rate or 0) / 100


def tax_inclusive_total(price: float, quantity: float, tax_rate: Optional[float]) -> float:
    return price * quantity * _multiplier(tax_rate)


def derive_rate_from_inclusive_total(total: float, quantity: Optional[float], tax_rate: Optional[float]) -> float:
    """
    Inverse of tax_inclusive_total: tax-exclusive unit rate for a typed total.
    Zero/missing quantity counts as 1, missing rate as 0. A rate of -100
    leaves no tax-exclusive base, so the rate is 0.
    """
    qty = quantity or 1
    multiplier = _multiplier(tax_rate)
    if multiplier == 0:
        return 0.0
    return (total / multiplier) / qty


def split_tax(taxable_value: float, combined_rate: Optional[float]) -> Tuple[float, float]:
    """Intra-state split: CGST and SGST each carry half of the combined rate."""
    half = taxable_value * ((combined_rate or 0) / 2) / 100
    return half, half


def line_item_breakdown(item: LineItem, combined_rate: Optional[float]) -> LineBreakdown:
    taxable = item.price * item.quantity
    half_a, half_b = split_tax(taxable, combined_rate)
    return LineBreakdown(taxableValue=taxable, halfA=half_a, halfB=half_b, total=taxable + half_a + half_b)


def aggregate(items: Iterable[LineItem], combined_rate: Optional[float]) -> InvoiceTotals:
    # full precision; rounding is a display concern only
    totals = InvoiceTotals()
    for item in items:
        b = line_item_breakdown(item, combined_rate)
        totals.totalTaxable += b.taxableValue
        totals.totalHalfA += b.halfA
        totals.totalHalfB += b.halfB
        totals.grandTotal += b.total
    return totals


def display_round(x: float) -> int:
    return int(Decimal(repr(float(x))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def round_to_2(x: float) -> float:
    return float(Decimal(repr(float(x))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def item_total(item: LineItem, tax_rate: Optional[float]) -> float:
    """Tax-inclusive line total as shown in the editor's total column."""
    return round_to_2(tax_inclusive_total(item.price, item.quantity, tax_rate))
