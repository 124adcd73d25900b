"""Negotiation summary statistics.

Rounding: ROUND_HALF_UP, 2 decimal places for both money and percentages,
full precision for intermediate steps.  Ratios over a non-positive total or
area are reported as zero.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from .config import CENT, HUNDRED, ZERO
from .plan import PaymentPlan


def _round(value: Decimal) -> Decimal:
    if not value.is_finite():
        return value
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def ratio_pct(part: Decimal, whole: Decimal) -> Decimal:
    if not whole > ZERO:
        return ZERO
    return _round(part / whole * HUNDRED)


@dataclass(frozen=True)
class NegotiationSummary:
    area: Decimal
    table_price_per_m2: Decimal
    proposal_price_per_m2: Decimal
    discount_value: Decimal        # table total - negotiated total
    discount_percentage: Decimal   # of the table total
    table_financed_percentage: Decimal
    proposal_financed_percentage: Decimal


def price_per_m2(total: Decimal, area: Decimal) -> Decimal:
    if not area > ZERO:
        return ZERO
    return _round(total / area)


def compute_summary(
    table_plan: PaymentPlan,
    resolved_plan: PaymentPlan,
    area: Decimal,
) -> NegotiationSummary:
    """Compare the negotiated plan against the table plan for one unit."""
    discount_value = table_plan.total - resolved_plan.total
    return NegotiationSummary(
        area=area,
        table_price_per_m2=price_per_m2(table_plan.total, area),
        proposal_price_per_m2=price_per_m2(resolved_plan.total, area),
        discount_value=_round(discount_value),
        discount_percentage=ratio_pct(discount_value, table_plan.total),
        table_financed_percentage=ratio_pct(table_plan.financed, table_plan.total),
        proposal_financed_percentage=ratio_pct(resolved_plan.financed, resolved_plan.total),
    )
