"""Discount reallocation: a new negotiated total -> a new proposal override.

The discount is always taken off the total.  Depending on the target it is
also taken off one payment bucket, floored at zero.  Any part of the
discount beyond that floor is not cascaded to another bucket; it only
surfaces through the smaller total (and therefore the financed balance)
on the next resolve().
"""
from __future__ import annotations

from decimal import Decimal

from .config import DISCOUNT_TARGETS, ZERO, DiscountTarget
from .plan import PaymentPlan, ProposalOverride


def discount_amount(resolved_plan: PaymentPlan, new_total: Decimal) -> Decimal:
    """Amount removed from the current negotiated total (negative = increase)."""
    return resolved_plan.total - new_total


def apply_discount(
    current_override: ProposalOverride,
    resolved_plan: PaymentPlan,
    table_plan: PaymentPlan,
    target: DiscountTarget,
    new_total: Decimal,
) -> ProposalOverride:
    """Return a new override pinning *new_total* and the adjusted *target* bucket.

    Bucket counts come from the table plan; a zero-count bucket cannot take
    the discount, which then only reduces the total.
    """
    if target not in DISCOUNT_TARGETS:
        raise ValueError(
            f"Unknown discount target '{target}'. "
            f"Valid targets: {', '.join(DISCOUNT_TARGETS)}"
        )

    total_discount = discount_amount(resolved_plan, new_total)
    new_override = current_override.replace(total=new_total)

    if target == "financed":
        return new_override

    if target == "balloon":
        return new_override.replace(balloon=max(ZERO, resolved_plan.balloon - total_discount))

    if target == "installments":
        quantity = table_plan.installments.count
        current_value = resolved_plan.installments.value
        field = "installments_value"
    else:  # target == "annual"
        quantity = table_plan.annual.count
        current_value = resolved_plan.annual.value
        field = "annual_value"

    if quantity == 0:
        return new_override

    new_bucket_total = max(ZERO, current_value * quantity - total_discount)
    return new_override.replace(**{field: new_bucket_total / quantity})
