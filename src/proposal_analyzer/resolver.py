"""Proposal resolution: table plan + client override -> negotiated plan.

Resolution order:
1. total and down payment come from the override when pinned, else the table.
2. shortfall = max(0, table down payment - down payment).
3. Buckets are visited in fixed order (installments, annual, balloon).
   A pinned bucket keeps its pinned value and absorbs nothing.  The first
   unpinned, eligible bucket absorbs the whole remaining shortfall.
   Installments/annual are eligible only when their table count is > 0;
   the balloon is always eligible.
4. Counts are always copied from the table.
5. financed = total - (down payment + installments + annual + balloon).

resolve() never raises: non-finite input propagates as NaN.  Rejecting such
input is the job of check_inputs() / parse_amount() at the boundary.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext
from typing import Optional

from .config import ZERO
from .plan import PaymentDetail, PaymentPlan, ProposalOverride


class InvalidInputError(ValueError):
    """Raised at the input boundary for values the engine must never see."""


def resolve(table_plan: PaymentPlan, override: ProposalOverride) -> PaymentPlan:
    """Return the fully resolved negotiated plan."""
    plan, _ = resolve_with_sources(table_plan, override)
    return plan


def resolve_with_sources(
    table_plan: PaymentPlan, override: ProposalOverride
) -> tuple[PaymentPlan, dict[str, str]]:
    """Resolve and report where each field came from.

    Sources: 'override', 'table', 'absorbed' (took the shortfall) or 'derived'.
    """
    sources: dict[str, str] = {}

    def _resolve(user_val: Optional[Decimal], table_val: Decimal, name: str) -> Decimal:
        if user_val is not None:
            sources[name] = "override"
            return user_val
        sources[name] = "table"
        return table_val

    with localcontext() as ctx:
        # NaN/Infinity arithmetic yields NaN instead of raising
        ctx.traps[InvalidOperation] = False

        # --- Step 1: total & down payment ---
        total = _resolve(override.total, table_plan.total, "total")
        down_payment = _resolve(override.down_payment, table_plan.down_payment, "down_payment")

        # --- Step 2: shortfall (never negative) ---
        remaining = max(ZERO, table_plan.down_payment - down_payment)

        # --- Step 3: absorption ---
        def _bucket(pinned: Optional[Decimal], table_detail: PaymentDetail, name: str) -> PaymentDetail:
            nonlocal remaining
            if pinned is not None:
                sources[name] = "override"
                return PaymentDetail(value=pinned, count=table_detail.count)
            if remaining > ZERO and table_detail.count > 0:
                value = (table_detail.subtotal + remaining) / table_detail.count
                remaining = ZERO
                sources[name] = "absorbed"
                return PaymentDetail(value=value, count=table_detail.count)
            sources[name] = "table"
            return PaymentDetail(value=table_detail.value, count=table_detail.count)

        installments = _bucket(override.installments_value, table_plan.installments, "installments")
        annual = _bucket(override.annual_value, table_plan.annual, "annual")

        if override.balloon is not None:
            balloon = override.balloon
            sources["balloon"] = "override"
        elif remaining > ZERO:
            balloon = table_plan.balloon + remaining
            remaining = ZERO
            sources["balloon"] = "absorbed"
        else:
            balloon = table_plan.balloon
            sources["balloon"] = "table"

        # Whatever is left (all buckets pinned) only shows through down_payment.

        # --- Step 4: financed balance ---
        financed = total - (
            down_payment + installments.subtotal + annual.subtotal + balloon
        )
        sources["financed"] = "derived"

    plan = PaymentPlan(
        total=total,
        down_payment=down_payment,
        installments=installments,
        annual=annual,
        balloon=balloon,
        financed=financed,
    )
    return plan, sources


def plan_warnings(plan: PaymentPlan) -> list[str]:
    """Non-fatal observations about a resolved plan."""
    warnings: list[str] = []
    if plan.financed.is_finite() and plan.financed < ZERO:
        warnings.append(
            f"Financed balance is negative ({plan.financed:,.2f}): "
            f"the proposal pays {-plan.financed:,.2f} more than the total."
        )
    return warnings


def check_inputs(table_plan: PaymentPlan, override: ProposalOverride) -> None:
    """Raise InvalidInputError if any table or override value is unusable.

    Checks:
    1. every monetary value is finite (no NaN / Infinity)
    2. every bucket count is a non-negative integer
    """
    table_values = {
        "table.total": table_plan.total,
        "table.down_payment": table_plan.down_payment,
        "table.installments.value": table_plan.installments.value,
        "table.annual.value": table_plan.annual.value,
        "table.balloon": table_plan.balloon,
        "table.financed": table_plan.financed,
    }
    for name, value in table_values.items():
        if not value.is_finite():
            raise InvalidInputError(f"{name} must be a finite number, got {value}.")

    for name, detail in (("installments", table_plan.installments), ("annual", table_plan.annual)):
        if detail.count < 0:
            raise InvalidInputError(f"table.{name}.count must be >= 0, got {detail.count}.")

    for name in override.pinned_fields():
        value = getattr(override, name)
        if not value.is_finite():
            raise InvalidInputError(f"Proposal field '{name}' must be a finite number, got {value}.")


def parse_amount(raw: str, *, allow_negative: bool = False) -> Decimal:
    """Parse a user-typed amount.

    Accepts pt-BR ('R$ 1.234,56') and plain ('1234.56') notation.
    Raises InvalidInputError for anything that is not a finite number.
    """
    text = raw.strip().replace("R$", "").replace(" ", "").replace(" ", "")
    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    if not text:
        raise InvalidInputError("Empty amount.")
    try:
        value = Decimal(text)
    except InvalidOperation as exc:
        raise InvalidInputError(f"Invalid number: '{raw}'") from exc
    if not value.is_finite():
        raise InvalidInputError(f"Amount must be finite, got '{raw}'")
    if not allow_negative and value < ZERO:
        raise InvalidInputError(f"Amount must be >= 0, got '{raw}'")
    return value
