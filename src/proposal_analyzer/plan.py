"""Payment plan value types and their JSON wire shape.

All monetary values use decimal.Decimal. Wire documents use camelCase keys
and plain JSON numbers; conversion to Decimal always goes through str() so
that 0.1 arrives as Decimal("0.1").
"""
from __future__ import annotations

from dataclasses import dataclass, fields, replace as dc_replace
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .config import OVERRIDE_FIELDS, ZERO


def _to_decimal(value: Any, name: str) -> Decimal:
    # bool is an int subclass; a JSON true is never a valid amount
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise ValueError(f"{name} must be a number, got {type(value).__name__}")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a number, got '{value}'") from exc
    if not amount.is_finite():
        raise ValueError(f"{name} must be a finite number, got '{value}'")
    return amount


def _to_count(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


def _num(value: Decimal) -> float | int:
    """JSON-friendly number: integral amounts stay integers."""
    if value.is_finite() and value == value.to_integral_value():
        return int(value)
    return float(value)


@dataclass(frozen=True)
class PaymentDetail:
    """A repeating payment bucket: per-occurrence value times a count."""

    value: Decimal
    count: int

    @property
    def subtotal(self) -> Decimal:
        return self.value * self.count

    @classmethod
    def from_dict(cls, data: dict, name: str = "detail") -> "PaymentDetail":
        return cls(
            value=_to_decimal(data["value"], f"{name}.value"),
            count=_to_count(data["count"], f"{name}.count"),
        )

    def to_dict(self) -> dict:
        return {"value": _num(self.value), "count": self.count}


@dataclass(frozen=True)
class PaymentPlan:
    total: Decimal
    down_payment: Decimal
    installments: PaymentDetail
    annual: PaymentDetail
    balloon: Decimal
    financed: Decimal

    @property
    def paid_before_financing(self) -> Decimal:
        return (
            self.down_payment
            + self.installments.subtotal
            + self.annual.subtotal
            + self.balloon
        )

    @classmethod
    def from_dict(cls, data: dict) -> "PaymentPlan":
        return cls(
            total=_to_decimal(data["total"], "total"),
            down_payment=_to_decimal(data["downPayment"], "downPayment"),
            installments=PaymentDetail.from_dict(data["installments"], "installments"),
            annual=PaymentDetail.from_dict(data["annual"], "annual"),
            balloon=_to_decimal(data["balloon"], "balloon"),
            financed=_to_decimal(data["financed"], "financed"),
        )

    def to_dict(self) -> dict:
        return {
            "total": _num(self.total),
            "downPayment": _num(self.down_payment),
            "installments": self.installments.to_dict(),
            "annual": self.annual.to_dict(),
            "balloon": _num(self.balloon),
            "financed": _num(self.financed),
        }


@dataclass(frozen=True)
class ProposalOverride:
    """Client-proposed partial plan.  None means 'not provided — use table value'.

    A pinned zero is a real value, distinct from None.
    """

    total: Optional[Decimal] = None
    down_payment: Optional[Decimal] = None
    installments_value: Optional[Decimal] = None
    annual_value: Optional[Decimal] = None
    balloon: Optional[Decimal] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def pinned_fields(self) -> tuple[str, ...]:
        return tuple(f.name for f in fields(self) if getattr(self, f.name) is not None)

    def replace(self, **changes: Optional[Decimal]) -> "ProposalOverride":
        unknown = set(changes) - set(OVERRIDE_FIELDS)
        if unknown:
            raise ValueError(
                f"Unknown proposal field(s): {', '.join(sorted(unknown))}. "
                f"Valid fields: {', '.join(OVERRIDE_FIELDS)}"
            )
        return dc_replace(self, **changes)

    def cleared(self, field: str) -> "ProposalOverride":
        return self.replace(**{field: None})

    @classmethod
    def from_dict(cls, data: dict) -> "ProposalOverride":
        def _opt(value: Any, name: str) -> Optional[Decimal]:
            return None if value is None else _to_decimal(value, name)

        def _nested(key: str) -> Optional[Decimal]:
            bucket = data.get(key)
            if bucket is None:
                return None
            if not isinstance(bucket, dict):
                raise ValueError(f"{key} must be an object with an optional 'value'")
            return _opt(bucket.get("value"), f"{key}.value")

        return cls(
            total=_opt(data.get("total"), "total"),
            down_payment=_opt(data.get("downPayment"), "downPayment"),
            installments_value=_nested("installments"),
            annual_value=_nested("annual"),
            balloon=_opt(data.get("balloon"), "balloon"),
        )

    def to_dict(self) -> dict:
        out: dict[str, Any] = {}
        if self.total is not None:
            out["total"] = _num(self.total)
        if self.down_payment is not None:
            out["downPayment"] = _num(self.down_payment)
        if self.installments_value is not None:
            out["installments"] = {"value": _num(self.installments_value)}
        if self.annual_value is not None:
            out["annual"] = {"value": _num(self.annual_value)}
        if self.balloon is not None:
            out["balloon"] = _num(self.balloon)
        return out


@dataclass(frozen=True)
class Unit:
    id: str
    area: Decimal
    table_plan: PaymentPlan

    @classmethod
    def from_dict(cls, data: dict) -> "Unit":
        area = _to_decimal(data["area"], "area")
        if not area > ZERO:
            raise ValueError(f"Unit {data.get('id')!r}: area must be > 0, got {area}")
        return cls(
            id=str(data["id"]),
            area=area,
            table_plan=PaymentPlan.from_dict(data["tablePlan"]),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "area": _num(self.area), "tablePlan": self.table_plan.to_dict()}


@dataclass(frozen=True)
class Property:
    id: str
    name: str
    units: tuple[Unit, ...]  # display order

    @classmethod
    def from_dict(cls, data: dict) -> "Property":
        units = tuple(Unit.from_dict(u) for u in data["units"])
        if not units:
            raise ValueError(f"Property {data.get('id')!r} has no units.")
        return cls(id=str(data["id"]), name=str(data["name"]), units=units)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "units": [u.to_dict() for u in self.units]}


@dataclass(frozen=True)
class DiscountSuggestion:
    """Externally produced, transient discount advice for one analysis."""

    suggested_discount_percentage: Decimal
    rationale: str
    new_negotiated_total: Decimal

    @classmethod
    def from_dict(cls, data: dict) -> "DiscountSuggestion":
        """Strictly typed: numbers must be JSON numbers, rationale a string."""
        new_total = data.get("newNegotiatedValue", data.get("newNegotiatedTotal"))
        percentage = data.get("suggestedDiscountPercentage")
        rationale = data.get("rationale")
        for name, value in (
            ("suggestedDiscountPercentage", percentage),
            ("newNegotiatedValue", new_total),
        ):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")
        if not isinstance(rationale, str):
            raise ValueError(f"rationale must be a string, got {rationale!r}")
        return cls(
            suggested_discount_percentage=_to_decimal(percentage, "suggestedDiscountPercentage"),
            rationale=rationale,
            new_negotiated_total=_to_decimal(new_total, "newNegotiatedValue"),
        )

    def to_dict(self) -> dict:
        return {
            "suggestedDiscountPercentage": _num(self.suggested_discount_percentage),
            "rationale": self.rationale,
            "newNegotiatedValue": _num(self.new_negotiated_total),
        }
