"""pt-BR display formatting (R$ 1.234,56)."""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from .config import CURRENCY_SYMBOL


def _swap_separators(text: str) -> str:
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def fmt_money(value: Optional[Decimal]) -> str:
    if value is None or not value.is_finite():
        return f"{CURRENCY_SYMBOL} -"
    sign = "-" if value < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL} {_swap_separators(f'{abs(value):,.2f}')}"


def fmt_number(value: Decimal, places: int = 2) -> str:
    return _swap_separators(f"{value:,.{places}f}")


def fmt_pct(value: Decimal) -> str:
    """*value* is already a percentage (5.5 -> '5,50%')."""
    return f"{fmt_number(value)}%"


def fmt_area(value: Decimal) -> str:
    text = f"{value:,f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{_swap_separators(text)} m²"
