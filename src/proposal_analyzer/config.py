"""Application-wide constants and configuration defaults.

All tuneable defaults live here so there is a single place to adjust them.
Environment variables are read at call time, never at import.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Literal

# ── Type aliases ──────────────────────────────────────────────────────────────

DiscountTarget = Literal["financed", "installments", "annual", "balloon"]

# ── Negotiation rules ─────────────────────────────────────────────────────────

DISCOUNT_TARGETS: tuple[str, ...] = ("financed", "installments", "annual", "balloon")
DEFAULT_DISCOUNT_TARGET: DiscountTarget = "financed"

# Fields a client proposal may pin (wire names are mapped in plan.py)
OVERRIDE_FIELDS: tuple[str, ...] = (
    "total",
    "down_payment",
    "installments_value",
    "annual_value",
    "balloon",
)

# ── Currency / display ────────────────────────────────────────────────────────

CURRENCY_SYMBOL: str = "R$"

# ── Suggestion provider ───────────────────────────────────────────────────────

ADVISOR_URL_ENV: str = "PROPOSAL_ADVISOR_URL"
DEFAULT_ADVISOR_URL: str = "http://127.0.0.1:8080/api/suggestion"

# Timeout for outbound HTTP calls (seconds); no automatic retry anywhere.
HTTP_TIMEOUT: int = 60

API_KEY_ENV: str = "API_KEY"
MODEL_ENV: str = "PROPOSAL_ADVISOR_MODEL"
DEFAULT_MODEL: str = "gemini-2.5-flash"
GEMINI_URL: str = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

# ── Server ────────────────────────────────────────────────────────────────────

PORT_ENV: str = "PORT"
DEFAULT_PORT: int = 8080

# ── Catalog ───────────────────────────────────────────────────────────────────

CATALOG_ENV: str = "PROPOSAL_CATALOG"

# ── Numeric convenience ───────────────────────────────────────────────────────

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")
