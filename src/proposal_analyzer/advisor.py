"""Model-backed discount advisor (server side of the suggestion provider).

Builds the analyst prompt from the table plan and the client's resolved
proposal, calls the Gemini generateContent REST endpoint with a JSON
response schema, and type-checks the answer.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Optional

import requests

from .calculator import ratio_pct
from .config import API_KEY_ENV, DEFAULT_MODEL, GEMINI_URL, HTTP_TIMEOUT, MODEL_ENV
from .formatting import fmt_area, fmt_money, fmt_pct
from .plan import DiscountSuggestion, PaymentPlan, Property, Unit

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when the server is missing its model credential."""


class AdvisorError(Exception):
    """Raised when the model call fails or returns an unusable answer."""


_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "suggestedDiscountPercentage": {
            "type": "NUMBER",
            "description": "Suggested discount percentage. Example: 5.5 for 5.5%.",
        },
        "rationale": {
            "type": "STRING",
            "description": (
                "A clear explanation of the discount, highlighting the financial "
                "benefits (e.g. larger down payment, smaller financed balance)."
            ),
        },
        "newNegotiatedValue": {
            "type": "NUMBER",
            "description": (
                "The new total price after applying the suggested discount to the "
                "total of the client's proposal."
            ),
        },
    },
    "required": ["suggestedDiscountPercentage", "rationale", "newNegotiatedValue"],
}


def api_key() -> str:
    """Return the model credential or raise ConfigurationError."""
    key = os.environ.get(API_KEY_ENV)
    if not key:
        raise ConfigurationError(f"Server configuration error. {API_KEY_ENV} is missing.")
    return key


def model_name() -> str:
    return os.environ.get(MODEL_ENV) or DEFAULT_MODEL


def _plan_lines(plan: PaymentPlan) -> str:
    return "\n".join([
        f"- Total price: {fmt_money(plan.total)}",
        f"- Down payment: {fmt_money(plan.down_payment)}",
        f"- Installments: {plan.installments.count}x of {fmt_money(plan.installments.value)}",
        f"- Annual payments: {plan.annual.count}x of {fmt_money(plan.annual.value)}",
        f"- Balloon payment: {fmt_money(plan.balloon)}",
        f"- Financed balance: {fmt_money(plan.financed)} "
        f"({fmt_pct(ratio_pct(plan.financed, plan.total))})",
    ])


def build_prompt(prop: Property, unit: Unit, plan: PaymentPlan) -> str:
    return f"""
Analyse the following payment proposal for a property unit and suggest the
maximum justifiable discount.

**Context:**
You are an expert real-estate financial analyst. Your goal is to compare the
client's payment proposal with the company's standard payment plan (table
plan). Your discount suggestion must be based strictly on the financial
benefits the client's proposal offers the company. Better cash flow (larger
up-front payment, smaller financed balance, shorter term) justifies a larger
discount.

**Property:**
- Development: {prop.name}
- Unit: {unit.id}
- Area: {fmt_area(unit.area)}

**Standard plan (table):**
{_plan_lines(unit.table_plan)}

**Client proposal (negotiated):**
{_plan_lines(plan)}

**Your task:**
Based on the comparison, determine the maximum discount percentage that can be
offered on the total price of the client's proposal. Give a clear and concise
rationale. The answer MUST be JSON.
""".strip()


def generate_suggestion(
    prop: Property,
    unit: Unit,
    plan: PaymentPlan,
    key: str,
    *,
    model: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> DiscountSuggestion:
    """Call the model and return a validated suggestion.

    Raises AdvisorError on any error (network, HTTP status, parsing, types).
    """
    http = session or requests
    url = GEMINI_URL.format(model=model or model_name())
    body = {
        "contents": [{"role": "user", "parts": [{"text": build_prompt(prop, unit, plan)}]}],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": _RESPONSE_SCHEMA,
        },
    }
    try:
        resp = http.post(
            url,
            json=body,
            headers={"x-goog-api-key": key},
            timeout=HTTP_TIMEOUT,
        )
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise AdvisorError(f"Model API request failed: {exc}") from exc

    try:
        data = resp.json()
        text = data["candidates"][0]["content"]["parts"][0]["text"]
        result = json.loads(text.strip())
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise AdvisorError(f"Failed to parse model response: {exc!r}") from exc

    if not isinstance(result, dict):
        raise AdvisorError("Model response is not a JSON object.")
    try:
        suggestion = DiscountSuggestion.from_dict(result)
    except ValueError as exc:
        raise AdvisorError(f"Invalid model response format: {exc}") from exc

    logger.info(
        "Suggestion for %s/%s: %s%% -> %s",
        prop.id, unit.id,
        suggestion.suggested_discount_percentage,
        suggestion.new_negotiated_total,
    )
    return suggestion
