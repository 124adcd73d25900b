"""Suggestion provider client.

Sends the resolved proposal to the advisor endpoint and returns exactly one
result variant.  Nothing here raises for remote failures; the caller
renders each variant distinctly.  All calls are user-triggered, there is no
retry and no background polling.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional, Union

import requests

from .config import ADVISOR_URL_ENV, DEFAULT_ADVISOR_URL, HTTP_TIMEOUT
from .plan import DiscountSuggestion, PaymentPlan, Property, Unit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SuggestionReceived:
    suggestion: DiscountSuggestion


@dataclass(frozen=True)
class ProviderError:
    """The provider answered with a non-200 status."""

    status_code: int
    message: str
    details: Optional[str] = None


@dataclass(frozen=True)
class TransportError:
    """The provider could not be reached (connection error, timeout)."""

    message: str


@dataclass(frozen=True)
class InvalidResponse:
    """The provider answered 200 with a payload we cannot use."""

    message: str


SuggestionResult = Union[SuggestionReceived, ProviderError, TransportError, InvalidResponse]


def advisor_url() -> str:
    return os.environ.get(ADVISOR_URL_ENV) or DEFAULT_ADVISOR_URL


def request_suggestion(
    prop: Property,
    unit: Unit,
    plan: PaymentPlan,
    *,
    url: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> SuggestionResult:
    """Ask the provider for a discount suggestion on the resolved *plan*."""
    target = url or advisor_url()
    http = session or requests
    body = {"property": prop.to_dict(), "unit": unit.to_dict(), "clientProposal": plan.to_dict()}

    logger.debug("Requesting suggestion for %s/%s from %s", prop.id, unit.id, target)
    try:
        resp = http.post(target, json=body, timeout=HTTP_TIMEOUT)
    except requests.RequestException as exc:
        logger.warning("Suggestion request failed: %s", exc)
        return TransportError(f"Could not reach the suggestion service: {exc}")

    try:
        payload = resp.json()
    except ValueError:
        payload = None

    if resp.status_code != 200:
        message = f"Request failed with status {resp.status_code}"
        details = None
        if isinstance(payload, dict):
            if isinstance(payload.get("error"), str):
                message = payload["error"]
            if isinstance(payload.get("details"), str):
                details = payload["details"]
        logger.warning("Suggestion provider returned %s: %s", resp.status_code, message)
        return ProviderError(status_code=resp.status_code, message=message, details=details)

    if not isinstance(payload, dict):
        return InvalidResponse("Suggestion service returned a non-JSON or non-object body.")
    try:
        suggestion = DiscountSuggestion.from_dict(payload)
    except ValueError as exc:
        logger.warning("Invalid suggestion payload: %s", exc)
        return InvalidResponse(f"Invalid suggestion format: {exc}")

    return SuggestionReceived(suggestion)


def describe_failure(result: SuggestionResult) -> Optional[str]:
    """One user-facing message for a failed result; None for a success."""
    if isinstance(result, SuggestionReceived):
        return None
    if isinstance(result, ProviderError):
        text = f"Could not get a suggestion: {result.message}"
        if result.details:
            text += f" ({result.details})"
        return text
    return f"Could not get a suggestion: {result.message}"
