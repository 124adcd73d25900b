"""Session-scoped negotiation state.

One session owns the active property/unit, the client's partial override and
the last discount suggestion.  Changing the active unit resets both the
override and the suggestion.  At most one analysis may be in flight; a
result arriving for a unit that is no longer active is discarded.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from .catalog import get_property, get_unit, list_properties
from .config import DiscountTarget
from .discount import apply_discount
from .fetcher import SuggestionReceived, SuggestionResult, describe_failure
from .plan import DiscountSuggestion, PaymentPlan, Property, ProposalOverride, Unit
from .resolver import check_inputs, resolve, resolve_with_sources


class AnalysisInProgressError(Exception):
    """Raised when an analysis is requested while another one is pending."""


class NegotiationSession:

    def __init__(
        self,
        catalog: Optional[tuple[Property, ...]] = None,
        property_id: Optional[str] = None,
        unit_id: Optional[str] = None,
    ) -> None:
        self._catalog = list_properties(catalog)
        self.property: Property = (
            get_property(property_id, self._catalog) if property_id else self._catalog[0]
        )
        self.unit: Unit = get_unit(self.property, unit_id)
        self.override = ProposalOverride()
        self.suggestion: Optional[DiscountSuggestion] = None
        self.error: Optional[str] = None
        self.analysis_pending = False
        self._analysis_unit: Optional[tuple[str, str]] = None

    @property
    def catalog(self) -> tuple[Property, ...]:
        return self._catalog

    # ── Selection ─────────────────────────────────────────────────────────────

    def select_property(self, property_id: str) -> None:
        self.property = get_property(property_id, self._catalog)
        self._set_unit(get_unit(self.property, self.unit.id))

    def select_unit(self, unit_id: str) -> None:
        if all(u.id != unit_id for u in self.property.units):
            raise ValueError(
                f"Unknown unit '{unit_id}' in {self.property.name}. "
                f"Available: {', '.join(u.id for u in self.property.units)}"
            )
        self._set_unit(get_unit(self.property, unit_id))

    def _set_unit(self, unit: Unit) -> None:
        changed = unit is not self.unit
        self.unit = unit
        if changed:
            self.override = ProposalOverride()
            self.suggestion = None
            self.error = None

    # ── Proposal editing ─────────────────────────────────────────────────────

    def set_field(self, field: str, value: Decimal) -> None:
        candidate = self.override.replace(**{field: value})
        check_inputs(self.unit.table_plan, candidate)
        self.override = candidate

    def clear_field(self, field: str) -> None:
        self.override = self.override.cleared(field)

    def clear_proposal(self) -> None:
        self.override = ProposalOverride()

    @property
    def resolved(self) -> PaymentPlan:
        return resolve(self.unit.table_plan, self.override)

    def resolved_with_sources(self) -> tuple[PaymentPlan, dict[str, str]]:
        return resolve_with_sources(self.unit.table_plan, self.override)

    # ── Suggestion lifecycle ─────────────────────────────────────────────────

    def begin_analysis(self) -> PaymentPlan:
        """Mark an analysis as pending and return the plan to send."""
        if self.analysis_pending:
            raise AnalysisInProgressError("An analysis is already in progress.")
        self.analysis_pending = True
        self.suggestion = None
        self.error = None
        self._analysis_unit = (self.property.id, self.unit.id)
        return self.resolved

    def finish_analysis(self, result: SuggestionResult) -> bool:
        """Store the outcome.  Returns False when the result was discarded."""
        requested_for = self._analysis_unit
        self.analysis_pending = False
        self._analysis_unit = None
        if requested_for != (self.property.id, self.unit.id):
            return False
        if isinstance(result, SuggestionReceived):
            self.suggestion = result.suggestion
        else:
            self.error = describe_failure(result)
        return True

    def apply_suggestion(self, target: DiscountTarget) -> bool:
        """Fold the current suggestion into the override.  False if none."""
        if self.suggestion is None:
            return False
        self.override = apply_discount(
            self.override,
            self.resolved,
            self.unit.table_plan,
            target,
            self.suggestion.new_negotiated_total,
        )
        return True
