"""Interactive CLI — click entry point + interactive negotiation loop.

Session startup:
  1. Pick the property / unit (from options, else the first catalog entry).
  2. Show the table plan next to the negotiated plan.
  3. Enter the interactive loop.

Loop:
  - Edit or clear proposal fields; every edit re-resolves the plan.
  - Switch property or unit (resets the proposal and any suggestion).
  - Ask the suggestion provider for a discount and apply it to one bucket.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .calculator import compute_summary
from .catalog import default_catalog, load_catalog
from .config import DEFAULT_DISCOUNT_TARGET, DISCOUNT_TARGETS
from .discount import discount_amount
from .fetcher import advisor_url, request_suggestion
from .formatting import fmt_area, fmt_money, fmt_pct
from .plan import PaymentPlan
from .resolver import InvalidInputError, parse_amount, plan_warnings
from .session import AnalysisInProgressError, NegotiationSession

console = Console()
err_console = Console(stderr=True, style="bold red")

logger = logging.getLogger(__name__)

# ──────────────────────────────────────────────────────────────────────────────
# Field naming
# ──────────────────────────────────────────────────────────────────────────────

# CLI name -> ProposalOverride attribute
_EDITABLE_FIELDS = {
    "total": "total",
    "down_payment": "down_payment",
    "installments": "installments_value",
    "annual": "annual_value",
    "balloon": "balloon",
}

_TARGET_LABELS = {
    "financed": "on the financed balance",
    "installments": "on the installments",
    "annual": "on the annual payments",
    "balloon": "on the balloon payment",
}

_SOURCE_STYLE = {
    "override": "[magenta]client[/magenta]",
    "absorbed": "[yellow]absorbed shortfall[/yellow]",
    "table": "[dim]table[/dim]",
    "derived": "[dim]derived[/dim]",
}


# ──────────────────────────────────────────────────────────────────────────────
# Display
# ──────────────────────────────────────────────────────────────────────────────

def display_proposal(session: NegotiationSession) -> None:
    table_plan = session.unit.table_plan
    plan, sources = session.resolved_with_sources()
    override = session.override

    console.print()
    console.print(Panel(
        f"[bold]{session.property.name}[/bold] — Unit {session.unit.id}",
        expand=False,
    ))

    t = Table(box=box.SIMPLE_HEAVY, show_header=True, padding=(0, 2))
    t.add_column("Item", style="cyan")
    t.add_column("Table", justify="right")
    t.add_column("Negotiated", justify="right", style="bold blue")
    t.add_column("Client proposal", justify="right")
    t.add_column("Source")

    def pinned(value) -> str:
        return fmt_money(value) if value is not None else "[dim]—[/dim]"

    t.add_row("Total price", fmt_money(table_plan.total), fmt_money(plan.total),
              pinned(override.total), _SOURCE_STYLE[sources["total"]])
    t.add_row("Down payment", fmt_money(table_plan.down_payment), fmt_money(plan.down_payment),
              pinned(override.down_payment), _SOURCE_STYLE[sources["down_payment"]])
    t.add_row(f"{table_plan.installments.count} Installments",
              fmt_money(table_plan.installments.value), fmt_money(plan.installments.value),
              pinned(override.installments_value), _SOURCE_STYLE[sources["installments"]])
    t.add_row(f"{table_plan.annual.count} Annual",
              fmt_money(table_plan.annual.value), fmt_money(plan.annual.value),
              pinned(override.annual_value), _SOURCE_STYLE[sources["annual"]])
    t.add_row("Balloon", fmt_money(table_plan.balloon), fmt_money(plan.balloon),
              pinned(override.balloon), _SOURCE_STYLE[sources["balloon"]])

    financed = fmt_money(plan.financed)
    if plan.financed < 0:
        financed = f"[red]{financed}[/red]"
    t.add_row("Financed balance", fmt_money(table_plan.financed), financed,
              "", _SOURCE_STYLE[sources["financed"]])
    console.print(t)

    for warning in plan_warnings(plan):
        console.print(f"[yellow]Warning:[/yellow] {warning}")


def display_summary(session: NegotiationSession) -> None:
    summary = compute_summary(session.unit.table_plan, session.resolved, session.unit.area)

    t = Table(title="Negotiation Summary", box=box.SIMPLE, show_header=False, padding=(0, 2))
    t.add_column("Field", style="cyan")
    t.add_column("Value", justify="right")

    discount_style = "green" if summary.discount_value > 0 else "white"
    t.add_row("Private area", fmt_area(summary.area))
    t.add_row("Table price (m²)", fmt_money(summary.table_price_per_m2))
    t.add_row("Proposal price (m²)", fmt_money(summary.proposal_price_per_m2))
    t.add_row("Discount applied", f"[{discount_style}]{fmt_money(summary.discount_value)}[/{discount_style}]")
    t.add_row("Discount %", f"[{discount_style}]{fmt_pct(summary.discount_percentage)}[/{discount_style}]")
    t.add_row("Financed % (table)", fmt_pct(summary.table_financed_percentage))
    t.add_row("Financed % (proposal)", fmt_pct(summary.proposal_financed_percentage))
    console.print(t)


def display_suggestion(session: NegotiationSession, plan: PaymentPlan) -> None:
    suggestion = session.suggestion
    if suggestion is None:
        return
    amount = discount_amount(plan, suggestion.new_negotiated_total)
    console.print(Panel(
        f"[bold green]Suggested maximum discount: "
        f"{fmt_pct(suggestion.suggested_discount_percentage)}[/bold green]\n"
        f"{fmt_money(amount)} off the current proposal\n"
        f"New suggested total: [bold]{fmt_money(suggestion.new_negotiated_total)}[/bold]\n\n"
        f"[yellow]Rationale:[/yellow] {suggestion.rationale}",
        title="Discount Advisor",
        expand=False,
    ))


def display_catalog(session: NegotiationSession) -> None:
    t = Table(title="Catalog", box=box.SIMPLE, show_header=True, padding=(0, 2))
    t.add_column("Property", style="cyan")
    t.add_column("Name")
    t.add_column("Units")
    for prop in session.catalog:
        marker = " [bold]*[/bold]" if prop.id == session.property.id else ""
        t.add_row(prop.id + marker, prop.name, ", ".join(u.id for u in prop.units))
    console.print(t)


# ──────────────────────────────────────────────────────────────────────────────
# Input helpers
# ──────────────────────────────────────────────────────────────────────────────

def _prompt_choice(prompt: str, choices: list[str], default: Optional[str] = None) -> Optional[str]:
    suffix = f" [{default}]" if default else ""
    raw = console.input(f"[bold]{prompt} ({' / '.join(choices)}){suffix}: [/bold]").strip().lower()
    if not raw and default:
        return default
    if raw in choices:
        return raw
    err_console.print(f"  Unknown choice '{raw}'.")
    return None


def _prompt_amount(prompt: str) -> Optional[str]:
    raw = console.input(f"[bold]{prompt}[/bold] ").strip()
    return raw or None


# ──────────────────────────────────────────────────────────────────────────────
# Actions
# ──────────────────────────────────────────────────────────────────────────────

def _set_field(session: NegotiationSession) -> bool:
    field = _prompt_choice("Field to set", list(_EDITABLE_FIELDS))
    if field is None:
        return False
    raw = _prompt_amount(f"New {field} value (e.g. 80.000,00):")
    if raw is None:
        console.print("  Nothing entered; proposal unchanged.")
        return False
    try:
        session.set_field(_EDITABLE_FIELDS[field], parse_amount(raw))
    except InvalidInputError as exc:
        err_console.print(f"  {exc}")
        return False
    return True


def _clear_field(session: NegotiationSession) -> bool:
    field = _prompt_choice("Field to clear", list(_EDITABLE_FIELDS))
    if field is None:
        return False
    session.clear_field(_EDITABLE_FIELDS[field])
    return True


def _select_property(session: NegotiationSession) -> bool:
    display_catalog(session)
    property_id = console.input("[bold]Property id: [/bold]").strip()
    try:
        session.select_property(property_id)
    except ValueError as exc:
        err_console.print(f"  {exc}")
        return False
    return True


def _select_unit(session: NegotiationSession) -> bool:
    units = [u.id for u in session.property.units]
    console.print(f"  Units: {', '.join(units)}")
    unit_id = console.input("[bold]Unit id: [/bold]").strip()
    try:
        session.select_unit(unit_id)
    except ValueError as exc:
        err_console.print(f"  {exc}")
        return False
    return True


def _analyze(session: NegotiationSession, url: str) -> None:
    try:
        plan = session.begin_analysis()
    except AnalysisInProgressError as exc:
        err_console.print(str(exc))
        return

    with console.status("Analysing proposal…"):
        result = request_suggestion(session.property, session.unit, plan, url=url)
    session.finish_analysis(result)

    if session.error:
        err_console.print(session.error)
    else:
        display_suggestion(session, plan)


def _apply(session: NegotiationSession) -> bool:
    if session.suggestion is None:
        err_console.print("No suggestion to apply. Run 'analyze' first.")
        return False
    for target in DISCOUNT_TARGETS:
        console.print(f"  [cyan]{target}[/cyan]: {_TARGET_LABELS[target]}")
    target = _prompt_choice("Apply discount", list(DISCOUNT_TARGETS), DEFAULT_DISCOUNT_TARGET)
    if target is None:
        return False
    session.apply_suggestion(target)  # type: ignore[arg-type]
    console.print(f"  [green]Discount applied {_TARGET_LABELS[target]}.[/green]")
    return True


# ──────────────────────────────────────────────────────────────────────────────
# Interactive loop
# ──────────────────────────────────────────────────────────────────────────────

def interactive_loop(session: NegotiationSession, url: str) -> None:
    display_proposal(session)

    while True:
        console.print()
        console.print(
            "[bold]Actions:[/bold] "
            "[cyan]set[/cyan] · [cyan]clear[/cyan] · [cyan]reset[/cyan] · "
            "[cyan]property[/cyan] · [cyan]unit[/cyan] · [cyan]summary[/cyan] · "
            "[cyan]analyze[/cyan] · [cyan]apply[/cyan] · [cyan]table[/cyan] · [cyan]exit[/cyan]"
        )
        action = console.input("[bold]> [/bold]").strip().lower()

        if action in ("exit", "quit", "q"):
            console.print("Goodbye.")
            break

        elif action == "table":
            display_proposal(session)

        elif action == "summary":
            display_summary(session)

        elif action == "set":
            if _set_field(session):
                display_proposal(session)

        elif action == "clear":
            if _clear_field(session):
                display_proposal(session)

        elif action == "reset":
            session.clear_proposal()
            display_proposal(session)

        elif action == "property":
            if _select_property(session):
                display_proposal(session)

        elif action == "unit":
            if _select_unit(session):
                display_proposal(session)

        elif action == "analyze":
            _analyze(session, url)

        elif action == "apply":
            if _apply(session):
                display_proposal(session)

        else:
            err_console.print(f"  Unknown action '{action}'.")


# ──────────────────────────────────────────────────────────────────────────────
# Click entry point
# ──────────────────────────────────────────────────────────────────────────────

def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@click.command()
@click.option("--property", "property_id", type=str, default=None, help="Property id (default: first in catalog)")
@click.option("--unit", "unit_id", type=str, default=None, help="Unit id (default: first unit of the property)")
@click.option("--catalog", "catalog_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help="JSON catalog file (default: $PROPOSAL_CATALOG or the built-in catalog)")
@click.option("--advisor-url", "advisor_url_opt", type=str, default=None,
              help="Suggestion service URL (default: $PROPOSAL_ADVISOR_URL)")
@click.option("--verbose", is_flag=True, default=False, help="Debug logging")
def main(
    property_id: Optional[str],
    unit_id: Optional[str],
    catalog_path: Optional[Path],
    advisor_url_opt: Optional[str],
    verbose: bool,
) -> None:
    """Interactive real-estate payment proposal analyzer."""
    _configure_logging(verbose)
    console.print(Panel("[bold blue]Proposal Analyzer[/bold blue]", expand=False))

    url = advisor_url_opt or advisor_url()

    try:
        catalog = load_catalog(catalog_path) if catalog_path else default_catalog()
        session = NegotiationSession(catalog, property_id, unit_id)
    except ValueError as exc:
        err_console.print(f"Catalog error: {exc}")
        sys.exit(1)

    if unit_id and session.unit.id != unit_id:
        console.print(f"[yellow]Unit '{unit_id}' not found; showing unit {session.unit.id}.[/yellow]")

    logger.debug("Suggestion service: %s", url)
    try:
        interactive_loop(session, url)
    except (KeyboardInterrupt, EOFError):
        console.print("\nSession ended.")
