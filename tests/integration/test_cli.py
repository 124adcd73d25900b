"""Integration tests for the CLI — full session from selection to applied discount."""
from decimal import Decimal

import pytest
from click.testing import CliRunner
from rich.console import Console

from proposal_analyzer import cli
from proposal_analyzer.cli import main
from proposal_analyzer.fetcher import ProviderError, SuggestionReceived
from proposal_analyzer.plan import DiscountSuggestion


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    # Keep table cells on one line regardless of the runner's terminal width
    monkeypatch.setattr(cli, "console", Console(width=200))
    monkeypatch.setattr(cli, "err_console", Console(width=200, stderr=True, style="bold red"))


def _run(*lines: str, args=()):
    runner = CliRunner()
    return runner.invoke(main, list(args), input="\n".join(lines + ("exit",)) + "\n")


@pytest.fixture
def fake_advisor(monkeypatch):
    calls = []

    def _request(prop, unit, plan, *, url=None, session=None):
        calls.append({"unit": unit.id, "plan": plan, "url": url})
        return SuggestionReceived(DiscountSuggestion(Decimal("4"), "Strong down payment.", Decimal("480000")))

    monkeypatch.setattr(cli, "request_suggestion", _request)
    return calls


class TestStartup:
    def test_help(self):
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "proposal analyzer" in result.output.lower()

    def test_shows_first_unit(self):
        result = _run()
        assert result.exit_code == 0
        assert "Residencial Aurora" in result.output
        assert "Unit 101" in result.output
        assert "Goodbye." in result.output

    def test_property_and_unit_options(self):
        result = _run(args=["--property", "horizonte", "--unit", "1502"])
        assert result.exit_code == 0
        assert "Edifício Horizonte" in result.output
        assert "Unit 1502" in result.output

    def test_unknown_property_exits(self):
        result = _run(args=["--property", "nowhere"])
        assert result.exit_code == 1


class TestEditing:
    def test_lower_down_payment_is_absorbed(self):
        result = _run("set", "down_payment", "80.000,00")
        assert result.exit_code == 0
        assert "R$ 5.500,00" in result.output
        assert "absorbed shortfall" in result.output

    def test_invalid_amount_rejected(self):
        result = _run("set", "balloon", "abc", "table")
        assert result.exit_code == 0
        assert "Invalid number" in result.output

    def test_negative_financed_warning(self):
        result = _run("set", "down_payment", "400000")
        assert "Warning" in result.output

    def test_summary(self):
        result = _run("set", "total", "475000", "summary")
        assert "Negotiation Summary" in result.output
        assert "5,00%" in result.output

    def test_unknown_action(self):
        result = _run("dance")
        assert "Unknown action" in result.output


class TestAdvisorFlow:
    def test_analyze_and_apply(self, fake_advisor):
        result = _run("analyze", "apply", "annual", "table", args=["--advisor-url", "http://advisor.test"])
        assert result.exit_code == 0
        assert fake_advisor[0]["url"] == "http://advisor.test"
        assert "Strong down payment." in result.output
        assert "R$ 480.000,00" in result.output
        # annual: 40000 - 20000 = 20000 / 4
        assert "R$ 5.000,00" in result.output

    def test_apply_without_suggestion(self):
        result = _run("apply")
        assert "No suggestion to apply" in result.output

    def test_provider_failure_is_reported(self, monkeypatch):
        monkeypatch.setattr(
            cli, "request_suggestion",
            lambda *a, **kw: ProviderError(500, "Server configuration error. API_KEY is missing."),
        )
        result = _run("analyze")
        assert result.exit_code == 0
        assert "API_KEY is missing" in result.output
