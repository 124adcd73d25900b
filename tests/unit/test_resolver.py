"""Unit tests for resolver.py — shortfall absorption and the input boundary."""
from decimal import Decimal

import pytest

from proposal_analyzer.plan import PaymentDetail, PaymentPlan, ProposalOverride
from proposal_analyzer.resolver import (
    InvalidInputError,
    check_inputs,
    parse_amount,
    plan_warnings,
    resolve,
    resolve_with_sources,
)

ZERO = Decimal("0")
TOLERANCE = Decimal("0.000001")


def _table(**kwargs) -> PaymentPlan:
    defaults = dict(
        total=Decimal("500000"),
        down_payment=Decimal("100000"),
        installments=PaymentDetail(Decimal("5000"), 40),
        annual=PaymentDetail(Decimal("10000"), 4),
        balloon=Decimal("20000"),
        financed=Decimal("140000"),
    )
    defaults.update(kwargs)
    return PaymentPlan(**defaults)


def _override(**kwargs) -> ProposalOverride:
    return ProposalOverride(**{k: Decimal(str(v)) for k, v in kwargs.items()})


def _financed_of(plan: PaymentPlan) -> Decimal:
    return (
        plan.total
        - plan.down_payment
        - plan.installments.value * plan.installments.count
        - plan.annual.value * plan.annual.count
        - plan.balloon
    )


class TestIdentity:
    def test_empty_override_returns_table(self):
        table = _table()
        assert resolve(table, ProposalOverride()) == table

    def test_all_sources_are_table(self):
        _, sources = resolve_with_sources(_table(), ProposalOverride())
        assert sources["total"] == "table"
        assert sources["installments"] == "table"
        assert sources["balloon"] == "table"
        assert sources["financed"] == "derived"

    def test_inconsistent_table_financed_is_recomputed(self):
        # 500000 - 100000 - 200000 - 40000 - 20000 = 140000
        plan = resolve(_table(financed=Decimal("160000")), ProposalOverride())
        assert plan.financed == Decimal("140000")


class TestShortfallAbsorption:
    def test_shortfall_goes_to_installments(self):
        plan = resolve(_table(), _override(down_payment=80000))
        assert plan.installments == PaymentDetail(Decimal("5500"), 40)
        assert plan.annual == PaymentDetail(Decimal("10000"), 4)
        assert plan.balloon == Decimal("20000")
        assert plan.financed == Decimal("140000")

    def test_pinned_installments_pass_shortfall_to_annual(self):
        plan = resolve(_table(), _override(down_payment=80000, installments_value=6000))
        assert plan.installments == PaymentDetail(Decimal("6000"), 40)
        assert plan.annual == PaymentDetail(Decimal("15000"), 4)
        assert plan.balloon == Decimal("20000")
        assert plan.financed == Decimal("60000")

    def test_shortfall_reaches_balloon(self):
        plan = resolve(
            _table(),
            _override(down_payment=70000, installments_value=5000, annual_value=10000),
        )
        assert plan.balloon == Decimal("50000")

    def test_zero_count_installments_are_skipped(self):
        table = _table(installments=PaymentDetail(Decimal("0"), 0))
        plan = resolve(table, _override(down_payment=80000))
        assert plan.installments == PaymentDetail(Decimal("0"), 0)
        assert plan.annual.value == Decimal("15000")

    def test_zero_count_installments_and_annual_fall_to_balloon(self):
        table = _table(
            installments=PaymentDetail(Decimal("0"), 0),
            annual=PaymentDetail(Decimal("0"), 0),
        )
        plan = resolve(table, _override(down_payment=90000))
        assert plan.balloon == Decimal("30000")

    def test_only_first_eligible_bucket_absorbs(self):
        _, sources = resolve_with_sources(_table(), _override(down_payment=50000))
        assert sources["installments"] == "absorbed"
        assert sources["annual"] == "table"
        assert sources["balloon"] == "table"

    def test_all_pinned_drops_shortfall(self):
        override = _override(
            down_payment=80000, installments_value=5000, annual_value=10000, balloon=20000
        )
        plan = resolve(_table(), override)
        # The 20000 shortfall only shows through the smaller down payment
        assert plan.financed == Decimal("160000")

    @pytest.mark.parametrize("down_payment", ["1", "25000", "99999.99"])
    def test_shortfall_conservation(self, down_payment):
        table = _table()
        plan = resolve(table, _override(down_payment=down_payment))
        increase = plan.installments.subtotal - table.installments.subtotal
        assert abs(increase - (table.down_payment - Decimal(down_payment))) < TOLERANCE

    def test_uneven_split_keeps_total_exact(self):
        table = _table(installments=PaymentDetail(Decimal("5000"), 3))
        plan = resolve(table, _override(down_payment=99990))
        assert abs(plan.installments.subtotal - Decimal("15010")) < TOLERANCE


class TestSurplus:
    @pytest.mark.parametrize("down_payment", ["100000", "150000"])
    def test_no_reallocation(self, down_payment):
        table = _table()
        plan = resolve(table, _override(down_payment=down_payment))
        assert plan.installments == table.installments
        assert plan.annual == table.annual
        assert plan.balloon == table.balloon

    def test_surplus_reduces_financed(self):
        plan = resolve(_table(), _override(down_payment=150000))
        assert plan.financed == Decimal("90000")


class TestPins:
    def test_pins_used_verbatim(self):
        override = _override(total=450000, installments_value=1234.56, annual_value=0, balloon=0)
        plan = resolve(_table(), override)
        assert plan.total == Decimal("450000")
        assert plan.installments.value == Decimal("1234.56")
        assert plan.annual.value == ZERO
        assert plan.balloon == ZERO

    def test_pinned_zero_is_not_unset(self):
        plan = resolve(_table(), _override(down_payment=80000, installments_value=0))
        assert plan.installments.value == ZERO
        assert plan.annual.value == Decimal("15000")

    def test_counts_always_from_table(self):
        plan = resolve(_table(), _override(installments_value=100, annual_value=100))
        assert plan.installments.count == 40
        assert plan.annual.count == 4


class TestFinancedRecomputation:
    @pytest.mark.parametrize("override", [
        ProposalOverride(),
        ProposalOverride(down_payment=Decimal("12345.67")),
        ProposalOverride(total=Decimal("480000"), balloon=Decimal("5000")),
        ProposalOverride(down_payment=Decimal("300000"), annual_value=Decimal("7777.77")),
    ])
    def test_invariant_holds(self, override):
        plan = resolve(_table(), override)
        assert abs(plan.financed - _financed_of(plan)) < TOLERANCE

    def test_negative_financed_is_a_warning(self):
        plan = resolve(_table(), _override(down_payment=400000))
        assert plan.financed < ZERO
        warnings = plan_warnings(plan)
        assert len(warnings) == 1
        assert "negative" in warnings[0]

    def test_no_warning_for_positive_financed(self):
        assert plan_warnings(resolve(_table(), ProposalOverride())) == []


class TestTotality:
    def test_nan_propagates_without_raising(self):
        plan = resolve(_table(), ProposalOverride(down_payment=Decimal("NaN")))
        assert plan.financed.is_nan()

    def test_infinite_total_does_not_raise(self):
        plan = resolve(_table(), ProposalOverride(total=Decimal("Infinity")))
        assert plan.financed == Decimal("Infinity")

    def test_negative_values_accepted(self):
        plan = resolve(_table(), _override(total=-1))
        assert plan.financed == Decimal("-360001")


class TestCheckInputs:
    def test_valid_inputs_pass(self):
        check_inputs(_table(), _override(down_payment=80000))  # should not raise

    def test_nan_override_rejected(self):
        with pytest.raises(InvalidInputError, match="down_payment"):
            check_inputs(_table(), ProposalOverride(down_payment=Decimal("NaN")))

    def test_infinite_table_rejected(self):
        with pytest.raises(InvalidInputError, match="table.balloon"):
            check_inputs(_table(balloon=Decimal("Infinity")), ProposalOverride())

    def test_negative_count_rejected(self):
        table = _table(annual=PaymentDetail(Decimal("1"), -1))
        with pytest.raises(InvalidInputError, match="count"):
            check_inputs(table, ProposalOverride())


class TestParseAmount:
    @pytest.mark.parametrize("raw,expected", [
        ("80000", Decimal("80000")),
        ("80.000,50", Decimal("80000.50")),
        ("R$ 1.234,56", Decimal("1234.56")),
        ("1234.56", Decimal("1234.56")),
        ("0", ZERO),
    ])
    def test_accepted(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", "", "NaN", "Infinity", "-5"])
    def test_rejected(self, raw):
        with pytest.raises(InvalidInputError):
            parse_amount(raw)

    def test_negative_allowed_when_requested(self):
        assert parse_amount("-5", allow_negative=True) == Decimal("-5")
