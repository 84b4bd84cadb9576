"""Tests for end-of-month and weekend surcharges."""

from datetime import date
from decimal import Decimal

import pytest

from quote_kernel.domain.context import AdjustmentKind, CostCategory, CostLine
from quote_modules.temporal import EndOfMonthSurchargeModule, WeekendSurchargeModule
from tests.conftest import make_context

TUESDAY_27TH = date(2026, 10, 27)
SATURDAY_17TH = date(2026, 10, 17)
SUNDAY_25TH = date(2026, 10, 25)
WEDNESDAY_14TH = date(2026, 10, 14)


def _priced(scheduled: date | None, amount: str = "200"):
    return make_context(scheduled_date=scheduled).append(
        costs=[CostLine("labor-base", "Labor", Decimal(amount), CostCategory.LABOR)]
    )


class TestEndOfMonth:
    @pytest.fixture
    def module(self, policy):
        return EndOfMonthSurchargeModule(policy.temporal)

    @pytest.mark.parametrize(
        "scheduled, expected",
        [
            (TUESDAY_27TH, True),
            (SUNDAY_25TH, True),
            (date(2026, 10, 24), False),
            (WEDNESDAY_14TH, False),
            (None, False),
        ],
    )
    def test_applicability(self, module, scheduled, expected):
        assert module.is_applicable(_priced(scheduled)) is expected

    def test_surcharge_and_risk(self, module):
        ctx = module.apply(_priced(TUESDAY_27TH))
        (adj,) = ctx.accumulator.adjustments
        assert adj.amount == Decimal("10.00")
        assert adj.kind is AdjustmentKind.SURCHARGE
        assert adj.metadata["base"] == Decimal("200.00")
        (risk,) = ctx.accumulator.risk_contributions
        assert risk.amount == Decimal("10")


class TestWeekend:
    @pytest.fixture
    def module(self, policy):
        return WeekendSurchargeModule(policy.temporal)

    @pytest.mark.parametrize(
        "scheduled, expected",
        [
            (SATURDAY_17TH, True),
            (SUNDAY_25TH, True),
            (TUESDAY_27TH, False),
            (None, False),
        ],
    )
    def test_applicability(self, module, scheduled, expected):
        assert module.is_applicable(_priced(scheduled)) is expected

    def test_surcharge_rounds_half_up(self, module):
        ctx = module.apply(_priced(SATURDAY_17TH, "100.10"))
        assert ctx.accumulator.adjustments[0].amount == Decimal("5.01")
        assert ctx.accumulator.risk_contributions[0].amount == Decimal("8")

    def test_surcharges_are_not_compounded(self, policy):
        ctx = _priced(SUNDAY_25TH)
        ctx = EndOfMonthSurchargeModule(policy.temporal).apply(ctx)
        ctx = WeekendSurchargeModule(policy.temporal).apply(ctx)
        assert [a.amount for a in ctx.accumulator.adjustments] == [
            Decimal("10.00"),
            Decimal("10.00"),
        ]
