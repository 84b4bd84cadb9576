"""Tests for HighValueItemHandlingModule."""

from decimal import Decimal

import pytest

from quote_kernel.domain.context import CostCategory, Severity
from quote_modules.high_value import (
    HIGH_VALUE_DECLARED,
    SPECIAL_HANDLING_REQUIRED,
    HighValueItemHandlingModule,
)
from tests.conftest import make_context


@pytest.fixture
def module(policy):
    return HighValueItemHandlingModule(policy.high_value)


class TestApplicability:
    def test_nothing_special(self, module):
        assert not module.is_applicable(make_context(declared_value=Decimal("50000")))

    def test_item_flag(self, module):
        assert module.is_applicable(make_context(safe=True))

    def test_declared_value_above_threshold(self, module):
        assert module.is_applicable(make_context(declared_value=Decimal("50000.01")))


class TestItems:
    def test_piano_only(self, module):
        ctx = module.apply(make_context(piano=True))
        acc = ctx.accumulator

        (line,) = acc.costs
        assert line.amount == Decimal("150.00")
        assert line.category is CostCategory.HANDLING
        assert line.metadata["cost_breakdown"] == ({"item": "PIANO", "cost": Decimal("150")},)

        (req,) = acc.requirements
        assert req.type == SPECIAL_HANDLING_REQUIRED
        assert req.severity is Severity.HIGH
        assert req.metadata["item_type"] == "PIANO"

        (risk,) = acc.risk_contributions
        assert risk.amount == Decimal("15")
        assert risk.reason == "High-value items: PIANO"

    def test_all_items_one_cost_one_risk(self, module):
        ctx = module.apply(make_context(artwork=True, piano=True, safe=True))
        acc = ctx.accumulator
        assert [c.amount for c in acc.costs] == [Decimal("450.00")]
        assert [r.metadata["item_type"] for r in acc.requirements] == ["PIANO", "SAFE", "ARTWORK"]
        assert [r.severity for r in acc.requirements] == [
            Severity.HIGH,
            Severity.CRITICAL,
            Severity.HIGH,
        ]
        assert len(acc.risk_contributions) == 1
        assert acc.risk_contributions[0].reason == "High-value items: PIANO, SAFE, ARTWORK"

    def test_items_suppress_declared_value_advisory(self, module):
        ctx = module.apply(make_context(piano=True, declared_value=Decimal("90000")))
        assert HIGH_VALUE_DECLARED not in [r.type for r in ctx.accumulator.requirements]


class TestDeclaredValueOnly:
    def test_advisory_requirement_without_cost(self, module):
        ctx = module.apply(make_context(declared_value=Decimal("75000")))
        acc = ctx.accumulator
        assert acc.costs == ()
        assert acc.risk_contributions == ()
        (req,) = acc.requirements
        assert req.type == HIGH_VALUE_DECLARED
        assert req.severity is Severity.MEDIUM
        assert req.metadata["threshold"] == Decimal("50000")
