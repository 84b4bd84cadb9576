"""
Tests for the QuoteContext and its append-only Accumulator.

Covers:
- Entry rounding and non-negativity
- Append returns new instances and keeps earlier entries
- Fact write-once semantics and lookup
- Metadata immutability per key
"""

from decimal import Decimal

import pytest

from quote_kernel.domain.context import (
    Accumulator,
    Adjustment,
    AdjustmentKind,
    CostCategory,
    CostLine,
    Fact,
    QuoteContext,
    QuoteRequest,
    RiskContribution,
    ServiceType,
    SpecialItem,
)
from tests.conftest import make_context, make_request


def _line(module_id: str = "m", amount: str = "10") -> CostLine:
    return CostLine(module_id, "fee", Decimal(amount), CostCategory.ADMINISTRATIVE)


class TestEntries:
    """Value rules on individual accumulator entries."""

    def test_cost_amount_rounded_half_up(self):
        assert _line(amount="10.005").amount == Decimal("10.01")
        assert _line(amount="10.004").amount == Decimal("10.00")

    def test_negative_cost_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            _line(amount="-0.01")

    @pytest.mark.parametrize("amount", ["-0.004", "-0.0049", "-0.001"])
    def test_sub_cent_negative_cost_rejected(self, amount):
        with pytest.raises(ValueError, match="non-negative"):
            _line(amount=amount)

    def test_negative_sub_cent_adjustment_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            Adjustment("m", "peak", Decimal("-0.002"), AdjustmentKind.SURCHARGE)

    def test_negative_zero_is_normalised(self):
        line = _line(amount="-0")
        assert line.amount == Decimal("0.00")
        assert not line.amount.is_signed()
        assert str(line.amount) == "0.00"
        adjustment = Adjustment("m", "none", Decimal("-0.00"), AdjustmentKind.DISCOUNT)
        assert str(adjustment.amount) == "0.00"

    def test_float_cost_rejected(self):
        with pytest.raises(TypeError):
            CostLine("m", "fee", 1.5, CostCategory.ADMINISTRATIVE)

    def test_adjustment_discount_is_negative_delta(self):
        discount = Adjustment("m", "loyalty", Decimal("12.50"), AdjustmentKind.DISCOUNT)
        assert discount.amount == Decimal("12.50")
        assert discount.signed_amount == Decimal("-12.50")

    def test_surcharge_signed_amount_positive(self):
        surcharge = Adjustment("m", "peak", Decimal("5"), AdjustmentKind.SURCHARGE)
        assert surcharge.signed_amount == Decimal("5.00")

    def test_negative_risk_rejected(self):
        with pytest.raises(ValueError):
            RiskContribution("m", Decimal("-1"), "nope")

    def test_metadata_is_read_only(self):
        line = CostLine("m", "fee", Decimal("1"), CostCategory.VEHICLE, {"k": 1})
        with pytest.raises(TypeError):
            line.metadata["k"] = 2


class TestAppend:
    """Accumulator.append never mutates and keeps prefixes."""

    def test_append_returns_new_instance(self):
        acc = Accumulator()
        new = acc.append(costs=[_line()])
        assert acc.costs == ()
        assert len(new.costs) == 1

    def test_append_keeps_existing_entries_first(self):
        first = _line("a", "1")
        second = _line("b", "2")
        acc = Accumulator().append(costs=[first]).append(costs=[second])
        assert acc.costs == (first, second)

    def test_append_multiple_categories_at_once(self):
        acc = Accumulator().append(
            costs=[_line()],
            risk_contributions=[RiskContribution("m", Decimal("3"), "r")],
        )
        assert len(acc.costs) == 1
        assert len(acc.risk_contributions) == 1

    def test_unknown_category_rejected(self):
        with pytest.raises(ValueError, match="Unknown accumulator category"):
            Accumulator().append(activated_modules=["x"])

    def test_empty_append_returns_same_instance(self):
        acc = Accumulator()
        assert acc.append(costs=[]) is acc

    def test_with_activated_rejects_duplicates(self):
        acc = Accumulator().with_activated("m")
        assert acc.activated_modules == ("m",)
        with pytest.raises(ValueError):
            acc.with_activated("m")


class TestFacts:
    def test_fact_lookup_and_default(self):
        acc = Accumulator().append(facts=[Fact("m", "distance_km", Decimal("42"))])
        assert acc.fact("distance_km") == Decimal("42")
        assert acc.fact("missing", "dflt") == "dflt"
        assert acc.has_fact("distance_km")
        assert not acc.has_fact("missing")

    def test_fact_written_once(self):
        acc = Accumulator().append(facts=[Fact("m", "x", 1)])
        with pytest.raises(ValueError, match="already defined"):
            acc.append(facts=[Fact("n", "x", 2)])

    def test_duplicate_fact_within_one_append(self):
        with pytest.raises(ValueError):
            Accumulator().append(facts=[Fact("m", "x", 1), Fact("m", "x", 2)])


class TestMetadata:
    def test_metadata_namespaced_by_module(self):
        acc = Accumulator().with_metadata("m", {"a": 1}).with_metadata("n", {"a": 2})
        assert acc.metadata["m"]["a"] == 1
        assert acc.metadata["n"]["a"] == 2

    def test_metadata_key_cannot_be_rewritten(self):
        acc = Accumulator().with_metadata("m", {"a": 1})
        with pytest.raises(ValueError, match="already set"):
            acc.with_metadata("m", {"a": 2})

    def test_metadata_same_value_is_idempotent(self):
        acc = Accumulator().with_metadata("m", {"a": 1}).with_metadata("m", {"a": 1, "b": 2})
        assert dict(acc.metadata["m"]) == {"a": 1, "b": 2}


class TestRequestAndContext:
    def test_service_type_string_normalised(self):
        assert QuoteRequest(service_type="MOVING").service_type is ServiceType.MOVING

    def test_unknown_service_type_left_for_validation(self):
        assert QuoteRequest(service_type="TELEPORT").service_type == "TELEPORT"

    def test_int_quantities_become_decimal(self):
        req = QuoteRequest(service_type=ServiceType.MOVING, volume_m3=30, distance_km=12)
        assert req.volume_m3 == Decimal("30")
        assert isinstance(req.distance_km, Decimal)

    def test_special_items_in_declaration_order(self):
        req = make_request(artwork=True, piano=True)
        assert req.special_items == (SpecialItem.PIANO, SpecialItem.ARTWORK)

    def test_request_is_frozen(self):
        req = make_request()
        with pytest.raises(AttributeError):
            req.piano = True

    def test_context_append_keeps_request(self):
        ctx = make_context()
        new = ctx.append(costs=[_line()])
        assert new.request is ctx.request
        assert ctx.accumulator.costs == ()

    def test_initial_context_is_empty(self):
        ctx = QuoteContext.initial(make_request())
        assert ctx.accumulator == Accumulator()
        assert not ctx.is_activated("anything")
