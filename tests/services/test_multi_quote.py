"""
Tests for MultiQuoteService and QuoteScenario.

Covers:
- The margin is a SURCHARGE equal to rate x pre-margin total
- Each scenario's module selection and request overrides
- The caller's request is never modified
- Scenario selection, unknown and duplicate ids
"""

import logging
from decimal import Decimal

import pytest

from quote_kernel.domain.context import AdjustmentKind, ServiceType
from quote_kernel.domain.scenario import QuoteScenario
from quote_kernel.domain.values import round_money
from quote_kernel.exceptions import InvalidInputError
from quote_kernel.services.multi_quote import SCENARIO_MARGIN, MultiQuoteService
from quote_kernel.services.quote_orchestrator import ModuleStatus
from tests.conftest import make_request


@pytest.fixture
def service(orchestrator):
    return MultiQuoteService(orchestrator)


def _valuables():
    return make_request(
        declared_value=Decimal("20000"),
        declared_value_insurance_requested=True,
        piano=True,
    )


def _move():
    return make_request(
        service_type=ServiceType.MOVING,
        volume_m3=Decimal("20"),
        distance_km=Decimal("10"),
        volume_confidence="HIGH",
    )


class TestLadder:
    @pytest.fixture
    def variants(self, service):
        return {v.scenario.id: v for v in service.generate(_valuables(), Decimal("100"))}

    def test_all_scenarios_in_order(self, service):
        ids = [v.scenario.id for v in service.generate(_valuables())]
        assert ids == ["ECO", "STANDARD", "CONFORT", "SECURITY_PLUS", "PREMIUM", "FLEX"]

    @pytest.mark.parametrize(
        "scenario_id,margin,total",
        [
            # insurance 200, no handling: 300 * 0.20
            ("ECO", "60.00", "360.00"),
            # insurance disabled, handling not enabled: 100 * 0.30
            ("STANDARD", "30.00", "130.00"),
            ("CONFORT", "105.00", "405.00"),
            # 100 + 200 + 150 = 450
            ("SECURITY_PLUS", "144.00", "594.00"),
            ("PREMIUM", "180.00", "630.00"),
            ("FLEX", "171.00", "621.00"),
        ],
    )
    def test_totals(self, variants, scenario_id, margin, total):
        variant = variants[scenario_id]
        assert variant.margin == Decimal(margin)
        assert variant.quote.total_price == Decimal(total)

    def test_margin_is_last_surcharge(self, variants):
        for variant in variants.values():
            quote = variant.quote
            margin = quote.adjustments[-1]
            assert margin.module_id == SCENARIO_MARGIN
            assert margin.kind is AdjustmentKind.SURCHARGE
            assert margin.amount == variant.margin
            assert quote.activated_modules[-1] == SCENARIO_MARGIN
            before = quote.base_price + quote.costs_total + quote.adjustments_total - margin.amount
            assert margin.amount == round_money(before * variant.scenario.margin_rate)
            assert margin.metadata["scenario_id"] == variant.scenario.id

    def test_eco_skips_handling(self, variants):
        run = variants["ECO"].run
        assert run.outcome_for("high-value-item-handling").status is ModuleStatus.SKIPPED_DISABLED
        assert run.outcome_for("insurance-premium").status is ModuleStatus.ACTIVATED

    def test_standard_filters_non_selected(self, variants):
        run = variants["STANDARD"].run
        assert run.outcome_for("high-value-item-handling").status is (
            ModuleStatus.SKIPPED_NOT_ENABLED
        )
        assert run.outcome_for("insurance-premium").status is ModuleStatus.SKIPPED_DISABLED

    def test_to_dict(self, variants):
        data = variants["PREMIUM"].to_dict()
        assert data["scenario_id"] == "PREMIUM"
        assert data["margin_rate"] == "0.40"
        assert data["quote"]["total_price"] == "630.00"
        assert "INSURANCE_INCLUDED" in data["tags"]


class TestOverrides:
    def test_packing_only_where_included(self, service):
        request = _move()
        variants = {v.scenario.id: v for v in service.generate(request)}
        assert variants["STANDARD"].quote.lines_for("packing-cost")
        assert variants["ECO"].quote.lines_for("packing-cost") == ()
        assert variants["FLEX"].quote.lines_for("packing-cost") == ()
        assert request.packing_requested is False

    def test_insurance_requested_by_scenario(self, service):
        request = make_request(declared_value=Decimal("10000"))
        (premium,) = service.generate(request, scenario_ids=["PREMIUM"])
        assert [c.amount for c in premium.quote.lines_for("insurance-premium")] == [
            Decimal("100.00")
        ]
        assert request.declared_value_insurance_requested is False

    def test_apply_to_returns_new_request(self):
        scenario = QuoteScenario(
            id="X", label="X", margin_rate=Decimal("0"), overrides={"piano": True}
        )
        request = make_request()
        assert scenario.apply_to(request).piano is True
        assert request.piano is False

    def test_identity_fields_not_overridable(self):
        with pytest.raises(ValueError, match="request_id"):
            QuoteScenario(
                id="X", label="X", margin_rate=Decimal("0"), overrides={"request_id": "r"}
            )


class TestSelection:
    def test_subset_keeps_ladder_order(self, service):
        variants = service.generate(_valuables(), scenario_ids=["PREMIUM", "ECO"])
        assert [v.scenario.id for v in variants] == ["ECO", "PREMIUM"]

    def test_unknown_scenario(self, service):
        with pytest.raises(InvalidInputError) as exc_info:
            service.generate(_valuables(), scenario_ids=["ECO", "GOLD"])
        assert exc_info.value.field_errors[0]["field"] == "scenarios"
        assert "GOLD" in exc_info.value.field_errors[0]["message"]

    def test_duplicate_ids(self, orchestrator):
        twice = [QuoteScenario(id="A", label="A", margin_rate=Decimal("0.1"))] * 2
        with pytest.raises(ValueError, match="A"):
            MultiQuoteService(orchestrator, twice)

    def test_custom_scenarios(self, orchestrator):
        service = MultiQuoteService(
            orchestrator,
            [QuoteScenario(id="FLAT", label="Flat", margin_rate=Decimal("0.10"))],
        )
        (variant,) = service.generate(_valuables(), Decimal("50"))
        # 50 + 200 + 150 = 400
        assert variant.margin == Decimal("40.00")

    def test_no_margin_on_empty_quote(self, service):
        (eco,) = service.generate(make_request(), scenario_ids=["ECO"])
        assert eco.margin == Decimal("0")
        assert eco.quote.adjustments == ()
        assert SCENARIO_MARGIN not in eco.quote.activated_modules

    def test_invalid_request_rejected(self, service):
        with pytest.raises(InvalidInputError):
            service.generate(make_request(piano="false"))


class TestLogging:
    def test_summary_logged(self, service, caplog, isolated_logging):
        caplog.set_level(logging.INFO, logger="quote_kernel")
        service.generate(_valuables(), scenario_ids=["ECO"])
        (record,) = [
            r for r in caplog.records if r.getMessage() == "quote_variants_generated"
        ]
        assert record.scenarios == ["ECO"]
        assert record.totals == {"ECO": "240.00"}
