"""
quote_kernel.services.multi_quote -- One quote per commercial scenario.

Responsibility:
    Runs the same request once per QuoteScenario, each with its own module
    selection and request overrides, then applies the scenario's margin as
    a SURCHARGE adjustment before assembling.

Architecture position:
    Kernel > Services. Wraps QuoteOrchestrator; never invokes modules
    itself.

Invariants enforced:
    - Scenarios are independent: each run starts from a fresh context built
      from ``scenario.apply_to(request)``. The caller's request is untouched.
    - margin = margin_rate x (base price + costs + signed adjustments),
      rounded half up to cents. No margin is added when that is zero.
    - The margin adjustment is tagged ``scenario-margin`` and recorded in
      activated_modules after every pipeline module.

Failure modes:
    - InvalidInputError: unknown scenario id, or the orchestrator rejected
      the request.
    - ModuleExecutionError: propagated from the failing scenario run.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from quote_kernel.domain.assembler import Quote
from quote_kernel.domain.context import Adjustment, AdjustmentKind, QuoteRequest
from quote_kernel.domain.scenario import QuoteScenario
from quote_kernel.domain.values import ZERO, round_money, sum_money
from quote_kernel.exceptions import InvalidInputError
from quote_kernel.logging_config import LogContext, get_logger
from quote_kernel.services.quote_orchestrator import (
    PipelineOptions,
    PipelineRun,
    QuoteOrchestrator,
)

logger = get_logger("services.multi_quote")

SCENARIO_MARGIN = "scenario-margin"


@dataclass(frozen=True)
class QuoteVariant:
    scenario: QuoteScenario
    quote: Quote
    run: PipelineRun
    margin: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "scenario_id": self.scenario.id,
            "label": self.scenario.label,
            "description": self.scenario.description,
            "tags": list(self.scenario.tags),
            "margin_rate": str(self.scenario.margin_rate),
            "margin": str(self.margin),
            "quote": self.quote.to_dict(),
        }


class MultiQuoteService:
    """Generates a QuoteVariant per scenario; defaults to the policy's ladder."""

    def __init__(
        self,
        orchestrator: QuoteOrchestrator,
        scenarios: Iterable[QuoteScenario] | None = None,
    ):
        self._orchestrator = orchestrator
        self._scenarios = tuple(
            orchestrator.policy.scenarios if scenarios is None else scenarios
        )
        ids = [s.id for s in self._scenarios]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate scenario ids: {', '.join(duplicates)}")

    @property
    def scenarios(self) -> tuple[QuoteScenario, ...]:
        return self._scenarios

    def options_for(self, scenario: QuoteScenario) -> PipelineOptions:
        return PipelineOptions(
            enabled_modules=scenario.enabled_modules,
            disabled_modules=scenario.disabled_modules,
        )

    def generate(
        self,
        request: QuoteRequest,
        base_price: Decimal = ZERO,
        scenario_ids: Iterable[str] | None = None,
    ) -> tuple[QuoteVariant, ...]:
        """
        Price ``request`` under each selected scenario, in ladder order.

        Raises:
            InvalidInputError: A scenario id is unknown or a run rejected
                the request.
        """
        selected = self._select(scenario_ids)
        variants = []
        with LogContext.bind(request_id=request.request_id):
            for scenario in selected:
                with LogContext.bind(scenario_id=scenario.id):
                    variants.append(self._generate_one(scenario, request, base_price))

            logger.info(
                "quote_variants_generated",
                extra={
                    "scenarios": [v.scenario.id for v in variants],
                    "totals": {v.scenario.id: str(v.quote.total_price) for v in variants},
                },
            )
        return tuple(variants)

    def _select(self, scenario_ids: Iterable[str] | None) -> tuple[QuoteScenario, ...]:
        if scenario_ids is None:
            return self._scenarios
        wanted = list(scenario_ids)
        known = {s.id for s in self._scenarios}
        unknown = sorted(set(wanted) - known)
        if unknown:
            raise InvalidInputError(
                [{"field": "scenarios", "message": f"unknown scenarios: {', '.join(unknown)}"}]
            )
        return tuple(s for s in self._scenarios if s.id in wanted)

    def _generate_one(
        self, scenario: QuoteScenario, request: QuoteRequest, base_price: Decimal
    ) -> QuoteVariant:
        run = self._orchestrator.run(scenario.apply_to(request), self.options_for(scenario))
        acc = run.context.accumulator

        before_margin = (
            round_money(base_price)
            + sum_money(c.amount for c in acc.costs)
            + sum_money(a.signed_amount for a in acc.adjustments)
        )
        margin = ZERO
        if scenario.margin_rate > ZERO and before_margin > ZERO:
            margin = round_money(before_margin * scenario.margin_rate)
            acc = acc.append(
                adjustments=[
                    Adjustment(
                        module_id=SCENARIO_MARGIN,
                        label=f"{scenario.label} margin",
                        amount=margin,
                        kind=AdjustmentKind.SURCHARGE,
                        metadata={
                            "scenario_id": scenario.id,
                            "margin_rate": scenario.margin_rate,
                            "subtotal": before_margin,
                        },
                    )
                ]
            ).with_activated(SCENARIO_MARGIN)
            run = PipelineRun(
                context=run.context.with_accumulator(acc), outcomes=run.outcomes
            )

        quote = self._orchestrator.assemble(run, base_price)
        logger.debug(
            "quote_variant_assembled",
            extra={"total_price": str(quote.total_price), "margin": str(margin)},
        )
        return QuoteVariant(scenario=scenario, quote=quote, run=run, margin=margin)
