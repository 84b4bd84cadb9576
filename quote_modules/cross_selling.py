"""
Packing service: recommendation and, when ordered, its cost.

``packing-cost`` depends on ``packing-requirement``, so packing is only
priced for quotes where the recommendation module ran.
"""

from __future__ import annotations

from quote_kernel.domain.context import CostCategory, QuoteContext, Severity
from quote_kernel.domain.module import BaseQuoteModule
from quote_kernel.domain.policy import CrossSellPolicy
from quote_modules.facts import ADJUSTED_VOLUME
from quote_modules.volume import VOLUME_ESTIMATION

PACKING_REQUIREMENT = "packing-requirement"
PACKING_COST = "packing-cost"

PACKING_RECOMMENDED = "PACKING_RECOMMENDED"


class PackingRequirementModule(BaseQuoteModule):

    id = PACKING_REQUIREMENT
    priority = 82
    dependencies = (VOLUME_ESTIMATION,)
    description = "Recommend professional packing for large volumes"

    def __init__(self, policy: CrossSellPolicy):
        self._policy = policy

    def _large(self, ctx: QuoteContext) -> bool:
        return ctx.fact(ADJUSTED_VOLUME) > self._policy.packing_volume_threshold_m3

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.request.packing_requested or self._large(ctx)

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        volume = ctx.fact(ADJUSTED_VOLUME)
        p = self._policy
        large = self._large(ctx)
        reason = (
            f"Volume {volume} m3 exceeds {p.packing_volume_threshold_m3} m3"
            if large
            else "Packing requested by the customer"
        )
        requirement = self.requirement(
            PACKING_RECOMMENDED,
            Severity.MEDIUM if large else Severity.LOW,
            reason,
            metadata={"volume_m3": volume},
        )
        proposal = self.cross_sell(
            "PACKING",
            "Professional packing",
            reason,
            price_impact=volume * p.packing_cost_per_m3,
            optional=not ctx.request.packing_requested,
        )
        return ctx.append(requirements=[requirement], cross_sell_proposals=[proposal])


class PackingCostModule(BaseQuoteModule):

    id = PACKING_COST
    priority = 85
    dependencies = (PACKING_REQUIREMENT,)
    description = "Price ordered packing"

    def __init__(self, policy: CrossSellPolicy):
        self._policy = policy

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.request.packing_requested

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        volume = ctx.fact(ADJUSTED_VOLUME)
        line = self.cost(
            "Packing",
            volume * self._policy.packing_cost_per_m3,
            CostCategory.CROSS_SELL,
            metadata={"volume_m3": volume, "rate_per_m3": self._policy.packing_cost_per_m3},
        )
        return ctx.append(costs=[line])
