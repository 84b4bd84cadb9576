"""
High-value item handling.

Responsibility:
    Prices dedicated handling for pianos, safes and artwork, raises one
    requirement per item, and adds a single risk contribution when any
    handling is priced. A high declared value with no flagged items gets
    an advisory requirement only.

Invariants enforced:
    - At most one cost line: the sum of per-item handling costs, with a
      per-item breakdown in metadata.
    - Requirements follow SpecialItem declaration order.
    - The risk contribution is added once, regardless of item count.
    - HIGH_VALUE_DECLARED is raised only when no item is flagged.
"""

from __future__ import annotations

from quote_kernel.domain.context import CostCategory, QuoteContext, Severity
from quote_kernel.domain.module import BaseQuoteModule
from quote_kernel.domain.policy import HighValuePolicy
from quote_kernel.domain.values import ZERO

HIGH_VALUE_ITEM_HANDLING = "high-value-item-handling"

SPECIAL_HANDLING_REQUIRED = "SPECIAL_HANDLING_REQUIRED"
HIGH_VALUE_DECLARED = "HIGH_VALUE_DECLARED"


class HighValueItemHandlingModule(BaseQuoteModule):

    id = HIGH_VALUE_ITEM_HANDLING
    priority = 73
    description = "Special handling for pianos, safes and artwork"

    def __init__(self, policy: HighValuePolicy):
        self._policy = policy

    def _exceeds_threshold(self, ctx: QuoteContext) -> bool:
        declared = ctx.request.declared_value
        return declared is not None and declared > self._policy.high_declared_value_threshold

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return bool(ctx.request.special_items) or self._exceeds_threshold(ctx)

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        items = ctx.request.special_items
        p = self._policy

        if not items:
            requirement = self.requirement(
                HIGH_VALUE_DECLARED,
                Severity.MEDIUM,
                (
                    f"Declared value {ctx.request.declared_value} exceeds "
                    f"{p.high_declared_value_threshold}; confirm inventory of valuables"
                ),
                metadata={"threshold": p.high_declared_value_threshold},
            )
            return ctx.append(requirements=[requirement])

        requirements = []
        breakdown = []
        total = ZERO
        for item in items:
            item_cost = p.handling_costs[item]
            total += item_cost
            breakdown.append({"item": item.value, "cost": item_cost})
            requirements.append(
                self.requirement(
                    SPECIAL_HANDLING_REQUIRED,
                    p.item_severity[item],
                    f"{item.value.capitalize()} requires dedicated handling",
                    metadata={"item_type": item.value},
                )
            )

        req = ctx.request
        line = self.cost(
            "High-value item handling",
            total,
            CostCategory.HANDLING,
            metadata={
                "piano": req.piano,
                "safe": req.safe,
                "artwork": req.artwork,
                "cost_breakdown": tuple(breakdown),
                "risk_contribution": p.risk_contribution,
            },
        )
        risk = self.risk(
            p.risk_contribution,
            "High-value items: " + ", ".join(i.value for i in items),
            metadata={"items": tuple(i.value for i in items)},
        )

        return ctx.append(
            costs=[line],
            requirements=requirements,
            risk_contributions=[risk],
        )
