"""
Declared-value insurance premium.

Prices optional insurance on the customer's declared value:
``premium = clamp(declared_value * rate, min_premium, max_premium)``,
rounded to cents. The clamp bounds are inclusive, so a raw premium that
lands exactly on a bound is reported as not clamped.
"""

from __future__ import annotations

from quote_kernel.domain.context import CostCategory, QuoteContext
from quote_kernel.domain.module import BaseQuoteModule
from quote_kernel.domain.policy import InsurancePolicy
from quote_kernel.domain.values import ZERO, clamp, round_money

INSURANCE_PREMIUM = "insurance-premium"


class InsurancePremiumModule(BaseQuoteModule):
    """Adds the insurance premium cost line and an insurance note."""

    id = INSURANCE_PREMIUM
    priority = 71
    description = "Declared-value insurance premium"
    essential = True

    def __init__(self, policy: InsurancePolicy):
        self._policy = policy

    def is_applicable(self, ctx: QuoteContext) -> bool:
        req = ctx.request
        return (
            req.declared_value_insurance_requested
            and req.declared_value is not None
            and req.declared_value > ZERO
        )

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        declared = ctx.request.declared_value
        p = self._policy

        raw_premium = declared * p.rate
        premium = round_money(clamp(raw_premium, p.min_premium, p.max_premium))
        min_applied = raw_premium < p.min_premium
        max_applied = raw_premium > p.max_premium

        line = self.cost(
            "Declared value insurance",
            premium,
            CostCategory.INSURANCE,
            metadata={
                "declared_value": declared,
                "rate": p.rate,
                "raw_premium": raw_premium,
                "min_premium": p.min_premium,
                "max_premium": p.max_premium,
                "min_applied": min_applied,
                "max_applied": max_applied,
            },
        )

        note = f"Declared value insurance: {premium} on a declared value of {declared}"
        if min_applied:
            note += f" (minimum premium {p.min_premium} applied)"
        elif max_applied:
            note += f" (maximum premium {p.max_premium} applied)"

        return ctx.append(costs=[line], insurance_notes=[self.insurance_note(note)])
