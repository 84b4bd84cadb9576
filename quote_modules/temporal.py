"""
Date-driven surcharges.

Both surcharges are a percentage of the cost lines accumulated so far and
read the scheduled date from the request, never the clock. Earlier
adjustments are not compounded.
"""

from __future__ import annotations

from quote_kernel.domain.context import AdjustmentKind, QuoteContext
from quote_kernel.domain.module import BaseQuoteModule
from quote_kernel.domain.policy import TemporalPolicy
from quote_kernel.domain.values import ZERO

END_OF_MONTH_SURCHARGE = "end-of-month-surcharge"
WEEKEND_SURCHARGE = "weekend-surcharge"

_SATURDAY = 5


def _costs_so_far(ctx: QuoteContext):
    return sum((c.amount for c in ctx.accumulator.costs), ZERO)


class EndOfMonthSurchargeModule(BaseQuoteModule):

    id = END_OF_MONTH_SURCHARGE
    priority = 80
    description = "Peak demand at month end"

    def __init__(self, policy: TemporalPolicy):
        self._policy = policy

    def is_applicable(self, ctx: QuoteContext) -> bool:
        scheduled = ctx.request.scheduled_date
        return scheduled is not None and scheduled.day >= self._policy.end_of_month_start_day

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        p = self._policy
        base = _costs_so_far(ctx)
        surcharge = self.adjustment(
            "End-of-month surcharge",
            base * p.end_of_month_surcharge_rate,
            AdjustmentKind.SURCHARGE,
            metadata={"base": base, "rate": p.end_of_month_surcharge_rate},
        )
        risk = self.risk(
            p.end_of_month_risk,
            f"Scheduled on day {ctx.request.scheduled_date.day} of the month",
        )
        return ctx.append(adjustments=[surcharge], risk_contributions=[risk])


class WeekendSurchargeModule(BaseQuoteModule):

    id = WEEKEND_SURCHARGE
    priority = 81
    description = "Saturday and Sunday jobs"

    def __init__(self, policy: TemporalPolicy):
        self._policy = policy

    def is_applicable(self, ctx: QuoteContext) -> bool:
        scheduled = ctx.request.scheduled_date
        return scheduled is not None and scheduled.weekday() >= _SATURDAY

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        p = self._policy
        base = _costs_so_far(ctx)
        surcharge = self.adjustment(
            "Weekend surcharge",
            base * p.weekend_surcharge_rate,
            AdjustmentKind.SURCHARGE,
            metadata={"base": base, "rate": p.weekend_surcharge_rate},
        )
        risk = self.risk(
            p.weekend_risk, f"Scheduled on a {ctx.request.scheduled_date.strftime('%A')}"
        )
        return ctx.append(adjustments=[surcharge], risk_contributions=[risk])
