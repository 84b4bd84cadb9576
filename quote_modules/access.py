"""
Building access: furniture-lift recommendation and refusal consequences.

Responsibility:
    Recommend a furniture lift when an address above the ground floor has
    no usable elevator (none, or a SMALL one). If the customer refuses the
    lift anyway, record the legal impact, reduce the insurance cover and
    price the manual-handling risk.

Invariants enforced:
    - Severity follows the highest floor that needs the lift:
      MEDIUM, then HIGH from ``high_floor``, CRITICAL from ``critical_floor``.
    - A CRITICAL lift proposal is not optional.
    - The refusal modules depend on the recommendation, so a refusal with
      nothing recommended changes nothing.
    - An unknown elevator (None) never triggers a recommendation.
"""

from __future__ import annotations

from quote_kernel.domain.context import (
    CostCategory,
    ElevatorSize,
    QuoteContext,
    QuoteRequest,
    ServiceType,
    Severity,
)
from quote_kernel.domain.module import BaseQuoteModule
from quote_kernel.domain.policy import FurnitureLiftPolicy
from quote_modules.facts import LIFT_FLOOR, LIFT_SEVERITY

FURNITURE_LIFT_RECOMMENDATION = "furniture-lift-recommendation"
FURNITURE_LIFT_REFUSAL_IMPACT = "furniture-lift-refusal-impact"
MANUAL_HANDLING_RISK_COST = "manual-handling-risk-cost"

LIFT_RECOMMENDED = "LIFT_RECOMMENDED"
LIFT_REFUSED = "LIFT_REFUSED"


def _elevator_inadequate(has_elevator: bool | None, size: ElevatorSize | None) -> bool:
    if has_elevator is False:
        return True
    return has_elevator is True and size is ElevatorSize.SMALL


def lift_floors(request: QuoteRequest) -> dict[str, int]:
    """Floor per side ("pickup", "delivery") that needs a lift."""
    sides = {}
    if request.pickup_floor and _elevator_inadequate(
        request.pickup_has_elevator, request.pickup_elevator_size
    ):
        sides["pickup"] = request.pickup_floor
    if request.delivery_floor and _elevator_inadequate(
        request.delivery_has_elevator, request.delivery_elevator_size
    ):
        sides["delivery"] = request.delivery_floor
    return sides


class FurnitureLiftRecommendationModule(BaseQuoteModule):

    id = FURNITURE_LIFT_RECOMMENDATION
    priority = 50
    description = "Recommend a furniture lift for upper floors without a usable elevator"

    def __init__(self, policy: FurnitureLiftPolicy):
        self._policy = policy

    def severity_for(self, floor: int) -> Severity:
        if floor >= self._policy.critical_floor:
            return Severity.CRITICAL
        if floor >= self._policy.high_floor:
            return Severity.HIGH
        return Severity.MEDIUM

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.request.service_type in (
            ServiceType.MOVING,
            ServiceType.DELIVERY,
        ) and bool(lift_floors(ctx.request))

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        sides = lift_floors(ctx.request)
        floor = max(sides.values())
        severity = self.severity_for(floor)
        p = self._policy
        where = ", ".join(f"floor {f} at {side}" for side, f in sides.items())

        requirement = self.requirement(
            LIFT_RECOMMENDED,
            severity,
            f"Furniture lift {'mandatory' if severity is Severity.CRITICAL else 'recommended'}: "
            f"{where} without a usable elevator",
            metadata={"floors": dict(sides), "max_floor": floor},
        )
        proposal = self.cross_sell(
            "FURNITURE_LIFT",
            "Furniture lift rental",
            (
                f"Avoids an estimated {p.estimated_risk_surcharge} risk surcharge "
                f"for {p.estimated_lift_cost}"
            ),
            price_impact=p.estimated_lift_cost,
            optional=severity is not Severity.CRITICAL,
        )
        return ctx.append(
            requirements=[requirement],
            cross_sell_proposals=[proposal],
            facts=[self.fact(LIFT_SEVERITY, severity), self.fact(LIFT_FLOOR, floor)],
        ).with_metadata(
            self.id,
            {"high_floor": p.high_floor, "critical_floor": p.critical_floor},
        )


class FurnitureLiftRefusalImpactModule(BaseQuoteModule):
    """Legal and insurance consequences of refusing a recommended lift."""

    id = FURNITURE_LIFT_REFUSAL_IMPACT
    priority = 52
    dependencies = (FURNITURE_LIFT_RECOMMENDATION,)
    description = "Record the customer's refusal of a recommended furniture lift"

    def __init__(self, policy: FurnitureLiftPolicy):
        self._policy = policy

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.request.refuse_furniture_lift

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        severity = ctx.fact(LIFT_SEVERITY)
        floor = ctx.fact(LIFT_FLOOR)
        reduction = self._policy.refusal_coverage_reduction
        impact = self.legal_impact(
            LIFT_REFUSED,
            severity,
            f"Customer refused a recommended furniture lift (floor {floor}); "
            "liability for manual handling damage is limited",
        )
        note = self.insurance_note(
            f"Cover reduced by {reduction * 100:.0f}% for items carried by hand "
            "after the furniture lift was refused"
        )
        return ctx.append(legal_impacts=[impact], insurance_notes=[note])


class ManualHandlingRiskCostModule(BaseQuoteModule):

    id = MANUAL_HANDLING_RISK_COST
    priority = 55
    dependencies = (FURNITURE_LIFT_REFUSAL_IMPACT,)
    description = "Price the risk of carrying furniture by hand"

    def __init__(self, policy: FurnitureLiftPolicy):
        self._policy = policy

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return True

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        floor = ctx.fact(LIFT_FLOOR)
        p = self._policy
        line = self.cost(
            "Manual handling risk",
            p.manual_handling_base_cost + p.manual_handling_cost_per_floor * floor,
            CostCategory.RISK,
            metadata={
                "floor": floor,
                "base_cost": p.manual_handling_base_cost,
                "cost_per_floor": p.manual_handling_cost_per_floor,
            },
        )
        return ctx.append(costs=[line])
