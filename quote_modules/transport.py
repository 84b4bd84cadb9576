"""
Distance and transport costs: fuel, long-distance surcharge, tolls and
overnight stops.

``distance-calculation`` publishes the ``distance_km`` fact; every other
module here depends on it.
"""

from __future__ import annotations

from decimal import Decimal

from quote_kernel.domain.context import CostCategory, QuoteContext, ServiceType, Severity
from quote_kernel.domain.module import BaseQuoteModule
from quote_kernel.domain.policy import (
    DistancePolicy,
    FuelPolicy,
    LaborPolicy,
    LogisticsPolicy,
    TollPolicy,
)
from quote_kernel.domain.values import ZERO
from quote_modules.facts import DISTANCE, IS_LONG_DISTANCE, WORKERS_COUNT

DISTANCE_CALCULATION = "distance-calculation"
FUEL_COST = "fuel-cost"
LONG_DISTANCE_SURCHARGE = "long-distance-surcharge"
TOLL_COST = "toll-cost"
OVERNIGHT_STOP_COST = "overnight-stop-cost"

OVERNIGHT_STOP_REQUIRED = "OVERNIGHT_STOP_REQUIRED"

_HUNDRED = Decimal("100")


class DistanceCalculationModule(BaseQuoteModule):

    id = DISTANCE_CALCULATION
    priority = 30
    description = "Resolve the route distance"
    essential = True

    def __init__(self, policy: DistancePolicy):
        self._policy = policy

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.request.service_type in (ServiceType.MOVING, ServiceType.DELIVERY)

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        provided = ctx.request.distance_km
        distance = provided if provided is not None else self._policy.default_distance_km
        return ctx.append(
            facts=[
                self.fact(DISTANCE, distance),
                self.fact(
                    IS_LONG_DISTANCE, distance > self._policy.long_distance_threshold_km
                ),
            ]
        ).with_metadata(
            self.id, {"source": "REQUEST" if provided is not None else "DEFAULT"}
        )


class FuelCostModule(BaseQuoteModule):

    id = FUEL_COST
    priority = 33
    dependencies = (DISTANCE_CALCULATION,)
    description = "Fuel for the route"
    essential = True

    def __init__(self, policy: FuelPolicy):
        self._policy = policy

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.fact(DISTANCE, ZERO) > ZERO

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        distance = ctx.fact(DISTANCE)
        p = self._policy
        liters = distance * p.consumption_l_per_100km / _HUNDRED
        line = self.cost(
            "Fuel",
            liters * p.price_per_liter,
            CostCategory.TRANSPORT,
            metadata={
                "distance_km": distance,
                "liters": liters,
                "price_per_liter": p.price_per_liter,
            },
        )
        return ctx.append(costs=[line])


def tiered_excess_cost(
    excess_km: Decimal, tiers: tuple[tuple[Decimal, Decimal], ...]
) -> Decimal:
    """
    Progressive per-km charge on ``excess_km``.

    Each tier charges its rate from the previous bound up to its own bound.
    Kilometres beyond the last bound are charged at the last rate.
    """
    total = ZERO
    lower = ZERO
    rate = ZERO
    for bound, rate in tiers:
        if excess_km <= lower:
            return total
        total += (min(excess_km, bound) - lower) * rate
        lower = bound
    if excess_km > lower:
        total += (excess_km - lower) * rate
    return total


class LongDistanceSurchargeModule(BaseQuoteModule):

    id = LONG_DISTANCE_SURCHARGE
    priority = 34
    dependencies = (DISTANCE_CALCULATION,)
    description = "Progressive surcharge on kilometres beyond the local radius"

    def __init__(self, distance_policy: DistancePolicy, fuel_policy: FuelPolicy):
        self._distance = distance_policy
        self._fuel = fuel_policy

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.fact(IS_LONG_DISTANCE, False)

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        distance = ctx.fact(DISTANCE)
        raw_excess = distance - self._distance.long_distance_threshold_km
        excess = min(raw_excess, self._fuel.max_surcharged_excess_km)
        line = self.cost(
            "Long-distance surcharge",
            tiered_excess_cost(excess, self._fuel.long_distance_tiers),
            CostCategory.TRANSPORT,
            metadata={
                "distance_km": distance,
                "excess_km": raw_excess,
                "surcharged_km": excess,
                "capped": raw_excess > excess,
            },
        )
        return ctx.append(costs=[line])


class TollCostModule(BaseQuoteModule):

    id = TOLL_COST
    priority = 35
    dependencies = (DISTANCE_CALCULATION,)
    description = "Motorway tolls on long routes"

    def __init__(self, policy: TollPolicy):
        self._policy = policy

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.fact(IS_LONG_DISTANCE, False)

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        distance = ctx.fact(DISTANCE)
        p = self._policy
        highway_km = distance * p.highway_share
        line = self.cost(
            "Tolls",
            highway_km * p.cost_per_km,
            CostCategory.TRANSPORT,
            metadata={"highway_km": highway_km, "cost_per_km": p.cost_per_km},
        )
        return ctx.append(costs=[line])


class OvernightStopCostModule(BaseQuoteModule):
    """
    Hotel, meals and secured parking for a forced overnight stop.

    Runs after crew sizing so it can use ``workers_count``; quotes without
    a crew estimate (deliveries) fall back to the default crew.
    """

    id = OVERNIGHT_STOP_COST
    priority = 65
    dependencies = (DISTANCE_CALCULATION,)
    description = "Overnight stop on very long routes"

    def __init__(
        self,
        distance_policy: DistancePolicy,
        logistics_policy: LogisticsPolicy,
        labor_policy: LaborPolicy,
    ):
        self._distance = distance_policy
        self._logistics = logistics_policy
        self._labor = labor_policy

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return (
            ctx.request.force_overnight_stop
            and ctx.fact(DISTANCE, ZERO) > self._distance.overnight_stop_threshold_km
        )

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        distance = ctx.fact(DISTANCE)
        workers = ctx.fact(WORKERS_COUNT, self._labor.default_workers)
        p = self._logistics
        hotel = p.overnight_hotel_per_worker * workers
        meals = p.overnight_meals_per_worker * workers
        line = self.cost(
            "Overnight stop",
            hotel + meals + p.overnight_parking,
            CostCategory.LOGISTICS,
            metadata={
                "workers": workers,
                "hotel": hotel,
                "meals": meals,
                "parking": p.overnight_parking,
            },
        )
        flag = self.flag(
            "OVERNIGHT_STOP", f"Plan an overnight stop for a crew of {workers}"
        )
        requirement = self.requirement(
            OVERNIGHT_STOP_REQUIRED,
            Severity.MEDIUM,
            f"Route of {distance} km requires an overnight stop to respect mandatory rest times",
            metadata={"distance_km": distance, "workers": workers},
        )
        return ctx.append(
            costs=[line], requirements=[requirement], operational_flags=[flag]
        )
