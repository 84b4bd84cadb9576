"""Truck selection, crew sizing and base labor cost."""

from __future__ import annotations

from decimal import Decimal

from quote_kernel.domain.context import CostCategory, QuoteContext
from quote_kernel.domain.module import BaseQuoteModule
from quote_kernel.domain.policy import LaborPolicy, VehiclePolicy, VehicleType
from quote_kernel.domain.values import ZERO, round_half_up_int
from quote_modules.facts import ADJUSTED_VOLUME, VEHICLES, WORKERS_COUNT
from quote_modules.volume import VOLUME_ESTIMATION

VEHICLE_SELECTION = "vehicle-selection"
WORKERS_CALCULATION = "workers-calculation"
LABOR_BASE = "labor-base"


def select_vehicles(
    volume: Decimal, fleet: tuple[VehicleType, ...]
) -> list[VehicleType]:
    """
    Smallest truck that holds the volume; when none does, the largest
    truck plus best-fit trucks for the remainder.

    ``fleet`` must be in ascending capacity.
    """
    chosen: list[VehicleType] = []
    remaining = volume
    largest = fleet[-1]
    while True:
        fitting = next((v for v in fleet if v.capacity_m3 >= remaining), None)
        if fitting is not None:
            chosen.append(fitting)
            return chosen
        chosen.append(largest)
        remaining -= largest.capacity_m3


class VehicleSelectionModule(BaseQuoteModule):

    id = VEHICLE_SELECTION
    priority = 60
    dependencies = (VOLUME_ESTIMATION,)
    description = "Truck rental sized to the estimated volume"
    essential = True

    def __init__(self, policy: VehiclePolicy):
        self._policy = policy

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.accumulator.has_fact(ADJUSTED_VOLUME)

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        volume = ctx.fact(ADJUSTED_VOLUME)
        vehicles = select_vehicles(volume, self._policy.vehicles)
        codes = tuple(v.code for v in vehicles)

        line = self.cost(
            "Truck rental",
            sum((v.daily_cost for v in vehicles), ZERO),
            CostCategory.VEHICLE,
            metadata={
                "volume_m3": volume,
                "vehicles": tuple(
                    {"code": v.code, "capacity_m3": v.capacity_m3, "cost": v.daily_cost}
                    for v in vehicles
                ),
            },
        )
        ctx = ctx.append(costs=[line], facts=[self.fact(VEHICLES, codes)])
        if len(vehicles) > 1:
            ctx = ctx.append(
                operational_flags=[
                    self.flag(
                        "MULTI_VEHICLE",
                        f"{len(vehicles)} trucks required: {', '.join(codes)}",
                    )
                ]
            )
        return ctx


class WorkersCalculationModule(BaseQuoteModule):
    """Crew size: one mover per ``volume_per_worker_m3``, at least one."""

    id = WORKERS_CALCULATION
    priority = 61
    dependencies = (VOLUME_ESTIMATION,)
    description = "Crew size from volume"
    essential = True

    def __init__(self, policy: LaborPolicy):
        self._policy = policy

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.accumulator.has_fact(ADJUSTED_VOLUME)

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        volume = ctx.fact(ADJUSTED_VOLUME)
        workers = max(1, round_half_up_int(volume / self._policy.volume_per_worker_m3))
        return ctx.append(facts=[self.fact(WORKERS_COUNT, workers)]).with_metadata(
            self.id, {"volume_m3": volume, "workers": workers}
        )


class LaborBaseModule(BaseQuoteModule):

    id = LABOR_BASE
    priority = 62
    dependencies = (WORKERS_CALCULATION,)
    description = "Crew wages for one working day"
    essential = True

    def __init__(self, policy: LaborPolicy):
        self._policy = policy

    def is_applicable(self, ctx: QuoteContext) -> bool:
        return ctx.fact(WORKERS_COUNT, 0) > 0

    def apply(self, ctx: QuoteContext) -> QuoteContext:
        workers = ctx.fact(WORKERS_COUNT)
        p = self._policy
        line = self.cost(
            "Labor",
            Decimal(workers) * p.hourly_rate * p.hours_per_day,
            CostCategory.LABOR,
            metadata={
                "workers": workers,
                "hourly_rate": p.hourly_rate,
                "hours": p.hours_per_day,
            },
        )
        return ctx.append(costs=[line])
