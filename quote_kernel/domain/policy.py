"""
PolicyStore -- frozen, typed pricing constants.

Every rate, threshold and fixed cost a module uses lives here, grouped by
concern. Modules receive the section they need at construction and never
hardcode values.

The defaults below are the production tariff. ``quote_config`` can load an
alternative set from YAML; sections or keys it omits keep these defaults.
The store is versionless and immutable: one instance can be shared by any
number of concurrent computations.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from quote_kernel.domain.context import Confidence, Severity, SpecialItem
from quote_kernel.domain.scenario import STANDARD_SCENARIOS, QuoteScenario


def _frozen(mapping: dict) -> Mapping:
    return MappingProxyType(mapping)


@dataclass(frozen=True)
class InsurancePolicy:
    rate: Decimal = Decimal("0.01")
    min_premium: Decimal = Decimal("50.00")
    max_premium: Decimal = Decimal("5000.00")


@dataclass(frozen=True)
class HighValuePolicy:
    handling_costs: Mapping[SpecialItem, Decimal] = field(
        default_factory=lambda: _frozen(
            {
                SpecialItem.PIANO: Decimal("150"),
                SpecialItem.SAFE: Decimal("200"),
                SpecialItem.ARTWORK: Decimal("100"),
            }
        )
    )
    item_severity: Mapping[SpecialItem, Severity] = field(
        default_factory=lambda: _frozen(
            {
                SpecialItem.PIANO: Severity.HIGH,
                SpecialItem.SAFE: Severity.CRITICAL,
                SpecialItem.ARTWORK: Severity.HIGH,
            }
        )
    )
    risk_contribution: Decimal = Decimal("15")
    high_declared_value_threshold: Decimal = Decimal("50000")


@dataclass(frozen=True)
class VolumePolicy:
    """Volume estimation fallbacks and safety margins (m3)."""

    base_volume_by_housing: Mapping[str, Decimal] = field(
        default_factory=lambda: _frozen(
            {
                "STUDIO": Decimal("20"),
                "F2": Decimal("30"),
                "F3": Decimal("50"),
                "F4": Decimal("65"),
                "HOUSE": Decimal("80"),
            }
        )
    )
    volume_per_room: Decimal = Decimal("12")
    default_volume: Decimal = Decimal("30")
    special_item_volumes: Mapping[SpecialItem, Decimal] = field(
        default_factory=lambda: _frozen(
            {
                SpecialItem.PIANO: Decimal("8"),
                SpecialItem.SAFE: Decimal("3"),
                SpecialItem.ARTWORK: Decimal("2"),
            }
        )
    )
    # Margins applied to a customer-provided volume.
    user_provided_margins: Mapping[Confidence, Decimal] = field(
        default_factory=lambda: _frozen(
            {
                Confidence.LOW: Decimal("1.10"),
                Confidence.MEDIUM: Decimal("1.05"),
                Confidence.HIGH: Decimal("1.02"),
            }
        )
    )
    # Margins applied to a volume derived from housing type or rooms.
    calculated_margins: Mapping[Confidence, Decimal] = field(
        default_factory=lambda: _frozen(
            {
                Confidence.LOW: Decimal("1.20"),
                Confidence.MEDIUM: Decimal("1.10"),
                Confidence.HIGH: Decimal("1.05"),
            }
        )
    )
    max_volume_m3: Decimal = Decimal("500")


@dataclass(frozen=True)
class DistancePolicy:
    default_distance_km: Decimal = Decimal("20")
    long_distance_threshold_km: Decimal = Decimal("50")
    overnight_stop_threshold_km: Decimal = Decimal("1000")
    max_distance_km: Decimal = Decimal("5000")


@dataclass(frozen=True)
class FuelPolicy:
    price_per_liter: Decimal = Decimal("1.70")
    consumption_l_per_100km: Decimal = Decimal("12")
    # (upper bound of excess km, rate per km), ascending.
    long_distance_tiers: tuple[tuple[Decimal, Decimal], ...] = (
        (Decimal("200"), Decimal("0.15")),
        (Decimal("1000"), Decimal("0.20")),
    )
    max_surcharged_excess_km: Decimal = Decimal("1000")


@dataclass(frozen=True)
class TollPolicy:
    cost_per_km: Decimal = Decimal("0.08")
    highway_share: Decimal = Decimal("0.7")


@dataclass(frozen=True)
class VehicleType:
    code: str
    capacity_m3: Decimal
    daily_cost: Decimal


@dataclass(frozen=True)
class VehiclePolicy:
    """Truck fleet, ascending capacity."""

    vehicles: tuple[VehicleType, ...] = (
        VehicleType("CAMION_12M3", Decimal("12"), Decimal("80")),
        VehicleType("CAMION_20M3", Decimal("20"), Decimal("250")),
        VehicleType("CAMION_30M3", Decimal("30"), Decimal("350")),
    )


@dataclass(frozen=True)
class LaborPolicy:
    volume_per_worker_m3: Decimal = Decimal("5")
    default_workers: int = 2
    hourly_rate: Decimal = Decimal("30")
    hours_per_day: Decimal = Decimal("7")


@dataclass(frozen=True)
class LogisticsPolicy:
    overnight_hotel_per_worker: Decimal = Decimal("120")
    overnight_meals_per_worker: Decimal = Decimal("30")
    overnight_parking: Decimal = Decimal("50")


@dataclass(frozen=True)
class FurnitureLiftPolicy:
    """
    Furniture-lift recommendation and the consequences of refusing it.

    The recommendation is MEDIUM below ``high_floor``, HIGH from it and
    CRITICAL from ``critical_floor``. A CRITICAL lift is not optional.
    """

    high_floor: int = 3
    critical_floor: int = 5
    estimated_lift_cost: Decimal = Decimal("350")
    estimated_risk_surcharge: Decimal = Decimal("500")
    refusal_coverage_reduction: Decimal = Decimal("0.50")
    manual_handling_base_cost: Decimal = Decimal("150")
    manual_handling_cost_per_floor: Decimal = Decimal("50")


@dataclass(frozen=True)
class TemporalPolicy:
    weekend_surcharge_rate: Decimal = Decimal("0.05")
    weekend_risk: Decimal = Decimal("8")
    end_of_month_start_day: int = 25
    end_of_month_surcharge_rate: Decimal = Decimal("0.05")
    end_of_month_risk: Decimal = Decimal("10")


@dataclass(frozen=True)
class CrossSellPolicy:
    packing_cost_per_m3: Decimal = Decimal("5")
    packing_volume_threshold_m3: Decimal = Decimal("40")


@dataclass(frozen=True)
class RiskPolicy:
    volume_uncertainty: Mapping[Confidence, Decimal] = field(
        default_factory=lambda: _frozen(
            {
                Confidence.LOW: Decimal("15"),
                Confidence.MEDIUM: Decimal("8"),
                Confidence.HIGH: Decimal("3"),
            }
        )
    )
    manual_review_threshold: Decimal = Decimal("70")


@dataclass(frozen=True)
class PolicyStore:
    """All pricing sections. Build with defaults or via quote_config."""

    currency: str = "EUR"
    insurance: InsurancePolicy = field(default_factory=InsurancePolicy)
    high_value: HighValuePolicy = field(default_factory=HighValuePolicy)
    volume: VolumePolicy = field(default_factory=VolumePolicy)
    distance: DistancePolicy = field(default_factory=DistancePolicy)
    fuel: FuelPolicy = field(default_factory=FuelPolicy)
    tolls: TollPolicy = field(default_factory=TollPolicy)
    vehicles: VehiclePolicy = field(default_factory=VehiclePolicy)
    labor: LaborPolicy = field(default_factory=LaborPolicy)
    logistics: LogisticsPolicy = field(default_factory=LogisticsPolicy)
    furniture_lift: FurnitureLiftPolicy = field(default_factory=FurnitureLiftPolicy)
    temporal: TemporalPolicy = field(default_factory=TemporalPolicy)
    cross_sell: CrossSellPolicy = field(default_factory=CrossSellPolicy)
    risk: RiskPolicy = field(default_factory=RiskPolicy)
    scenarios: tuple[QuoteScenario, ...] = STANDARD_SCENARIOS
