"""
Policy Validator (``quote_config.validator``).

Responsibility
--------------
Checks a parsed ``PolicyStore`` for values that would make modules
produce nonsense (negative rates, inverted bounds, unordered tiers)
before it is handed to the pipeline.

Failure modes
-------------
* Errors  -> the policy MUST NOT be used.
* Warnings  -> the policy may be used but should be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from quote_kernel.domain.context import Confidence, SpecialItem
from quote_kernel.domain.policy import PolicyStore
from quote_kernel.domain.validation import BOOLEAN_FIELDS

_ZERO = Decimal("0")
_ONE = Decimal("1")


@dataclass
class PolicyValidationResult:
    """``is_valid`` is True only when ``errors`` is empty."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0


def _non_negative(result: PolicyValidationResult, label: str, value: Decimal) -> None:
    if value < _ZERO:
        result.errors.append(f"{label} must be non-negative, got {value}")


def _positive(result: PolicyValidationResult, label: str, value: Decimal) -> None:
    if value <= _ZERO:
        result.errors.append(f"{label} must be positive, got {value}")


def _validate_scenarios(result: PolicyValidationResult, policy: PolicyStore) -> None:
    seen: set[str] = set()
    for scenario in policy.scenarios:
        if scenario.id in seen:
            result.errors.append(f"scenarios: duplicate id {scenario.id!r}")
        seen.add(scenario.id)
        for name, value in scenario.overrides.items():
            if name in BOOLEAN_FIELDS and not isinstance(value, bool):
                result.errors.append(
                    f"scenarios.{scenario.id}.overrides.{name} must be true or false"
                )
        both = sorted(scenario.enabled_modules & scenario.disabled_modules)
        if both:
            result.warnings.append(
                f"scenarios.{scenario.id} both enables and disables {', '.join(both)}"
            )
        if scenario.margin_rate > _ONE:
            result.warnings.append(
                f"scenarios.{scenario.id}.margin_rate {scenario.margin_rate} is above 100%"
            )


def validate_policy(policy: PolicyStore) -> PolicyValidationResult:
    """Run every structural check and collect errors and warnings."""
    result = PolicyValidationResult()

    if not policy.currency or len(policy.currency) != 3:
        result.errors.append(f"currency must be a 3-letter code, got {policy.currency!r}")

    ins = policy.insurance
    _non_negative(result, "insurance.rate", ins.rate)
    _non_negative(result, "insurance.min_premium", ins.min_premium)
    if ins.min_premium > ins.max_premium:
        result.errors.append(
            f"insurance.min_premium {ins.min_premium} exceeds max_premium {ins.max_premium}"
        )
    if ins.rate > _ONE:
        result.warnings.append(f"insurance.rate {ins.rate} is above 100% of declared value")

    hv = policy.high_value
    for item in SpecialItem:
        if item not in hv.handling_costs:
            result.errors.append(f"high_value.handling_costs is missing {item.value}")
        else:
            _non_negative(result, f"high_value.handling_costs.{item.value}", hv.handling_costs[item])
        if item not in hv.item_severity:
            result.errors.append(f"high_value.item_severity is missing {item.value}")
    _non_negative(result, "high_value.risk_contribution", hv.risk_contribution)
    _positive(result, "high_value.high_declared_value_threshold", hv.high_declared_value_threshold)

    vol = policy.volume
    for item in SpecialItem:
        if item not in vol.special_item_volumes:
            result.errors.append(f"volume.special_item_volumes is missing {item.value}")
    for label, margins in (
        ("user_provided_margins", vol.user_provided_margins),
        ("calculated_margins", vol.calculated_margins),
    ):
        for level in Confidence:
            if level not in margins:
                result.errors.append(f"volume.{label} is missing {level.value}")
            elif margins[level] < _ONE:
                result.warnings.append(
                    f"volume.{label}.{level.value} {margins[level]} shrinks the estimate"
                )
    _positive(result, "volume.default_volume", vol.default_volume)
    _positive(result, "volume.max_volume_m3", vol.max_volume_m3)

    dist = policy.distance
    _non_negative(result, "distance.default_distance_km", dist.default_distance_km)
    if dist.long_distance_threshold_km >= dist.overnight_stop_threshold_km:
        result.warnings.append(
            "distance.long_distance_threshold_km is not below overnight_stop_threshold_km"
        )
    _positive(result, "distance.max_distance_km", dist.max_distance_km)

    fuel = policy.fuel
    _non_negative(result, "fuel.price_per_liter", fuel.price_per_liter)
    _non_negative(result, "fuel.consumption_l_per_100km", fuel.consumption_l_per_100km)
    previous = _ZERO
    for bound, rate in fuel.long_distance_tiers:
        if bound <= previous:
            result.errors.append("fuel.long_distance_tiers must have ascending bounds")
            break
        _non_negative(result, f"fuel.long_distance_tiers rate at {bound}", rate)
        previous = bound

    _non_negative(result, "tolls.cost_per_km", policy.tolls.cost_per_km)
    if not _ZERO <= policy.tolls.highway_share <= _ONE:
        result.errors.append(
            f"tolls.highway_share must be within [0, 1], got {policy.tolls.highway_share}"
        )

    fleet = policy.vehicles
    if not fleet.vehicles:
        result.errors.append("vehicles.vehicles must not be empty")
    for vehicle in fleet.vehicles:
        _positive(result, f"vehicles.{vehicle.code}.capacity_m3", vehicle.capacity_m3)
        _non_negative(result, f"vehicles.{vehicle.code}.daily_cost", vehicle.daily_cost)
    capacities = [v.capacity_m3 for v in fleet.vehicles]
    if capacities != sorted(capacities) or len(set(capacities)) != len(capacities):
        result.errors.append("vehicles.vehicles must be in strictly ascending capacity")

    labor = policy.labor
    _positive(result, "labor.volume_per_worker_m3", labor.volume_per_worker_m3)
    if labor.default_workers < 1:
        result.errors.append("labor.default_workers must be at least 1")

    lift = policy.furniture_lift
    if not 1 <= lift.high_floor <= lift.critical_floor:
        result.errors.append(
            "furniture_lift floors must satisfy 1 <= high_floor <= critical_floor, "
            f"got {lift.high_floor} and {lift.critical_floor}"
        )
    _non_negative(result, "furniture_lift.estimated_lift_cost", lift.estimated_lift_cost)
    _non_negative(
        result, "furniture_lift.manual_handling_base_cost", lift.manual_handling_base_cost
    )
    _non_negative(
        result,
        "furniture_lift.manual_handling_cost_per_floor",
        lift.manual_handling_cost_per_floor,
    )
    if not _ZERO <= lift.refusal_coverage_reduction <= _ONE:
        result.errors.append(
            "furniture_lift.refusal_coverage_reduction must be within [0, 1], "
            f"got {lift.refusal_coverage_reduction}"
        )

    _validate_scenarios(result, policy)

    temporal = policy.temporal
    if not 1 <= temporal.end_of_month_start_day <= 31:
        result.errors.append("temporal.end_of_month_start_day must be within 1..31")
    _non_negative(result, "temporal.weekend_surcharge_rate", temporal.weekend_surcharge_rate)
    _non_negative(result, "temporal.end_of_month_surcharge_rate", temporal.end_of_month_surcharge_rate)

    for level in Confidence:
        if level not in policy.risk.volume_uncertainty:
            result.errors.append(f"risk.volume_uncertainty is missing {level.value}")
    _positive(result, "risk.manual_review_threshold", policy.risk.manual_review_threshold)

    return result
