"""
Policy Loader (``quote_config.loader``).

Responsibility
--------------
Loads a policy-set YAML file and parses it into the kernel's frozen
``PolicyStore``. Sections and keys the file omits keep the kernel
defaults; unknown sections or keys are errors, so a typo never silently
falls back to a default.

Architecture position
---------------------
**Config layer**. Called by ``quote_config.get_active_policy()``. Imports
the kernel's policy dataclasses; the kernel never imports this package.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown section/key, bad number, unknown enum member  -> ``ValueError``.

Audit relevance
---------------
``compute_checksum`` gives a deterministic SHA-256 of the parsed policy,
logged with every ``get_active_policy()`` call.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from quote_kernel.domain.context import Confidence, Severity, SpecialItem
from quote_kernel.domain.policy import (
    CrossSellPolicy,
    DistancePolicy,
    FuelPolicy,
    FurnitureLiftPolicy,
    HighValuePolicy,
    InsurancePolicy,
    LaborPolicy,
    LogisticsPolicy,
    PolicyStore,
    RiskPolicy,
    TemporalPolicy,
    TollPolicy,
    VehiclePolicy,
    VehicleType,
    VolumePolicy,
)
from quote_kernel.domain.scenario import QuoteScenario
from quote_kernel.utils.hashing import hash_payload

_HEADER_KEYS = frozenset({"policy_set", "description", "currency"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


# ---------------------------------------------------------------------------
# Scalar parsers
# ---------------------------------------------------------------------------


def parse_decimal(value: Any) -> Decimal:
    """Parse a YAML scalar as Decimal. Floats go through ``str``."""
    if isinstance(value, bool):
        raise ValueError(f"Cannot parse decimal from {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Cannot parse decimal from {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Decimal must be finite, got {value!r}")
    return result


def parse_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected integer, got {value!r}")
    return value


def _enum_map(enum_cls: type, value_parser: Callable[[Any], Any]) -> Callable[[Any], Any]:
    def parse(data: Any) -> MappingProxyType:
        if not isinstance(data, dict):
            raise ValueError(f"Expected mapping of {enum_cls.__name__}, got {data!r}")
        parsed = {}
        for key, value in data.items():
            try:
                member = enum_cls(str(key).upper())
            except ValueError:
                raise ValueError(f"Unknown {enum_cls.__name__}: {key!r}") from None
            parsed[member] = value_parser(value)
        return MappingProxyType(parsed)

    return parse


def _str_decimal_map(data: Any) -> MappingProxyType:
    if not isinstance(data, dict):
        raise ValueError(f"Expected mapping, got {data!r}")
    return MappingProxyType({str(k).upper(): parse_decimal(v) for k, v in data.items()})


def _parse_severity(value: Any) -> Severity:
    try:
        return Severity(str(value).upper())
    except ValueError:
        raise ValueError(f"Unknown severity: {value!r}") from None


def _parse_tiers(data: Any) -> tuple[tuple[Decimal, Decimal], ...]:
    if not isinstance(data, list):
        raise ValueError(f"Expected list of tiers, got {data!r}")
    return tuple(
        (parse_decimal(tier["up_to_km"]), parse_decimal(tier["rate_per_km"]))
        for tier in data
    )


def _parse_vehicles(data: Any) -> tuple[VehicleType, ...]:
    if not isinstance(data, list):
        raise ValueError(f"Expected list of vehicles, got {data!r}")
    return tuple(
        VehicleType(
            code=str(v["code"]),
            capacity_m3=parse_decimal(v["capacity_m3"]),
            daily_cost=parse_decimal(v["daily_cost"]),
        )
        for v in data
    )


_SCENARIO_KEYS = frozenset(
    {
        "id",
        "label",
        "description",
        "margin_rate",
        "enabled_modules",
        "disabled_modules",
        "overrides",
        "tags",
    }
)
_DECIMAL_OVERRIDES = frozenset({"volume_m3", "distance_km", "declared_value"})


def _string_list(value: Any, what: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{what} must be a list of strings, got {value!r}")
    return tuple(value)


def _parse_scenarios(data: Any) -> tuple[QuoteScenario, ...]:
    """
    Parse the ``scenarios`` list. Omitting it keeps the standard ladder;
    giving it replaces the ladder entirely.
    """
    if not isinstance(data, list):
        raise ValueError(f"scenarios must be a list, got {data!r}")
    scenarios = []
    for entry in data:
        if not isinstance(entry, dict):
            raise ValueError(f"scenario must be a mapping, got {entry!r}")
        unknown = sorted(set(entry) - _SCENARIO_KEYS)
        if unknown:
            raise ValueError(f"Unknown scenario keys: {', '.join(unknown)}")
        overrides = entry.get("overrides") or {}
        if not isinstance(overrides, dict):
            raise ValueError(f"scenario overrides must be a mapping, got {overrides!r}")
        overrides = {
            k: parse_decimal(v) if k in _DECIMAL_OVERRIDES and v is not None else v
            for k, v in overrides.items()
        }
        try:
            scenarios.append(
                QuoteScenario(
                    id=str(entry["id"]),
                    label=str(entry.get("label", entry["id"])),
                    description=str(entry.get("description", "")),
                    margin_rate=parse_decimal(entry["margin_rate"]),
                    enabled_modules=frozenset(
                        _string_list(entry.get("enabled_modules"), "enabled_modules")
                    ),
                    disabled_modules=frozenset(
                        _string_list(entry.get("disabled_modules"), "disabled_modules")
                    ),
                    overrides=overrides,
                    tags=_string_list(entry.get("tags"), "tags"),
                )
            )
        except KeyError as exc:
            raise ValueError(f"scenario is missing {exc}") from None
    return tuple(scenarios)


# ---------------------------------------------------------------------------
# Section parsers
# ---------------------------------------------------------------------------

# Section name -> (default instance factory, {key: parser}).
_SECTIONS: dict[str, tuple[type, dict[str, Callable[[Any], Any]]]] = {
    "insurance": (
        InsurancePolicy,
        {
            "rate": parse_decimal,
            "min_premium": parse_decimal,
            "max_premium": parse_decimal,
        },
    ),
    "high_value": (
        HighValuePolicy,
        {
            "handling_costs": _enum_map(SpecialItem, parse_decimal),
            "item_severity": _enum_map(SpecialItem, _parse_severity),
            "risk_contribution": parse_decimal,
            "high_declared_value_threshold": parse_decimal,
        },
    ),
    "volume": (
        VolumePolicy,
        {
            "base_volume_by_housing": _str_decimal_map,
            "volume_per_room": parse_decimal,
            "default_volume": parse_decimal,
            "special_item_volumes": _enum_map(SpecialItem, parse_decimal),
            "user_provided_margins": _enum_map(Confidence, parse_decimal),
            "calculated_margins": _enum_map(Confidence, parse_decimal),
            "max_volume_m3": parse_decimal,
        },
    ),
    "distance": (
        DistancePolicy,
        {
            "default_distance_km": parse_decimal,
            "long_distance_threshold_km": parse_decimal,
            "overnight_stop_threshold_km": parse_decimal,
            "max_distance_km": parse_decimal,
        },
    ),
    "fuel": (
        FuelPolicy,
        {
            "price_per_liter": parse_decimal,
            "consumption_l_per_100km": parse_decimal,
            "long_distance_tiers": _parse_tiers,
            "max_surcharged_excess_km": parse_decimal,
        },
    ),
    "tolls": (
        TollPolicy,
        {"cost_per_km": parse_decimal, "highway_share": parse_decimal},
    ),
    "vehicles": (
        VehiclePolicy,
        {"vehicles": _parse_vehicles},
    ),
    "labor": (
        LaborPolicy,
        {
            "volume_per_worker_m3": parse_decimal,
            "default_workers": parse_int,
            "hourly_rate": parse_decimal,
            "hours_per_day": parse_decimal,
        },
    ),
    "logistics": (
        LogisticsPolicy,
        {
            "overnight_hotel_per_worker": parse_decimal,
            "overnight_meals_per_worker": parse_decimal,
            "overnight_parking": parse_decimal,
        },
    ),
    "furniture_lift": (
        FurnitureLiftPolicy,
        {
            "high_floor": parse_int,
            "critical_floor": parse_int,
            "estimated_lift_cost": parse_decimal,
            "estimated_risk_surcharge": parse_decimal,
            "refusal_coverage_reduction": parse_decimal,
            "manual_handling_base_cost": parse_decimal,
            "manual_handling_cost_per_floor": parse_decimal,
        },
    ),
    "temporal": (
        TemporalPolicy,
        {
            "weekend_surcharge_rate": parse_decimal,
            "weekend_risk": parse_decimal,
            "end_of_month_start_day": parse_int,
            "end_of_month_surcharge_rate": parse_decimal,
            "end_of_month_risk": parse_decimal,
        },
    ),
    "cross_sell": (
        CrossSellPolicy,
        {
            "packing_cost_per_m3": parse_decimal,
            "packing_volume_threshold_m3": parse_decimal,
        },
    ),
    "risk": (
        RiskPolicy,
        {
            "volume_uncertainty": _enum_map(Confidence, parse_decimal),
            "manual_review_threshold": parse_decimal,
        },
    ),
}


def parse_section(name: str, data: dict[str, Any] | None) -> Any:
    """
    Parse one policy section, starting from the kernel defaults.

    Raises:
        ValueError: unknown section, unknown key or unparsable value.
    """
    if name not in _SECTIONS:
        raise ValueError(f"Unknown policy section: {name!r}")
    section_cls, parsers = _SECTIONS[name]
    default = section_cls()
    if not data:
        return default
    if not isinstance(data, dict):
        raise ValueError(f"Policy section {name!r} must be a mapping")

    overrides: dict[str, Any] = {}
    for key, raw in data.items():
        if key not in parsers:
            raise ValueError(f"Unknown key {key!r} in policy section {name!r}")
        try:
            overrides[key] = parsers[key](raw)
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"{name}.{key}: {exc}") from exc
    return replace(default, **overrides)


def parse_policy(data: dict[str, Any]) -> PolicyStore:
    """Parse a whole policy-set document into a PolicyStore."""
    if not isinstance(data, dict):
        raise ValueError(f"Policy document must be a mapping, got {type(data).__name__}")
    sections: dict[str, Any] = {}
    for key, value in data.items():
        if key in _HEADER_KEYS:
            continue
        if key == "scenarios":
            try:
                sections[key] = _parse_scenarios(value)
            except ValueError as exc:
                raise ValueError(f"scenarios: {exc}") from exc
            continue
        sections[key] = parse_section(key, value)
    currency = str(data.get("currency", PolicyStore.currency))
    return PolicyStore(currency=currency, **sections)


def load_policy_file(path: Path) -> PolicyStore:
    """Load and parse one policy-set YAML file."""
    return parse_policy(load_yaml_file(path))


def compute_checksum(policy: PolicyStore) -> str:
    """Deterministic SHA-256 of a parsed policy."""
    return hash_payload(policy)
