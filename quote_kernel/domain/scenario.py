"""
QuoteScenario -- one commercial variant of a quote.

A scenario reruns the same request with its own module selection, a few
request overrides (packing included, insurance requested...) and a margin
rate. ``STANDARD_SCENARIOS`` is the default offer ladder, from ECO to
FLEX; policy sets may replace it.

Invariants enforced:
    - Frozen; module sets are frozensets and overrides a read-only mapping.
    - margin_rate is a finite, non-negative Decimal.
    - Overrides name real QuoteRequest fields and never the identity
      fields (service type, currency, request id).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from decimal import Decimal
from types import MappingProxyType
from typing import Any

from quote_kernel.domain.context import QuoteRequest

_OVERRIDABLE = frozenset(f.name for f in fields(QuoteRequest)) - {
    "service_type",
    "currency",
    "request_id",
}


@dataclass(frozen=True)
class QuoteScenario:
    id: str
    label: str
    margin_rate: Decimal
    description: str = ""
    enabled_modules: frozenset[str] = frozenset()
    disabled_modules: frozenset[str] = frozenset()
    overrides: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Scenario id must not be empty")
        if (
            not isinstance(self.margin_rate, Decimal)
            or not self.margin_rate.is_finite()
            or self.margin_rate < 0
        ):
            raise ValueError(
                f"Scenario {self.id}: margin_rate must be a non-negative Decimal, "
                f"got {self.margin_rate!r}"
            )
        unknown = sorted(set(self.overrides) - _OVERRIDABLE)
        if unknown:
            raise ValueError(
                f"Scenario {self.id}: cannot override {', '.join(unknown)}"
            )
        object.__setattr__(self, "enabled_modules", frozenset(self.enabled_modules))
        object.__setattr__(self, "disabled_modules", frozenset(self.disabled_modules))
        object.__setattr__(self, "overrides", MappingProxyType(dict(self.overrides)))
        object.__setattr__(self, "tags", tuple(self.tags))

    def apply_to(self, request: QuoteRequest) -> QuoteRequest:
        """The request this scenario prices. The original is untouched."""
        if not self.overrides:
            return request
        return replace(request, **self.overrides)


_PACKING = ("packing-requirement", "packing-cost")
_FURNITURE_LIFT = (
    "furniture-lift-recommendation",
    "furniture-lift-refusal-impact",
    "manual-handling-risk-cost",
)
_FULL_SERVICE = frozenset(
    _PACKING + ("high-value-item-handling", "insurance-premium") + _FURNITURE_LIFT
)

STANDARD_SCENARIOS: tuple[QuoteScenario, ...] = (
    QuoteScenario(
        id="ECO",
        label="Economy",
        description="The essentials at the lowest price",
        disabled_modules=frozenset(
            _PACKING + ("high-value-item-handling", "overnight-stop-cost")
        ),
        margin_rate=Decimal("0.20"),
        tags=("LOW_PRICE", "ENTRY"),
    ),
    QuoteScenario(
        id="STANDARD",
        label="Standard",
        description="The professional minimum",
        enabled_modules=frozenset(_PACKING),
        disabled_modules=frozenset({"insurance-premium"}),
        overrides={"packing_requested": True},
        margin_rate=Decimal("0.30"),
        tags=("RECOMMENDED", "BALANCED"),
    ),
    QuoteScenario(
        id="CONFORT",
        label="Comfort",
        description="Peace of mind",
        enabled_modules=frozenset(_PACKING),
        disabled_modules=frozenset({"overnight-stop-cost"}),
        overrides={"packing_requested": True},
        margin_rate=Decimal("0.35"),
        tags=("COMFORT", "UPSELL", "MOST_CHOSEN"),
    ),
    QuoteScenario(
        id="SECURITY_PLUS",
        label="Security+",
        description="Maximum protection",
        enabled_modules=_FULL_SERVICE,
        overrides={"packing_requested": True, "declared_value_insurance_requested": True},
        margin_rate=Decimal("0.32"),
        tags=("SECURITY_PLUS", "PRO", "INSURANCE_INCLUDED"),
    ),
    QuoteScenario(
        id="PREMIUM",
        label="Premium",
        description="Turnkey",
        enabled_modules=_FULL_SERVICE,
        overrides={"packing_requested": True, "declared_value_insurance_requested": True},
        margin_rate=Decimal("0.40"),
        tags=("PREMIUM", "ALL_INCLUSIVE", "INSURANCE_INCLUDED"),
    ),
    QuoteScenario(
        id="FLEX",
        label="Custom",
        description="Built from the customer's own selection",
        margin_rate=Decimal("0.38"),
        tags=("FLEXIBILITY", "CUSTOM"),
    ),
)
