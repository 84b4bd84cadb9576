"""
Computation context and append-only accumulator.

Responsibility:
    Defines the immutable request (``QuoteRequest``), the typed entries
    modules contribute (cost lines, adjustments, risk contributions,
    requirements, advisory notes, derived facts), the ``Accumulator`` that
    holds them, and the ``QuoteContext`` threaded through the pipeline.

Architecture position:
    Kernel > Domain. Pure values. No I/O, no clock, no configuration.

Invariants enforced:
    - Every dataclass here is frozen; "adding" returns a new instance.
    - Categories are tuples, so earlier entries keep their positions and
      identity. The orchestrator checks the prefix after each module.
    - Cost and adjustment amounts are rounded to cents and non-negative.
    - Risk contributions are non-negative.
    - A fact name is written at most once per computation.
    - A metadata key, once written, is never rewritten.

Failure modes:
    - ValueError on negative amounts, duplicate fact names, metadata
      rewrites, or unknown category names in ``append``. Raised inside a
      module's apply step, the orchestrator wraps it as
      ModuleExecutionError.

Audit relevance:
    Every entry carries the id of the module that produced it, so a quote
    line can always be traced back to the rule that priced it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any

from quote_kernel.domain.values import ZERO, round_money, to_decimal


class ServiceType(str, Enum):
    MOVING = "MOVING"
    CLEANING = "CLEANING"
    DELIVERY = "DELIVERY"
    PACKING = "PACKING"


class Confidence(str, Enum):
    """How sure the customer (or estimator) is about the volume."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class SpecialItem(str, Enum):
    """Items that need dedicated handling. Declaration order is output order."""

    PIANO = "PIANO"
    SAFE = "SAFE"
    ARTWORK = "ARTWORK"


class ElevatorSize(str, Enum):
    SMALL = "SMALL"
    STANDARD = "STANDARD"
    LARGE = "LARGE"


class CostCategory(str, Enum):
    TRANSPORT = "TRANSPORT"
    VEHICLE = "VEHICLE"
    LABOR = "LABOR"
    LOGISTICS = "LOGISTICS"
    RISK = "RISK"
    INSURANCE = "INSURANCE"
    HANDLING = "HANDLING"
    CROSS_SELL = "CROSS_SELL"
    ADMINISTRATIVE = "ADMINISTRATIVE"


class AdjustmentKind(str, Enum):
    SURCHARGE = "SURCHARGE"
    DISCOUNT = "DISCOUNT"


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


def _freeze(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if isinstance(mapping, MappingProxyType):
        return mapping
    return MappingProxyType(dict(mapping or {}))


def _non_negative(value: Decimal, what: str) -> None:
    if value < ZERO:
        raise ValueError(f"{what} must be non-negative, got {value}")


def _money(value: Decimal, what: str) -> Decimal:
    """Sign-check the raw value, then round. Never yields -0.00."""
    raw = to_decimal(value)
    _non_negative(raw, what)
    return round_money(raw).copy_abs()


def _normalise_enum(request: Any, name: str, enum_cls: type[Enum]) -> None:
    value = getattr(request, name)
    if isinstance(value, str) and not isinstance(value, enum_cls):
        if value in enum_cls.__members__:
            object.__setattr__(request, name, enum_cls(value))


# =============================================================================
# Request
# =============================================================================


@dataclass(frozen=True, slots=True)
class QuoteRequest:
    """
    Immutable description of the service being quoted.

    Numeric fields are Decimal or None. Enum fields accept their string
    value and are normalised on construction; anything else is left as
    given and rejected by input validation. A list of addresses becomes a
    tuple; any other non-tuple value is kept and rejected the same way.

    Floors count from 0 (ground floor). ``*_has_elevator`` is None when
    unknown, which never triggers a furniture-lift recommendation.
    """

    service_type: ServiceType | str
    region: str = ""
    addresses: tuple[str, ...] = ()
    volume_m3: Decimal | None = None
    distance_km: Decimal | None = None
    declared_value: Decimal | None = None
    declared_value_insurance_requested: bool = False
    piano: bool = False
    safe: bool = False
    artwork: bool = False
    housing_type: str | None = None
    rooms: int | None = None
    volume_confidence: Confidence | str = Confidence.MEDIUM
    scheduled_date: date | None = None
    force_overnight_stop: bool = False
    packing_requested: bool = False
    pickup_floor: int | None = None
    delivery_floor: int | None = None
    pickup_has_elevator: bool | None = None
    delivery_has_elevator: bool | None = None
    pickup_elevator_size: ElevatorSize | str | None = None
    delivery_elevator_size: ElevatorSize | str | None = None
    refuse_furniture_lift: bool = False
    currency: str = "EUR"
    request_id: str | None = None

    def __post_init__(self) -> None:
        _normalise_enum(self, "service_type", ServiceType)
        _normalise_enum(self, "volume_confidence", Confidence)
        _normalise_enum(self, "pickup_elevator_size", ElevatorSize)
        _normalise_enum(self, "delivery_elevator_size", ElevatorSize)
        for name in ("volume_m3", "distance_km", "declared_value"):
            value = getattr(self, name)
            if isinstance(value, int) and not isinstance(value, bool):
                object.__setattr__(self, name, Decimal(value))
        if isinstance(self.addresses, list):
            object.__setattr__(self, "addresses", tuple(self.addresses))

    @property
    def special_items(self) -> tuple[SpecialItem, ...]:
        """Flagged special items, in SpecialItem declaration order."""
        flags = {
            SpecialItem.PIANO: self.piano,
            SpecialItem.SAFE: self.safe,
            SpecialItem.ARTWORK: self.artwork,
        }
        return tuple(item for item in SpecialItem if flags[item])


# =============================================================================
# Accumulator entries
# =============================================================================


@dataclass(frozen=True, slots=True)
class CostLine:
    module_id: str
    label: str
    amount: Decimal
    category: CostCategory
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", _money(self.amount, f"Cost line '{self.label}'"))
        object.__setattr__(self, "metadata", _freeze(self.metadata))


@dataclass(frozen=True, slots=True)
class Adjustment:
    """
    A surcharge or discount on the quote total.

    ``amount`` is stored non-negative; ``signed_amount`` is what the
    assembler adds to the total.
    """

    module_id: str
    label: str
    amount: Decimal
    kind: AdjustmentKind
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", _money(self.amount, f"Adjustment '{self.label}'"))
        object.__setattr__(self, "metadata", _freeze(self.metadata))

    @property
    def signed_amount(self) -> Decimal:
        if self.kind is AdjustmentKind.DISCOUNT:
            return -self.amount
        return self.amount


@dataclass(frozen=True, slots=True)
class RiskContribution:
    module_id: str
    amount: Decimal
    reason: str
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.amount, int) and not isinstance(self.amount, bool):
            object.__setattr__(self, "amount", Decimal(self.amount))
        _non_negative(self.amount, "Risk contribution")
        object.__setattr__(self, "metadata", _freeze(self.metadata))


@dataclass(frozen=True, slots=True)
class Requirement:
    type: str
    severity: Severity
    reason: str
    module_id: str
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", _freeze(self.metadata))


@dataclass(frozen=True, slots=True)
class LegalImpact:
    type: str
    severity: Severity
    message: str
    module_id: str


@dataclass(frozen=True, slots=True)
class InsuranceNote:
    message: str
    module_id: str


@dataclass(frozen=True, slots=True)
class CrossSellProposal:
    id: str
    label: str
    reason: str
    module_id: str
    price_impact: Decimal = ZERO
    optional: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "price_impact", round_money(self.price_impact))


@dataclass(frozen=True, slots=True)
class OperationalFlag:
    code: str
    message: str
    module_id: str


@dataclass(frozen=True, slots=True)
class Fact:
    """A typed derived value other modules may read (volume, distance...)."""

    module_id: str
    name: str
    value: Any


# Categories a module may append to. activated_modules and metadata are
# written through dedicated methods.
ENTRY_CATEGORIES: tuple[str, ...] = (
    "costs",
    "adjustments",
    "risk_contributions",
    "requirements",
    "legal_impacts",
    "insurance_notes",
    "cross_sell_proposals",
    "operational_flags",
    "facts",
)


# =============================================================================
# Accumulator
# =============================================================================


@dataclass(frozen=True, slots=True)
class Accumulator:
    """Append-only, categorised results of the modules run so far."""

    costs: tuple[CostLine, ...] = ()
    adjustments: tuple[Adjustment, ...] = ()
    risk_contributions: tuple[RiskContribution, ...] = ()
    requirements: tuple[Requirement, ...] = ()
    legal_impacts: tuple[LegalImpact, ...] = ()
    insurance_notes: tuple[InsuranceNote, ...] = ()
    cross_sell_proposals: tuple[CrossSellProposal, ...] = ()
    operational_flags: tuple[OperationalFlag, ...] = ()
    facts: tuple[Fact, ...] = ()
    activated_modules: tuple[str, ...] = ()
    metadata: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", _freeze(self.metadata))

    def append(self, **entries: Iterable[Any]) -> Accumulator:
        """
        Return a new accumulator with entries appended per category.

        Example:
            acc.append(costs=[line], requirements=[req])
        """
        changes: dict[str, tuple[Any, ...]] = {}
        for category, new_entries in entries.items():
            if category not in ENTRY_CATEGORIES:
                raise ValueError(f"Unknown accumulator category: {category}")
            new_entries = tuple(new_entries)
            if not new_entries:
                continue
            if category == "facts":
                self._check_fact_names(new_entries)
            changes[category] = getattr(self, category) + new_entries
        if not changes:
            return self
        return replace(self, **changes)

    def _check_fact_names(self, new_facts: tuple[Fact, ...]) -> None:
        seen = {f.name for f in self.facts}
        for f in new_facts:
            if f.name in seen:
                raise ValueError(f"Fact '{f.name}' is already defined")
            seen.add(f.name)

    def with_metadata(self, module_id: str, values: Mapping[str, Any]) -> Accumulator:
        """Merge debug values under ``module_id``. Existing keys are immutable."""
        existing = self.metadata.get(module_id, {})
        for key, value in values.items():
            if key in existing and existing[key] != value:
                raise ValueError(
                    f"Metadata {module_id}.{key} is already set to {existing[key]!r}"
                )
        merged = dict(self.metadata)
        merged[module_id] = MappingProxyType({**existing, **values})
        return replace(self, metadata=merged)

    def with_activated(self, module_id: str) -> Accumulator:
        if module_id in self.activated_modules:
            raise ValueError(f"Module {module_id} is already activated")
        return replace(self, activated_modules=self.activated_modules + (module_id,))

    def fact(self, name: str, default: Any = None) -> Any:
        for f in self.facts:
            if f.name == name:
                return f.value
        return default

    def has_fact(self, name: str) -> bool:
        return any(f.name == name for f in self.facts)


# =============================================================================
# Context
# =============================================================================


@dataclass(frozen=True, slots=True)
class QuoteContext:
    """The request plus everything accumulated so far."""

    request: QuoteRequest
    accumulator: Accumulator = field(default_factory=Accumulator)

    @classmethod
    def initial(cls, request: QuoteRequest) -> QuoteContext:
        return cls(request=request, accumulator=Accumulator())

    def append(self, **entries: Iterable[Any]) -> QuoteContext:
        return replace(self, accumulator=self.accumulator.append(**entries))

    def with_metadata(self, module_id: str, values: Mapping[str, Any]) -> QuoteContext:
        return replace(
            self, accumulator=self.accumulator.with_metadata(module_id, values)
        )

    def with_accumulator(self, accumulator: Accumulator) -> QuoteContext:
        return replace(self, accumulator=accumulator)

    def is_activated(self, module_id: str) -> bool:
        return module_id in self.accumulator.activated_modules

    def fact(self, name: str, default: Any = None) -> Any:
        return self.accumulator.fact(name, default)
