"""
QuoteModule -- the contract every pricing rule implements.

A module is a small, self-contained rule: it decides from the current
context whether it applies and, if it does, returns a new context with its
contributions appended. It never calls another module and never reads
another module's metadata; it may read request fields, facts, and the
typed accumulator categories.

Modules must be deterministic: same context in, same context out. They do
not read the clock, the environment or a random source. Configuration
arrives through the constructor as a frozen policy section.

Example:
    class FlatFeeModule(BaseQuoteModule):
        id = "flat-fee"
        priority = 90

        def __init__(self, fee: Decimal):
            self._fee = fee

        def is_applicable(self, ctx):
            return True

        def apply(self, ctx):
            return ctx.append(costs=[self.cost("Flat fee", self._fee,
                                               CostCategory.ADMINISTRATIVE)])
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar

from quote_kernel.domain.context import (
    Adjustment,
    AdjustmentKind,
    CostCategory,
    CostLine,
    CrossSellProposal,
    Fact,
    InsuranceNote,
    LegalImpact,
    OperationalFlag,
    QuoteContext,
    Requirement,
    RiskContribution,
    Severity,
)
from quote_kernel.domain.values import ZERO


class ExecutionPhase(str, Enum):
    """When in the customer journey a module is relevant."""

    QUOTE = "QUOTE"
    CONTRACT = "CONTRACT"
    OPERATIONS = "OPERATIONS"


class QuoteModule(ABC):
    """Abstract pricing module."""

    id: ClassVar[str]
    priority: ClassVar[int | float]
    dependencies: ClassVar[tuple[str, ...]] = ()
    description: ClassVar[str] = ""
    execution_phase: ClassVar[ExecutionPhase] = ExecutionPhase.QUOTE
    essential: ClassVar[bool] = False

    @abstractmethod
    def is_applicable(self, ctx: QuoteContext) -> bool:
        """Pure predicate over the current context."""
        ...

    @abstractmethod
    def apply(self, ctx: QuoteContext) -> QuoteContext:
        """Return a new context with this module's contributions appended."""
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r} priority={self.priority}>"


class BaseQuoteModule(QuoteModule):
    """QuoteModule with builders that tag every entry with the module id."""

    def cost(
        self,
        label: str,
        amount: Decimal,
        category: CostCategory,
        metadata: Mapping[str, Any] | None = None,
    ) -> CostLine:
        return CostLine(
            module_id=self.id,
            label=label,
            amount=amount,
            category=category,
            metadata=metadata or {},
        )

    def adjustment(
        self,
        label: str,
        amount: Decimal,
        kind: AdjustmentKind = AdjustmentKind.SURCHARGE,
        metadata: Mapping[str, Any] | None = None,
    ) -> Adjustment:
        return Adjustment(
            module_id=self.id,
            label=label,
            amount=amount,
            kind=kind,
            metadata=metadata or {},
        )

    def risk(
        self,
        amount: Decimal | int,
        reason: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> RiskContribution:
        return RiskContribution(
            module_id=self.id, amount=amount, reason=reason, metadata=metadata or {}
        )

    def requirement(
        self,
        type: str,
        severity: Severity,
        reason: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> Requirement:
        return Requirement(
            type=type,
            severity=severity,
            reason=reason,
            module_id=self.id,
            metadata=metadata or {},
        )

    def legal_impact(self, type: str, severity: Severity, message: str) -> LegalImpact:
        return LegalImpact(type=type, severity=severity, message=message, module_id=self.id)

    def insurance_note(self, message: str) -> InsuranceNote:
        return InsuranceNote(message=message, module_id=self.id)

    def cross_sell(
        self,
        id: str,
        label: str,
        reason: str,
        price_impact: Decimal = ZERO,
        optional: bool = True,
    ) -> CrossSellProposal:
        return CrossSellProposal(
            id=id,
            label=label,
            reason=reason,
            module_id=self.id,
            price_impact=price_impact,
            optional=optional,
        )

    def flag(self, code: str, message: str) -> OperationalFlag:
        return OperationalFlag(code=code, message=message, module_id=self.id)

    def fact(self, name: str, value: Any) -> Fact:
        return Fact(module_id=self.id, name=name, value=value)
