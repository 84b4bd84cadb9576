"""
Pure domain layer.

Request, accumulator, module contract, registry, policy and assembler.
NO dependencies on I/O, time/clock, environment or configuration files.
All domain objects are immutable and deterministic.
"""

from quote_kernel.domain.assembler import Quote, QuoteAssembler
from quote_kernel.domain.context import (
    Accumulator,
    Adjustment,
    AdjustmentKind,
    Confidence,
    CostCategory,
    CostLine,
    CrossSellProposal,
    ElevatorSize,
    Fact,
    InsuranceNote,
    LegalImpact,
    OperationalFlag,
    QuoteContext,
    QuoteRequest,
    Requirement,
    RiskContribution,
    ServiceType,
    Severity,
    SpecialItem,
)
from quote_kernel.domain.module import BaseQuoteModule, ExecutionPhase, QuoteModule
from quote_kernel.domain.policy import PolicyStore
from quote_kernel.domain.registry import ModuleRegistry
from quote_kernel.domain.scenario import STANDARD_SCENARIOS, QuoteScenario
from quote_kernel.domain.validation import request_from_mapping, validate_request

__all__ = [
    "Accumulator",
    "Adjustment",
    "AdjustmentKind",
    "BaseQuoteModule",
    "Confidence",
    "CostCategory",
    "CostLine",
    "CrossSellProposal",
    "ElevatorSize",
    "ExecutionPhase",
    "Fact",
    "InsuranceNote",
    "LegalImpact",
    "ModuleRegistry",
    "OperationalFlag",
    "PolicyStore",
    "Quote",
    "QuoteAssembler",
    "QuoteContext",
    "QuoteModule",
    "QuoteRequest",
    "QuoteScenario",
    "Requirement",
    "RiskContribution",
    "STANDARD_SCENARIOS",
    "ServiceType",
    "Severity",
    "SpecialItem",
    "request_from_mapping",
    "validate_request",
]
