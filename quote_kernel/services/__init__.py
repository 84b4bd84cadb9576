"""Kernel services: the pipeline orchestrator and the scenario runner."""

from quote_kernel.services.multi_quote import (
    SCENARIO_MARGIN,
    MultiQuoteService,
    QuoteVariant,
)
from quote_kernel.services.quote_orchestrator import (
    ModuleOutcome,
    ModuleStatus,
    PipelineOptions,
    PipelineRun,
    QuoteOrchestrator,
)

__all__ = [
    "SCENARIO_MARGIN",
    "ModuleOutcome",
    "ModuleStatus",
    "MultiQuoteService",
    "PipelineOptions",
    "PipelineRun",
    "QuoteOrchestrator",
    "QuoteVariant",
]
