"""
quote_kernel.services.quote_orchestrator -- Runs the module pipeline.

Responsibility:
    Validates the request, folds the registry's precomputed module order
    over an initial QuoteContext, and hands the final context to the
    QuoteAssembler. Records why every module did or did not run.

Architecture position:
    Kernel > Services. The only place modules are invoked. Holds no
    per-computation state, so one orchestrator serves any number of
    concurrent computations.

Invariants enforced:
    - Single pass in registry order; no re-entry, no re-ordering.
    - A module is evaluated only when every dependency is in
      activated_modules. Otherwise it is skipped and the context is
      unchanged.
    - is_applicable sees the context as it stands at that point in the
      fold, including earlier contributions.
    - After apply, every accumulator category must keep its previous
      entries as a prefix and every new entry must be tagged with the
      module's id. Only the orchestrator appends to activated_modules.
    - Execution-phase and enabled/disabled filters are applied before the
      dependency gate; a filtered module never activates.

Failure modes:
    - InvalidInputError: request or options rejected before any module.
    - ModuleExecutionError: a predicate or apply step raised. The whole
      computation is aborted; no partial quote is returned.
    - AccumulatorViolationError: a module broke the append-only contract.

Audit relevance:
    Each run returns a ModuleOutcome per registered module, and the
    ``quote_pipeline_completed`` log line carries the context fingerprint.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from quote_kernel.domain.assembler import Quote, QuoteAssembler
from quote_kernel.domain.context import ENTRY_CATEGORIES, QuoteContext, QuoteRequest
from quote_kernel.domain.module import ExecutionPhase, QuoteModule
from quote_kernel.domain.policy import PolicyStore
from quote_kernel.domain.registry import ModuleRegistry
from quote_kernel.domain.validation import validate_request
from quote_kernel.domain.values import ZERO
from quote_kernel.exceptions import (
    AccumulatorViolationError,
    InvalidInputError,
    ModuleExecutionError,
)
from quote_kernel.logging_config import LogContext, get_logger
from quote_kernel.utils.hashing import fingerprint_context

logger = get_logger("services.quote_orchestrator")


class ModuleStatus(str, Enum):
    ACTIVATED = "ACTIVATED"
    SKIPPED_PHASE = "SKIPPED_PHASE"
    SKIPPED_DISABLED = "SKIPPED_DISABLED"
    SKIPPED_NOT_ENABLED = "SKIPPED_NOT_ENABLED"
    SKIPPED_DEPENDENCY = "SKIPPED_DEPENDENCY"
    SKIPPED_NOT_APPLICABLE = "SKIPPED_NOT_APPLICABLE"


@dataclass(frozen=True)
class ModuleOutcome:
    module_id: str
    status: ModuleStatus
    reason: str = ""


@dataclass(frozen=True)
class PipelineOptions:
    """
    Per-computation module selection.

    ``disabled_modules`` always wins. When ``enabled_modules`` is non-empty
    only those modules and the essential ones run.
    """

    execution_phase: ExecutionPhase = ExecutionPhase.QUOTE
    enabled_modules: frozenset[str] = field(default_factory=frozenset)
    disabled_modules: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "enabled_modules", frozenset(self.enabled_modules))
        object.__setattr__(self, "disabled_modules", frozenset(self.disabled_modules))


@dataclass(frozen=True)
class PipelineRun:
    """Final context plus one outcome per registered module."""

    context: QuoteContext
    outcomes: tuple[ModuleOutcome, ...]

    @property
    def activated_modules(self) -> tuple[str, ...]:
        return self.context.accumulator.activated_modules

    def outcome_for(self, module_id: str) -> ModuleOutcome:
        for outcome in self.outcomes:
            if outcome.module_id == module_id:
                return outcome
        raise KeyError(f"No outcome recorded for module: {module_id}")

    def skipped(self) -> tuple[ModuleOutcome, ...]:
        return tuple(o for o in self.outcomes if o.status is not ModuleStatus.ACTIVATED)


class QuoteOrchestrator:
    """Validates, runs modules in registry order, and assembles the quote."""

    def __init__(self, registry: ModuleRegistry, policy: PolicyStore):
        self._registry = registry
        self._policy = policy
        self._assembler = QuoteAssembler(policy)

    @property
    def registry(self) -> ModuleRegistry:
        return self._registry

    @property
    def policy(self) -> PolicyStore:
        return self._policy

    def compute_quote(
        self,
        request: QuoteRequest,
        base_price: Decimal = ZERO,
        options: PipelineOptions | None = None,
    ) -> Quote:
        """
        Run the pipeline and assemble the result.

        Raises:
            InvalidInputError: Request or options rejected.
            ModuleExecutionError: A module failed; nothing is returned.
        """
        return self.assemble(self.run(request, options), base_price)

    def assemble(self, run: PipelineRun, base_price: Decimal = ZERO) -> Quote:
        """Fold a finished run into a Quote."""
        return self._assembler.assemble(run.context, base_price)

    def run(
        self,
        request: QuoteRequest,
        options: PipelineOptions | None = None,
    ) -> PipelineRun:
        options = options or PipelineOptions()
        self._validate_options(options)
        validate_request(request, self._policy)

        ctx = QuoteContext.initial(request)
        outcomes: list[ModuleOutcome] = []
        start_ns = time.perf_counter_ns()

        with LogContext.bind(request_id=request.request_id):
            logger.info(
                "quote_pipeline_started",
                extra={
                    "service_type": request.service_type,
                    "execution_phase": options.execution_phase,
                    "module_count": len(self._registry),
                },
            )

            for module in self._registry.order:
                outcome, ctx = self._step(module, ctx, options)
                outcomes.append(outcome)

            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            logger.info(
                "quote_pipeline_completed",
                extra={
                    "activated_modules": list(ctx.accumulator.activated_modules),
                    "skipped_count": sum(
                        1 for o in outcomes if o.status is not ModuleStatus.ACTIVATED
                    ),
                    "cost_line_count": len(ctx.accumulator.costs),
                    "context_fingerprint": fingerprint_context(ctx),
                    "duration_ms": round(duration_ms, 3),
                },
            )

        return PipelineRun(context=ctx, outcomes=tuple(outcomes))

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _step(
        self,
        module: QuoteModule,
        ctx: QuoteContext,
        options: PipelineOptions,
    ) -> tuple[ModuleOutcome, QuoteContext]:
        filtered = self._filter(module, options)
        if filtered is not None:
            return self._skipped(filtered), ctx

        missing = [d for d in module.dependencies if not ctx.is_activated(d)]
        if missing:
            return (
                self._skipped(
                    ModuleOutcome(
                        module.id,
                        ModuleStatus.SKIPPED_DEPENDENCY,
                        f"dependencies not activated: {', '.join(missing)}",
                    )
                ),
                ctx,
            )

        with LogContext.bind(module_id=module.id):
            try:
                applicable = module.is_applicable(ctx)
            except Exception as exc:
                self._log_failure(module, exc)
                raise ModuleExecutionError(module.id, ctx, exc) from exc

            if not applicable:
                return (
                    self._skipped(
                        ModuleOutcome(
                            module.id,
                            ModuleStatus.SKIPPED_NOT_APPLICABLE,
                            "not applicable",
                        )
                    ),
                    ctx,
                )

            try:
                new_ctx = module.apply(ctx)
            except Exception as exc:
                self._log_failure(module, exc)
                raise ModuleExecutionError(module.id, ctx, exc) from exc

            try:
                self._check_append_only(module, ctx, new_ctx)
            except AccumulatorViolationError as exc:
                self._log_failure(module, exc)
                raise

            new_ctx = new_ctx.with_accumulator(
                new_ctx.accumulator.with_activated(module.id)
            )
            logger.debug(
                "quote_module_activated",
                extra={
                    "cost_lines_added": len(new_ctx.accumulator.costs)
                    - len(ctx.accumulator.costs),
                },
            )
            return ModuleOutcome(module.id, ModuleStatus.ACTIVATED), new_ctx

    def _filter(
        self, module: QuoteModule, options: PipelineOptions
    ) -> ModuleOutcome | None:
        if module.execution_phase != options.execution_phase:
            return ModuleOutcome(
                module.id,
                ModuleStatus.SKIPPED_PHASE,
                f"phase {module.execution_phase.value} != {options.execution_phase.value}",
            )
        if module.id in options.disabled_modules:
            return ModuleOutcome(module.id, ModuleStatus.SKIPPED_DISABLED, "disabled")
        if (
            options.enabled_modules
            and module.id not in options.enabled_modules
            and not module.essential
        ):
            return ModuleOutcome(
                module.id, ModuleStatus.SKIPPED_NOT_ENABLED, "not in enabled modules"
            )
        return None

    def _skipped(self, outcome: ModuleOutcome) -> ModuleOutcome:
        logger.debug(
            "quote_module_skipped",
            extra={
                "skipped_module_id": outcome.module_id,
                "status": outcome.status,
                "reason": outcome.reason,
            },
        )
        return outcome

    def _log_failure(self, module: QuoteModule, exc: Exception) -> None:
        logger.error(
            "quote_module_failed",
            extra={"failed_module_id": module.id, "error_type": type(exc).__name__},
            exc_info=exc,
        )

    # ------------------------------------------------------------------
    # Contract checks
    # ------------------------------------------------------------------

    def _validate_options(self, options: PipelineOptions) -> None:
        errors = []
        for field_name in ("enabled_modules", "disabled_modules"):
            unknown = sorted(
                m for m in getattr(options, field_name) if m not in self._registry
            )
            if unknown:
                errors.append(
                    {"field": field_name, "message": f"unknown modules: {', '.join(unknown)}"}
                )
        if not isinstance(options.execution_phase, ExecutionPhase):
            errors.append(
                {
                    "field": "execution_phase",
                    "message": f"unknown phase {options.execution_phase!r}",
                }
            )
        if errors:
            raise InvalidInputError(errors)

    def _check_append_only(
        self, module: QuoteModule, before: QuoteContext, after: object
    ) -> None:
        if not isinstance(after, QuoteContext):
            raise AccumulatorViolationError(
                module.id, before, "context",
                f"apply returned {type(after).__name__}, expected QuoteContext",
            )
        if after.request is not before.request and after.request != before.request:
            raise AccumulatorViolationError(
                module.id, before, "request", "the request must not be replaced"
            )

        old_acc, new_acc = before.accumulator, after.accumulator
        for category in ENTRY_CATEGORIES:
            old = getattr(old_acc, category)
            new = getattr(new_acc, category)
            if new[: len(old)] != old:
                raise AccumulatorViolationError(
                    module.id, before, category,
                    "existing entries were removed or rewritten",
                )
            for entry in new[len(old):]:
                if entry.module_id != module.id:
                    raise AccumulatorViolationError(
                        module.id, before, category,
                        f"new entry is tagged with module {entry.module_id!r}",
                    )

        if new_acc.activated_modules != old_acc.activated_modules:
            raise AccumulatorViolationError(
                module.id, before, "activated_modules",
                "only the orchestrator records activations",
            )

        for key, values in old_acc.metadata.items():
            if new_acc.metadata.get(key) != values:
                raise AccumulatorViolationError(
                    module.id, before, "metadata", f"metadata for {key!r} was rewritten"
                )
        for key in new_acc.metadata:
            if key not in old_acc.metadata and key != module.id:
                raise AccumulatorViolationError(
                    module.id, before, "metadata",
                    f"metadata written under another module id {key!r}",
                )
