"""
Typed exception hierarchy for the quote kernel.

Every failure the pipeline can surface has its own class with a
machine-readable ``code`` and structured attributes, so callers catch by
type and never parse messages.

Each class also carries a ``stage`` naming where in the computation it was
raised:

    configuration   registry construction or policy loading (startup)
    input           request validation, before any module runs
    module          a module's predicate or apply step

Hierarchy:

    QuoteKernelError
    |
    +-- ConfigurationError
    |   +-- DuplicateModuleError
    |   +-- UnknownDependencyError
    |   +-- DependencyCycleError
    |   +-- PolicyConfigurationError
    |
    +-- InvalidInputError
    |
    +-- ModuleExecutionError
        +-- AccumulatorViolationError

Usage:

    try:
        quote = orchestrator.compute_quote(request)
    except InvalidInputError as e:
        return {"code": e.code, "fields": e.field_errors}
    except ModuleExecutionError as e:
        log.error("quote failed in %s", e.module_id)
"""

from __future__ import annotations

from typing import Any


class QuoteKernelError(Exception):
    """
    Base exception for all quote kernel errors.

    All subclasses define a ``code`` class attribute used by API layers and
    structured logs.
    """

    code: str = "QUOTE_KERNEL_ERROR"
    stage: str = "kernel"


# =============================================================================
# Configuration errors (raised at registry/policy construction time)
# =============================================================================


class ConfigurationError(QuoteKernelError):
    """The module graph or policy is invalid. Fatal at startup."""

    code: str = "CONFIGURATION_ERROR"
    stage: str = "configuration"


class DuplicateModuleError(ConfigurationError):
    """Two modules were registered with the same id."""

    code: str = "DUPLICATE_MODULE"

    def __init__(self, module_id: str):
        self.module_id = module_id
        super().__init__(f"Module registered more than once: {module_id}")


class UnknownDependencyError(ConfigurationError):
    """A module declares a dependency on an id that is not registered."""

    code: str = "UNKNOWN_DEPENDENCY"

    def __init__(self, module_id: str, dependency_id: str):
        self.module_id = module_id
        self.dependency_id = dependency_id
        super().__init__(
            f"Module {module_id} depends on unknown module {dependency_id}"
        )


class DependencyCycleError(ConfigurationError):
    """The declared dependencies form a cycle."""

    code: str = "DEPENDENCY_CYCLE"

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(
            f"Dependency cycle between modules: {' -> '.join(cycle)}"
        )


class PolicyConfigurationError(ConfigurationError):
    """A policy set failed to load or validate."""

    code: str = "POLICY_CONFIGURATION_INVALID"

    def __init__(self, set_name: str, errors: list[str]):
        self.set_name = set_name
        self.errors = errors
        super().__init__(
            f"Policy set '{set_name}' is invalid: {'; '.join(errors)}"
        )


# =============================================================================
# Input errors (raised before any module runs)
# =============================================================================


class InvalidInputError(QuoteKernelError):
    """
    The request failed central sanity checks.

    ``field_errors`` is a list of ``{"field": ..., "message": ...}`` dicts,
    one per failed check, so a caller can report all problems at once.
    """

    code: str = "INVALID_INPUT"
    stage: str = "input"

    def __init__(self, field_errors: list[dict[str, Any]]):
        self.field_errors = field_errors
        detail = "; ".join(
            f"{e['field']}: {e['message']}" for e in field_errors
        )
        super().__init__(f"Invalid quote request: {detail}")


# =============================================================================
# Module errors (raised during the pipeline fold)
# =============================================================================


class ModuleExecutionError(QuoteKernelError):
    """
    A module raised while the pipeline was running.

    Carries the failing module id, a snapshot of the context the module
    received (contexts are immutable, so the object itself is the
    snapshot), and the original exception as ``cause``. The whole
    computation is aborted; no partial quote is produced.
    """

    code: str = "MODULE_EXECUTION_FAILED"
    stage: str = "module"

    def __init__(
        self,
        module_id: str,
        context: Any,
        cause: BaseException | None = None,
        message: str | None = None,
    ):
        self.module_id = module_id
        self.context = context
        self.cause = cause
        if message is None:
            message = (
                f"Module {module_id} failed: "
                f"{type(cause).__name__}: {cause}"
            )
        super().__init__(message)


class AccumulatorViolationError(ModuleExecutionError):
    """A module removed, rewrote, or mis-tagged accumulator entries."""

    code: str = "ACCUMULATOR_VIOLATION"

    def __init__(self, module_id: str, context: Any, category: str, reason: str):
        self.category = category
        self.reason = reason
        super().__init__(
            module_id,
            context,
            message=(
                f"Module {module_id} violated the append-only accumulator "
                f"in '{category}': {reason}"
            ),
        )
