"""
Pytest fixtures for the quote pipeline test suite.

Provides:
- The default PolicyStore and a registry/orchestrator over the standard catalogue
- A request factory with neutral defaults
- Small stub modules for exercising the orchestrator in isolation
"""

from decimal import Decimal

import pytest

from quote_kernel.domain.context import (
    CostCategory,
    QuoteContext,
    QuoteRequest,
    ServiceType,
)
from quote_kernel.domain.module import BaseQuoteModule
from quote_kernel.domain.policy import PolicyStore
from quote_kernel.logging_config import LogContext, reset_logging
from quote_modules.catalog import build_default_registry, build_orchestrator


@pytest.fixture(autouse=True)
def _clean_log_context():
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def policy() -> PolicyStore:
    return PolicyStore()


@pytest.fixture
def registry(policy):
    return build_default_registry(policy)


@pytest.fixture
def orchestrator(policy):
    return build_orchestrator(policy)


def make_request(**overrides) -> QuoteRequest:
    """A CLEANING request touches no volume or transport module by default."""
    fields = {
        "service_type": ServiceType.CLEANING,
        "region": "IDF",
        "addresses": ("1 rue de Rivoli, Paris",),
    }
    fields.update(overrides)
    return QuoteRequest(**fields)


@pytest.fixture
def request_factory():
    return make_request


def make_context(**overrides) -> QuoteContext:
    return QuoteContext.initial(make_request(**overrides))


class StubModule(BaseQuoteModule):
    """
    Configurable module for orchestrator tests.

    Adds one ADMINISTRATIVE cost of ``amount`` tagged with its id.
    """

    def __init__(
        self,
        id: str,
        priority: int = 50,
        dependencies: tuple[str, ...] = (),
        applicable=True,
        amount: str = "10.00",
        essential: bool = False,
    ):
        self.id = id
        self.priority = priority
        self.dependencies = dependencies
        self.essential = essential
        self._applicable = applicable
        self._amount = Decimal(amount)
        self.seen_contexts: list[QuoteContext] = []

    def is_applicable(self, ctx):
        self.seen_contexts.append(ctx)
        if callable(self._applicable):
            return self._applicable(ctx)
        return self._applicable

    def apply(self, ctx):
        return ctx.append(
            costs=[self.cost(f"{self.id} fee", self._amount, CostCategory.ADMINISTRATIVE)]
        )


@pytest.fixture
def stub_module():
    return StubModule


@pytest.fixture
def isolated_logging():
    """Reset the quote_kernel logger hierarchy around a test."""
    reset_logging()
    yield
    reset_logging()
