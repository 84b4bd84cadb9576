"""
ModuleRegistry -- validated, ordered set of quote modules.

Responsibility:
    Holds the module catalogue for a process, validates the dependency
    graph once at construction and computes the execution order once.

Architecture position:
    Kernel > Domain. Built at startup, then read-only. Shared by every
    computation without locking.

Invariants enforced:
    - Module ids are unique.
    - Every declared dependency names a registered module.
    - The dependency graph is acyclic.
    - Execution order is a topological order: every dependency precedes
      its dependents. Among modules that are ready at the same time the
      lower priority runs first; equal priorities keep declaration order.
      The order is a pure function of the declared list.

Failure modes:
    - DuplicateModuleError, UnknownDependencyError, DependencyCycleError
      (all ConfigurationError) from the constructor. A registry that
      exists is always valid.

Audit relevance:
    ``order`` and ``dependency_edges`` describe exactly which rules can
    contribute to a quote and in what sequence.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterator, Sequence

from quote_kernel.domain.module import ExecutionPhase, QuoteModule
from quote_kernel.exceptions import (
    DependencyCycleError,
    DuplicateModuleError,
    UnknownDependencyError,
)
from quote_kernel.logging_config import get_logger

logger = get_logger("domain.registry")


class ModuleRegistry:
    """Validated module catalogue with a precomputed execution order."""

    def __init__(self, modules: Sequence[QuoteModule]):
        self._declared: tuple[QuoteModule, ...] = tuple(modules)
        self._by_id: dict[str, QuoteModule] = {}
        for module in self._declared:
            if module.id in self._by_id:
                raise DuplicateModuleError(module.id)
            self._by_id[module.id] = module

        for module in self._declared:
            for dep in module.dependencies:
                if dep not in self._by_id:
                    raise UnknownDependencyError(module.id, dep)

        self._order: tuple[QuoteModule, ...] = self._resolve_order()

        logger.info(
            "quote_module_registry_built",
            extra={
                "module_count": len(self._order),
                "order": [m.id for m in self._order],
            },
        )

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def _resolve_order(self) -> tuple[QuoteModule, ...]:
        """Kahn's algorithm; the ready set is drained by (priority, index)."""
        index = {m.id: i for i, m in enumerate(self._declared)}
        indegree = {m.id: len(set(m.dependencies)) for m in self._declared}
        dependents: dict[str, list[str]] = {m.id: [] for m in self._declared}
        for module in self._declared:
            for dep in set(module.dependencies):
                dependents[dep].append(module.id)

        ready: list[tuple[int | float, int, str]] = []
        for module in self._declared:
            if indegree[module.id] == 0:
                heapq.heappush(ready, (module.priority, index[module.id], module.id))

        ordered: list[QuoteModule] = []
        while ready:
            _, _, module_id = heapq.heappop(ready)
            ordered.append(self._by_id[module_id])
            for child in dependents[module_id]:
                indegree[child] -= 1
                if indegree[child] == 0:
                    child_module = self._by_id[child]
                    heapq.heappush(
                        ready, (child_module.priority, index[child], child)
                    )

        if len(ordered) != len(self._declared):
            remaining = [m.id for m in self._declared if indegree[m.id] > 0]
            raise DependencyCycleError(self._find_cycle(remaining))

        return tuple(ordered)

    def _find_cycle(self, candidates: list[str]) -> list[str]:
        """Return one cycle path among ``candidates``, first node repeated at the end."""
        candidate_set = set(candidates)
        visiting: list[str] = []
        on_path: set[str] = set()
        done: set[str] = set()

        def visit(node: str) -> list[str] | None:
            visiting.append(node)
            on_path.add(node)
            for dep in self._by_id[node].dependencies:
                if dep not in candidate_set or dep in done:
                    continue
                if dep in on_path:
                    start = visiting.index(dep)
                    return visiting[start:] + [dep]
                found = visit(dep)
                if found:
                    return found
            visiting.pop()
            on_path.discard(node)
            done.add(node)
            return None

        for node in candidates:
            if node not in done:
                found = visit(node)
                if found:
                    return found
        return candidates  # pragma: no cover - Kahn leftovers always contain a cycle

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def order(self) -> tuple[QuoteModule, ...]:
        return self._order

    @property
    def module_ids(self) -> tuple[str, ...]:
        return tuple(m.id for m in self._order)

    def get(self, module_id: str) -> QuoteModule:
        """Get a module by id. Raises KeyError if not registered."""
        try:
            return self._by_id[module_id]
        except KeyError:
            raise KeyError(f"Module not registered: {module_id}") from None

    def dependency_edges(self) -> list[tuple[str, str]]:
        """(dependency, dependent) pairs, in declaration order."""
        return [
            (dep, module.id)
            for module in self._declared
            for dep in module.dependencies
        ]

    def dependents_of(self, module_id: str) -> list[str]:
        """Ids of modules that declare ``module_id`` as a direct dependency."""
        self.get(module_id)
        return [m.id for m in self._order if module_id in m.dependencies]

    def by_phase(self, phase: ExecutionPhase) -> list[QuoteModule]:
        return [m for m in self._order if m.execution_phase == phase]

    def essential_ids(self) -> frozenset[str]:
        return frozenset(m.id for m in self._declared if m.essential)

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._by_id

    def __iter__(self) -> Iterator[QuoteModule]:
        return iter(self._order)

    def __len__(self) -> int:
        return len(self._order)
