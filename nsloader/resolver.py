"""Dependency resolver: turns requested modules into an ordered injection plan.

The walk is depth-first with post-order emission, driven by an explicit
stack so deep dependency chains never hit the interpreter recursion limit.

Cycle handling: a module reached again while it is still being visited is
emitted immediately as a placeholder and not re-entered. The walk always
terminates, but a module in a cycle may run before one of its cyclic
dependencies has finished providing its namespaces, so every detected cycle
is logged and reported on the plan.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from collections.abc import Iterator
from dataclasses import dataclass
from dataclasses import field
from enum import Enum

from .dependency_index import DependencyIndex
from .dependency_index import normalize_module_path
from .errors import UnresolvedDependencyError
from .namespaces import NamespaceRegistry

logger = logging.getLogger(__name__)


class VisitState(str, Enum):
    """Per-pass visitation state of a module path."""

    UNVISITED = "unvisited"
    VISITING = "visiting"
    EMITTED = "emitted"


@dataclass(frozen=True)
class Cycle:
    """A requires edge that closed a cycle during the walk.

    Attributes:
        module_path: Module whose requirement led back into the chain
        namespace: The required namespace
        target: Module already being visited (emitted as a placeholder)
    """

    module_path: str
    namespace: str
    target: str


@dataclass
class LoadPlan:
    """Result of one resolution pass.

    Attributes:
        order: Module paths in injection order, each exactly once
        cycles: Cycles detected during the walk
    """

    order: list[str] = field(default_factory=list)
    cycles: list[Cycle] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.order)

    def __iter__(self) -> Iterator[str]:
        return iter(self.order)

    def __len__(self) -> int:
        return len(self.order)


class DependencyResolver:
    """Computes ordered, deduplicated, cycle-tolerant module sequences."""

    def __init__(self, registry: NamespaceRegistry, index: DependencyIndex):
        self.registry = registry
        self.index = index

    def resolve_namespaces(self, namespaces: Iterable[str], injected: Iterable[str] = ()) -> LoadPlan:
        """Plan the modules needed to provide the given namespaces.

        Namespaces that are already provided contribute nothing.

        Raises:
            UnresolvedDependencyError: A namespace has no owning module
        """
        module_paths = []
        for namespace in namespaces:
            if self.registry.is_declared(namespace):
                continue
            owner = self.index.owner_of(namespace)
            if owner is None:
                raise UnresolvedDependencyError(namespace)
            module_paths.append(owner)
        return self.plan(module_paths, injected)

    def plan(self, module_paths: Iterable[str], injected: Iterable[str] = ()) -> LoadPlan:
        """Plan the injection order for the given modules and their requirements.

        Args:
            module_paths: Requested module paths (seeds of the walk)
            injected: Modules already injected; never emitted again

        Returns:
            LoadPlan with post-order module sequence and detected cycles

        Raises:
            UnresolvedDependencyError: A required namespace has no owning module
        """
        done = frozenset(normalize_module_path(p) for p in injected)
        states: dict[str, VisitState] = {}
        plan = LoadPlan()

        for seed in dict.fromkeys(normalize_module_path(p) for p in module_paths):
            if seed in done or states.get(seed) is VisitState.EMITTED:
                continue
            self._walk(seed, done, states, plan)

        logger.debug(f"[resolver:plan] {plan.order}")
        return plan

    def unresolved(self) -> list[tuple[str, str]]:
        """List (module_path, namespace) requirements that no module provides.

        Namespaces already provided by other means count as resolved.
        """
        missing = []
        for record in self.index:
            for namespace in record.requires:
                if self.registry.is_declared(namespace) or self.index.owner_of(namespace):
                    continue
                missing.append((record.path, namespace))
        return missing

    def _walk(self, root: str, done: frozenset[str], states: dict[str, VisitState], plan: LoadPlan) -> None:
        states[root] = VisitState.VISITING
        stack: list[tuple[str, Iterator[str]]] = [(root, iter(self.index.requires_of(root)))]

        while stack:
            module_path, requirements = stack[-1]
            descended = False

            for namespace in requirements:
                if self.registry.is_declared(namespace):
                    continue
                owner = self.index.owner_of(namespace)
                if owner is None:
                    raise UnresolvedDependencyError(namespace, required_by=module_path)
                if owner in done:
                    continue

                state = states.get(owner, VisitState.UNVISITED)
                if state is VisitState.EMITTED:
                    continue
                if state is VisitState.VISITING:
                    cycle = Cycle(module_path=module_path, namespace=namespace, target=owner)
                    plan.cycles.append(cycle)
                    logger.warning(
                        f"[resolver:cycle] {module_path} requires '{namespace}' from {owner}, "
                        f"which is still loading; {owner} is loaded first"
                    )
                    self._emit(owner, states, plan)
                    continue

                states[owner] = VisitState.VISITING
                stack.append((owner, iter(self.index.requires_of(owner))))
                descended = True
                break

            if not descended:
                stack.pop()
                self._emit(module_path, states, plan)

    @staticmethod
    def _emit(module_path: str, states: dict[str, VisitState], plan: LoadPlan) -> None:
        if states.get(module_path) is VisitState.EMITTED:
            return
        states[module_path] = VisitState.EMITTED
        plan.order.append(module_path)
