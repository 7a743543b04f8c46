"""Load order resolution for registered save modules.

The graph is never stored: it is rebuilt from the registry snapshot every
time an order is needed. An edge ``A -> B`` means B depends on A, so A is
loaded first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Sequence, Set, Tuple

from .module import SaveModule, declared_dependencies

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DependencyCycle:
    """A dependency chain that loops back on itself.

    ``path`` starts and ends with the same id, e.g. ``("A", "B", "A")``.
    """

    path: Tuple[str, ...]

    def __str__(self) -> str:
        return " -> ".join(self.path)


@dataclass
class LoadOrder:
    modules: List[SaveModule] = field(default_factory=list)
    cycles: List[DependencyCycle] = field(default_factory=list)

    @property
    def ids(self) -> List[str]:
        return [m.save_id for m in self.modules]


def build_dependency_graph(modules: Iterable[SaveModule]) -> Dict[str, Tuple[str, ...]]:
    """Map each module id to the ids it depends on that are also registered.

    Dependencies on unregistered ids are dropped and reported; they count as
    already satisfied.
    """
    modules = list(modules)
    registered = {m.save_id for m in modules}
    graph: Dict[str, Tuple[str, ...]] = {}
    for module in modules:
        deps = []
        for dep in declared_dependencies(module):
            if dep in registered:
                deps.append(dep)
            else:
                logger.warning("Module %s depends on unregistered module %s; ignoring", module.save_id, dep)
        graph[module.save_id] = tuple(deps)
    return graph


def find_priority_conflicts(modules: Iterable[SaveModule]) -> List[Tuple[str, str]]:
    """Return ``(dependency, dependent)`` pairs whose load priorities would invert dependency order.

    The stable priority sort applied after the topological pass can move a
    module ahead of something it depends on when the dependent has a lower
    load_priority. Keeping priorities consistent with dependencies is up to
    the module authors.
    """
    by_id = {m.save_id: m for m in modules}
    return _priority_conflicts(by_id, build_dependency_graph(by_id.values()))


def _priority_conflicts(
    by_id: Dict[str, SaveModule], graph: Dict[str, Tuple[str, ...]]
) -> List[Tuple[str, str]]:
    conflicts: List[Tuple[str, str]] = []
    for module_id, deps in graph.items():
        for dep in deps:
            if by_id[module_id].load_priority < by_id[dep].load_priority:
                conflicts.append((dep, module_id))
    return conflicts


def resolve_load_order(modules: Sequence[SaveModule]) -> LoadOrder:
    """Order modules so dependencies load first, then refine by load_priority.

    Depth-first topological sort over ``modules`` in the given (registry)
    order. A back-edge to a module that is still being visited is a cycle: it
    is recorded, logged and skipped, so a misconfigured graph still yields a
    complete order. Finally the result is stable-sorted by load_priority, so
    modules with equal priority keep their topological order.
    """
    by_id: Dict[str, SaveModule] = {}
    for module in modules:
        by_id[module.save_id] = module
    graph = build_dependency_graph(by_id.values())

    visited: Set[str] = set()
    result: List[SaveModule] = []
    cycles: List[DependencyCycle] = []

    # Explicit stack so long dependency chains cannot exhaust the recursion limit
    for root in by_id:
        if root in visited:
            continue
        path: List[str] = [root]
        on_path: Set[str] = {root}
        stack: List[Iterator[str]] = [iter(graph[root])]
        while stack:
            module_id = path[-1]
            for dep in stack[-1]:
                if dep in visited:
                    continue
                if dep in on_path:
                    cycle = DependencyCycle(tuple(path[path.index(dep):]) + (dep,))
                    logger.warning("Dependency cycle detected: %s; treating %s -> %s as satisfied", cycle, module_id, dep)
                    cycles.append(cycle)
                    continue
                path.append(dep)
                on_path.add(dep)
                stack.append(iter(graph[dep]))
                break
            else:
                stack.pop()
                path.pop()
                on_path.discard(module_id)
                visited.add(module_id)
                result.append(by_id[module_id])

    for dep, dependent in _priority_conflicts(by_id, graph):
        logger.warning(
            "Module %s has a lower load_priority than its dependency %s; priority order wins",
            dependent,
            dep,
        )

    result.sort(key=lambda m: m.load_priority)
    return LoadOrder(modules=result, cycles=cycles)
