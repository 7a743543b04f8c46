from __future__ import annotations

import logging
import sys

from hypothesis import given, settings
from hypothesis import strategies as st

from savekeeper import build_dependency_graph, find_priority_conflicts, resolve_load_order
from savekeeper.samples import GameProgressModule, PlayerStatsModule, SettingsModule

from module_factory import make_module


def ids(order):
    return [m.save_id for m in order.modules]


def test_sample_modules_load_in_dependency_order():
    modules = [GameProgressModule(), PlayerStatsModule(), SettingsModule()]
    order = resolve_load_order(modules)
    assert ids(order) == ["Settings", "PlayerStats", "GameProgress"]
    assert order.cycles == []


def test_dependencies_come_first_with_equal_priorities():
    modules = [
        make_module("C", dependencies=["B"]),
        make_module("B", dependencies=["A"]),
        make_module("A"),
        make_module("D"),
    ]
    assert ids(resolve_load_order(modules)) == ["A", "B", "C", "D"]


def test_priority_refines_but_ties_keep_topological_order():
    modules = [
        make_module("X", load_priority=5),
        make_module("Y", dependencies=["Z"], load_priority=5),
        make_module("Z", load_priority=5),
        make_module("First", load_priority=0),
    ]
    assert ids(resolve_load_order(modules)) == ["First", "X", "Z", "Y"]


def test_unregistered_dependencies_are_ignored(caplog):
    modules = [make_module("A", dependencies=["Ghost"]), make_module("B", dependencies=["A"])]
    with caplog.at_level(logging.WARNING, logger="savekeeper.graph"):
        order = resolve_load_order(modules)
    assert ids(order) == ["A", "B"]
    assert "Ghost" in caplog.text
    assert build_dependency_graph(modules) == {"A": (), "B": ("A",)}


def test_duplicate_dependency_is_a_single_edge():
    modules = [make_module("B", dependencies=["A", "A"]), make_module("A")]
    assert build_dependency_graph(modules)["B"] == ("A",)
    assert ids(resolve_load_order(modules)) == ["A", "B"]


def test_cycle_is_reported_and_broken(caplog):
    modules = [make_module("A", dependencies=["B"]), make_module("B", dependencies=["A"])]
    with caplog.at_level(logging.WARNING, logger="savekeeper.graph"):
        order = resolve_load_order(modules)

    assert sorted(ids(order)) == ["A", "B"]
    assert len(order.cycles) == 1
    assert order.cycles[0].path == ("A", "B", "A")
    assert str(order.cycles[0]) == "A -> B -> A"
    assert "Dependency cycle detected" in caplog.text


def test_self_dependency_is_a_cycle():
    order = resolve_load_order([make_module("Solo", dependencies=["Solo"])])
    assert ids(order) == ["Solo"]
    assert order.cycles[0].path == ("Solo", "Solo")


def test_priority_conflict_is_reported_not_fixed(caplog):
    # Dependent has a lower load_priority than its dependency: priority wins
    modules = [make_module("Base", load_priority=50), make_module("Child", dependencies=["Base"], load_priority=1)]
    assert find_priority_conflicts(modules) == [("Base", "Child")]
    with caplog.at_level(logging.WARNING, logger="savekeeper.graph"):
        order = resolve_load_order(modules)
    assert ids(order) == ["Child", "Base"]
    assert "lower load_priority" in caplog.text


def test_empty_input():
    order = resolve_load_order([])
    assert order.modules == []
    assert order.cycles == []


def test_long_dependency_chain_beyond_recursion_limit():
    length = sys.getrecursionlimit() + 200
    # Step_i depends on Step_{i+1}, listed head first so the walk has to go all the way down
    modules = [make_module(f"Step_{i}", dependencies=[f"Step_{i + 1}"] if i + 1 < length else []) for i in range(length)]

    order = resolve_load_order(modules)

    assert ids(order) == [f"Step_{i}" for i in reversed(range(length))]
    assert order.cycles == []


def test_long_cycle_is_reported_without_recursion():
    length = sys.getrecursionlimit() + 200
    modules = [make_module(f"Ring_{i}", dependencies=[f"Ring_{(i + 1) % length}"]) for i in range(length)]

    order = resolve_load_order(modules)

    assert len(order.modules) == length
    assert len(order.cycles) == 1
    assert order.cycles[0].path[0] == order.cycles[0].path[-1] == "Ring_0"
    assert len(order.cycles[0].path) == length + 1


@st.composite
def acyclic_graphs(draw):
    """Modules whose dependencies only point at earlier indices, with priorities consistent with dependencies."""
    n = draw(st.integers(min_value=1, max_value=8))
    specs = []
    priorities = []
    for i in range(n):
        deps = draw(st.lists(st.integers(min_value=0, max_value=i - 1), unique=True)) if i else []
        base = max((priorities[d] for d in deps), default=0)
        priority = base + draw(st.integers(min_value=0, max_value=3))
        priorities.append(priority)
        specs.append((f"m{i}", [f"m{d}" for d in deps], priority))
    shuffled = draw(st.permutations(specs))
    return [make_module(sid, deps, load_priority=p) for sid, deps, p in shuffled]


@st.composite
def arbitrary_graphs(draw):
    """Any dependency shape: cycles, self-loops and dangling ids included."""
    n = draw(st.integers(min_value=0, max_value=8))
    names = [f"m{i}" for i in range(n)]
    pool = names + ["ghost"]
    modules = []
    for name in names:
        deps = draw(st.lists(st.sampled_from(pool), max_size=4))
        priority = draw(st.integers(min_value=0, max_value=5))
        modules.append(make_module(name, deps, load_priority=priority))
    return modules


@settings(max_examples=60, deadline=None)
@given(acyclic_graphs())
def test_dependencies_always_precede_dependents(modules):
    order = ids(resolve_load_order(modules))
    position = {sid: i for i, sid in enumerate(order)}
    for m in modules:
        for dep in m.dependencies:
            assert position[dep] < position[m.save_id]


@settings(max_examples=60, deadline=None)
@given(arbitrary_graphs())
def test_every_module_appears_exactly_once(modules):
    order = ids(resolve_load_order(modules))
    assert sorted(order) == sorted(m.save_id for m in modules)
    assert len(order) == len(set(order))
