import random
from uuid import uuid4

import pytest

from domain.bom import BOMLine, CycleGuard
from domain.shared.exceptions import CorruptStructureException, WouldCreateCycleException


def edge(lines, parent, child, active=True):
    line = BOMLine(parent_part_id=parent, child_part_id=child, qty_per=1, uom='EA', is_active=active)
    lines.add(line)
    return line


@pytest.fixture
def chain(lines):
    """a -> b -> c -> d"""
    a, b, c, d = uuid4(), uuid4(), uuid4(), uuid4()
    edge(lines, a, b)
    edge(lines, b, c)
    edge(lines, c, d)
    return a, b, c, d


def test_new_edge_in_acyclic_graph_is_allowed_and_becomes_ancestry(guard, lines, chain):
    a, b, c, d = chain
    e = uuid4()

    assert guard.would_create_cycle(d, e) is False
    edge(lines, d, e)

    assert e in guard.descendants_of(d)
    assert d in guard.ancestors_of(e)
    assert {a, b, c, d} <= guard.ancestors_of(e)


def test_shortcut_edge_is_not_a_cycle(guard, chain):
    a, b, c, d = chain
    assert guard.would_create_cycle(a, d) is False


def test_edge_back_to_ancestor_is_a_cycle(guard, chain):
    a, b, c, d = chain
    assert guard.would_create_cycle(d, a) is True
    assert guard.would_create_cycle(c, b) is True


def test_self_edge_is_a_cycle(guard):
    part = uuid4()
    assert guard.would_create_cycle(part, part) is True


def test_ensure_acyclic_reports_the_path(guard, chain):
    a, b, c, d = chain
    with pytest.raises(WouldCreateCycleException) as exc_info:
        guard.ensure_acyclic(d, a)

    assert exc_info.value.code == 'WOULD_CREATE_CYCLE'
    assert exc_info.value.details['path'] == [str(d), str(c), str(b), str(a)]


def test_inactive_edges_are_ignored(guard, lines):
    a, b = uuid4(), uuid4()
    edge(lines, a, b, active=False)

    assert guard.would_create_cycle(b, a) is False
    assert guard.ancestors_of(b) == set()


def test_diamond_is_not_a_cycle(guard, lines):
    top, left, right, bottom = uuid4(), uuid4(), uuid4(), uuid4()
    edge(lines, top, left)
    edge(lines, top, right)
    edge(lines, left, bottom)
    edge(lines, right, bottom)

    assert guard.would_create_cycle(bottom, uuid4()) is False
    assert guard.would_create_cycle(bottom, top) is True
    assert guard.ancestors_of(bottom) == {top, left, right}


def test_stored_cycle_above_parent_is_corruption(guard, lines):
    a, b, c = uuid4(), uuid4(), uuid4()
    # written around the guard
    edge(lines, a, b)
    edge(lines, b, a)
    edge(lines, a, c)

    with pytest.raises(CorruptStructureException):
        guard.would_create_cycle(c, uuid4())


def test_find_cycle_on_whole_graph(lines, chain):
    a, b, c, d = chain
    assert CycleGuard.find_cycle(lines.all_active()) is None

    edge(lines, d, b)
    cycle = CycleGuard.find_cycle(lines.all_active())

    assert cycle[0] == cycle[-1]
    assert set(cycle) == {b, c, d}


def random_dag(lines, seed, size=12, density=0.25):
    """
    Random active DAG over ``size`` parts, plus inactive back edges.

    Active edges only run from a lower to a higher position, so the
    active graph is acyclic whatever the seed.
    """
    rng = random.Random(seed)
    nodes = [uuid4() for _ in range(size)]
    children = {node: set() for node in nodes}
    for i, parent in enumerate(nodes):
        for child in nodes[i + 1:]:
            if rng.random() < density:
                edge(lines, parent, child)
                children[parent].add(child)
            elif rng.random() < density:
                edge(lines, child, parent, active=False)
    return nodes, children


def reachable(children, start):
    seen, stack = set(), [start]
    while stack:
        for nxt in children[stack.pop()]:
            if nxt not in seen:
                seen.add(nxt)
                stack.append(nxt)
    return seen


@pytest.mark.parametrize('seed', range(20))
def test_random_dag_closures(guard, lines, seed):
    nodes, children = random_dag(lines, seed)

    assert CycleGuard.find_cycle(lines.all_active()) is None
    for node in nodes:
        below = reachable(children, node)
        above = {other for other in nodes if node in reachable(children, other)}
        assert guard.descendants_of(node) == below
        assert guard.ancestors_of(node) == above


@pytest.mark.parametrize('seed', range(20))
def test_random_dag_edge_checks(guard, lines, seed):
    nodes, children = random_dag(lines, seed)
    active = {(str(parent), str(child)) for parent in nodes for child in children[parent]}

    for parent in nodes:
        for child in nodes:
            closes_loop = parent == child or parent in reachable(children, child)
            assert guard.would_create_cycle(parent, child) is closes_loop
            if not closes_loop:
                continue
            with pytest.raises(WouldCreateCycleException) as exc_info:
                guard.ensure_acyclic(parent, child)
            path = exc_info.value.details['path']
            assert (path[0], path[-1]) == (str(parent), str(child))
            for lower, upper in zip(path, path[1:]):
                assert (upper, lower) in active
