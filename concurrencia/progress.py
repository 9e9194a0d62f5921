"""
Progress (liveness) checking over a reachable-state graph.

A progress property names a set of target actions that must always remain
possible.  It is violated when the system can enter a *terminal* strongly
connected component -- one with no edge leaving it -- that contains a cycle
but no edge labelled by a target action: once inside, execution may loop
forever without ever performing a target action.

Components are found with Tarjan's algorithm, written iteratively so deep
graphs do not hit the recursion limit.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable

from concurrencia.common import Action, ActionPattern, Witness, matches_any
from concurrencia.explorer import ReachableGraph

logger = logging.getLogger(__name__)

Target = Action | ActionPattern


# ---------------------------------------------------------------------------
# Strongly connected components
# ---------------------------------------------------------------------------


def strongly_connected_components(graph: ReachableGraph) -> list[list[int]]:
    """Return the SCCs of *graph* (all nodes are reachable from the root).

    Components come out in reverse topological order, as Tarjan produces
    them; nodes inside a component are sorted.
    """
    n = graph.num_states
    index = [-1] * n
    lowlink = [0] * n
    on_stack = [False] * n
    stack: list[int] = []
    components: list[list[int]] = []
    counter = 0

    for start in range(n):
        if index[start] != -1:
            continue
        # each work item: (node, position of the next edge to examine)
        work: list[tuple[int, int]] = [(start, 0)]
        index[start] = lowlink[start] = counter
        counter += 1
        stack.append(start)
        on_stack[start] = True
        while work:
            node, pos = work[-1]
            out = graph.edges[node]
            if pos < len(out):
                work[-1] = (node, pos + 1)
                _, succ = out[pos]
                if index[succ] == -1:
                    index[succ] = lowlink[succ] = counter
                    counter += 1
                    stack.append(succ)
                    on_stack[succ] = True
                    work.append((succ, 0))
                elif on_stack[succ]:
                    lowlink[node] = min(lowlink[node], index[succ])
                continue
            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[node])
            if lowlink[node] == index[node]:
                component = []
                while True:
                    member = stack.pop()
                    on_stack[member] = False
                    component.append(member)
                    if member == node:
                        break
                component.sort()
                components.append(component)
    return components


def terminal_components(graph: ReachableGraph, components: list[list[int]] | None = None) -> list[list[int]]:
    """Non-trivial SCCs with no edge leaving them, ordered by their smallest node."""
    if components is None:
        components = strongly_connected_components(graph)
    owner = [0] * graph.num_states
    for cid, component in enumerate(components):
        for node in component:
            owner[node] = cid
    result = []
    for cid, component in enumerate(components):
        closed = all(owner[succ] == cid for node in component for _, succ in graph.edges[node])
        if closed and _has_cycle(graph, component):
            result.append(component)
    result.sort(key=lambda c: c[0])
    return result


def _has_cycle(graph: ReachableGraph, component: list[int]) -> bool:
    if len(component) > 1:
        return True
    node = component[0]
    return any(succ == node for _, succ in graph.edges[node])


# ---------------------------------------------------------------------------
# Witness construction
# ---------------------------------------------------------------------------


def _path_within(graph: ReachableGraph, members: set[int], source: int, goal: set[int]) -> tuple[int, list[Action]]:
    """BFS inside *members* from *source* to the nearest node in *goal*.

    The returned path has at least one edge, so ``goal`` may contain
    *source* itself (used to close the cycle).
    """
    parent: dict[int, tuple[int, Action]] = {}
    queue: deque[int] = deque()
    for action, succ in graph.edges[source]:
        if succ in members and succ not in parent:
            parent[succ] = (source, action)
            queue.append(succ)
    while queue:
        node = queue.popleft()
        if node in goal:
            path: list[Action] = []
            cursor = node
            while True:
                prev, action = parent[cursor]
                path.append(action)
                if prev == source:
                    break
                cursor = prev
            path.reverse()
            return node, path
        for action, succ in graph.edges[node]:
            if succ in members and succ not in parent:
                parent[succ] = (node, action)
                queue.append(succ)
    raise AssertionError("component is not strongly connected")


def _covering_cycle(graph: ReachableGraph, component: list[int]) -> tuple[Action, ...]:
    """A closed walk from ``component[0]`` that visits every node of the component."""
    members = set(component)
    start = component[0]
    unvisited = members - {start}
    walk: list[Action] = []
    current = start
    while unvisited:
        current, path = _path_within(graph, members, current, unvisited)
        walk.extend(path)
        unvisited.discard(current)
    _, path = _path_within(graph, members, current, {start})
    walk.extend(path)
    return tuple(walk)


# ---------------------------------------------------------------------------
# Progress checks
# ---------------------------------------------------------------------------


def progress_violations(
    graph: ReachableGraph,
    targets: Iterable[Target],
    *,
    name: str | None = None,
) -> list[Witness]:
    """Every terminal cycle of *graph* that never performs a target action.

    Args:
        graph: The reachable-state graph to analyse.
        targets: Actions or patterns that must remain possible.
        name: Display name for the target set.

    Moves on hidden labels never count as target actions.
    """
    targets = list(targets)
    if name is None:
        name = "{" + ", ".join(str(t) for t in targets) + "}"
    witnesses = []
    for component in terminal_components(graph):
        performs_target = any(
            not action.is_hidden and matches_any(action, targets)
            for node in component
            for action, _ in graph.edges[node]
        )
        if performs_target:
            continue
        start = component[0]
        witnesses.append(
            Witness(
                target=name,
                prefix_trace=graph.trace_to(start),
                cycle_trace=_covering_cycle(graph, component),
                component_size=len(component),
            )
        )
    logger.info("progress %s: %d violating terminal components", name, len(witnesses))
    return witnesses


def check_progress(
    graph: ReachableGraph,
    targets: Iterable[Target],
    *,
    name: str | None = None,
) -> Witness | None:
    """Return the first progress witness (by BFS order), or None if progress holds."""
    witnesses = progress_violations(graph, targets, name=name)
    return witnesses[0] if witnesses else None
