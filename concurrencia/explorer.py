"""
Breadth-first state-space exploration.

:func:`explore` walks every state reachable from a root, deduplicating
states by structural equality, and returns an immutable
:class:`ReachableGraph`.  Node ids are assigned in BFS order, so
:meth:`ReachableGraph.trace_to` always yields a shortest trace.

With ``workers > 1`` each BFS layer is expanded in a thread pool.  The
successor lists are merged in frontier order once the whole layer is
done, so the resulting graph is identical to the single-threaded one.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Hashable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from concurrencia.common import Action, StateExplosion
from concurrencia.params import default_max_states, default_workers
from concurrencia.process import BaseProcess

logger = logging.getLogger(__name__)

Step = Callable[[Any], list[tuple[Action, Any]]]


# ---------------------------------------------------------------------------
# Reachable graph
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReachableGraph:
    """The reachable-state graph of a process.

    Attributes:
        states: Node id -> state, in BFS discovery order (the root is node 0).
        edges: Node id -> ``(action, target node id)`` pairs.
        parents: Node id -> ``(parent node id, action)`` on a shortest path,
            or None for the root.
        expanded: Node id -> whether its successors were computed.
    """

    states: tuple[Any, ...]
    edges: tuple[tuple[tuple[Action, int], ...], ...]
    parents: tuple[tuple[int, Action] | None, ...]
    expanded: tuple[bool, ...]

    root = 0

    @property
    def num_states(self) -> int:
        return len(self.states)

    @property
    def num_transitions(self) -> int:
        return sum(len(out) for out in self.edges)

    def successors(self, node: int) -> tuple[tuple[Action, int], ...]:
        return self.edges[node]

    def node_of(self, state: Hashable) -> int:
        """Return the node id of *state* (linear scan; for tests and tooling)."""
        return self.states.index(state)

    def trace_to(self, node: int) -> tuple[Action, ...]:
        """Shortest action sequence from the root to *node*."""
        trace: list[Action] = []
        link = self.parents[node]
        while link is not None:
            parent, action = link
            trace.append(action)
            link = self.parents[parent]
        trace.reverse()
        return tuple(trace)

    def actions(self) -> frozenset[Action]:
        """Every action labelling some edge."""
        return frozenset(action for out in self.edges for action, _ in out)


# ---------------------------------------------------------------------------
# Exploration
# ---------------------------------------------------------------------------


def explore(
    root: Hashable,
    step: Step,
    *,
    max_states: int | None = None,
    workers: int | None = None,
    expand: Callable[[Any], bool] | None = None,
) -> ReachableGraph:
    """Breadth-first exploration from *root*.

    Args:
        root: Initial state.
        step: Returns the ``(action, successor)`` pairs of a state.
        max_states: Cap on distinct states; exceeding it raises
            :class:`StateExplosion`.  Defaults to
            :func:`~concurrencia.params.default_max_states`.
        workers: Threads used to expand each BFS layer (1 = in-line).
        expand: Predicate; states for which it returns False are recorded
            but not expanded.

    Returns:
        The immutable :class:`ReachableGraph`.
    """
    if max_states is None:
        max_states = default_max_states()
    if workers is None:
        workers = default_workers()

    index: dict[Hashable, int] = {root: 0}
    states: list[Any] = [root]
    edges: list[list[tuple[Action, int]]] = [[]]
    parents: list[tuple[int, Action] | None] = [None]
    expanded: list[bool] = [False]

    def _successors(node: int) -> tuple[bool, list[tuple[Action, Any]]]:
        state = states[node]
        if expand is not None and not expand(state):
            return False, []
        return True, step(state)

    pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="concurrencia-explore") if workers > 1 else None
    try:
        frontier: deque[int] = deque([0])
        depth = 0
        while frontier:
            layer = list(frontier)
            frontier.clear()
            # list() waits for the whole layer: the per-layer barrier
            if pool is not None:
                results = list(pool.map(_successors, layer))
            else:
                results = [_successors(node) for node in layer]
            for node, (was_expanded, moves) in zip(layer, results):
                expanded[node] = was_expanded
                out = edges[node]
                for action, target in moves:
                    target_id = index.get(target)
                    if target_id is None:
                        if len(states) >= max_states:
                            raise StateExplosion(max_states, len(states))
                        target_id = len(states)
                        index[target] = target_id
                        states.append(target)
                        edges.append([])
                        parents.append((node, action))
                        expanded.append(False)
                        frontier.append(target_id)
                    out.append((action, target_id))
            logger.debug("BFS layer %d: expanded %d states, %d discovered", depth, len(layer), len(states))
            depth += 1
    finally:
        if pool is not None:
            pool.shutdown(wait=True)

    return ReachableGraph(
        states=tuple(states),
        edges=tuple(tuple(out) for out in edges),
        parents=tuple(parents),
        expanded=tuple(expanded),
    )


def explore_process(process: BaseProcess, **kwargs: Any) -> ReachableGraph:
    """Explore the reachable states of *process* from its initial state."""
    graph = explore(process.initial, process.enabled, **kwargs)
    logger.info(
        "explored %s: %d states, %d transitions",
        process.name,
        graph.num_states,
        graph.num_transitions,
    )
    return graph


# ---------------------------------------------------------------------------
# Traces
# ---------------------------------------------------------------------------


def traces(
    process: BaseProcess,
    max_length: int,
    *,
    include_hidden: bool = False,
) -> set[tuple[Action, ...]]:
    """Every action sequence of length <= *max_length* the process can perform.

    Hidden actions are elided from the sequences unless *include_hidden*.
    """
    result: set[tuple[Action, ...]] = set()
    seen: set[tuple[Any, tuple[Action, ...]]] = set()
    queue: deque[tuple[Any, tuple[Action, ...]]] = deque([(process.initial, ())])
    while queue:
        item = queue.popleft()
        if item in seen:
            continue
        seen.add(item)
        state, trace = item
        result.add(trace)
        for action, nxt in process.enabled(state):
            if action.is_hidden and not include_hidden:
                queue.append((nxt, trace))
            elif len(trace) < max_length:
                queue.append((nxt, (*trace, action)))
    return result
