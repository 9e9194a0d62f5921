"""
Safety and deadlock checking.

A safety property is a process describing the allowed traces over the
actions it constrains.  :func:`check_safety` completes each property with
transitions to :data:`~concurrencia.process.ERROR` (see
:func:`~concurrencia.process.as_property`), composes them with the domain
and explores the product.  A composed state in which some property sits in
``ERROR`` is a violation: the domain fired an action the property refused.
A violated property stops constraining the domain, so exploration goes on
to find the other properties' violations; because node ids follow BFS
order the first one found for each property carries a shortest
counterexample.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from concurrencia.common import Action, Violation
from concurrencia.compose import Composite
from concurrencia.explorer import ReachableGraph, explore_process
from concurrencia.process import ERROR, BaseProcess, PropertyProcess, as_property

logger = logging.getLogger(__name__)

DOMAIN = "system"
DEADLOCK = "DEADLOCK"


@dataclass
class SafetyAnalysis:
    """Result of a safety check.

    Attributes:
        violations: One violation per refused property, ordered by name.
        num_states: States in the explored ``domain || properties`` product.
        num_transitions: Transitions in that product.
    """

    violations: list[Violation] = field(default_factory=list)
    num_states: int = 0
    num_transitions: int = 0

    @property
    def property_holds(self) -> bool:
        return not self.violations


class _Violated(BaseProcess):
    """A completed property whose ``ERROR`` state accepts its whole alphabet."""

    def __init__(self, prop: PropertyProcess) -> None:
        self.property = prop
        self.name = prop.name
        self.initial = prop.initial
        self.alphabet = prop.alphabet
        self.hidden = prop.hidden
        self._absorbed = [(action, ERROR) for action in sorted(prop.alphabet, key=Action.key)]

    def enabled(self, state: Any) -> list[tuple[Action, Any]]:
        if state is ERROR:
            return list(self._absorbed)
        return self.property.enabled(state)


def _some_property_holds(state: Any) -> bool:
    return any(local is not ERROR for local in state.values[1:])


def check_safety(
    domain: BaseProcess,
    properties: Iterable[tuple[str, BaseProcess]],
    **explore_kwargs: Any,
) -> SafetyAnalysis:
    """Check *domain* against every ``(name, property)`` pair.

    Keyword arguments are forwarded to :func:`~concurrencia.explorer.explore`.
    """
    properties = list(properties)
    checked = Composite(
        f"{domain.name} || properties",
        [(DOMAIN, domain), *((name, _Violated(as_property(p))) for name, p in properties)],
    )
    logger.info("checking %d safety properties against %s", len(properties), domain.name)
    # nothing is left to find once every property has been violated
    expand = _some_property_holds if properties else None
    graph = explore_process(checked, expand=expand, **explore_kwargs)

    first_error: dict[str, int] = {}
    for node, state in enumerate(graph.states):
        for name, local in state.items():
            if local is ERROR and name not in first_error:
                first_error[name] = node
    violations = [Violation(name, graph.trace_to(node)) for name, node in sorted(first_error.items())]
    for violation in violations:
        logger.info("property %s violated after %d actions", violation.property_name, len(violation.counterexample_trace))
    return SafetyAnalysis(
        violations=violations,
        num_states=graph.num_states,
        num_transitions=graph.num_transitions,
    )


def find_deadlocks(graph: ReachableGraph) -> list[tuple[Action, ...]]:
    """Shortest traces to every expanded state with no outgoing transition."""
    return [
        graph.trace_to(node)
        for node in range(graph.num_states)
        if graph.expanded[node] and not graph.edges[node]
    ]


def check_deadlock(process: BaseProcess, **explore_kwargs: Any) -> Violation | None:
    """Return the shortest trace into a deadlock of *process*, if any."""
    graph = explore_process(process, **explore_kwargs)
    deadlocks = find_deadlocks(graph)
    if not deadlocks:
        return None
    return Violation(DEADLOCK, deadlocks[0])
