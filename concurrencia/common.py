"""Shared data structures for concurrencia."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ConcurrenciaError(Exception):
    """Base class for every error raised by concurrencia."""


class ConfigError(ConcurrenciaError):
    """Raised for an invalid villages / max_groups configuration."""


class StateExplosion(ConcurrenciaError):
    """Raised when exploration visits more states than the configured cap.

    Fatal for the check that triggered it: no partial graph is returned.
    """

    def __init__(self, max_states: int, visited: int) -> None:
        super().__init__(
            f"state space exceeds the cap of {max_states} states "
            f"({visited} visited); raise max_states or shrink the model"
        )
        self.max_states = max_states
        self.visited = visited


class AmbiguousTransition(ConcurrenciaError):
    """Raised when a process offers two successors for one ``(state, action)``."""

    def __init__(self, process_name: str, state: object, action: Action) -> None:
        super().__init__(f"process {process_name!r} has two successors for {action} in state {state!r}")
        self.process_name = process_name
        self.state = state
        self.action = action


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

_SEGMENT = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)((?:\[(?:-?\d+|\*)\])*)$")
_SUBSCRIPT = re.compile(r"\[(-?\d+|\*)\]")

WILDCARD = "*"


def _parse_segments(text: str) -> tuple[tuple[str | int, ...], str]:
    """Split ``train[2].dst.enter`` into ``(("train", 2, "dst"), "enter")``."""
    if not text:
        raise ValueError("empty action label")
    path: list[str | int] = []
    parts = text.split(".")
    for i, part in enumerate(parts):
        if i == len(parts) - 1 and part == WILDCARD:
            return tuple(path), WILDCARD
        m = _SEGMENT.match(part)
        if m is None:
            raise ValueError(f"malformed action label {text!r}")
        ident, subscripts = m.group(1), m.group(2)
        if i == len(parts) - 1:
            if subscripts:
                raise ValueError(f"action name may not be subscripted: {text!r}")
            return tuple(path), ident
        path.append(ident)
        for sub in _SUBSCRIPT.findall(subscripts):
            path.append(WILDCARD if sub == WILDCARD else int(sub))
    raise AssertionError("unreachable")


def _render(path: tuple[str | int, ...], name: str) -> str:
    out = ""
    for element in path:
        if isinstance(element, int) or element == WILDCARD:
            out += f"[{element}]"
        elif out:
            out += f".{element}"
        else:
            out = element
    return f"{out}.{name}" if out else name


@dataclass(frozen=True, slots=True)
class Action:
    """An instantaneous, named event.

    ``path`` is an ordered sequence of identifiers and integer indices, so
    ``Action(("train", 2, "dst"), "enter")`` renders as ``train[2].dst.enter``.
    Equality is structural.
    """

    path: tuple[str | int, ...]
    name: str

    @classmethod
    def parse(cls, text: str) -> Action:
        path, name = _parse_segments(text)
        if WILDCARD in path or name == WILDCARD:
            raise ValueError(f"wildcards are only allowed in patterns: {text!r}")
        return cls(path, name)

    def prefixed(self, *elements: str | int) -> Action:
        """Return this action with *elements* prepended to its path."""
        return type(self)((*elements, *self.path), self.name)

    @property
    def is_hidden(self) -> bool:
        return False

    def as_hidden(self) -> HiddenAction:
        """The internal move carrying this label."""
        return HiddenAction(self.path, self.name)

    def as_visible(self) -> Action:
        return self

    def key(self) -> tuple:
        """Total order usable across mixed str/int paths."""
        return (tuple((isinstance(e, str), str(e) if isinstance(e, str) else e) for e in self.path), self.name)

    def __str__(self) -> str:
        return _render(self.path, self.name)

    def __repr__(self) -> str:
        return f"Action({str(self)!r})"


class HiddenAction(Action):
    """The label of an internal move.

    It renders like the visible label it came from but never compares equal
    to it, so an enclosing composite cannot synchronise on it, even when a
    sibling declares the same visible label.
    """

    __slots__ = ()

    @property
    def is_hidden(self) -> bool:
        return True

    def as_hidden(self) -> HiddenAction:
        return self

    def as_visible(self) -> Action:
        return Action(self.path, self.name)

    def key(self) -> tuple:
        return (*super().key(), 1)

    def __repr__(self) -> str:
        return f"HiddenAction({str(self)!r})"


def as_action(value: Action | str) -> Action:
    """Coerce a label string to an :class:`Action`."""
    if isinstance(value, Action):
        return value
    return Action.parse(value)


@dataclass(frozen=True, slots=True)
class ActionPattern:
    """A structural action pattern; a ``[*]`` subscript matches any index.

    ``ActionPattern.parse("train[*].dst.enter")`` matches every train's
    ``dst.enter`` action whatever its index.
    """

    path: tuple[str | int, ...]
    name: str

    @classmethod
    def parse(cls, text: str) -> ActionPattern:
        path, name = _parse_segments(text)
        return cls(path, name)

    def matches(self, action: Action) -> bool:
        if len(action.path) != len(self.path):
            return False
        if self.name not in (WILDCARD, action.name):
            return False
        return all(p == WILDCARD or p == a for p, a in zip(self.path, action.path))

    def __str__(self) -> str:
        return _render(self.path, self.name)


def matches_any(action: Action, targets: Iterable[Action | ActionPattern]) -> bool:
    """Return True if *action* equals or matches any of *targets*."""
    for target in targets:
        if isinstance(target, ActionPattern):
            if target.matches(action):
                return True
        elif target == action:
            return True
    return False


def format_actions(actions: Iterable[Action]) -> str:
    """Render a trace as ``a -> b -> c``."""
    return " -> ".join(str(a) for a in actions)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Violation:
    """A safety violation.

    Attributes:
        property_name: Name of the property process that refused an action
            (or ``"DEADLOCK"``).
        counterexample_trace: The BFS-shortest sequence of actions from the
            initial state; for a property violation the last action is the
            one the property refused.
    """

    property_name: str
    counterexample_trace: tuple[Action, ...]

    def __str__(self) -> str:
        return f"{self.property_name}: {format_actions(self.counterexample_trace)}"


@dataclass(frozen=True)
class Witness:
    """A progress violation: a closed cycle that never performs a target action.

    Attributes:
        target: Name (or rendering) of the target action set.
        prefix_trace: Shortest trace from the initial state into the cycle.
        cycle_trace: Closed walk inside the terminal component, starting and
            ending at the state ``prefix_trace`` reaches.
        component_size: Number of states in the terminal component.
    """

    target: str
    prefix_trace: tuple[Action, ...]
    cycle_trace: tuple[Action, ...]
    component_size: int = 0

    def __str__(self) -> str:
        return f"{self.target}: {format_actions(self.prefix_trace)} ; cycle {format_actions(self.cycle_trace)}"


@dataclass
class CheckResult:
    """Aggregate outcome of a verification run.

    Attributes:
        property_holds: True if no check produced a violation or witness.
        num_states: States in the largest graph explored.
        num_transitions: Transitions in that graph.
        violations: Safety and deadlock violations, ordered by property name.
        witnesses: Progress witnesses keyed by target name.
    """

    property_holds: bool
    num_states: int = 0
    num_transitions: int = 0
    violations: list[Violation] = field(default_factory=list)
    witnesses: dict[str, Witness] = field(default_factory=dict)
