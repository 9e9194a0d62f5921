"""
Finite-state processes.

A process is a deterministic labelled transition system with an explicit
alphabet.  The alphabet lists every action the process may ever take part
in, including actions it never enables in some (or all) of its states;
under composition a declared action with no transition *blocks* every
partner that shares it.

Usage::

    from concurrencia.common import Action
    from concurrencia.process import Process

    enter, leave = Action((), "enter"), Action((), "leave")
    village = Process.from_rules(
        "VILLAGE",
        initial=0,
        rules=[(0, enter, 1), (1, leave, 0)],
    )
    village.enabled(0)  # [(Action('enter'), 1)]

Label rewriting (:func:`relabel`, :func:`prefix`, :func:`hide`) and
property completion (:func:`as_property`) wrap any process, explicit or
composite, without copying its state space.
"""

from __future__ import annotations

import enum
from collections.abc import Hashable, Iterable, Mapping
from typing import Any

from concurrencia.common import Action, AmbiguousTransition, as_action

LocalState = Hashable


class Sentinel(enum.Enum):
    """Distinguished local states."""

    ERROR = "ERROR"

    def __repr__(self) -> str:
        return self.value


ERROR = Sentinel.ERROR


def _sort_moves(moves: list[tuple[Action, Any]]) -> list[tuple[Action, Any]]:
    moves.sort(key=lambda move: move[0].key())
    return moves


# ---------------------------------------------------------------------------
# Process protocol
# ---------------------------------------------------------------------------


class BaseProcess:
    """Interface shared by explicit processes, composites and wrappers.

    Subclasses set ``name``, ``initial``, ``alphabet`` and ``hidden`` and
    implement :meth:`enabled`.  ``alphabet`` holds the visible actions the
    process synchronises on; ``hidden`` holds internal labels, whose moves
    :meth:`enabled` reports as :class:`~concurrencia.common.HiddenAction`
    values that never synchronise with anyone.
    """

    name: str
    initial: Any
    alphabet: frozenset[Action]
    hidden: frozenset[Action] = frozenset()

    def enabled(self, state: Any) -> list[tuple[Action, Any]]:
        """Return the ``(action, successor)`` pairs enabled in *state*, sorted by action."""
        raise NotImplementedError

    def transition(self, state: Any, action: Action) -> Any | None:
        """Return the successor of *state* under *action*, or None if not enabled."""
        found = [nxt for act, nxt in self.enabled(state) if act == action]
        if not found:
            return None
        if len(found) > 1:
            raise AmbiguousTransition(self.name, state, action)
        return found[0]

    @property
    def actions(self) -> frozenset[Action]:
        """Every label this process can fire, visible or hidden."""
        return self.alphabet | self.hidden

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} |alphabet|={len(self.alphabet)}>"


# ---------------------------------------------------------------------------
# Explicit processes
# ---------------------------------------------------------------------------


class Process(BaseProcess):
    """An explicit automaton given by its transition table.

    Attributes:
        name: Display name used in error messages and traces.
        initial: The initial local state.
        alphabet: Visible actions (defaults to the labels used in the table).
        hidden: Internal actions.
        states: Every state mentioned by the table, in first-seen order.
    """

    def __init__(
        self,
        name: str,
        initial: LocalState,
        table: Mapping[LocalState, Mapping[Action, LocalState]],
        alphabet: Iterable[Action] | None = None,
        hidden: Iterable[Action] = (),
    ) -> None:
        self.name = name
        self.initial = initial
        self.hidden = frozenset(hidden)
        self._table: dict[LocalState, list[tuple[Action, LocalState]]] = {}
        states: dict[LocalState, None] = {initial: None}
        used: set[Action] = set()
        for state, row in table.items():
            states.setdefault(state, None)
            moves = []
            for action, nxt in row.items():
                states.setdefault(nxt, None)
                used.add(action)
                moves.append((action, nxt))
            self._table[state] = _sort_moves(moves)
        self.states: tuple[LocalState, ...] = tuple(states)
        declared = frozenset(alphabet) if alphabet is not None else frozenset(used - self.hidden)
        undeclared = used - declared - self.hidden
        if undeclared:
            names = ", ".join(sorted(str(a) for a in undeclared))
            raise ValueError(f"process {name!r} uses actions outside its alphabet: {names}")
        self.alphabet = declared - self.hidden
        self._moves = {
            state: _sort_moves([(act.as_hidden() if act in self.hidden else act, nxt) for act, nxt in moves])
            for state, moves in self._table.items()
        }

    @classmethod
    def from_rules(
        cls,
        name: str,
        initial: LocalState,
        rules: Iterable[tuple[LocalState, Action | str, LocalState]],
        alphabet: Iterable[Action | str] | None = None,
        hidden: Iterable[Action | str] = (),
    ) -> Process:
        """Build a process from ``(state, action, successor)`` triples.

        Guards are resolved by the caller: a rule exists only where its guard
        holds.  Two rules for the same ``(state, action)`` with different
        successors raise :class:`AmbiguousTransition`.
        """
        table: dict[LocalState, dict[Action, LocalState]] = {}
        for state, label, nxt in rules:
            action = as_action(label)
            row = table.setdefault(state, {})
            if action in row and row[action] != nxt:
                raise AmbiguousTransition(name, state, action)
            row[action] = nxt
        return cls(
            name,
            initial,
            table,
            alphabet=None if alphabet is None else (as_action(a) for a in alphabet),
            hidden=(as_action(a) for a in hidden),
        )

    def enabled(self, state: Any) -> list[tuple[Action, Any]]:
        return list(self._moves.get(state, ()))

    def transition(self, state: Any, action: Action) -> Any | None:
        for act, nxt in self._moves.get(state, ()):
            if act == action:
                return nxt
        return None

    def rules(self) -> list[tuple[LocalState, Action, LocalState]]:
        """Every transition as a ``(state, action, successor)`` triple."""
        return [(state, act, nxt) for state, moves in self._table.items() for act, nxt in moves]

    def without_transition(self, state: LocalState, action: Action | str) -> Process:
        """Return a copy with the ``(state, action)`` transition removed.

        The action stays in the alphabet, so it becomes a genuine block in
        *state*.
        """
        action = as_action(action)
        rules = [(s, a, n) for s, a, n in self.rules() if (s, a) != (state, action)]
        if len(rules) == len(self.rules()):
            raise KeyError(f"process {self.name!r} has no {action} transition in state {state!r}")
        return Process.from_rules(self.name, self.initial, rules, alphabet=self.alphabet, hidden=self.hidden)


def extend(process: Process, actions: Iterable[Action | str]) -> Process:
    """Return *process* with its alphabet extended by *actions*.

    The added actions are declared but never enabled, so they block any
    partner that shares them.
    """
    extra = {as_action(a) for a in actions}
    return Process.from_rules(
        process.name,
        process.initial,
        process.rules(),
        alphabet=process.alphabet | extra,
        hidden=process.hidden,
    )


# ---------------------------------------------------------------------------
# Label rewriting
# ---------------------------------------------------------------------------


class Relabeled(BaseProcess):
    """A process with its labels rewritten by an ``old -> new`` mapping.

    Labels absent from the mapping are unchanged.  The mapping may merge two
    labels into one; the result is then non-deterministic only where both
    are enabled in the same state, which :meth:`transition` reports as
    :class:`AmbiguousTransition`.
    """

    def __init__(self, process: BaseProcess, mapping: Mapping[Action, Action], name: str | None = None) -> None:
        self.process = process
        self.mapping = dict(mapping)
        self.name = name or process.name
        self.initial = process.initial
        self.alphabet = frozenset(self._rename(a) for a in process.alphabet)
        self.hidden = frozenset(self._rename(a) for a in process.hidden)

    def _rename(self, action: Action) -> Action:
        if action.is_hidden:
            label = action.as_visible()
            return self.mapping.get(label, label).as_hidden()
        return self.mapping.get(action, action)

    def enabled(self, state: Any) -> list[tuple[Action, Any]]:
        return _sort_moves([(self._rename(act), nxt) for act, nxt in self.process.enabled(state)])


def relabel(process: BaseProcess, mapping: Mapping[Action | str, Action | str]) -> BaseProcess:
    """Rename actions of *process*: ``relabel(p, {"enter": "train[0].dst.enter"})``."""
    if not mapping:
        return process
    return Relabeled(process, {as_action(k): as_action(v) for k, v in mapping.items()})


def prefix(process: BaseProcess, *elements: str | int, name: str | None = None) -> BaseProcess:
    """Prepend *elements* to every label: ``prefix(train, "train", 2)``."""
    mapping = {a: a.prefixed(*elements) for a in process.actions}
    return Relabeled(process, mapping, name=name)


class Hidden(BaseProcess):
    """A process with part of its alphabet made internal.

    Transitions are unchanged; moves on hidden labels become
    :class:`~concurrencia.common.HiddenAction` moves, which never
    synchronise, and the labels leave the visible alphabet.
    """

    def __init__(self, process: BaseProcess, actions: Iterable[Action]) -> None:
        self.process = process
        self.name = process.name
        self.initial = process.initial
        to_hide = frozenset(actions) & process.alphabet
        self.alphabet = process.alphabet - to_hide
        self.hidden = process.hidden | to_hide
        self._to_hide = to_hide

    def enabled(self, state: Any) -> list[tuple[Action, Any]]:
        moves = self.process.enabled(state)
        if not self._to_hide:
            return moves
        return _sort_moves([(act.as_hidden() if act in self._to_hide else act, nxt) for act, nxt in moves])


def hide(process: BaseProcess, actions: Iterable[Action | str]) -> BaseProcess:
    """Remove *actions* from the visible alphabet of *process*."""
    return Hidden(process, [as_action(a) for a in actions])


# ---------------------------------------------------------------------------
# Property completion
# ---------------------------------------------------------------------------


class PropertyProcess(BaseProcess):
    """A safety property: every refused alphabet action leads to :data:`ERROR`.

    Composing a domain with a property therefore never blocks the domain;
    instead the composed state records the violation.  :data:`ERROR` has
    no outgoing transitions.
    """

    def __init__(self, process: BaseProcess) -> None:
        self.process = process
        self.name = process.name
        self.initial = process.initial
        self.alphabet = process.alphabet
        self.hidden = process.hidden
        self._ordered_alphabet = sorted(process.alphabet, key=Action.key)

    def enabled(self, state: Any) -> list[tuple[Action, Any]]:
        if state is ERROR:
            return []
        moves = self.process.enabled(state)
        offered = {act for act, _ in moves}
        moves.extend((act, ERROR) for act in self._ordered_alphabet if act not in offered)
        return _sort_moves(moves)


def as_property(process: BaseProcess) -> PropertyProcess:
    """Complete *process* into a safety property."""
    if isinstance(process, PropertyProcess):
        return process
    return PropertyProcess(process)


# ---------------------------------------------------------------------------
# Hypothesis integration
# ---------------------------------------------------------------------------


def process_strategy(
    max_states: int = 4,
    labels: tuple[str, ...] = ("a", "b", "c"),
    name: str = "P",
) -> Any:
    """Return a Hypothesis strategy generating random deterministic processes.

    For use with hypothesis @given decorator in your own tests:

        >>> from hypothesis import given
        >>> @given(process=process_strategy())
        ... def test_my_property(process):
        ...     assert process.enabled(process.initial) is not None

    Every generated process has states ``0 .. n-1`` with initial state 0
    and an alphabet of all *labels*, so some declared actions may never be
    enabled.
    """
    from hypothesis import strategies as st

    actions = [Action((), label) for label in labels]

    @st.composite
    def _process(draw: Any) -> Process:
        n = draw(st.integers(min_value=1, max_value=max_states))
        table: dict[int, dict[Action, int]] = {}
        for state in range(n):
            chosen = draw(st.lists(st.sampled_from(actions), unique=True, max_size=len(actions)))
            table[state] = {act: draw(st.integers(min_value=0, max_value=n - 1)) for act in chosen}
        return Process(name, 0, table, alphabet=actions)

    return _process()
