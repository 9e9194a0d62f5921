"""
Parallel composition of processes.

Participants execute in lock-step on shared actions and interleave on
everything else.  An action is enabled in a composed state iff every
participant whose alphabet contains it has a transition for it from its
current local state; firing it advances exactly those participants.

The composite is itself a :class:`~concurrencia.process.BaseProcess`, so
composites nest::

    circuit = compose([("train[0]", t0), ("village[1]", v1), ("train[1]", t1)], name="CIRCUIT")
    system = compose([("entry_exit", entry_exit), ("circuit", circuit)])
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from concurrencia.common import Action, AmbiguousTransition, as_action
from concurrencia.process import BaseProcess, _sort_moves, relabel


@dataclass(frozen=True, slots=True)
class ComposedState:
    """An ordered mapping from participant name to that participant's local state.

    Two composed states are equal iff all components are equal.
    """

    names: tuple[str, ...]
    values: tuple[Any, ...]

    def __getitem__(self, name: str) -> Any:
        return self.values[self.names.index(name)]

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __len__(self) -> int:
        return len(self.names)

    def items(self) -> Iterator[tuple[str, Any]]:
        return zip(self.names, self.values)

    def replace(self, updates: Mapping[int, Any]) -> ComposedState:
        """Return a copy with the components at the given positions replaced."""
        values = list(self.values)
        for index, value in updates.items():
            values[index] = value
        return ComposedState(self.names, tuple(values))

    def __repr__(self) -> str:
        inner = ", ".join(f"{n}={v!r}" for n, v in self.items())
        return f"<{inner}>"


class Composite(BaseProcess):
    """The synchronous product of named participants.

    Attributes:
        participants: ``(name, process)`` pairs in composition order.
        alphabet: Union of the participants' alphabets minus *hidden*.
        hidden: Actions that still synchronise among the participants but are
            invisible (and never synchronise) outside this composite.
    """

    def __init__(
        self,
        name: str,
        participants: list[tuple[str, BaseProcess]],
        hidden: Iterable[Action] = (),
    ) -> None:
        if not participants:
            raise ValueError("a composite needs at least one participant")
        names = tuple(n for n, _ in participants)
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate participant names in {name!r}: {', '.join(duplicates)}")
        self.name = name
        self.participants = list(participants)
        self._processes = [p for _, p in participants]
        self._alphabets = [p.alphabet for p in self._processes]
        owners: dict[Action, list[int]] = {}
        for index, alphabet in enumerate(self._alphabets):
            for action in alphabet:
                owners.setdefault(action, []).append(index)
        self._owners = {action: len(indices) for action, indices in owners.items()}
        union = frozenset(owners)
        to_hide = frozenset(hidden) & union
        self.alphabet = union - to_hide
        self.hidden = to_hide.union(*(p.hidden for p in self._processes))
        self._to_hide = to_hide
        self.initial = ComposedState(names, tuple(p.initial for p in self._processes))

    @property
    def names(self) -> tuple[str, ...]:
        return self.initial.names

    def participant(self, name: str) -> BaseProcess:
        return self._processes[self.names.index(name)]

    def enabled(self, state: Any) -> list[tuple[Action, Any]]:
        moves: list[tuple[Action, Any]] = []
        offers: dict[Action, dict[int, Any]] = {}
        for index, (process, local) in enumerate(zip(self._processes, state.values)):
            alphabet = self._alphabets[index]
            for action, nxt in process.enabled(local):
                if action.is_hidden or action not in alphabet:
                    # internal to this participant: interleaves freely
                    moves.append((action, state.replace({index: nxt})))
                    continue
                slot = offers.setdefault(action, {})
                if index in slot:
                    raise AmbiguousTransition(self.names[index], local, action)
                slot[index] = nxt
        for action, slot in offers.items():
            if len(slot) == self._owners[action]:
                label = action.as_hidden() if action in self._to_hide else action
                moves.append((label, state.replace(slot)))
        return _sort_moves(moves)

    def blocked_by(self, state: ComposedState, action: Action) -> list[str]:
        """Names of the participants that declare *action* but cannot take it in *state*."""
        blockers = []
        for index, (process, local) in enumerate(zip(self._processes, state.values)):
            if action in self._alphabets[index] and process.transition(local, action) is None:
                blockers.append(self.names[index])
        return blockers


def compose(
    processes: Iterable[tuple[str, BaseProcess]],
    renamings: Mapping[str, Mapping[Action | str, Action | str]] | None = None,
    hidden: Iterable[Action | str] = (),
    name: str = "||",
) -> Composite:
    """Compose named processes into one product process.

    Args:
        processes: ``(name, process)`` pairs; names must be unique.
        renamings: Per-participant ``old -> new`` label rewrites applied
            before composing.
        hidden: Actions removed from the composite's visible alphabet.
        name: Display name of the composite.

    Returns:
        A :class:`Composite`, itself usable as a participant.
    """
    renamings = renamings or {}
    participants = [(pname, relabel(process, renamings.get(pname, {}))) for pname, process in processes]
    unknown = set(renamings) - {pname for pname, _ in participants}
    if unknown:
        raise ValueError(f"renamings given for unknown participants: {', '.join(sorted(unknown))}")
    return Composite(name, participants, hidden=[as_action(a) for a in hidden])
