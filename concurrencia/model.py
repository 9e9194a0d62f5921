"""
The Concurrencia domain model.

Tour groups arrive in the valley, ride the cable car up to the terminus,
board the first train, visit every village in order (each village and
each train holds at most one group), ride the last train back to the
terminus, take the cable car down and depart.

Processes (``N`` villages, ``G`` max groups)::

    COUNTER[i:0..G] = (when i<G arrive -> COUNTER[i+1] | when i>0 depart -> COUNTER[i-1]).
    PRODUCER = (arrive -> PRODUCER).   CONSUMER = (depart -> CONSUMER).
    OPERATOR = (operate -> OPERATOR).
    VILLAGE  = (enter -> leave -> VILLAGE).
    TRAIN    = (start.leave -> dst.enter -> TRAIN).
    CABLECAR = see CAR_RULES.

    ||ENTRY_EXIT     = (PRODUCER || CONSUMER || OPERATOR || COUNTER || CABLECAR)
                       /{train[0].start.leave/leave, train[N].dst.enter/enter}.
    ||VILLAGE_CIRCUIT = (forall[i:0..N] train[i]:TRAIN || forall[i:1..N] VILLAGE[i])
                       where VILLAGE[i] = VILLAGE/{train[i-1].dst.enter/enter, train[i].start.leave/leave}.
    ||CONCURRENCIA   = (ENTRY_EXIT || VILLAGE_CIRCUIT).

Safety properties mirror the domain processes (``SAFE_VILLAGE[i]``,
``SAFE_TRAIN[i]``) plus ``SAFE_CAR``, the cable-car rules composed with a
capacity limit of ``2N+1`` groups.
"""

from __future__ import annotations

import enum

from concurrencia.common import Action, ActionPattern
from concurrencia.compose import Composite, compose
from concurrencia.params import ModelConfig, capacity
from concurrencia.process import BaseProcess, Process, prefix

# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

ARRIVE = Action((), "arrive")
DEPART = Action((), "depart")
OPERATE = Action((), "operate")
ASCEND = Action((), "ascend")
DESCEND = Action((), "descend")
ENTER = Action((), "enter")
LEAVE = Action((), "leave")
START_LEAVE = Action(("start",), "leave")
DST_ENTER = Action(("dst",), "enter")

CAR_ALPHABET = frozenset({ARRIVE, DEPART, OPERATE, ASCEND, DESCEND, ENTER, LEAVE})


def train_action(index: int, action: Action) -> Action:
    """``train_action(2, DST_ENTER)`` is ``train[2].dst.enter``."""
    return action.prefixed("train", index)


# Named progress target sets
PROGRESS_TARGETS: dict[str, tuple[Action | ActionPattern, ...]] = {
    "arrive": (ARRIVE,),
    "depart": (DEPART,),
    "board": (ActionPattern.parse("train[*].start.leave"),),
    "alight": (ActionPattern.parse("train[*].dst.enter"),),
}


# ---------------------------------------------------------------------------
# Cable car
# ---------------------------------------------------------------------------


class CarState(enum.Enum):
    """The reachable ``(occupied, in_valley, returning)`` tuples of the cable car.

    An empty car is never returning, so two of the eight boolean
    combinations have no member.
    """

    EMPTY_VALLEY = (False, True, False)
    EMPTY_TERMINUS = (False, False, False)
    NEW_VALLEY = (True, True, False)
    NEW_TERMINUS = (True, False, False)
    RETURNING_TERMINUS = (True, False, True)
    RETURNING_VALLEY = (True, True, True)

    @property
    def occupied(self) -> bool:
        return self.value[0]

    @property
    def in_valley(self) -> bool:
        return self.value[1]

    @property
    def returning(self) -> bool:
        return self.value[2]

    def __repr__(self) -> str:
        return self.name


# The guards of CABLECAR / SAFE_CAR, one rule per branch:
#   arrive, depart          only in the valley (S3, S4)
#   enter                   only at the terminus while empty (S5)
#   leave                   only at the terminus, never for a returning group (S6)
#   ascend / descend        carry a group towards its destination (S7)
#   operate                 moves the car; a returning group must depart
#                           before the car takes anyone to the circuit again (S8)
# NEW_VALLEY has two branches with the same guard: the group may be carried
# up by the car itself or by the operator.
CAR_RULES: tuple[tuple[CarState, Action, CarState], ...] = (
    (CarState.EMPTY_VALLEY, ARRIVE, CarState.NEW_VALLEY),
    (CarState.EMPTY_VALLEY, OPERATE, CarState.EMPTY_TERMINUS),
    (CarState.EMPTY_TERMINUS, ENTER, CarState.RETURNING_TERMINUS),
    (CarState.EMPTY_TERMINUS, OPERATE, CarState.EMPTY_VALLEY),
    (CarState.NEW_VALLEY, ASCEND, CarState.NEW_TERMINUS),
    (CarState.NEW_VALLEY, OPERATE, CarState.NEW_TERMINUS),
    (CarState.NEW_TERMINUS, LEAVE, CarState.EMPTY_TERMINUS),
    (CarState.NEW_TERMINUS, OPERATE, CarState.NEW_VALLEY),
    (CarState.RETURNING_TERMINUS, DESCEND, CarState.RETURNING_VALLEY),
    (CarState.RETURNING_TERMINUS, OPERATE, CarState.RETURNING_VALLEY),
    (CarState.RETURNING_VALLEY, DEPART, CarState.EMPTY_VALLEY),
    (CarState.RETURNING_VALLEY, OPERATE, CarState.RETURNING_TERMINUS),
)


# ---------------------------------------------------------------------------
# Process definitions
# ---------------------------------------------------------------------------


def counter(limit: int, name: str = "COUNTER") -> Process:
    """Count groups in the system, allowing at most *limit*."""
    rules = []
    for i in range(limit + 1):
        if i < limit:
            rules.append((i, ARRIVE, i + 1))
        if i > 0:
            rules.append((i, DEPART, i - 1))
    return Process.from_rules(name, 0, rules, alphabet=[ARRIVE, DEPART])


def producer() -> Process:
    return Process.from_rules("PRODUCER", 0, [(0, ARRIVE, 0)])


def consumer() -> Process:
    return Process.from_rules("CONSUMER", 0, [(0, DEPART, 0)])


def operator() -> Process:
    return Process.from_rules("OPERATOR", 0, [(0, OPERATE, 0)])


def cable_car(name: str = "CABLECAR") -> Process:
    return Process.from_rules(name, CarState.EMPTY_VALLEY, CAR_RULES, alphabet=CAR_ALPHABET)


def village(name: str = "VILLAGE") -> Process:
    return Process.from_rules(name, 0, [(0, ENTER, 1), (1, LEAVE, 0)])


def train(name: str = "TRAIN") -> Process:
    return Process.from_rules(name, 0, [(0, START_LEAVE, 1), (1, DST_ENTER, 0)])


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class ModelBuilder:
    """Builds the composed system and its properties for one configuration.

    Each method returns a fresh process; subclass and override one of them
    to check a variant of the model::

        class NoDepart(ModelBuilder):
            def cable_car(self):
                return super().cable_car().without_transition(CarState.RETURNING_VALLEY, DEPART)
    """

    def __init__(self, config: ModelConfig) -> None:
        self.config = config

    @property
    def villages(self) -> int:
        return self.config.villages

    # -- circuit topology ---------------------------------------------------

    def boundary_renaming(self) -> dict[Action, Action]:
        """The cable car's ``leave``/``enter`` are the first train's start and the last train's destination."""
        return {
            LEAVE: train_action(0, START_LEAVE),
            ENTER: train_action(self.villages, DST_ENTER),
        }

    def village_renaming(self, index: int) -> dict[Action, Action]:
        """Village *index* is the destination of train ``index-1`` and the start of train ``index``."""
        return {
            ENTER: train_action(index - 1, DST_ENTER),
            LEAVE: train_action(index, START_LEAVE),
        }

    def train(self, index: int) -> BaseProcess:
        return prefix(train(), "train", index, name=f"train[{index}]")

    def village(self, index: int) -> Process:
        return village(f"village[{index}]")

    def village_circuit(self) -> Composite:
        """``villages + 1`` trains chained through ``villages`` villages."""
        n = self.villages
        participants: list[tuple[str, BaseProcess]] = []
        renamings: dict[str, dict[Action, Action]] = {}
        for i in range(n + 1):
            participants.append((f"train[{i}]", self.train(i)))
        for i in range(1, n + 1):
            participants.append((f"village[{i}]", self.village(i)))
            renamings[f"village[{i}]"] = self.village_renaming(i)
        return compose(participants, renamings=renamings, name="VILLAGE_CIRCUIT")

    # -- entry / exit -------------------------------------------------------

    def counter(self) -> Process:
        return counter(self.config.max_groups)

    def cable_car(self) -> Process:
        return cable_car()

    def entry_exit(self) -> Composite:
        return compose(
            [
                ("producer", producer()),
                ("consumer", consumer()),
                ("operator", operator()),
                ("counter", self.counter()),
                ("car", self.cable_car()),
            ],
            renamings={"car": self.boundary_renaming()},
            name="ENTRY_EXIT",
        )

    def system(self) -> Composite:
        return compose(
            [("entry_exit", self.entry_exit()), ("circuit", self.village_circuit())],
            name="CONCURRENCIA",
        )

    # -- properties ---------------------------------------------------------

    def safe_village(self, index: int) -> BaseProcess:
        return compose(
            [("village", village(f"SAFE_VILLAGE[{index}]"))],
            renamings={"village": self.village_renaming(index)},
            name=f"SAFE_VILLAGE[{index}]",
        )

    def safe_train(self, index: int) -> BaseProcess:
        return prefix(train(), "train", index, name=f"SAFE_TRAIN[{index}]")

    def safe_car(self) -> Composite:
        """Car rules plus the capacity limit ``2N+1``, whatever ``max_groups`` says."""
        return compose(
            [
                ("rules", cable_car("SAFE_CAR_RULES")),
                ("capacity", counter(capacity(self.villages), name="SAFE_CAPACITY")),
            ],
            renamings={"rules": self.boundary_renaming()},
            name="SAFE_CAR",
        )

    def properties(self) -> list[tuple[str, BaseProcess]]:
        props: list[tuple[str, BaseProcess]] = [("SAFE_CAR", self.safe_car())]
        props.extend((f"SAFE_TRAIN[{i}]", self.safe_train(i)) for i in range(self.villages + 1))
        props.extend((f"SAFE_VILLAGE[{i}]", self.safe_village(i)) for i in range(1, self.villages + 1))
        return props

    def progress_targets(self) -> dict[str, tuple[Action | ActionPattern, ...]]:
        return dict(PROGRESS_TARGETS)


def expected_state_count(villages: int) -> int:
    """Reachable states of the correctly configured system.

    Every occupancy pattern of the ``2N+1`` train and village slots is
    reachable with an empty car in either position; with a group on board
    (four car states) the all-full pattern is excluded by the capacity.
    """
    patterns = 2 ** capacity(villages)
    return 2 * patterns + 4 * (patterns - 1)
