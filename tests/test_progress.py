"""Tests for SCC detection and progress (no-starvation) checking."""

from __future__ import annotations

from hypothesis import given, settings

from concurrencia.common import Action, ActionPattern
from concurrencia.compose import compose
from concurrencia.explorer import explore_process
from concurrencia.process import Process, process_strategy
from concurrencia.progress import (
    check_progress,
    progress_violations,
    strongly_connected_components,
    terminal_components,
)

A = Action.parse("a")
B = Action.parse("b")
C = Action.parse("c")


def _lasso() -> Process:
    """s loops on c until a moves it into l, which loops on b forever."""
    return Process.from_rules("LASSO", "s", [("s", "a", "l"), ("s", "c", "s"), ("l", "b", "l")])


def _fork() -> Process:
    return Process.from_rules("FORK", "s", [("s", "a", "l"), ("l", "b", "l"), ("s", "c", "r"), ("r", "d", "r")])


def _replay(process, start, trace):
    """Follow *trace* from *start*, returning every state visited."""
    visited = [start]
    for action in trace:
        nxt = process.transition(visited[-1], action)
        assert nxt is not None, f"{action} not enabled in {visited[-1]!r}"
        visited.append(nxt)
    return visited


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------


class TestComponents:
    def test_cycle_is_one_component(self, toggle) -> None:
        assert strongly_connected_components(explore_process(toggle)) == [[0, 1]]

    def test_chain_is_all_singletons(self) -> None:
        chain = Process.from_rules("CHAIN", 0, [(0, "a", 1), (1, "a", 2)])
        assert sorted(strongly_connected_components(explore_process(chain))) == [[0], [1], [2]]

    def test_terminal_components(self) -> None:
        graph = explore_process(_lasso())
        assert terminal_components(graph) == [[graph.node_of("l")]]

    def test_deadlock_state_is_not_a_terminal_cycle(self) -> None:
        stop = Process.from_rules("STOP", 0, [(0, "a", 1)])
        assert terminal_components(explore_process(stop)) == []

    def test_deep_ring_does_not_recurse(self) -> None:
        size = 5000
        ring = Process.from_rules("RING", 0, [(i, "inc", (i + 1) % size) for i in range(size)])
        graph = explore_process(ring)
        (component,) = strongly_connected_components(graph)
        assert len(component) == size


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


class TestProgress:
    def test_progress_holds_on_cycle_performing_target(self, toggle) -> None:
        assert check_progress(explore_process(toggle), [A]) is None

    def test_witness_for_missing_target(self, toggle) -> None:
        witness = check_progress(explore_process(toggle), [C])
        assert witness.target == "{c}"
        assert witness.prefix_trace == ()
        assert witness.cycle_trace == (A, B)
        assert witness.component_size == 2

    def test_lasso_starves_c(self) -> None:
        witness = check_progress(explore_process(_lasso()), [C], name="c")
        assert witness.target == "c"
        assert witness.prefix_trace == (A,)
        assert witness.cycle_trace == (B,)
        assert witness.component_size == 1

    def test_target_inside_terminal_component(self) -> None:
        assert check_progress(explore_process(_lasso()), [B]) is None

    def test_any_target_in_set_suffices(self) -> None:
        assert check_progress(explore_process(_lasso()), [C, B]) is None

    def test_every_terminal_component_reported(self) -> None:
        witnesses = progress_violations(explore_process(_fork()), [Action.parse("e")])
        assert [w.prefix_trace for w in witnesses] == [(A,), (C,)]

    def test_pattern_targets(self) -> None:
        p = Process.from_rules("P", 0, [(0, "train[3].dst.enter", 1), (1, "tick", 1)])
        graph = explore_process(p)
        witness = check_progress(graph, [ActionPattern.parse("train[*].dst.enter")])
        assert witness is not None
        assert witness.prefix_trace == (Action.parse("train[3].dst.enter"),)
        assert check_progress(graph, [ActionPattern.parse("*")]) is None

    def test_hidden_actions_never_count(self) -> None:
        p = Process.from_rules("P", 0, [(0, "a", 1), (1, "b", 0)], hidden=["a"])
        graph = explore_process(p)
        assert check_progress(graph, [A]) is not None
        assert check_progress(graph, [B]) is None

    def test_hidden_and_visible_moves_with_one_label(self) -> None:
        inner = Process.from_rules("P", 0, [(0, "a", 0)], hidden=["a"])
        visible = Process.from_rules("Q", 0, [(0, "a", 1)])
        graph = explore_process(compose([("p", inner), ("q", visible)]))
        # q is done after its one visible a; p loops on its hidden a forever
        witness = check_progress(graph, [A])
        assert witness.prefix_trace == (A,)
        assert witness.cycle_trace == (A.as_hidden(),)

    def test_diamond_cycle_covers_component(self) -> None:
        diamond = Process.from_rules(
            "DIAMOND",
            "s",
            [("s", "a", "l"), ("s", "b", "r"), ("l", "b", "t"), ("r", "a", "t"), ("t", "a", "s")],
        )
        witness = check_progress(explore_process(diamond), [C])
        visited = _replay(diamond, "s", witness.cycle_trace)
        assert visited[-1] == "s"
        assert set(visited) == {"s", "l", "r", "t"}

    @given(process=process_strategy(max_states=6))
    @settings(max_examples=80, deadline=None)
    def test_witnesses_replay(self, process) -> None:
        graph = explore_process(process)
        for witness in progress_violations(graph, [Action.parse("a")]):
            (start,) = _replay(process, process.initial, witness.prefix_trace)[-1:]
            cycle = _replay(process, start, witness.cycle_trace)
            assert cycle[-1] == start
            assert len(set(cycle)) == witness.component_size
            assert Action.parse("a") not in witness.cycle_trace
