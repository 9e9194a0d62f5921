"""Formatting of counterexample traces and progress witnesses.

A safety counterexample is the sequence of actions from the initial state
to the action a property refused; a progress witness is a prefix leading
into a terminal set of states plus a cycle inside it.  Both are printed in
full: a consumer must be able to replay them action by action, so traces
are never truncated.

The output groups each action with the participant family it belongs to
(``train[2]``, ``car``, ...) so interleavings are easy to follow.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from concurrencia.common import Action, Violation, Witness

# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class TraceLine:
    """One numbered line of a rendered trace."""

    step_index: int
    action: Action
    actor: str
    marker: str | None = None  # e.g. "refused by SAFE_CAR"


def actor_of(action: Action) -> str:
    """The participant family an action belongs to, e.g. ``train[2]`` for ``train[2].dst.enter``."""
    if not action.path:
        return "entry/exit"
    actor = str(action.path[0])
    for element in action.path[1:]:
        if not isinstance(element, int):
            break
        actor += f"[{element}]"
    return actor


def trace_lines(trace: Sequence[Action], *, start: int = 1) -> list[TraceLine]:
    return [TraceLine(step_index=i, action=a, actor=actor_of(a)) for i, a in enumerate(trace, start=start)]


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def _render_lines(lines: list[TraceLine]) -> list[str]:
    if not lines:
        return ["    (empty)"]
    width = max(len(line.actor) for line in lines)
    num_width = len(str(lines[-1].step_index))
    out = []
    for line in lines:
        tag = f"  <-- {line.marker}" if line.marker else ""
        out.append(f"  {line.step_index:>{num_width}}. {line.actor.ljust(width)} | {line.action}{tag}")
    return out


def format_violation(violation: Violation, *, num_states: int = 0) -> str:
    """Format a safety or deadlock violation as a numbered trace.

    Args:
        violation: The violation to render.
        num_states: States explored before finding it (0 = unknown).

    Returns:
        Multi-line string suitable for printing or attaching to test output.
    """
    parts: list[str] = []
    trace = violation.counterexample_trace
    if violation.property_name == "DEADLOCK":
        parts.append(f"Deadlock reachable in {len(trace)} actions.")
    else:
        parts.append(f"Safety property {violation.property_name} violated after {len(trace)} actions.")
    if num_states > 0:
        parts.append(f"  ({num_states} states explored)")
    parts.append("")
    lines = trace_lines(trace)
    if lines and violation.property_name != "DEADLOCK":
        lines[-1].marker = f"refused by {violation.property_name}"
    parts.extend(_render_lines(lines))
    parts.append("")
    return "\n".join(parts)


def format_witness(witness: Witness) -> str:
    """Format a progress witness: the prefix into the terminal set and the cycle inside it."""
    parts: list[str] = [
        f"Progress violation for {witness.target}: "
        f"a terminal set of {witness.component_size} states never performs it.",
        "",
        "  Trace to terminal set:",
    ]
    prefix_lines = trace_lines(witness.prefix_trace)
    parts.extend(_render_lines(prefix_lines))
    parts.append("")
    parts.append("  Cycle in terminal set:")
    parts.extend(_render_lines(trace_lines(witness.cycle_trace, start=len(prefix_lines) + 1)))
    parts.append("")
    return "\n".join(parts)
