"""
Verification entry points for the Concurrencia model.

Usage::

    from concurrencia.params import ModelConfig
    from concurrencia.verify import Verifier

    verifier = Verifier(ModelConfig(villages=2))
    assert verifier.verify_safety() == []
    assert verifier.verify_progress("depart") is None

Every check builds and explores its own graph; nothing is shared between
checks, so repeated calls on the same verifier give identical results.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from concurrencia.common import Action, ActionPattern, CheckResult, Violation, Witness
from concurrencia.explorer import explore_process
from concurrencia.model import ModelBuilder
from concurrencia.params import ModelConfig
from concurrencia.progress import check_progress
from concurrencia.safety import DEADLOCK, check_deadlock, check_safety, find_deadlocks

logger = logging.getLogger(__name__)


def _parse_target(text: str) -> Action | ActionPattern:
    pattern = ActionPattern.parse(text)
    if "*" in pattern.path or pattern.name == "*":
        return pattern
    return Action(pattern.path, pattern.name)


class Verifier:
    """Runs safety, deadlock and progress checks for one configuration.

    Args:
        config: The model configuration; defaults to :class:`ModelConfig()`.
        builder_cls: :class:`~concurrencia.model.ModelBuilder` subclass used
            to build the model (override a method to check a variant).
        max_states: State cap forwarded to the explorer.
        workers: Worker threads forwarded to the explorer.
    """

    def __init__(
        self,
        config: ModelConfig | None = None,
        *,
        builder_cls: type[ModelBuilder] = ModelBuilder,
        max_states: int | None = None,
        workers: int | None = None,
    ) -> None:
        self.config = config if config is not None else ModelConfig()
        self.builder = builder_cls(self.config)
        self._explore_kwargs: dict[str, Any] = {"max_states": max_states, "workers": workers}

    def state_count(self) -> int:
        """Number of reachable states of the composed system."""
        return explore_process(self.builder.system(), **self._explore_kwargs).num_states

    def verify_safety(self) -> list[Violation]:
        """Check every safety property; an empty list means all hold."""
        analysis = check_safety(self.builder.system(), self.builder.properties(), **self._explore_kwargs)
        return analysis.violations

    def verify_deadlock(self) -> Violation | None:
        """Return the shortest trace into a deadlock, if any."""
        return check_deadlock(self.builder.system(), **self._explore_kwargs)

    def resolve_targets(self, target: str | Iterable[Action | ActionPattern | str]) -> tuple[str, list[Action | ActionPattern]]:
        """Map a named target set (or explicit labels/patterns) to ``(name, targets)``."""
        named = self.builder.progress_targets()
        if isinstance(target, str):
            if target in named:
                return target, list(named[target])
            return target, [_parse_target(target)]
        targets = [_parse_target(t) if isinstance(t, str) else t for t in target]
        if not targets:
            raise ValueError("progress target set is empty")
        return "{" + ", ".join(str(t) for t in targets) + "}", targets

    def verify_progress(self, target: str | Iterable[Action | ActionPattern | str]) -> Witness | None:
        """Return a witness cycle that never performs *target*, or None.

        *target* is a named set (``"arrive"``, ``"depart"``, ``"board"``,
        ``"alight"``), a single label or pattern, or an iterable of them.
        """
        name, targets = self.resolve_targets(target)
        graph = explore_process(self.builder.system(), **self._explore_kwargs)
        return check_progress(graph, targets, name=name)

    def run_all(self, targets: Iterable[str] | None = None) -> CheckResult:
        """Run safety, deadlock and progress checks and aggregate the verdicts."""
        graph = explore_process(self.builder.system(), **self._explore_kwargs)
        violations = self.verify_safety()
        deadlocks = find_deadlocks(graph)
        if deadlocks:
            violations.append(Violation(DEADLOCK, deadlocks[0]))
        witnesses: dict[str, Witness] = {}
        for target in targets if targets is not None else self.builder.progress_targets():
            name, resolved = self.resolve_targets(target)
            witness = check_progress(graph, resolved, name=name)
            if witness is not None:
                witnesses[name] = witness
        result = CheckResult(
            property_holds=not violations and not witnesses,
            num_states=graph.num_states,
            num_transitions=graph.num_transitions,
            violations=violations,
            witnesses=witnesses,
        )
        logger.info("verification of %d villages: %s", self.config.villages, "OK" if result.property_holds else "FAILED")
        return result


def verify_safety(config: ModelConfig | None = None, **kwargs: Any) -> list[Violation]:
    """Convenience wrapper around :meth:`Verifier.verify_safety`."""
    return Verifier(config, **kwargs).verify_safety()


def verify_progress(
    target: str | Iterable[Action | ActionPattern | str],
    config: ModelConfig | None = None,
    **kwargs: Any,
) -> Witness | None:
    """Convenience wrapper around :meth:`Verifier.verify_progress`."""
    return Verifier(config, **kwargs).verify_progress(target)
