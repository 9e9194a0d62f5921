"""Parameters that influence the size and shape of the verified model."""

from __future__ import annotations

import os
from dataclasses import dataclass

from concurrencia.common import ConfigError

# the number of villages in the reference system
VILLAGES = 6

# the maximum number of groups that can be in Concurrencia simultaneously:
# enough to fill all villages and trains, but not the cable car
MAX_GROUPS = 2 * VILLAGES + 1

# default cap on distinct states visited by one exploration
MAX_STATES = 1_000_000

# Environment variable overriding MAX_STATES
MAX_STATES_ENV = "CONCURRENCIA_MAX_STATES"

# Environment variable setting the default number of exploration workers
WORKERS_ENV = "CONCURRENCIA_WORKERS"


def capacity(villages: int) -> int:
    """Groups that fit in *villages* villages and their ``villages + 1`` trains."""
    return 2 * villages + 1


def _positive_int_from_env(var: str, default: int) -> int:
    raw = os.environ.get(var)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{var} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ConfigError(f"{var} must be >= 1, got {value}")
    return value


def default_max_states() -> int:
    return _positive_int_from_env(MAX_STATES_ENV, MAX_STATES)


def default_workers() -> int:
    return _positive_int_from_env(WORKERS_ENV, 1)


@dataclass(frozen=True)
class ModelConfig:
    """Domain configuration.

    Attributes:
        villages: Number of villages in the circuit (>= 1).
        max_groups: Groups allowed in the system at once; defaults to
            ``2 * villages + 1``.
        strict: Reject ``max_groups`` above capacity.  Disable only to
            demonstrate the resulting safety violation.
    """

    villages: int = VILLAGES
    max_groups: int | None = None
    strict: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.villages, bool) or not isinstance(self.villages, int) or self.villages < 1:
            raise ConfigError(f"villages must be an integer >= 1, got {self.villages!r}")
        if self.max_groups is None:
            object.__setattr__(self, "max_groups", capacity(self.villages))
        groups = self.max_groups
        if isinstance(groups, bool) or not isinstance(groups, int) or groups < 1:
            raise ConfigError(f"max_groups must be an integer >= 1, got {groups!r}")
        if self.strict and groups > self.capacity:
            raise ConfigError(
                f"max_groups={groups} exceeds the capacity of {self.villages} villages "
                f"({self.capacity} = 2*villages+1); the cable car would be overfilled"
            )

    @property
    def capacity(self) -> int:
        return capacity(self.villages)
