"""Pytest plugin providing model-checking fixtures.

Registered via the ``pytest11`` entry point, so installing concurrencia
makes the options and fixtures available to any test suite.

Usage::

    pytest --concurrencia-max-states=50000 --concurrencia-workers=4

    @pytest.mark.model_check(villages=3)
    def test_my_variant(verifier):
        assert verifier.verify_safety() == []

Fixtures:

- ``model_config``: a :class:`~concurrencia.params.ModelConfig` built from
  the ``model_check`` marker's keyword arguments (default 2 villages).
- ``verifier``: a :class:`~concurrencia.verify.Verifier` for that config,
  honouring the command-line state cap and worker count.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from concurrencia.params import ModelConfig
    from concurrencia.verify import Verifier

DEFAULT_TEST_VILLAGES = 2


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("concurrencia", "Concurrencia model checking")
    group.addoption(
        "--concurrencia-max-states",
        type=int,
        default=None,
        help="Abort any exploration that visits more than this many states.",
    )
    group.addoption(
        "--concurrencia-workers",
        type=int,
        default=None,
        help="Threads used to expand each BFS layer during exploration.",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "model_check(villages=2, max_groups=None, strict=True): configure the model_config fixture",
    )


@pytest.fixture
def model_config(request: pytest.FixtureRequest) -> ModelConfig:
    from concurrencia.params import ModelConfig

    marker = request.node.get_closest_marker("model_check")
    kwargs = dict(marker.kwargs) if marker is not None else {}
    kwargs.setdefault("villages", DEFAULT_TEST_VILLAGES)
    return ModelConfig(**kwargs)


@pytest.fixture
def verifier(request: pytest.FixtureRequest, model_config: ModelConfig) -> Verifier:
    from concurrencia.verify import Verifier

    return Verifier(
        model_config,
        max_states=request.config.getoption("--concurrencia-max-states"),
        workers=request.config.getoption("--concurrencia-workers"),
    )
