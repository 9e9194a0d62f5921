"""Tests for the concurrencia pytest plugin: marker, fixtures and options."""

from __future__ import annotations

import pytest

from concurrencia.params import ModelConfig
from concurrencia.verify import Verifier

# ---------------------------------------------------------------------------
# Fixtures in this session
# ---------------------------------------------------------------------------


class TestFixtures:
    def test_default_config(self, model_config) -> None:
        assert model_config == ModelConfig(villages=2)

    @pytest.mark.model_check(villages=1)
    def test_marker_sets_villages(self, model_config) -> None:
        assert model_config.villages == 1
        assert model_config.max_groups == 3

    @pytest.mark.model_check(villages=1, max_groups=4, strict=False)
    def test_marker_passes_every_field(self, verifier) -> None:
        assert isinstance(verifier, Verifier)
        assert verifier.config.max_groups == 4
        assert [v.property_name for v in verifier.verify_safety()] == ["SAFE_CAR"]

    @pytest.mark.model_check(villages=1)
    def test_verifier_checks_the_model(self, verifier) -> None:
        assert verifier.verify_safety() == []
        assert verifier.state_count() == 44


# ---------------------------------------------------------------------------
# Command-line options (run in an isolated pytest session)
# ---------------------------------------------------------------------------

_CONFTEST = 'pytest_plugins = ["concurrencia.pytest_plugin"]\n'

_TEST_FILE = """
import pytest


@pytest.mark.model_check(villages=2)
def test_states(verifier):
    assert verifier.state_count() == 188
"""


class TestOptions:
    def test_runs_without_options(self, pytester) -> None:
        pytester.makeconftest(_CONFTEST)
        pytester.makepyfile(_TEST_FILE)
        result = pytester.runpytest()
        result.assert_outcomes(passed=1)

    def test_max_states_option(self, pytester) -> None:
        pytester.makeconftest(_CONFTEST)
        pytester.makepyfile(_TEST_FILE)
        result = pytester.runpytest("--concurrencia-max-states=20")
        result.assert_outcomes(failed=1)
        result.stdout.fnmatch_lines(["*StateExplosion*"])

    def test_workers_option(self, pytester) -> None:
        pytester.makeconftest(_CONFTEST)
        pytester.makepyfile(_TEST_FILE)
        result = pytester.runpytest("--concurrencia-workers=2")
        result.assert_outcomes(passed=1)

    def test_marker_is_registered(self, pytester) -> None:
        pytester.makeconftest(_CONFTEST)
        result = pytester.runpytest("--markers")
        result.stdout.fnmatch_lines(["*model_check(villages=2*"])
