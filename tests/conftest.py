"""Shared fixtures for the concurrencia test suite."""

import os
import sys

import pytest

# Add parent directory to path so we can import concurrencia without installing it
_package_path = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _package_path not in sys.path:
    sys.path.insert(0, _package_path)

from concurrencia.params import MAX_STATES_ENV, WORKERS_ENV  # noqa: E402
from concurrencia.process import Process  # noqa: E402

# entry point name equals the module name: a no-op once the package is installed
pytest_plugins = ["pytester", "concurrencia.pytest_plugin"]


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    """Tests never inherit a state cap or worker count from the caller's shell."""
    monkeypatch.delenv(MAX_STATES_ENV, raising=False)
    monkeypatch.delenv(WORKERS_ENV, raising=False)


@pytest.fixture
def toggle():
    """TOGGLE = (a -> b -> TOGGLE)."""
    return Process.from_rules("TOGGLE", 0, [(0, "a", 1), (1, "b", 0)])


@pytest.fixture
def mutex_users():
    """Two users sharing a lock, each acquiring, using and releasing it."""

    def user(i):
        return Process.from_rules(
            f"USER[{i}]",
            0,
            [(0, f"user[{i}].acquire", 1), (1, f"user[{i}].use", 2), (2, f"user[{i}].release", 0)],
        )

    return user(0), user(1)
