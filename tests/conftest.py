"""Shared pytest fixtures for msig tests."""

import pytest

import msig._tracking as _tracking_mod
from msig._tracking import reset


@pytest.fixture(autouse=True)
def reset_registry():
    """Clear the registry and depth limit so tests never see each other's edges."""
    depth = _tracking_mod.get_max_depth()
    reset()
    yield
    reset()
    _tracking_mod.set_max_depth(depth)
