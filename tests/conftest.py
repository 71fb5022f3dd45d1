"""Pytest configuration and fixtures for minicam tests."""

import os

import pytest

import minicam.events  # noqa: F401 - register all events
from minicam import logging
from minicam.core.registry import clear_registry
from minicam.scenario import Scenario

from tests.helpers.factories import linear_structure


@pytest.fixture
def clean_registry():
    """
    Save registry state, clear it for the test, then restore it.

    Request explicitly in tests that need isolation from the real events
    and strategies. DO NOT use autouse=True, as integration tests rely on
    the real components being registered.
    """
    # noinspection PyProtectedMember
    from minicam.core.registry import (
        _DEMAND_REGISTRY,
        _EVENT_REGISTRY,
        _PRODUCTION_REGISTRY,
        _SHARE_RULE_REGISTRY,
    )

    registries = (
        _EVENT_REGISTRY,
        _PRODUCTION_REGISTRY,
        _DEMAND_REGISTRY,
        _SHARE_RULE_REGISTRY,
    )
    saved = [dict(r) for r in registries]

    clear_registry()

    yield

    for registry, state in zip(registries, saved):
        registry.clear()
        registry.update(state)


@pytest.fixture
def linear_scenario() -> Scenario:
    """Three-period, one-market scenario clearing at p = 50."""
    return Scenario.init(linear_structure(n_periods=3))


@pytest.fixture(autouse=True)
def mute_minicam_logs(caplog):
    # DEBUG only for the coverage run so every logging branch executes
    if os.environ.get("COVERAGE_RUN") == "true":
        level = logging.DEBUG
    else:
        level = logging.ERROR

    caplog.set_level(level, logger="minicam")
    logging.getLogger("minicam").setLevel(level)
