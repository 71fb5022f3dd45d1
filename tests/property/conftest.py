"""Pytest configuration for property-based tests.

Every test collected from this directory draws its inputs with
Hypothesis and carries the ``invariants`` marker.
"""

import pytest


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Add invariants marker to all tests under tests/property/."""
    this_dir = str(__file__).rsplit("/conftest.py", 1)[0]
    for item in items:
        if str(item.fspath).startswith(this_dir):
            item.add_marker(pytest.mark.invariants)
