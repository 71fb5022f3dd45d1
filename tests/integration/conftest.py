"""Pytest configuration for integration tests.

Every test collected from this directory runs whole scenarios through
the default pipeline and carries the ``integration`` marker.
"""

import pytest


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Add integration marker to all tests under tests/integration/."""
    this_dir = str(__file__).rsplit("/conftest.py", 1)[0]
    for item in items:
        if str(item.fspath).startswith(this_dir):
            item.add_marker(pytest.mark.integration)
