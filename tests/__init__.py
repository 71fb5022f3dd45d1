# tests/__init__.py

from tests.helpers.factories import (
    chain_structure,
    inelastic_structure,
    linear_structure,
    mixed_structure,
    two_region_structure,
)

__all__ = [
    "chain_structure",
    "linear_structure",
    "inelastic_structure",
    "mixed_structure",
    "two_region_structure",
]
