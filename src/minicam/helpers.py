# src/minicam/helpers.py
"""Small numeric helpers shared across the engine."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import TypeVar

import numpy as np

from minicam.typing import Bool1D, Float1D

K = TypeVar("K")
V = TypeVar("V")

SMALL_NUM = 1e-6
TINY_NUM = 1e-16

# tolerance used by ``is_equal`` for floats
EQUAL_EPS = 1e-10


def is_valid_number(value: float) -> bool:
    """Return ``False`` for NaN and +/- infinity."""
    return math.isfinite(value)


def valid_mask(values: Float1D) -> Bool1D:
    """Vectorised ``is_valid_number``."""
    return np.isfinite(values)


def is_equal(first: float, second: float) -> bool:
    """Compare two floats within ``EQUAL_EPS``."""
    return abs(first - second) < EQUAL_EPS


def search_for_value(mapping: Mapping[K, V], key: K, default: V) -> V:
    """Return ``mapping[key]`` or *default* when the key is missing."""
    return mapping.get(key, default)


def relative_excess(supply: Float1D, demand: Float1D) -> Float1D:
    """
    Relative excess demand ``(D - S) / max(|S|, |D|)``.

    Markets whose supply and demand are both below ``TINY_NUM`` report 0.
    """
    scale = np.maximum(np.abs(supply), np.abs(demand))
    out = np.zeros_like(scale)
    np.divide(demand - supply, scale, out=out, where=scale >= TINY_NUM)
    return out
