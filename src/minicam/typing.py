"""
Type aliases for MiniCAM Engine.

Market state is stored column-per-period in 2-D arrays of shape
``(n_markets, n_periods)``; per-period slices are 1-D.
"""

from typing import TypeAlias

import numpy as np
from numpy.typing import NDArray

Float1D: TypeAlias = NDArray[np.float64]
Bool1D: TypeAlias = NDArray[np.bool_]

Float2D: TypeAlias = NDArray[np.float64]
Bool2D: TypeAlias = NDArray[np.bool_]

MarketKey: TypeAlias = tuple[str, str]
"""``(market_region, good)`` pair identifying one market."""

__all__ = [
    "Float1D",
    "Bool1D",
    "Float2D",
    "Bool2D",
    "MarketKey",
]
