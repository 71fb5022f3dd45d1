# src/minicam/marketplace.py
"""
Market and Marketplace.

All market state is stored column-per-period in ``(n_markets, n_periods)``
arrays, so one market is one row that is reused across periods. The
Marketplace methods are the only mutation surface for prices and
quantities; committed periods are read-only.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass

import numpy as np

from minicam.errors import PeriodCommittedError, StructuralError
from minicam.helpers import TINY_NUM
from minicam.logging import getLogger
from minicam.typing import Bool1D, Bool2D, Float1D, Float2D, MarketKey

__all__ = ["Market", "Marketplace", "PriceVector", "RegionPriceView"]

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Market:
    """
    Handle for one ``(region, good)`` market.

    The handle carries identity only; per-period values live in the
    owning Marketplace under row ``index``.
    """

    region: str
    good: str
    index: int
    initial_price: float
    solvable: bool = True

    @property
    def key(self) -> MarketKey:
        return (self.region, self.good)

    @property
    def name(self) -> str:
        return f"{self.region}:{self.good}"


@dataclass(slots=True, frozen=True, eq=False)
class PriceVector(Mapping[MarketKey, float]):
    """
    Read-only snapshot of the trial prices of one period.

    Handed to the Region/Sector/Subsector/Technology cascade; looking up
    an unregistered key is a structural error.
    """

    period: int
    index: Mapping[MarketKey, int]
    values: Float1D

    def __getitem__(self, key: MarketKey) -> float:
        try:
            return float(self.values[self.index[key]])
        except KeyError:
            raise StructuralError(
                f"no market registered for region={key[0]!r}, good={key[1]!r}"
            ) from None

    def __iter__(self) -> Iterator[MarketKey]:
        return iter(self.index)

    def __len__(self) -> int:
        return len(self.index)


@dataclass(slots=True, frozen=True)
class RegionPriceView:
    """
    Prices as seen from one region.

    Resolves a good to the market the region trades it in (its own
    regional market or a shared one) and reads the trial price there.
    """

    region: str
    markets: Mapping[str, MarketKey]
    vector: PriceVector

    def price(self, good: str) -> float:
        try:
            key = self.markets[good]
        except KeyError:
            raise StructuralError(
                f"region {self.region!r} trades no market for good {good!r}"
            ) from None
        return self.vector[key]

    @property
    def period(self) -> int:
        return self.vector.period


class Marketplace:
    """
    Owns every Market of a run, for every period.

    Parameters
    ----------
    n_periods : int
        Number of period slots per market.
    default_price : float
        Seed price of markets registered without an ``initial_price``.

    Notes
    -----
    Markets are registered during setup only; the set is fixed once the
    first period starts. ``supply`` and ``demand`` of a period are reset
    by the solver at the start of every iteration and re-accumulated by
    the World.
    """

    __slots__ = (
        "n_periods",
        "default_price",
        "markets",
        "_index",
        "price",
        "supply",
        "demand",
        "solved",
        "lower",
        "upper",
        "committed",
    )

    def __init__(self, n_periods: int, *, default_price: float = 1.0) -> None:
        if n_periods < 1:
            raise ValueError(f"n_periods must be >= 1, got {n_periods}")
        self.n_periods = int(n_periods)
        self.default_price = float(default_price)
        self.markets: list[Market] = []
        self._index: dict[MarketKey, int] = {}

        shape = (0, self.n_periods)
        self.price: Float2D = np.empty(shape, dtype=np.float64)
        self.supply: Float2D = np.empty(shape, dtype=np.float64)
        self.demand: Float2D = np.empty(shape, dtype=np.float64)
        self.solved: Bool2D = np.empty(shape, dtype=np.bool_)
        self.lower: Float2D = np.empty(shape, dtype=np.float64)
        self.upper: Float2D = np.empty(shape, dtype=np.float64)
        self.committed: Bool1D = np.zeros(self.n_periods, dtype=np.bool_)

    # setup
    # ---------------------------------------------------------------------
    def create_market(
        self,
        region: str,
        good: str,
        *,
        initial_price: float | None = None,
        solve: bool = True,
    ) -> Market:
        """
        Register the ``(region, good)`` market.

        Registering an existing key returns the existing market unchanged.
        """
        key = (region, good)
        if key in self._index:
            return self.markets[self._index[key]]
        if self.committed.any():
            raise StructuralError(
                f"cannot register market {region}:{good} after a period was committed"
            )

        p0 = self.default_price if initial_price is None else float(initial_price)
        market = Market(
            region=region,
            good=good,
            index=len(self.markets),
            initial_price=p0,
            solvable=bool(solve),
        )
        self.markets.append(market)
        self._index[key] = market.index

        row = np.full((1, self.n_periods), p0)
        self.price = np.vstack([self.price, row])
        self.supply = np.vstack([self.supply, np.zeros_like(row)])
        self.demand = np.vstack([self.demand, np.zeros_like(row)])
        self.solved = np.vstack([self.solved, np.zeros(row.shape, dtype=np.bool_)])
        self.lower = np.vstack([self.lower, np.full_like(row, np.nan)])
        self.upper = np.vstack([self.upper, np.full_like(row, np.nan)])

        log.debug("Created market %s (p0=%g, solve=%s)", market.name, p0, solve)
        return market

    def set_market_to_solve(self, region: str, good: str, solve: bool = True) -> None:
        """Toggle whether the solver adjusts this market's price."""
        idx = self.index_of(region, good)
        old = self.markets[idx]
        self.markets[idx] = Market(
            region=old.region,
            good=old.good,
            index=old.index,
            initial_price=old.initial_price,
            solvable=bool(solve),
        )

    # lookup
    # ---------------------------------------------------------------------
    def index_of(self, region: str, good: str) -> int:
        try:
            return self._index[(region, good)]
        except KeyError:
            raise StructuralError(
                f"no market registered for region={region!r}, good={good!r}"
            ) from None

    def get_market(self, region: str, good: str) -> Market:
        return self.markets[self.index_of(region, good)]

    def has_market(self, region: str, good: str) -> bool:
        return (region, good) in self._index

    @property
    def n_markets(self) -> int:
        return len(self.markets)

    @property
    def market_names(self) -> list[str]:
        return [m.name for m in self.markets]

    @property
    def solvable(self) -> Bool1D:
        return np.array([m.solvable for m in self.markets], dtype=np.bool_)

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def __len__(self) -> int:
        return len(self.markets)

    def __iter__(self) -> Iterator[Market]:
        return iter(self.markets)

    # per-period mutation
    # ---------------------------------------------------------------------
    def _check_period(self, period: int, *, writable: bool = False) -> None:
        if not 0 <= period < self.n_periods:
            raise IndexError(
                f"period {period} out of range [0, {self.n_periods - 1}]"
            )
        if writable and self.committed[period]:
            raise PeriodCommittedError(f"period {period} is committed and read-only")

    def reset_to_zero(self, period: int) -> None:
        """Clear supply and demand of every market in *period*."""
        self._check_period(period, writable=True)
        self.supply[:, period] = 0.0
        self.demand[:, period] = 0.0

    def add_to_supply(self, region: str, good: str, period: int, amount: float) -> None:
        self._check_period(period, writable=True)
        self.supply[self.index_of(region, good), period] += amount

    def add_to_demand(self, region: str, good: str, period: int, amount: float) -> None:
        self._check_period(period, writable=True)
        self.demand[self.index_of(region, good), period] += amount

    def set_price(self, region: str, good: str, period: int, price: float) -> None:
        self._check_period(period, writable=True)
        self.price[self.index_of(region, good), period] = price

    def set_prices(
        self, period: int, values: Float1D, where: Bool1D | None = None
    ) -> None:
        """Vectorised ``set_price`` over all markets (optionally masked)."""
        self._check_period(period, writable=True)
        if where is None:
            self.price[:, period] = values
        else:
            self.price[where, period] = np.asarray(values)[where]

    def set_solved(self, period: int, solved: Bool1D) -> None:
        self._check_period(period, writable=True)
        self.solved[:, period] = solved

    def set_brackets(self, period: int, lower: Float1D, upper: Float1D) -> None:
        self._check_period(period, writable=True)
        self.lower[:, period] = lower
        self.upper[:, period] = upper

    def init_prices(self, period: int) -> None:
        """
        Seed trial prices for *period*.

        Period 0 uses each market's initial price; later periods start
        from the previous period's cleared prices.
        """
        self._check_period(period, writable=True)
        if period == 0:
            self.price[:, 0] = [m.initial_price for m in self.markets]
        else:
            self.price[:, period] = self.price[:, period - 1]
        self.solved[:, period] = False
        self.lower[:, period] = np.nan
        self.upper[:, period] = np.nan

    def commit(self, period: int) -> None:
        """Freeze *period*; later mutations raise ``PeriodCommittedError``."""
        self._check_period(period, writable=True)
        self.committed[period] = True

    # read accessors
    # ---------------------------------------------------------------------
    def get_price(self, region: str, good: str, period: int) -> float:
        self._check_period(period)
        return float(self.price[self.index_of(region, good), period])

    def get_supply(self, region: str, good: str, period: int) -> float:
        self._check_period(period)
        return float(self.supply[self.index_of(region, good), period])

    def get_demand(self, region: str, good: str, period: int) -> float:
        self._check_period(period)
        return float(self.demand[self.index_of(region, good), period])

    def prices(self, period: int) -> Float1D:
        """Copy of the period's price column."""
        self._check_period(period)
        return self.price[:, period].copy()

    def price_vector(self, period: int) -> PriceVector:
        values = self.prices(period)
        values.setflags(write=False)
        return PriceVector(period=period, index=dict(self._index), values=values)

    def excess_demand(self, period: int) -> Float1D:
        """``demand - supply`` per market."""
        self._check_period(period)
        return self.demand[:, period] - self.supply[:, period]

    def check_clearance(self, period: int, tolerance: float) -> Bool1D:
        """
        Per-market clearing test.

        A market clears when ``|S - D| <= tolerance * max(|S|, |D|)``.
        Markets whose supply and demand are both below ``TINY_NUM`` are
        trivially cleared.
        """
        self._check_period(period)
        s = self.supply[:, period]
        d = self.demand[:, period]
        scale = np.maximum(np.abs(s), np.abs(d))
        with np.errstate(invalid="ignore"):
            cleared = np.abs(s - d) <= tolerance * scale
        return cleared | (scale < TINY_NUM)

    def __repr__(self) -> str:
        return (
            f"Marketplace(n_markets={self.n_markets}, n_periods={self.n_periods}, "
            f"committed={int(self.committed.sum())})"
        )
