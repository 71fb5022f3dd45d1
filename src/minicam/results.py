"""
Scenario results.

This module provides the ScenarioResults class, a read-only view over
the committed periods of a Scenario: market prices and quantities, the
per-period output tree and the convergence status of every period, with
optional export to pandas DataFrames.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterator, cast

import numpy as np

from minicam.outputs import RegionOutput
from minicam.status import PeriodStatus
from minicam.typing import Float1D

if TYPE_CHECKING:
    from pandas import DataFrame

    from minicam.scenario import Scenario

__all__ = ["ScenarioResults"]

_UNITS = {"output": "quantity", "cost": "price/unit", "share": "fraction"}


def _import_pandas() -> Any:
    """
    Lazily import pandas with helpful error message if not installed.

    Raises
    ------
    ImportError
        If pandas is not installed.
    """
    try:
        import pandas as pd

        return pd
    except ImportError:  # pragma: no cover
        raise ImportError(
            "pandas is required for DataFrame export methods. "
            "Install it with: pip install pandas"
        ) from None


class ScenarioResults:
    """
    Read accessors over the committed periods of a Scenario.

    Values of uncommitted periods are never exposed; asking for them
    raises ``ValueError``.

    Examples
    --------
    >>> results = minicam.Scenario.init("structure.yml").run()
    >>> results.price("usa", "oil", 2)
    >>> results.converged
    True
    >>> df = results.to_dataframe()
    """

    def __init__(self, scenario: Scenario) -> None:
        self._scenario = scenario

    # status
    # ---------------------------------------------------------------------
    @property
    def statuses(self) -> tuple[PeriodStatus, ...]:
        return tuple(self._scenario.statuses)

    @property
    def n_committed(self) -> int:
        return len(self._scenario.statuses)

    @property
    def converged(self) -> bool:
        """``True`` when every committed period converged."""
        return all(s.converged for s in self._scenario.statuses)

    @property
    def years(self) -> tuple[int, ...]:
        return self._scenario.modeltime.years[: self.n_committed]

    @property
    def market_names(self) -> list[str]:
        return self._scenario.marketplace.market_names

    def status(self, period: int) -> PeriodStatus:
        self._check_committed(period)
        return self._scenario.statuses[period]

    def _check_committed(self, period: int) -> None:
        if not 0 <= period < self.n_committed:
            raise ValueError(
                f"period {period} is not committed "
                f"({self.n_committed} committed period(s))"
            )

    # markets
    # ---------------------------------------------------------------------
    def price(self, region: str, good: str, period: int) -> float:
        self._check_committed(period)
        return self._scenario.marketplace.get_price(region, good, period)

    def supply(self, region: str, good: str, period: int) -> float:
        self._check_committed(period)
        return self._scenario.marketplace.get_supply(region, good, period)

    def demand(self, region: str, good: str, period: int) -> float:
        self._check_committed(period)
        return self._scenario.marketplace.get_demand(region, good, period)

    def prices(self, period: int) -> Float1D:
        """All market prices of a committed period, in market order."""
        self._check_committed(period)
        return self._scenario.marketplace.prices(period)

    def price_path(self, region: str, good: str) -> Float1D:
        """Committed prices of one market across periods."""
        idx = self._scenario.marketplace.index_of(region, good)
        return self._scenario.marketplace.price[idx, : self.n_committed].copy()

    # output tree
    # ---------------------------------------------------------------------
    def output_tree(self, period: int) -> tuple[RegionOutput, ...]:
        """Region records of a committed period."""
        self._check_committed(period)
        return self._scenario.outputs[period]

    def region_output(self, region: str, period: int) -> RegionOutput:
        for out in self.output_tree(period):
            if out.name == region:
                return out
        raise KeyError(f"no region {region!r} in the output tree")

    def trace(self, period: int) -> tuple[Any, ...]:
        """Solver iteration records (empty unless ``record_trace`` was on)."""
        self._check_committed(period)
        return self._scenario.traces[period]

    def _technology_rows(self) -> Iterator[dict[str, Any]]:
        for period, regions in enumerate(self._scenario.outputs):
            year = self._scenario.modeltime.per_to_yr(period)
            for region in regions:
                for sector in region.sectors:
                    for sub, tech in sector.technologies():
                        for variable in ("output", "cost", "share"):
                            yield {
                                "period": period,
                                "year": year,
                                "region": region.name,
                                "sector": sector.name,
                                "subsector": sub.name,
                                "technology": tech.name,
                                "variable": variable,
                                "units": _UNITS[variable],
                                "value": float(getattr(tech, variable)),
                            }

    # export
    # ---------------------------------------------------------------------
    def market_dataframe(self) -> DataFrame:
        """
        Long table of market results.

        Columns: ``period, year, market, region, good, price, supply,
        demand, solved``.
        """
        pd = _import_pandas()
        mp = self._scenario.marketplace
        n = self.n_committed
        rows = []
        for period in range(n):
            year = self._scenario.modeltime.per_to_yr(period)
            for market in mp.markets:
                i = market.index
                rows.append(
                    {
                        "period": period,
                        "year": year,
                        "market": market.name,
                        "region": market.region,
                        "good": market.good,
                        "price": float(mp.price[i, period]),
                        "supply": float(mp.supply[i, period]),
                        "demand": float(mp.demand[i, period]),
                        "solved": bool(mp.solved[i, period]),
                    }
                )
        columns = [
            "period", "year", "market", "region", "good",
            "price", "supply", "demand", "solved",
        ]
        return cast("DataFrame", pd.DataFrame(rows, columns=columns))

    def to_dataframe(self, variable: str = "price") -> DataFrame:
        """
        Wide table of one market variable.

        Parameters
        ----------
        variable : {'price', 'supply', 'demand'}
            Market variable to tabulate.

        Returns
        -------
        pd.DataFrame
            Index is the period number, one column per market.

        Raises
        ------
        ValueError
            If *variable* is not a market variable.
        ImportError
            If pandas is not installed.
        """
        if variable not in ("price", "supply", "demand"):
            raise ValueError(
                f"variable must be 'price', 'supply' or 'demand', got {variable!r}"
            )
        pd = _import_pandas()
        data = getattr(self._scenario.marketplace, variable)[:, : self.n_committed]
        df = pd.DataFrame(
            np.asarray(data).T.copy(),
            columns=self.market_names,
        )
        df.index.name = "period"
        return cast("DataFrame", df)

    def output_dataframe(self, wide: bool = False) -> DataFrame:
        """
        Technology-level output tree.

        Parameters
        ----------
        wide : bool, default=False
            Pivot years into columns using the header layout
            ``Region, Sector, Subsector, Technology, Variable, Units, <years>``.
        """
        pd = _import_pandas()
        df = pd.DataFrame(
            list(self._technology_rows()),
            columns=[
                "period", "year", "region", "sector", "subsector",
                "technology", "variable", "units", "value",
            ],
        )
        if not wide:
            return cast("DataFrame", df)

        keys = ["region", "sector", "subsector", "technology", "variable", "units"]
        wide_df = df.pivot_table(
            index=keys, columns="year", values="value", aggfunc="first", sort=False
        ).reset_index()
        wide_df.columns = [
            c.capitalize() if isinstance(c, str) else c for c in wide_df.columns
        ]
        wide_df.columns.name = None
        return cast("DataFrame", wide_df)

    @property
    def summary(self) -> DataFrame:
        """
        Convergence summary per committed period.

        Columns: ``year, converged, iterations, n_unsolved, n_numeric_issues``.
        """
        pd = _import_pandas()
        df = pd.DataFrame(
            [
                {
                    "year": s.year,
                    "converged": s.converged,
                    "iterations": s.iterations,
                    "n_unsolved": len(s.unsolved),
                    "n_numeric_issues": len(s.numeric_issues),
                }
                for s in self._scenario.statuses
            ],
            columns=["year", "converged", "iterations", "n_unsolved", "n_numeric_issues"],
        )
        df.index.name = "period"
        return cast("DataFrame", df)

    def __repr__(self) -> str:
        return (
            f"ScenarioResults(committed={self.n_committed}, "
            f"markets={len(self.market_names)}, converged={self.converged})"
        )
