"""
Reusable structural trees and hierarchy nodes for tests.

* Structures are plain dicts, the same shape a YAML file would load to.
* Every builder returns a fresh object; mutate freely.

Example
-------
>>> scn = Scenario.init(linear_structure(n_periods=3))
>>> scn.run().price("r1", "good", 2)   # ~ 50.0
"""

from __future__ import annotations

from typing import Any

from minicam.marketplace import Marketplace, RegionPriceView
from minicam.strategies import PeriodInputs


def model_time(n_periods: int, start: int = 1975, step: int = 15) -> dict[str, int]:
    return {
        "start_year": start,
        "end_year": start + step * (n_periods - 1),
        "timestep": step,
    }


def supply_sector(
    good: str = "good",
    production: dict[str, Any] | None = None,
    *,
    name: str | None = None,
    technologies: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    if technologies is None:
        technologies = [
            {"name": "plant", "production": production or {"kind": "linear", "slope": 1.0}}
        ]
    return {
        "name": name or good,
        "kind": "supply",
        "output": good,
        "subsectors": [{"name": "producer", "technologies": technologies}],
    }


def demand_sector(
    name: str = "service",
    demand: dict[str, Any] | None = None,
    inputs: dict[str, float] | None = None,
) -> dict[str, Any]:
    return {
        "name": name,
        "kind": "demand",
        "demand": demand or {"kind": "linear", "intercept": 100.0, "slope": 1.0},
        "subsectors": [
            {
                "name": "end_use",
                "technologies": [{"name": "device", "inputs": inputs or {"good": 1.0}}],
            }
        ],
    }


def linear_structure(
    n_periods: int = 3,
    *,
    intercept: float = 100.0,
    demand_slope: float = 1.0,
    supply_slope: float = 1.0,
    initial_price: float = 1.0,
) -> dict[str, Any]:
    """
    One region, one market: ``s = supply_slope * p``,
    ``d = intercept - demand_slope * p``.
    """
    return {
        "model_time": model_time(n_periods),
        "markets": [{"good": "good", "region": "r1", "initial_price": initial_price}],
        "regions": [
            {
                "name": "r1",
                "sectors": [
                    supply_sector(production={"kind": "linear", "slope": supply_slope}),
                    demand_sector(
                        demand={
                            "kind": "linear",
                            "intercept": intercept,
                            "slope": demand_slope,
                        }
                    ),
                ],
            }
        ],
    }


def inelastic_structure(
    n_periods: int = 3, supply: float = 10.0, demand: float = 20.0
) -> dict[str, Any]:
    """Fixed supply and fixed demand: never clears when they differ."""
    return {
        "model_time": model_time(n_periods),
        "regions": [
            {
                "name": "r1",
                "sectors": [
                    supply_sector(production={"kind": "fixed", "quantity": supply}),
                    demand_sector(demand={"kind": "fixed", "quantity": demand}),
                ],
            }
        ],
    }


def chain_structure(n_periods: int = 1) -> dict[str, Any]:
    """
    Two markets coupled through a technology input:
    ``s_coal = 2 p_c``, ``s_elec = 3 (p_e - 1 - p_c)`` burning one unit of
    coal per unit, ``d_elec = 100 - p_e``. Clears at ``p_c = 27``,
    ``p_e = 46``.
    """
    return {
        "model_time": model_time(n_periods),
        "regions": [
            {
                "name": "r1",
                "sectors": [
                    supply_sector("coal", {"kind": "linear", "slope": 2.0}),
                    {
                        "name": "electricity",
                        "kind": "supply",
                        "production": {"kind": "linear", "slope": 3.0},
                        "subsectors": [
                            {
                                "name": "thermal",
                                "technologies": [
                                    {
                                        "name": "coal_st",
                                        "inputs": {"coal": 1.0},
                                        "non_energy_cost": 1.0,
                                    }
                                ],
                            }
                        ],
                    },
                    demand_sector("lighting", inputs={"electricity": 1.0}),
                ],
            }
        ],
    }


def two_region_structure(n_periods: int = 2) -> dict[str, Any]:
    """
    A shared ``oil`` market traded by r1 and r2, plus a ``coal`` market of r2.

    Oil: ``s = p + p``, ``d = (100 - p) + 30``, clearing at ``p = 130 / 3``.
    Coal: ``s = 2 p``, ``d = 10``, clearing at ``p = 5``.
    """
    return {
        "model_time": model_time(n_periods),
        "markets": [{"good": "oil", "region": "global", "members": ["r1", "r2"]}],
        "regions": [
            {
                "name": "r1",
                "sectors": [
                    supply_sector("oil"),
                    demand_sector("transport", inputs={"oil": 1.0}),
                ],
            },
            {
                "name": "r2",
                "sectors": [
                    supply_sector("oil"),
                    supply_sector("coal", {"kind": "linear", "slope": 2.0}),
                    demand_sector(
                        "transport", {"kind": "fixed", "quantity": 30.0}, {"oil": 1.0}
                    ),
                    demand_sector(
                        "heating", {"kind": "fixed", "quantity": 10.0}, {"coal": 1.0}
                    ),
                ],
            },
        ],
    }


def mixed_structure(n_periods: int = 1) -> dict[str, Any]:
    """
    A demand sector with two competing subsectors and multi-technology
    subsectors, for share and conservation checks.
    """
    return {
        "model_time": model_time(n_periods),
        "regions": [
            {
                "name": "r1",
                "gdp": [1.0, 1.2, 1.5][:max(n_periods, 1)],
                "sectors": [
                    supply_sector("gas"),
                    supply_sector("coal", {"kind": "linear", "slope": 2.0}),
                    {
                        "name": "electricity",
                        "kind": "demand",
                        "demand": {"kind": "income_elastic", "base_service": 40.0},
                        "share_rule": {"kind": "logit", "exponent": -2.0},
                        "subsectors": [
                            {
                                "name": "thermal",
                                "shareweight": 1.0,
                                "share_rule": {"kind": "logit", "exponent": -4.0},
                                "technologies": [
                                    {"name": "gas_cc", "inputs": {"gas": 1.5}},
                                    {
                                        "name": "coal_st",
                                        "inputs": {"coal": 2.5},
                                        "non_energy_cost": 0.5,
                                    },
                                ],
                            },
                            {
                                "name": "renewable",
                                "shareweight": 0.5,
                                "technologies": [
                                    {"name": "wind", "non_energy_cost": 3.0},
                                ],
                            },
                        ],
                    },
                ],
            }
        ],
    }


def price_view(
    prices: dict[str, float], region: str = "r1", n_periods: int = 1, period: int = 0
) -> RegionPriceView:
    """Regional price view over a throwaway marketplace holding *prices*."""
    mp = Marketplace(n_periods)
    for good, price in prices.items():
        mp.create_market(region, good, initial_price=price)
    markets = {good: (region, good) for good in prices}
    return RegionPriceView(region=region, markets=markets, vector=mp.price_vector(period))


def inputs(period: int = 0, **kwargs: Any) -> PeriodInputs:
    return PeriodInputs(period, **kwargs)
