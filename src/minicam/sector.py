"""
Sector: supply or final-demand aggregate of subsectors.

A supply sector produces one market good; a demand sector delivers a
final service whose demand responds to the service price. Both kinds
share subsectors and technologies with the same ``evaluate`` signature.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from minicam.errors import StructuralError
from minicam.logging import getLogger
from minicam.marketplace import RegionPriceView
from minicam.outputs import SectorOutput, SubsectorOutput
from minicam.strategies import (
    DemandFunction,
    LogitShare,
    PeriodInputs,
    ProductionFunction,
    ShareRule,
    build_demand_function,
    build_production_function,
    build_share_rule,
)
from minicam.subsector import Subsector
from minicam.typing import Float1D

__all__ = ["Sector", "SECTOR_KINDS"]

log = getLogger(__name__)

SECTOR_KINDS = ("supply", "demand")


@dataclass(slots=True)
class Sector:
    """
    One sector of a region.

    Parameters
    ----------
    name : str
        Sector name, unique within its region.
    kind : {"supply", "demand"}
        Supply sectors post their output to the market of ``good``;
        demand sectors only post the inputs their technologies consume.
    subsectors : list[Subsector]
        Competing subsectors.
    good : str or None
        Market good produced (supply sectors). Defaults to the sector name.
    production : ProductionFunction or None
        Sector-level supply curve. When set, the sector output is
        ``production.output(p_good - cost)`` and is allocated down the
        tree; otherwise every technology runs its own supply curve.
    demand : DemandFunction or None
        Service demand curve (required for demand sectors).
    share_rule : ShareRule
        Subsector allocation rule.

    Attributes
    ----------
    period_inputs : PeriodInputs or None
        Prior-period state and exogenous drivers for the period being
        solved, set by `derive_period_inputs`.
    """

    name: str
    kind: str
    subsectors: list[Subsector]
    good: str | None = None
    production: ProductionFunction | None = None
    demand: DemandFunction | None = None
    share_rule: ShareRule = field(default_factory=LogitShare)
    period_inputs: PeriodInputs | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.kind not in SECTOR_KINDS:
            raise StructuralError(
                f"sector {self.name!r}: kind must be one of {SECTOR_KINDS}, "
                f"got {self.kind!r}"
            )
        if not self.subsectors:
            raise StructuralError(f"sector {self.name!r} has no subsectors")
        names = [s.name for s in self.subsectors]
        if len(set(names)) != len(names):
            raise StructuralError(
                f"duplicate subsector names in sector {self.name!r}: {names}"
            )
        if self.kind == "demand":
            if self.demand is None:
                raise StructuralError(
                    f"demand sector {self.name!r} needs a demand function"
                )
            self.good = self.name
        elif self.good is None:
            self.good = self.name

    @classmethod
    def from_spec(cls, spec: Mapping[str, Any]) -> Sector:
        try:
            name = str(spec["name"])
        except KeyError:
            raise StructuralError("sector without a 'name'") from None
        kind = str(spec.get("kind", "supply"))
        production = spec.get("production")
        demand = spec.get("demand")
        return cls(
            name=name,
            kind=kind,
            subsectors=[Subsector.from_spec(s) for s in spec.get("subsectors", [])],
            good=spec.get("output"),
            production=(
                None if production is None else build_production_function(production)
            ),
            demand=(
                build_demand_function(demand)
                if kind == "demand" and demand is not None
                else None
            ),
            share_rule=build_share_rule(spec.get("share_rule")),
        )

    @property
    def is_supply(self) -> bool:
        return self.kind == "supply"

    def input_goods(self) -> set[str]:
        """Every market good consumed by a technology of this sector."""
        return {
            good
            for sub in self.subsectors
            for tech in sub.technologies
            for good in tech.inputs
        }

    # period inputs
    # ---------------------------------------------------------------------
    def derive_period_inputs(
        self,
        period: int,
        *,
        gdp_ratio: float = 1.0,
        prior: SectorOutput | None = None,
    ) -> PeriodInputs:
        """
        Hand the sector its inputs for *period*.

        Parameters
        ----------
        period : int
            Period about to be solved.
        gdp_ratio : float
            Regional GDP growth factor since the previous period.
        prior : SectorOutput or None
            Committed output record of this sector in the previous period.
        """
        self.period_inputs = PeriodInputs(
            period=period,
            gdp_ratio=gdp_ratio,
            prior_service=None if prior is None else prior.output,
            prior_price=None if prior is None else prior.price,
        )
        log.deep(
            "  %s: period %d inputs %s", self.name, period, self.period_inputs
        )
        return self.period_inputs

    def _inputs_for(self, period: int) -> PeriodInputs:
        inputs = self.period_inputs
        if inputs is None or inputs.period != period:
            return PeriodInputs(period)
        return inputs

    # evaluation
    # ---------------------------------------------------------------------
    def subsector_shares(self, costs: Float1D) -> Float1D:
        # a subsector with no weighted technology cannot take a share
        weights = np.array(
            [s.shareweight if s.is_available else 0.0 for s in self.subsectors]
        )
        return self.share_rule.shares(costs, weights)

    def _allocate(
        self,
        period: int,
        prices: RegionPriceView,
        inputs: PeriodInputs,
        quantity: float,
        costs: Float1D,
    ) -> tuple[SubsectorOutput, ...]:
        shares = self.subsector_shares(costs)
        if quantity > 0.0 and not shares.sum() > 0.0:
            raise StructuralError(
                f"sector {self.name!r} must place {quantity:g} units "
                "but no subsector has a positive share weight"
            )
        return tuple(
            sub.evaluate(
                period,
                prices,
                inputs=inputs,
                quantity=quantity * s,
                share=float(s),
            )
            for sub, s in zip(self.subsectors, shares)
        )

    def evaluate(self, period: int, prices: RegionPriceView) -> SectorOutput:
        """
        Evaluate the sector at the trial *prices* of *period*.

        Returns
        -------
        SectorOutput
            Output, price and cost of the sector and its subsector records.
        """
        inputs = self._inputs_for(period)
        costs = np.array([sub.cost(prices) for sub in self.subsectors])
        shares = self.subsector_shares(costs)
        held = shares > 0.0
        cost = float(np.dot(shares[held], costs[held]))

        if self.kind == "demand":
            price = cost
            output = self.demand.demand(price, inputs)  # type: ignore[union-attr]
            subsectors = self._allocate(period, prices, inputs, output, costs)
        else:
            price = prices.price(self.good)  # type: ignore[arg-type]
            if self.production is not None:
                output = self.production.output(price - cost, inputs)
                subsectors = self._allocate(period, prices, inputs, output, costs)
            else:
                subsectors = tuple(
                    sub.evaluate(period, prices, inputs=inputs, output_price=price)
                    for sub in self.subsectors
                )
                output = sum(s.output for s in subsectors)
                if output > 0.0:
                    subsectors = tuple(
                        _with_share(s, s.output / output) for s in subsectors
                    )
                    cost = sum(s.share * s.cost for s in subsectors)

        return SectorOutput(
            name=self.name,
            kind=self.kind,
            good=self.good,  # type: ignore[arg-type]
            output=output,
            price=price,
            cost=cost,
            subsectors=subsectors,
        )


def _with_share(sub: SubsectorOutput, share: float) -> SubsectorOutput:
    return SubsectorOutput(
        name=sub.name,
        output=sub.output,
        cost=sub.cost,
        share=share,
        technologies=sub.technologies,
    )
