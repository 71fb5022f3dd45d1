"""Subsector: a group of competing technologies."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

import numpy as np

from minicam.errors import StructuralError
from minicam.marketplace import RegionPriceView
from minicam.outputs import SubsectorOutput
from minicam.strategies import LogitShare, PeriodInputs, ShareRule, build_share_rule
from minicam.technology import Technology
from minicam.typing import Float1D

__all__ = ["Subsector"]


@dataclass(slots=True)
class Subsector:
    """
    Aggregates technologies into a single subsector quantity.

    Technology shares come from ``share_rule`` applied to technology
    costs and share weights. In quantity mode the allocated quantity is
    split by those shares; in price mode every technology runs its own
    supply curve and the reported shares are the realised output shares.
    """

    name: str
    technologies: list[Technology]
    shareweight: float = 1.0
    share_rule: ShareRule = field(default_factory=LogitShare)

    def __post_init__(self) -> None:
        names = [t.name for t in self.technologies]
        if len(set(names)) != len(names):
            raise StructuralError(
                f"duplicate technology names in subsector {self.name!r}: {names}"
            )
        if not self.technologies:
            raise StructuralError(f"subsector {self.name!r} has no technologies")

    @classmethod
    def from_spec(cls, spec: Mapping[str, Any]) -> Subsector:
        try:
            name = str(spec["name"])
        except KeyError:
            raise StructuralError("subsector without a 'name'") from None
        return cls(
            name=name,
            technologies=[Technology.from_spec(t) for t in spec.get("technologies", [])],
            shareweight=float(spec.get("shareweight", 1.0)),
            share_rule=build_share_rule(spec.get("share_rule")),
        )

    def technology_costs(self, prices: RegionPriceView) -> Float1D:
        return np.array([t.unit_cost(prices) for t in self.technologies])

    @property
    def is_available(self) -> bool:
        """Whether any technology carries a positive share weight."""
        return any(t.shareweight > 0.0 for t in self.technologies)

    def technology_shares(self, costs: Float1D) -> Float1D:
        weights = np.array([t.shareweight for t in self.technologies])
        return self.share_rule.shares(costs, weights)

    def cost(self, prices: RegionPriceView) -> float:
        """Share-weighted technology cost."""
        costs = self.technology_costs(prices)
        return _weighted_cost(self.technology_shares(costs), costs)

    def evaluate(
        self,
        period: int,
        prices: RegionPriceView,
        *,
        inputs: PeriodInputs,
        output_price: float | None = None,
        quantity: float | None = None,
        share: float = 1.0,
    ) -> SubsectorOutput:
        costs = self.technology_costs(prices)
        shares = self.technology_shares(costs)

        if quantity is not None:
            if quantity > 0.0 and not shares.sum() > 0.0:
                raise StructuralError(
                    f"subsector {self.name!r} must place {quantity:g} units "
                    "but no technology has a positive share weight"
                )
            techs = tuple(
                tech.evaluate(
                    period,
                    prices,
                    inputs=inputs,
                    quantity=quantity * s,
                    share=float(s),
                )
                for tech, s in zip(self.technologies, shares)
            )
            output = quantity
        else:
            techs = tuple(
                tech.evaluate(period, prices, inputs=inputs, output_price=output_price)
                for tech in self.technologies
            )
            output = sum(t.output for t in techs)
            if output > 0.0:
                shares = np.array([t.output / output for t in techs])
                techs = tuple(
                    replace(t, share=float(s)) for t, s in zip(techs, shares)
                )

        return SubsectorOutput(
            name=self.name,
            output=output,
            cost=_weighted_cost(shares, costs),
            share=share,
            technologies=techs,
        )


def _weighted_cost(shares: Float1D, costs: Float1D) -> float:
    # children without a share do not price the parent
    held = shares > 0.0
    return float(np.dot(shares[held], costs[held]))
