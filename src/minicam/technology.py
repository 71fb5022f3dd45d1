"""Technology: leaf of the aggregation hierarchy."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from minicam.errors import StructuralError
from minicam.marketplace import RegionPriceView
from minicam.outputs import TechnologyOutput
from minicam.strategies import PeriodInputs, ProductionFunction, build_production_function

__all__ = ["Technology"]


@dataclass(slots=True)
class Technology:
    """
    One way of producing a good or delivering a service.

    Unit cost at trial prices::

        cost = non_energy_cost + sum(coef_g * p_g for g in inputs)

    In quantity mode (``quantity`` passed to `evaluate`) the technology
    delivers what its parent allocated to it. Otherwise it produces
    ``production.output(output_price - cost)``. Either way it demands
    ``output * coef_g`` of each input good.

    Parameters
    ----------
    name : str
        Technology name, unique within its subsector.
    inputs : Mapping[str, float]
        Input coefficient per good (units of input per unit of output).
    non_energy_cost : float
        Cost per unit of output not tied to any market.
    shareweight : float
        Weight of the technology in its subsector's share rule.
    production : ProductionFunction or None
        Supply curve for price-driven output.
    """

    name: str
    inputs: Mapping[str, float] = field(default_factory=dict)
    non_energy_cost: float = 0.0
    shareweight: float = 1.0
    production: ProductionFunction | None = None

    @classmethod
    def from_spec(cls, spec: Mapping[str, Any]) -> Technology:
        try:
            name = str(spec["name"])
        except KeyError:
            raise StructuralError("technology without a 'name'") from None
        production = spec.get("production")
        return cls(
            name=name,
            inputs={str(g): float(c) for g, c in (spec.get("inputs") or {}).items()},
            non_energy_cost=float(spec.get("non_energy_cost", 0.0)),
            shareweight=float(spec.get("shareweight", 1.0)),
            production=(
                None if production is None else build_production_function(production)
            ),
        )

    def unit_cost(self, prices: RegionPriceView) -> float:
        cost = self.non_energy_cost
        for good, coef in self.inputs.items():
            cost += coef * prices.price(good)
        return cost

    def evaluate(
        self,
        period: int,
        prices: RegionPriceView,
        *,
        inputs: PeriodInputs,
        output_price: float | None = None,
        quantity: float | None = None,
        share: float = 1.0,
    ) -> TechnologyOutput:
        """
        Compute output and input demands at the trial *prices*.

        Raises
        ------
        StructuralError
            In price mode without a production function.
        """
        cost = self.unit_cost(prices)
        if quantity is None:
            if self.production is None or output_price is None:
                raise StructuralError(
                    f"technology {self.name!r} has no production function "
                    "and no allocated quantity"
                )
            quantity = self.production.output(output_price - cost, inputs)

        return TechnologyOutput(
            name=self.name,
            output=quantity,
            cost=cost,
            share=share,
            inputs={good: quantity * coef for good, coef in self.inputs.items()},
        )
