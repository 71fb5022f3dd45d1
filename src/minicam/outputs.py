"""
Output tree of one aggregation pass.

Every node of the Region -> Sector -> Subsector -> Technology hierarchy
returns one of these frozen records from ``evaluate``. Quantities flow
bottom-up through them; only the World posts them to the Marketplace.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace


def _sum_inputs(children: tuple, attr: str = "inputs") -> dict[str, float]:
    total: dict[str, float] = defaultdict(float)
    for child in children:
        for good, amount in getattr(child, attr).items():
            total[good] += amount
    return dict(total)


@dataclass(slots=True, frozen=True)
class TechnologyOutput:
    """
    Leaf record.

    Attributes
    ----------
    name : str
        Technology name.
    output : float
        Output produced (supply sector) or service delivered (demand sector).
    cost : float
        Unit cost at the trial prices.
    share : float
        Share of the technology in its subsector's output.
    inputs : Mapping[str, float]
        Quantity demanded per input good.
    """

    name: str
    output: float
    cost: float
    share: float
    inputs: Mapping[str, float] = field(default_factory=dict)

    def scaled(self, factor: float) -> TechnologyOutput:
        return replace(
            self,
            output=self.output * factor,
            inputs={good: q * factor for good, q in self.inputs.items()},
        )


@dataclass(slots=True, frozen=True)
class SubsectorOutput:
    name: str
    output: float
    cost: float
    share: float
    technologies: tuple[TechnologyOutput, ...] = ()

    @property
    def inputs(self) -> dict[str, float]:
        return _sum_inputs(self.technologies)

    def scaled(self, factor: float) -> SubsectorOutput:
        return replace(
            self,
            output=self.output * factor,
            technologies=tuple(t.scaled(factor) for t in self.technologies),
        )


@dataclass(slots=True, frozen=True)
class SectorOutput:
    """
    Sector record.

    ``good`` is the commodity produced by a supply sector, or the service
    name (the sector name) of a demand sector; ``price`` is the market
    price of that good or the service price respectively.
    """

    name: str
    kind: str
    good: str
    output: float
    price: float
    cost: float
    subsectors: tuple[SubsectorOutput, ...] = ()

    @property
    def inputs(self) -> dict[str, float]:
        return _sum_inputs(self.subsectors)

    @property
    def is_supply(self) -> bool:
        return self.kind == "supply"

    def scaled(self, factor: float) -> SectorOutput:
        return replace(
            self,
            output=self.output * factor,
            subsectors=tuple(s.scaled(factor) for s in self.subsectors),
        )

    def technologies(self) -> Iterator[tuple[SubsectorOutput, TechnologyOutput]]:
        for sub in self.subsectors:
            for tech in sub.technologies:
                yield sub, tech


@dataclass(slots=True, frozen=True)
class RegionOutput:
    """
    Region record and the region's market contributions.

    ``supply`` and ``demand`` are derived from the sector records (plus
    the agricultural sub-model's polled output), so the amounts posted to
    the Marketplace always equal the sum over the tree.
    """

    name: str
    sectors: tuple[SectorOutput, ...] = ()
    ag_supply: Mapping[str, float] = field(default_factory=dict)
    ag_demand: Mapping[str, float] = field(default_factory=dict)

    @property
    def supply(self) -> dict[str, float]:
        total: dict[str, float] = defaultdict(float)
        for sector in self.sectors:
            if sector.is_supply:
                total[sector.good] += sector.output
        for good, amount in self.ag_supply.items():
            total[good] += amount
        return dict(total)

    @property
    def demand(self) -> dict[str, float]:
        total: dict[str, float] = defaultdict(float, _sum_inputs(self.sectors))
        for good, amount in self.ag_demand.items():
            total[good] += amount
        return dict(total)

    def get_sector(self, name: str) -> SectorOutput:
        for sector in self.sectors:
            if sector.name == name:
                return sector
        raise KeyError(f"region {self.name!r} has no sector {name!r}")
