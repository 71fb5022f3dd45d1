"""Region: a set of sectors sharing one price view and one GDP path."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from minicam.errors import StructuralError
from minicam.helpers import is_equal
from minicam.logging import getLogger
from minicam.marketplace import RegionPriceView
from minicam.outputs import RegionOutput, SectorOutput
from minicam.sector import Sector

if TYPE_CHECKING:
    from minicam.agsector import AgContribution

__all__ = ["Region"]

log = getLogger(__name__)


@dataclass(slots=True)
class Region:
    """
    Owns the sectors of one region.

    Parameters
    ----------
    name : str
        Region name, unique in the World.
    sectors : list[Sector]
        Sectors in evaluation order.
    gdp : tuple[float, ...]
        Exogenous GDP index per period. Empty means a flat path.
    caps : Mapping[str, float]
        Upper bound on the region's sector supply of a good. A binding cap
        scales every supply sector of that good down proportionally.
    """

    name: str
    sectors: list[Sector]
    gdp: tuple[float, ...] = ()
    caps: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        names = [s.name for s in self.sectors]
        if len(set(names)) != len(names):
            raise StructuralError(
                f"duplicate sector names in region {self.name!r}: {names}"
            )
        for good, cap in self.caps.items():
            if cap < 0:
                raise StructuralError(
                    f"region {self.name!r}: cap on {good!r} must be >= 0, got {cap}"
                )

    @classmethod
    def from_spec(cls, spec: Mapping[str, Any]) -> Region:
        try:
            name = str(spec["name"])
        except KeyError:
            raise StructuralError("region without a 'name'") from None
        return cls(
            name=name,
            sectors=[Sector.from_spec(s) for s in spec.get("sectors", [])],
            gdp=tuple(float(g) for g in spec.get("gdp") or ()),
            caps={str(g): float(c) for g, c in (spec.get("caps") or {}).items()},
        )

    def get_sector(self, name: str) -> Sector:
        for sector in self.sectors:
            if sector.name == name:
                return sector
        raise StructuralError(f"region {self.name!r} has no sector {name!r}")

    def supplied_goods(self) -> set[str]:
        return {s.good for s in self.sectors if s.is_supply}  # type: ignore[misc]

    def input_goods(self) -> set[str]:
        goods: set[str] = set()
        for sector in self.sectors:
            goods |= sector.input_goods()
        return goods

    def gdp_ratio(self, period: int) -> float:
        """GDP growth factor from ``period - 1`` to *period* (1 for period 0)."""
        if period == 0 or len(self.gdp) < 2:
            return 1.0
        prev = self.gdp[min(period - 1, len(self.gdp) - 1)]
        cur = self.gdp[min(period, len(self.gdp) - 1)]
        if prev < 0 or is_equal(prev, 0.0):
            raise StructuralError(
                f"region {self.name!r}: GDP must be positive, got {prev} "
                f"in period {period - 1}"
            )
        return cur / prev

    def derive_period_inputs(
        self, period: int, prior: RegionOutput | None = None
    ) -> None:
        """Hand every sector its inputs for *period*."""
        ratio = self.gdp_ratio(period)
        for sector in self.sectors:
            prior_sector = None
            if prior is not None:
                try:
                    prior_sector = prior.get_sector(sector.name)
                except KeyError:
                    prior_sector = None
            sector.derive_period_inputs(period, gdp_ratio=ratio, prior=prior_sector)

    def _apply_caps(self, sectors: Sequence[SectorOutput]) -> list[SectorOutput]:
        out = list(sectors)
        for good, cap in self.caps.items():
            idx = [i for i, s in enumerate(out) if s.is_supply and s.good == good]
            total = sum(out[i].output for i in idx)
            if total > cap:
                factor = cap / total
                log.debug(
                    "  %s: cap on %s binds (%.6g > %.6g), scaling by %.6g",
                    self.name, good, total, cap, factor,
                )
                for i in idx:
                    out[i] = out[i].scaled(factor)
        return out

    def evaluate(
        self,
        period: int,
        prices: RegionPriceView,
        ag: AgContribution | None = None,
    ) -> RegionOutput:
        """
        Evaluate all sectors at the trial *prices*.

        Parameters
        ----------
        period : int
            Period being solved.
        prices : RegionPriceView
            Trial prices resolved to this region's markets.
        ag : AgContribution, optional
            Polled agricultural supply and demand for this region.

        Returns
        -------
        RegionOutput
            Sector records (caps applied) and the region's contributions.
        """
        sectors = self._apply_caps([s.evaluate(period, prices) for s in self.sectors])
        return RegionOutput(
            name=self.name,
            sectors=tuple(sectors),
            ag_supply=dict(ag.supply) if ag is not None else {},
            ag_demand=dict(ag.demand) if ag is not None else {},
        )
