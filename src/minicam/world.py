"""
World: the fixed set of regions of a scenario.

The World is the only component that posts quantities to the
Marketplace. Regions return their contributions functionally, so they
can be evaluated in any order (or concurrently) and still be posted in
region order.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from minicam.agsector import AgContribution, AgSubModel
from minicam.errors import StructuralError
from minicam.logging import getLogger
from minicam.marketplace import Marketplace, RegionPriceView
from minicam.outputs import RegionOutput
from minicam.region import Region
from minicam.typing import MarketKey

__all__ = ["World"]

log = getLogger(__name__)


class World:
    """
    Owns the regions and resolves which market each region trades in.

    Parameters
    ----------
    regions : Sequence[Region]
        Regions in evaluation (and posting) order.
    n_workers : int
        Regions evaluated concurrently within one iteration when > 1. The
        thread pool is created on first use and kept until `close`.
    """

    def __init__(self, regions: Sequence[Region], *, n_workers: int = 1) -> None:
        names = [r.name for r in regions]
        if len(set(names)) != len(names):
            raise StructuralError(f"duplicate region names: {names}")
        self.regions: list[Region] = list(regions)
        self.n_workers = int(n_workers)
        self.ag_model: AgSubModel | None = None
        self._markets: dict[str, dict[str, MarketKey]] = {r.name: {} for r in regions}
        self._pool: ThreadPoolExecutor | None = None

    @classmethod
    def from_spec(cls, specs: Sequence[Mapping[str, Any]], **kwargs: Any) -> World:
        return cls([Region.from_spec(s) for s in specs], **kwargs)

    @property
    def region_names(self) -> list[str]:
        return [r.name for r in self.regions]

    def get_region(self, name: str) -> Region:
        for region in self.regions:
            if region.name == name:
                return region
        raise StructuralError(f"no region named {name!r}")

    def market_for(self, region: str, good: str) -> MarketKey:
        """Market key *region* trades *good* in."""
        try:
            return self._markets[region][good]
        except KeyError:
            raise StructuralError(
                f"region {region!r} trades no market for good {good!r}"
            ) from None

    # setup
    # ---------------------------------------------------------------------
    def complete_init(
        self,
        marketplace: Marketplace,
        market_specs: Sequence[Mapping[str, Any]] = (),
    ) -> None:
        """
        Register every market and bind each region's goods to a market.

        Explicit market specs are registered first; a spec's ``members``
        (default: its own region) trade the good there. Goods produced by
        a region's supply sectors without an explicit market get a
        regional market. Every consumed good must resolve to a market.

        Raises
        ------
        StructuralError
            Unknown member region, a region bound twice to a good, or a
            consumed good without a market.
        """
        known = set(self.region_names)
        for spec in market_specs:
            try:
                good = str(spec["good"])
                owner = str(spec["region"])
            except KeyError as exc:
                raise StructuralError(f"market spec missing {exc}: {dict(spec)}") from None
            members = [str(m) for m in spec.get("members") or [owner]]
            market = marketplace.create_market(
                owner,
                good,
                initial_price=spec.get("initial_price"),
                solve=bool(spec.get("solve", True)),
            )
            for member in members:
                if member not in known:
                    raise StructuralError(
                        f"market {market.name} lists unknown member region {member!r}"
                    )
                if good in self._markets[member]:
                    raise StructuralError(
                        f"region {member!r} is bound to two markets for good {good!r}"
                    )
                self._markets[member][good] = market.key

        for region in self.regions:
            bound = self._markets[region.name]
            for good in sorted(region.supplied_goods()):
                if good not in bound:
                    market = marketplace.create_market(region.name, good)
                    bound[good] = market.key

        for region in self.regions:
            needed = region.input_goods()
            if self.ag_model is not None:
                needed |= self.ag_model.traded_goods(region.name)
            missing = sorted(needed - set(self._markets[region.name]))
            if missing:
                raise StructuralError(
                    f"region {region.name!r} consumes goods without a market: {missing}"
                )

        log.info(
            "World initialised: %d regions, %d markets",
            len(self.regions), marketplace.n_markets,
        )

    # evaluation
    # ---------------------------------------------------------------------
    def _evaluate_region(
        self, region: Region, period: int, views: Mapping[str, RegionPriceView]
    ) -> RegionOutput:
        ag: AgContribution | None = None
        if self.ag_model is not None:
            ag = self.ag_model.contributions(region.name, period)
        return region.evaluate(period, views[region.name], ag)

    def evaluate(self, period: int, marketplace: Marketplace) -> tuple[RegionOutput, ...]:
        """
        Evaluate every region at the posted prices and post the results.

        Supply and demand are accumulated onto the marketplace; the
        caller resets them beforehand.

        Returns
        -------
        tuple[RegionOutput, ...]
            Output tree of each region, in region order.
        """
        vector = marketplace.price_vector(period)
        views = {
            name: RegionPriceView(region=name, markets=goods, vector=vector)
            for name, goods in self._markets.items()
        }

        if self.n_workers > 1 and len(self.regions) > 1:
            if self._pool is None:
                log.debug("Starting region pool with %d workers", self.n_workers)
                self._pool = ThreadPoolExecutor(
                    max_workers=self.n_workers, thread_name_prefix="minicam-region"
                )
            outputs = tuple(
                self._pool.map(
                    lambda r: self._evaluate_region(r, period, views),
                    self.regions,
                )
            )
        else:
            outputs = tuple(
                self._evaluate_region(r, period, views) for r in self.regions
            )

        for out in outputs:
            self.post(out, period, marketplace)
        return outputs

    def close(self) -> None:
        """Shut down the region pool, if one was started."""
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def post(self, output: RegionOutput, period: int, marketplace: Marketplace) -> None:
        """Post one region's contributions exactly once."""
        for good, amount in output.supply.items():
            marketplace.add_to_supply(*self.market_for(output.name, good), period, amount)
        for good, amount in output.demand.items():
            marketplace.add_to_demand(*self.market_for(output.name, good), period, amount)

    def derive_period_inputs(
        self, period: int, prior: Sequence[RegionOutput] | None = None
    ) -> None:
        by_name = {r.name: r for r in prior or ()}
        for region in self.regions:
            region.derive_period_inputs(period, by_name.get(region.name))

    def __repr__(self) -> str:
        return f"World(regions={self.region_names}, n_workers={self.n_workers})"
