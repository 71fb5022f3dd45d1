"""
Agricultural sub-model seam.

The agricultural sub-model is an opaque sub-solver: it runs once per
scenario (in the first period) over the whole time horizon, and its
per-region, per-period supply and demand are then polled during every
market evaluation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from minicam.errors import StructuralError
from minicam.helpers import is_valid_number, search_for_value
from minicam.logging import getLogger
from minicam.modeltime import ModelTime

__all__ = ["AgContribution", "AgSubModel", "TableAgModel", "build_ag_model"]

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class AgContribution:
    """Agricultural supply and demand of one region in one period."""

    supply: Mapping[str, float] = field(default_factory=dict)
    demand: Mapping[str, float] = field(default_factory=dict)


class AgSubModel(ABC):
    """Interface of an agricultural sub-model."""

    @abstractmethod
    def traded_goods(self, region: str) -> set[str]:
        """Goods the sub-model supplies or demands in *region*."""

    @abstractmethod
    def run(self, modeltime: ModelTime, regions: Sequence[str]) -> None:
        """Solve the sub-model for every period of *modeltime*."""

    @property
    @abstractmethod
    def has_run(self) -> bool: ...

    @abstractmethod
    def contributions(self, region: str, period: int) -> AgContribution:
        """
        Polled output for *region* in *period*.

        Raises
        ------
        RuntimeError
            If called before `run`.
        """

    @abstractmethod
    def internal_output(self) -> dict[str, Any]:
        """Sub-model specific diagnostics."""


def _schedule(value: float | Sequence[float], n_periods: int) -> tuple[float, ...]:
    if isinstance(value, (list, tuple)):
        if not value:
            raise StructuralError("agricultural schedule must not be empty")
        values = [float(v) for v in value]
        values += [values[-1]] * (n_periods - len(values))
        values = values[:n_periods]
    else:
        values = [float(value)] * n_periods
    if not all(is_valid_number(v) for v in values):
        raise StructuralError(f"agricultural schedule must be finite, got {value!r}")
    return tuple(values)


class TableAgModel(AgSubModel):
    """
    Agricultural sub-model driven by exogenous tables.

    Parameters
    ----------
    supply, demand : Mapping[str, Mapping[str, float | list[float]]]
        ``{region: {good: value}}``; a value is a scalar or a per-period
        schedule (the last entry is held for later periods).
    """

    def __init__(
        self,
        supply: Mapping[str, Mapping[str, Any]] | None = None,
        demand: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> None:
        self.supply_table = {r: dict(g) for r, g in (supply or {}).items()}
        self.demand_table = {r: dict(g) for r, g in (demand or {}).items()}
        self._supply: dict[str, dict[str, tuple[float, ...]]] | None = None
        self._demand: dict[str, dict[str, tuple[float, ...]]] | None = None
        self.n_runs = 0

    def traded_goods(self, region: str) -> set[str]:
        return set(self.supply_table.get(region, {})) | set(
            self.demand_table.get(region, {})
        )

    def run(self, modeltime: ModelTime, regions: Sequence[str]) -> None:
        unknown = (set(self.supply_table) | set(self.demand_table)) - set(regions)
        if unknown:
            raise StructuralError(
                f"agricultural tables reference unknown regions: {sorted(unknown)}"
            )
        n = modeltime.n_periods
        self._supply = {
            r: {g: _schedule(v, n) for g, v in goods.items()}
            for r, goods in self.supply_table.items()
        }
        self._demand = {
            r: {g: _schedule(v, n) for g, v in goods.items()}
            for r, goods in self.demand_table.items()
        }
        self.n_runs += 1
        log.info(
            "Agricultural sub-model solved for %d periods (%d regions)",
            n, len(set(self._supply) | set(self._demand)),
        )

    @property
    def has_run(self) -> bool:
        return self._supply is not None

    def contributions(self, region: str, period: int) -> AgContribution:
        if self._supply is None or self._demand is None:
            raise RuntimeError("agricultural sub-model polled before it was run")
        supply = search_for_value(self._supply, region, {})
        demand = search_for_value(self._demand, region, {})
        return AgContribution(
            supply={g: v[period] for g, v in supply.items()},
            demand={g: v[period] for g, v in demand.items()},
        )

    def internal_output(self) -> dict[str, Any]:
        return {
            "n_runs": self.n_runs,
            "supply": self._supply or {},
            "demand": self._demand or {},
        }


def build_ag_model(spec: Mapping[str, Any] | None) -> AgSubModel | None:
    """Build the sub-model named by ``spec["kind"]`` (only ``table``)."""
    if spec is None:
        return None
    params = dict(spec)
    kind = params.pop("kind", "table")
    if kind != "table":
        raise StructuralError(f"Unknown agricultural sub-model kind '{kind}'")
    try:
        return TableAgModel(**params)
    except TypeError as exc:
        raise StructuralError(
            f"invalid parameters for agricultural sub-model: {exc}"
        ) from None
