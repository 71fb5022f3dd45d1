"""
Pluggable behaviour of hierarchy nodes.

Three strategy families, each selected by a ``kind`` name in the
structural tree:

ProductionFunction
    Technology output of a supply sector as a function of the net price
    (output price minus unit cost).
DemandFunction
    Final service demand of a demand sector as a function of the service
    price and the period inputs.
ShareRule
    Split of a parent quantity among children from their costs and
    share weights.

Subclasses register themselves on definition through the ``kind``
class keyword, the same way events do.

Examples
--------
>>> build_production_function({"kind": "linear", "slope": 1.0}).output(50.0, PeriodInputs(0))
50.0
>>> build_share_rule({"kind": "logit", "exponent": -2.0}).shares(
...     np.array([1.0, 2.0]), np.array([1.0, 1.0]))
array([0.8, 0.2])
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, ClassVar

import numpy as np

from minicam.core.registry import (
    _DEMAND_REGISTRY,
    _PRODUCTION_REGISTRY,
    _SHARE_RULE_REGISTRY,
    get_demand_function,
    get_production_function,
    get_share_rule,
)
from minicam.errors import StructuralError
from minicam.helpers import TINY_NUM
from minicam.typing import Float1D

__all__ = [
    "PeriodInputs",
    "ProductionFunction",
    "LinearSupply",
    "ConstantElasticitySupply",
    "FixedOutput",
    "DemandFunction",
    "LinearDemand",
    "FixedDemand",
    "IncomeElasticDemand",
    "ShareRule",
    "LogitShare",
    "FixedShare",
    "build_production_function",
    "build_demand_function",
    "build_share_rule",
]


@dataclass(slots=True, frozen=True)
class PeriodInputs:
    """
    Exogenous and prior-period data a sector sees while a period is solved.

    Attributes
    ----------
    period : int
        Period being solved.
    gdp_ratio : float
        Regional GDP of this period over the previous one (1 in period 0).
    prior_service : float or None
        Committed service output of the sector in the previous period.
    prior_price : float or None
        Committed service price of the sector in the previous period.
    """

    period: int
    gdp_ratio: float = 1.0
    prior_service: float | None = None
    prior_price: float | None = None


def _per_period(value: float | Sequence[float], period: int) -> float:
    if isinstance(value, tuple):
        return float(value[min(period, len(value) - 1)])
    return float(value)


def _freeze(value: Any) -> float | tuple[float, ...]:
    if isinstance(value, (list, tuple)):
        if len(value) == 0:
            raise StructuralError("per-period schedule must not be empty")
        return tuple(float(v) for v in value)
    return float(value)


def _build(registry_get: Any, what: str, spec: Mapping[str, Any] | None, default: str) -> Any:
    params = dict(spec or {})
    kind = str(params.pop("kind", default))
    cls = registry_get(kind)
    try:
        return cls(**params)
    except TypeError as exc:
        raise StructuralError(f"invalid parameters for {what} '{kind}': {exc}") from None


# production functions
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class ProductionFunction(ABC):
    """Output of one supply technology given its net price."""

    kind: ClassVar[str] = ""

    def __init_subclass__(cls, kind: str = "", **kwargs: Any) -> None:
        super(ProductionFunction, cls).__init_subclass__(**kwargs)
        if kind != "":
            cls.kind = kind
        if cls.kind:
            _PRODUCTION_REGISTRY[cls.kind] = cls

    @abstractmethod
    def output(self, net_price: float, inputs: PeriodInputs) -> float:
        """Quantity produced when the producer nets *net_price* per unit."""


@dataclass(slots=True, frozen=True)
class LinearSupply(ProductionFunction, kind="linear"):
    """``q = max(0, intercept + slope * net_price)``"""

    intercept: float = 0.0
    slope: float = 1.0

    def output(self, net_price: float, inputs: PeriodInputs) -> float:
        return max(0.0, self.intercept + self.slope * net_price)


@dataclass(slots=True, frozen=True)
class ConstantElasticitySupply(ProductionFunction, kind="constant_elasticity"):
    """
    ``q = base_output * (net_price / base_price) ** elasticity``

    Zero output at non-positive net prices.
    """

    base_output: float
    base_price: float = 1.0
    elasticity: float = 1.0

    def __post_init__(self) -> None:
        if self.base_price <= 0:
            raise StructuralError(f"base_price must be positive, got {self.base_price}")

    def output(self, net_price: float, inputs: PeriodInputs) -> float:
        if net_price <= 0.0:
            return 0.0
        return self.base_output * (net_price / self.base_price) ** self.elasticity


@dataclass(slots=True, frozen=True)
class FixedOutput(ProductionFunction, kind="fixed"):
    """Perfectly inelastic output; *quantity* may be a per-period schedule."""

    quantity: float | tuple[float, ...] = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", _freeze(self.quantity))

    def output(self, net_price: float, inputs: PeriodInputs) -> float:
        return _per_period(self.quantity, inputs.period)


# demand functions
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class DemandFunction(ABC):
    """Final service demand given the service price."""

    kind: ClassVar[str] = ""

    def __init_subclass__(cls, kind: str = "", **kwargs: Any) -> None:
        super(DemandFunction, cls).__init_subclass__(**kwargs)
        if kind != "":
            cls.kind = kind
        if cls.kind:
            _DEMAND_REGISTRY[cls.kind] = cls

    @abstractmethod
    def demand(self, price: float, inputs: PeriodInputs) -> float:
        """Service demanded at *price*."""


@dataclass(slots=True, frozen=True)
class LinearDemand(DemandFunction, kind="linear"):
    """``d = max(0, intercept - slope * price)``"""

    intercept: float = 100.0
    slope: float = 1.0

    def demand(self, price: float, inputs: PeriodInputs) -> float:
        return max(0.0, self.intercept - self.slope * price)


@dataclass(slots=True, frozen=True)
class FixedDemand(DemandFunction, kind="fixed"):
    """Perfectly inelastic demand; *quantity* may be a per-period schedule."""

    quantity: float | tuple[float, ...] = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", _freeze(self.quantity))

    def demand(self, price: float, inputs: PeriodInputs) -> float:
        return _per_period(self.quantity, inputs.period)


@dataclass(slots=True, frozen=True)
class IncomeElasticDemand(DemandFunction, kind="income_elastic"):
    """
    Service demand driven by income growth and the service price.

    Period 0 is calibrated on ``base_service`` at ``base_price``. Later
    periods grow from the committed service of the previous period::

        D_t = D_{t-1} * (GDP_t / GDP_{t-1}) ** income_elasticity
                      * (P_t / P_{t-1}) ** price_elasticity
    """

    base_service: float
    base_price: float = 1.0
    price_elasticity: float = -0.5
    income_elasticity: float = 1.0

    def demand(self, price: float, inputs: PeriodInputs) -> float:
        if inputs.prior_service is None or inputs.prior_price is None:
            anchor, anchor_price = self.base_service, self.base_price
        else:
            anchor, anchor_price = inputs.prior_service, inputs.prior_price
        price = max(price, TINY_NUM)
        anchor_price = max(anchor_price, TINY_NUM)
        return (
            anchor
            * inputs.gdp_ratio**self.income_elasticity
            * (price / anchor_price) ** self.price_elasticity
        )


# share rules
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class ShareRule(ABC):
    """Allocation of a parent quantity among competing children."""

    kind: ClassVar[str] = ""

    def __init_subclass__(cls, kind: str = "", **kwargs: Any) -> None:
        super(ShareRule, cls).__init_subclass__(**kwargs)
        if kind != "":
            cls.kind = kind
        if cls.kind:
            _SHARE_RULE_REGISTRY[cls.kind] = cls

    @abstractmethod
    def shares(self, costs: Float1D, weights: Float1D) -> Float1D:
        """Return shares summing to 1 (all zeros when every weight is zero)."""


def _normalise(raw: Float1D) -> Float1D:
    total = raw.sum()
    if not total > 0.0:
        return np.zeros_like(raw)
    return raw / total


@dataclass(slots=True, frozen=True)
class LogitShare(ShareRule, kind="logit"):
    """
    Power-form logit: ``s_i ~ w_i * c_i ** exponent``.

    A negative exponent favours cheaper children; costs are floored at
    ``TINY_NUM``.
    """

    exponent: float = -3.0

    def shares(self, costs: Float1D, weights: Float1D) -> Float1D:
        costs = np.maximum(np.asarray(costs, dtype=np.float64), TINY_NUM)
        weights = np.asarray(weights, dtype=np.float64)
        positive = weights > 0.0
        if not positive.any():
            return np.zeros_like(costs)
        with np.errstate(over="ignore", invalid="ignore"):
            raw = np.where(positive, weights * costs**self.exponent, 0.0)
        if not np.isfinite(raw).all():
            # a vanishing cost dominates: split among the cheapest weighted children
            cheapest = (costs == costs[positive].min()) & positive
            raw = np.where(cheapest, weights, 0.0)
        return _normalise(raw)


@dataclass(slots=True, frozen=True)
class FixedShare(ShareRule, kind="fixed"):
    """Shares proportional to the share weights, independent of cost."""

    def shares(self, costs: Float1D, weights: Float1D) -> Float1D:
        return _normalise(np.asarray(weights, dtype=np.float64))


# builders
# ---------------------------------------------------------------------------
def build_production_function(spec: Mapping[str, Any] | None) -> ProductionFunction:
    """Build a production function from ``{"kind": ..., **params}``."""
    return _build(get_production_function, "production function", spec, "linear")


def build_demand_function(spec: Mapping[str, Any] | None) -> DemandFunction:
    """Build a demand function from ``{"kind": ..., **params}``."""
    return _build(get_demand_function, "demand function", spec, "linear")


def build_share_rule(spec: Mapping[str, Any] | None) -> ShareRule:
    """Build a share rule from ``{"kind": ..., **params}`` (default: logit)."""
    return _build(get_share_rule, "share rule", spec, "logit")
