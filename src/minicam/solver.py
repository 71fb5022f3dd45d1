"""
Market-clearing solver for one period.

Each iteration evaluates the World at the posted trial prices, computes
excess demand ``ED = D - S`` per market and adjusts the price of every
solvable market that has not cleared. All markets are updated at once
with vectorised numpy operations.

Price update
------------
Bracketing
    Until a sign change of ED has been seen, the price moves
    geometrically by ``1 + bracket_interval``: up when ``ED > 0``, down
    otherwise. A downward step below ``TINY_NUM`` brackets the market at
    zero.
Bisection
    Once bracketed, the next price is the bracket midpoint (``bisection``)
    or a secant step through the two bracket ends when it lands strictly
    inside the bracket (``newton_bisection``, with the Illinois weighting
    of a retained end). The evaluated point replaces the bracket end with
    the same ED sign, so the bracket width strictly decreases.

A bracket that collapses without clearing (typically because the
equilibrium of a market moved with the prices of other markets) loses
its stale end. The end just evaluated is kept and the market is
bracketed again with a step of ``REBRACKET_FRACTION * bracket_interval``
that doubles on every move without a sign change, up to
``bracket_interval``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from minicam.helpers import (
    EQUAL_EPS,
    SMALL_NUM,
    TINY_NUM,
    relative_excess,
    valid_mask,
)
from minicam.logging import DEEP_DEBUG, getLogger
from minicam.outputs import RegionOutput
from minicam.status import NumericIssue
from minicam.typing import Bool1D, Float1D

if TYPE_CHECKING:
    from minicam.marketplace import Marketplace
    from minicam.world import World

__all__ = ["Solver", "SolverResult", "IterationRecord", "SOLVER_METHODS"]

log = getLogger(__name__)

SOLVER_METHODS = ("bisection", "newton_bisection")

REBRACKET_FRACTION = 1e-3


@dataclass(slots=True, frozen=True)
class IterationRecord:
    """
    Market state after one solver iteration.

    ``bracket_width`` is ``upper - lower`` and NaN for markets without a
    complete bracket.
    """

    iteration: int
    prices: Float1D
    excess_demand: Float1D
    bracket_width: Float1D
    solved: Bool1D


@dataclass(slots=True, frozen=True)
class SolverResult:
    """
    Outcome of `Solver.solve`.

    Attributes
    ----------
    period : int
        Period solved.
    converged : bool
        Every solvable market cleared within tolerance.
    iterations : int
        World evaluations spent.
    unsolved : tuple[str, ...]
        Names of markets left uncleared.
    numeric_issues : tuple[NumericIssue, ...]
        Non-finite prices or excess demands met on the way.
    outputs : tuple[RegionOutput, ...]
        Output tree of the last evaluation (consistent with the posted
        prices and quantities).
    trace : tuple[IterationRecord, ...]
        Per-iteration records, empty unless tracing was enabled.
    """

    period: int
    converged: bool
    iterations: int
    unsolved: tuple[str, ...] = ()
    numeric_issues: tuple[NumericIssue, ...] = ()
    outputs: tuple[RegionOutput, ...] = ()
    trace: tuple[IterationRecord, ...] = ()


class Solver:
    """
    Bracket-and-bisect market solver.

    Parameters
    ----------
    max_iterations : int
        Budget of World evaluations per period.
    tolerance : float
        Relative clearing tolerance, see `Marketplace.check_clearance`.
    bracket_interval : float
        Relative price step of the bracketing phase.
    method : {"bisection", "newton_bisection"}
        Step used inside a complete bracket.
    record_trace : bool
        Keep an `IterationRecord` per iteration.
    """

    def __init__(
        self,
        max_iterations: int = 500,
        tolerance: float = 1e-8,
        bracket_interval: float = 0.5,
        method: str = "newton_bisection",
        record_trace: bool = False,
    ) -> None:
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")
        if tolerance <= 0:
            raise ValueError(f"tolerance must be positive, got {tolerance}")
        if bracket_interval <= 0:
            raise ValueError(f"bracket_interval must be positive, got {bracket_interval}")
        if method not in SOLVER_METHODS:
            raise ValueError(f"method must be one of {SOLVER_METHODS}, got {method!r}")
        self.max_iterations = int(max_iterations)
        self.tolerance = float(tolerance)
        self.bracket_interval = float(bracket_interval)
        self.method = method
        self.record_trace = bool(record_trace)

    @classmethod
    def from_config(cls, cfg: Any) -> Solver:
        return cls(
            max_iterations=cfg.max_iterations,
            tolerance=cfg.tolerance,
            bracket_interval=cfg.bracket_interval,
            method=cfg.solver_method,
            record_trace=cfg.record_trace,
        )

    def solve(self, period: int, marketplace: Marketplace, world: World) -> SolverResult:
        """
        Find clearing prices for *period*.

        Starts from the prices already posted for the period (see
        `Marketplace.init_prices`). Leaves the last evaluated prices,
        quantities, solved flags and brackets posted on the marketplace.
        Running out of iterations is reported through
        ``SolverResult.converged``, never raised.
        """
        n = marketplace.n_markets
        solvable = marketplace.solvable
        names = marketplace.market_names

        lower = np.full(n, np.nan)
        upper = np.full(n, np.nan)
        ed_lower = np.full(n, np.nan)
        ed_upper = np.full(n, np.nan)
        last_side = np.zeros(n, dtype=np.int8)
        stretch = np.full(n, self.bracket_interval)
        last_valid = marketplace.prices(period)

        issues: list[NumericIssue] = []
        trace: list[IterationRecord] = []
        outputs: tuple[RegionOutput, ...] = ()
        solved = ~solvable
        converged = False
        iteration = 0

        for iteration in range(1, self.max_iterations + 1):
            marketplace.reset_to_zero(period)
            outputs = world.evaluate(period, marketplace)

            prices = marketplace.prices(period)
            with np.errstate(invalid="ignore"):
                ed = marketplace.excess_demand(period)

            bad = ~(valid_mask(prices) & valid_mask(ed))
            if bad.any():
                for i in np.flatnonzero(bad):
                    issues.append(
                        NumericIssue(
                            market=names[i],
                            iteration=iteration,
                            price=float(prices[i]),
                            excess_demand=float(ed[i]),
                        )
                    )
                    log.warning(
                        "NumericDegeneracy in %s at iteration %d "
                        "(price=%g, excess demand=%g); restoring price %g",
                        names[i], iteration, prices[i], ed[i], last_valid[i],
                    )
                prices = np.where(bad, last_valid, prices)
                marketplace.set_prices(period, prices)
            last_valid = prices

            cleared = marketplace.check_clearance(period, self.tolerance) & ~bad
            solved = cleared | ~solvable
            marketplace.set_solved(period, solved)

            active = ~solved & ~bad & solvable
            raise_price = ed > 0
            to_lower = active & raise_price
            to_upper = active & ~raise_price
            both = ~np.isnan(lower) & ~np.isnan(upper)

            # Illinois weighting: an end retained twice in a row has its ED halved
            side = np.where(to_lower, 1, np.where(to_upper, -1, 0)).astype(np.int8)
            repeat = both & (side != 0) & (side == last_side)
            ed_upper = np.where(repeat & to_lower, 0.5 * ed_upper, ed_upper)
            ed_lower = np.where(repeat & to_upper, 0.5 * ed_lower, ed_lower)
            last_side = np.where(both, side, 0).astype(np.int8)

            lower = np.where(to_lower, prices, lower)
            ed_lower = np.where(to_lower, ed, ed_lower)
            upper = np.where(to_upper, prices, upper)
            ed_upper = np.where(to_upper, ed, ed_upper)
            marketplace.set_brackets(period, lower, upper)

            if self.record_trace:
                trace.append(
                    IterationRecord(
                        iteration=iteration,
                        prices=prices.copy(),
                        excess_demand=ed.copy(),
                        bracket_width=upper - lower,
                        solved=solved.copy(),
                    )
                )
            if log.isEnabledFor(DEEP_DEBUG) and n:
                rel = relative_excess(
                    marketplace.supply[:, period], marketplace.demand[:, period]
                )
                log.deep(
                    "  iteration %d: %d/%d markets solved, max relative |ED| = %g",
                    iteration, int(solved.sum()), n,
                    float(np.nanmax(np.abs(np.where(solved, 0.0, rel)))),
                )

            if solved.all():
                converged = True
                break
            if iteration == self.max_iterations:
                break

            new_prices, lower, upper, ed_lower, ed_upper, stretch = self._next_prices(
                prices, ed, active, lower, upper, ed_lower, ed_upper, stretch
            )
            marketplace.set_prices(period, new_prices, where=active)

        unsolved = tuple(names[i] for i in np.flatnonzero(~solved))
        if converged:
            log.debug("Period %d converged in %d iterations", period, iteration)
        else:
            log.warning(
                "NonConvergenceWarning: period %d did not converge in %d "
                "iterations; unsolved markets: %s",
                period, iteration, list(unsolved),
            )

        return SolverResult(
            period=period,
            converged=converged,
            iterations=iteration,
            unsolved=unsolved,
            numeric_issues=tuple(issues),
            outputs=outputs,
            trace=tuple(trace),
        )

    def _next_prices(
        self,
        prices: Float1D,
        ed: Float1D,
        active: Bool1D,
        lower: Float1D,
        upper: Float1D,
        ed_lower: Float1D,
        ed_upper: Float1D,
        stretch: Float1D | None = None,
    ) -> tuple[Float1D, Float1D, Float1D, Float1D, Float1D, Float1D]:
        """
        Next trial price of every active market and the updated brackets.

        ``stretch`` holds the relative bracketing step of every market
        (``bracket_interval`` when omitted) and is returned updated.
        """
        lower, upper = lower.copy(), upper.copy()
        ed_lower, ed_upper = ed_lower.copy(), ed_upper.copy()
        if stretch is None:
            stretch = np.full(prices.shape, self.bracket_interval)
        else:
            stretch = stretch.copy()

        bracketed = ~np.isnan(lower) & ~np.isnan(upper)
        collapsed = (
            active
            & bracketed
            & (upper - lower <= EQUAL_EPS * np.maximum(1.0, np.abs(upper)))
        )
        if collapsed.any():
            # the end on the side of the current ED was evaluated this iteration
            stale_upper = collapsed & (ed > 0)
            stale_lower = collapsed & ~(ed > 0)
            upper[stale_upper] = np.nan
            ed_upper[stale_upper] = np.nan
            lower[stale_lower] = np.nan
            ed_lower[stale_lower] = np.nan
            stretch[collapsed] = REBRACKET_FRACTION * self.bracket_interval
            bracketed &= ~collapsed

        new = prices.copy()

        up = active & ~bracketed & (ed > 0)
        new[up] = np.maximum(prices[up] * (1.0 + stretch[up]), SMALL_NUM)

        down = active & ~bracketed & ~(ed > 0)
        new[down] = prices[down] / (1.0 + stretch[down])

        moved = up | down
        stretch[moved] = np.minimum(2.0 * stretch[moved], self.bracket_interval)

        floor = down & (new < TINY_NUM)
        if floor.any():
            lower[floor] = 0.0
            ed_lower[floor] = np.nan
            upper[floor] = np.where(np.isnan(upper[floor]), prices[floor], upper[floor])
            bracketed |= floor

        inside = active & bracketed
        mid = 0.5 * (lower + upper)
        new = np.where(inside, mid, new)
        if self.method == "newton_bisection":
            with np.errstate(divide="ignore", invalid="ignore"):
                secant = lower - ed_lower * (upper - lower) / (ed_upper - ed_lower)
            usable = inside & np.isfinite(secant) & (secant > lower) & (secant < upper)
            new = np.where(usable, secant, new)

        return new, lower, upper, ed_lower, ed_upper, stretch

    def __repr__(self) -> str:
        return (
            f"Solver(method={self.method!r}, max_iterations={self.max_iterations}, "
            f"tolerance={self.tolerance:g})"
        )
