"""
Per-period convergence records.

These are the recoverable outcomes of a solve: non-convergence and
numeric degeneracy never abort a run, they are written here for the
caller to inspect (and optionally escalate).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ScenarioState(str, Enum):
    """Run-loop state machine of a Scenario."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    PERIOD_COMMITTED = "period_committed"
    COMPLETED = "completed"


@dataclass(slots=True, frozen=True)
class NumericIssue:
    """A non-finite price or quantity seen during one solver iteration."""

    market: str
    iteration: int
    price: float
    excess_demand: float


@dataclass(slots=True, frozen=True)
class PeriodStatus:
    """
    Convergence outcome of one committed period.

    Attributes
    ----------
    period : int
        Period index.
    year : int
        Calendar year of the period.
    converged : bool
        ``True`` when every solvable market cleared within tolerance.
    iterations : int
        Number of world evaluations spent.
    unsolved : tuple[str, ...]
        Names of markets that did not clear (empty when converged).
    numeric_issues : tuple[NumericIssue, ...]
        Non-finite values encountered and repaired during the solve.
    """

    period: int
    year: int
    converged: bool
    iterations: int
    unsolved: tuple[str, ...] = ()
    numeric_issues: tuple[NumericIssue, ...] = field(default_factory=tuple)

    @property
    def degenerate(self) -> bool:
        return len(self.numeric_issues) > 0
