"""
Exception types raised by MiniCAM Engine.

Only contract violations are raised. Non-convergence and numeric
degeneracy are recoverable and recorded in ``minicam.status`` instead;
``NonConvergenceError`` exists for callers that opt into escalation
(``abort_on_nonconvergence``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from minicam.status import PeriodStatus


class MiniCamError(Exception):
    """Base class for all engine errors."""


class StructuralError(MiniCamError):
    """
    A market, region, sector or strategy was referenced but never registered.

    Indicates a malformed structural tree. Never caught inside the engine.
    """


class PeriodCommittedError(MiniCamError):
    """A committed (frozen) period was mutated."""


class NonConvergenceError(MiniCamError):
    """Raised after commit when the caller escalates a non-converged period."""

    def __init__(self, status: PeriodStatus) -> None:
        self.status = status
        super().__init__(
            f"period {status.period} ({status.year}) did not converge after "
            f"{status.iterations} iterations; unsolved: {list(status.unsolved)}"
        )
