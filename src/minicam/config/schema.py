"""
Configuration dataclass for scenario run parameters.

Config instances are created by Scenario.init() after merging the
package defaults, the user config and keyword overrides, and after
ConfigValidator has checked the merged dict.

Design Notes
------------
- Immutable (frozen=True) to prevent accidental modification
- Memory-efficient (slots=True)
- Simple dataclass, no methods - validation happens in ConfigValidator

See Also
--------
ConfigValidator : Centralized validation for configuration parameters
minicam.scenario.Scenario.init : Creates Config from merged parameters
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True, frozen=True)
class Config:
    """
    Immutable run configuration.

    Parameters
    ----------
    max_iterations : int
        Solver budget of World evaluations per period (positive).
    tolerance : float
        Relative market-clearing tolerance (positive).
    bracket_interval : float
        Relative price step while bracketing (positive).
    solver_method : str
        ``"bisection"`` or ``"newton_bisection"``.
    initial_price : float
        Seed price of markets without an explicit ``initial_price``.
    ag_sector_active : bool
        Run and poll the agricultural sub-model.
    abort_on_nonconvergence : bool
        Raise NonConvergenceError after committing a non-converged period.
    n_workers : int
        Threads used to evaluate regions within one iteration.
    record_trace : bool
        Keep per-iteration solver records in the period results.
    pipeline_path : str or None
        Custom pipeline YAML; the packaged default when None.
    logging : dict
        ``default_level`` and per-event ``events`` levels.
    """

    max_iterations: int = 500
    tolerance: float = 1e-8
    bracket_interval: float = 0.5
    solver_method: str = "newton_bisection"
    initial_price: float = 1.0
    ag_sector_active: bool = False
    abort_on_nonconvergence: bool = False
    n_workers: int = 1
    record_trace: bool = False
    pipeline_path: str | None = None
    logging: dict[str, Any] = field(default_factory=dict)
