"""
MiniCAM Engine - Multi-period Market Equilibrium Solver
=======================================================

MiniCAM Engine solves, period by period, for the prices that clear
every market of a hierarchical economy (regions -> sectors ->
subsectors -> technologies), then carries the cleared state forward as
the input of the next period.

Quick Start
-----------
>>> import minicam
>>> scn = minicam.Scenario.init("structure.yml")
>>> results = scn.run()
>>> results.price("usa", "oil", 0)
>>> results.converged
True

Custom configuration via kwargs or a YAML file:

>>> scn = minicam.Scenario.init("structure.yml", tolerance=1e-10,
...                             solver_method="newton_bisection")
>>> scn = minicam.Scenario.init("structure.yml", config="run.yml")

Key Concepts
------------
**Marketplace**
  One market per ``(region, good)``; prices and quantities stored in
  NumPy arrays of shape ``(n_markets, n_periods)``.

**Hierarchy**
  Nodes return frozen output records. Only the World posts quantities
  to the Marketplace.

**Event Pipeline**
  Each period runs ``derive_period_inputs -> run_ag_submodel ->
  solve_markets -> commit_period``; the order can be changed from YAML.

**Strategies**
  Production functions, demand functions and share rules are picked by
  ``kind`` name and can be extended by subclassing.

Public API
----------
Scenario
    Build and run a scenario.
ScenarioResults
    Read accessors and pandas export of committed periods.
Marketplace, ModelTime, World, Solver
    Engine components owned by a Scenario.
Event, event, Pipeline
    Per-period event system.
"""

from minicam.agsector import AgContribution, AgSubModel, TableAgModel
from minicam.config import Config, ConfigValidator
from minicam.core import Event, Pipeline, event
from minicam.errors import (
    MiniCamError,
    NonConvergenceError,
    PeriodCommittedError,
    StructuralError,
)
from minicam.marketplace import Market, Marketplace, PriceVector
from minicam.modeltime import ModelTime
from minicam.region import Region
from minicam.results import ScenarioResults
from minicam.scenario import Scenario
from minicam.sector import Sector
from minicam.solver import Solver, SolverResult
from minicam.status import NumericIssue, PeriodStatus, ScenarioState
from minicam.strategies import (
    DemandFunction,
    PeriodInputs,
    ProductionFunction,
    ShareRule,
)
from minicam.subsector import Subsector
from minicam.technology import Technology
from minicam.world import World

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "AgContribution",
    "AgSubModel",
    "Config",
    "ConfigValidator",
    "DemandFunction",
    "Event",
    "Market",
    "Marketplace",
    "MiniCamError",
    "ModelTime",
    "NonConvergenceError",
    "NumericIssue",
    "PeriodCommittedError",
    "PeriodInputs",
    "PeriodStatus",
    "Pipeline",
    "PriceVector",
    "ProductionFunction",
    "Region",
    "Scenario",
    "ScenarioResults",
    "ScenarioState",
    "Sector",
    "ShareRule",
    "Solver",
    "SolverResult",
    "StructuralError",
    "Subsector",
    "TableAgModel",
    "Technology",
    "World",
    "event",
]
