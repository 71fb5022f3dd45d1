"""Event classes for the MiniCAM Engine period pipeline.

Events are auto-registered via the ``__init_subclass__`` hook and are
composed into a Pipeline for execution. Importing this package is
enough to register them.
"""

from minicam.events.period import (
    CommitPeriod,
    DerivePeriodInputs,
    RunAgSubModel,
    SolveMarkets,
)

__all__ = [
    "DerivePeriodInputs",
    "RunAgSubModel",
    "SolveMarkets",
    "CommitPeriod",
]
