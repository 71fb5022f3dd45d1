"""Period events: the four steps that advance a Scenario by one period.

Default order::

    derive_period_inputs -> run_ag_submodel -> solve_markets -> commit_period
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from minicam import logging
from minicam.core.decorators import event
from minicam.status import PeriodStatus, ScenarioState

if TYPE_CHECKING:
    from minicam.scenario import Scenario


@event
class DerivePeriodInputs:
    """
    Seed trial prices and hand every sector its period inputs.

    Rule
    ----
        p_t <- p*_{t-1}     (initial prices in period 0)
        inputs_t = (GDP_t / GDP_{t-1}, D*_{t-1}, P*_{t-1})

    *: committed value
    """

    def execute(self, scenario: Scenario) -> None:
        log = self.get_logger()
        period = scenario.period

        scenario.marketplace.init_prices(period)
        prior = scenario.outputs[period - 1] if period > 0 else None
        scenario.world.derive_period_inputs(period, prior)

        if log.isEnabledFor(logging.DEBUG):
            log.debug(
                "  Seed prices for period %d: %s",
                period,
                dict(zip(scenario.marketplace.market_names,
                         scenario.marketplace.prices(period).round(6))),
            )


@event(name="run_ag_submodel")
class RunAgSubModel:
    """
    Run the agricultural sub-model once per scenario.

    Skipped when ``ag_sector_active`` is off. The sub-model solves the
    whole time horizon on its first call; later periods only poll it.
    """

    def execute(self, scenario: Scenario) -> None:
        log = self.get_logger()
        ag = scenario.world.ag_model
        if not scenario.config.ag_sector_active or ag is None:
            return
        if ag.has_run:
            log.debug("  Agricultural sub-model already solved, polling only")
            return
        log.info("--- Running agricultural sub-model ---")
        ag.run(scenario.modeltime, scenario.world.region_names)


@event
class SolveMarkets:
    """Clear every solvable market of the current period."""

    def execute(self, scenario: Scenario) -> None:
        log = self.get_logger()
        period = scenario.period
        log.info(
            "--- Solving period %d (%d) ---",
            period, scenario.modeltime.per_to_yr(period),
        )
        scenario.last_result = scenario.solver.solve(
            period, scenario.marketplace, scenario.world
        )


@event
class CommitPeriod:
    """
    Freeze the solved period and record its status and output tree.

    Non-converged periods are committed too; they are flagged in the
    PeriodStatus.
    """

    def execute(self, scenario: Scenario) -> None:
        log = self.get_logger()
        period = scenario.period
        result = scenario.last_result
        if result is None or result.period != period:
            raise RuntimeError(
                f"commit_period needs a solve of period {period}; "
                "is solve_markets missing from the pipeline?"
            )

        scenario.marketplace.commit(period)
        status = PeriodStatus(
            period=period,
            year=scenario.modeltime.per_to_yr(period),
            converged=result.converged,
            iterations=result.iterations,
            unsolved=result.unsolved,
            numeric_issues=result.numeric_issues,
        )
        scenario.statuses.append(status)
        scenario.outputs.append(result.outputs)
        scenario.traces.append(result.trace)
        scenario.state = ScenarioState.PERIOD_COMMITTED

        log.info(
            "  Period %d committed: converged=%s after %d iterations",
            period, status.converged, status.iterations,
        )
