"""End-to-end scenario runs through the default pipeline."""

import numpy as np
import pytest

from minicam import Scenario
from minicam.errors import NonConvergenceError

from tests.helpers.factories import (
    chain_structure,
    demand_sector,
    inelastic_structure,
    linear_structure,
    model_time,
    supply_sector,
    two_region_structure,
)


def test_linear_market_clears_every_period(linear_scenario):
    results = linear_scenario.run()

    assert results.converged
    assert results.n_committed == 3
    for period in range(3):
        assert results.price("r1", "good", period) == pytest.approx(50.0, abs=1e-6)
        status = results.status(period)
        assert status.converged
        assert status.iterations > 1
        assert not status.degenerate
    assert linear_scenario.marketplace.committed.all()


def test_committed_prices_seed_next_period(linear_scenario):
    linear_scenario.run()
    first, later = linear_scenario.statuses[0], linear_scenario.statuses[1:]
    # starting from the previous equilibrium leaves nothing to search for
    assert all(s.iterations == 1 for s in later)
    assert first.iterations > 1


@pytest.mark.parametrize("method", ["bisection", "newton_bisection"])
def test_runs_are_deterministic(method):
    a = Scenario.init(two_region_structure(n_periods=3), solver_method=method).run()
    b = Scenario.init(two_region_structure(n_periods=3), solver_method=method).run()
    for period in range(3):
        np.testing.assert_array_equal(a.prices(period), b.prices(period))
    assert [s.iterations for s in a.statuses] == [s.iterations for s in b.statuses]


def test_shared_and_regional_markets():
    results = Scenario.init(two_region_structure()).run()
    assert results.market_names == ["global:oil", "r2:coal"]
    for period in range(2):
        assert results.price("global", "oil", period) == pytest.approx(130.0 / 3.0, rel=1e-7)
        assert results.price("r2", "coal", period) == pytest.approx(5.0, rel=1e-7)


def test_worker_pool_matches_sequential():
    seq = Scenario.init(two_region_structure(n_periods=3)).run()
    par = Scenario.init(two_region_structure(n_periods=3), n_workers=4).run()
    for period in range(3):
        np.testing.assert_array_equal(seq.prices(period), par.prices(period))
        assert seq.output_tree(period) == par.output_tree(period)


def test_nonconvergence_is_recorded_not_raised():
    scn = Scenario.init(inelastic_structure(), max_iterations=50)
    results = scn.run()

    assert scn.completed
    assert results.n_committed == 3
    assert not results.converged
    for status in results.statuses:
        assert not status.converged
        assert status.iterations == 50
        assert status.unsolved == ("r1:good",)
    assert not scn.marketplace.solved[0, :].any()


def test_abort_on_nonconvergence_commits_first():
    scn = Scenario.init(
        inelastic_structure(), max_iterations=50, abort_on_nonconvergence=True
    )
    with pytest.raises(NonConvergenceError):
        scn.run()
    assert len(scn.statuses) == 1
    assert scn.marketplace.committed[0]
    assert scn.period == 1
    assert not scn.completed


def test_add_on_changes_outcome():
    add_on = {
        "regions": [
            {"name": "r1", "sectors": [{"name": "service", "demand": {"intercept": 200.0}}]}
        ]
    }
    results = Scenario.init(linear_structure(n_periods=1), add_ons=[add_on]).run()
    assert results.price("r1", "good", 0) == pytest.approx(100.0, abs=1e-6)


def test_capped_supply():
    tree = linear_structure(n_periods=1)
    tree["regions"][0]["caps"] = {"good": 30.0}
    results = Scenario.init(tree).run()
    assert results.converged
    assert results.price("r1", "good", 0) == pytest.approx(70.0, abs=1e-6)
    assert results.supply("r1", "good", 0) == pytest.approx(30.0, rel=1e-7)


def test_fixed_price_market_keeps_its_price():
    tree = linear_structure(n_periods=2)
    tree["markets"][0].update(solve=False, initial_price=20.0)
    results = Scenario.init(tree).run()
    assert results.converged
    np.testing.assert_array_equal(results.price_path("r1", "good"), [20.0, 20.0])
    # the imbalance of an unsolved market is left standing
    assert results.demand("r1", "good", 0) == pytest.approx(80.0)


def test_income_driven_demand_carries_over():
    """Service demand grows from the committed service of the previous period."""
    tree = {
        "model_time": model_time(2),
        "regions": [
            {
                "name": "r1",
                "gdp": [1.0, 1.5],
                "sectors": [
                    supply_sector(),
                    demand_sector(demand={"kind": "income_elastic", "base_service": 40.0}),
                ],
            }
        ],
    }
    results = Scenario.init(tree).run()
    assert results.converged

    # s = p and D = 40 p^-0.5 give p0 = 40^(2/3); growth 1.5 scales p by 1.5^(2/3)
    p0 = results.price("r1", "good", 0)
    p1 = results.price("r1", "good", 1)
    assert p0 == pytest.approx(40.0 ** (2.0 / 3.0), rel=1e-6)
    assert p1 / p0 == pytest.approx(1.5 ** (2.0 / 3.0), rel=1e-6)

    service = results.region_output("r1", 1).get_sector("service")
    assert service.output == pytest.approx(p1, rel=1e-6)


def test_trace_recorded_when_enabled():
    results = Scenario.init(linear_structure(n_periods=2), record_trace=True).run()
    trace = results.trace(0)
    assert len(trace) == results.status(0).iterations
    assert trace[-1].solved.all()
    assert len(results.trace(1)) == 1


def test_coupled_markets_clear_with_default_config():
    scn = Scenario.init(chain_structure(n_periods=2))
    assert scn.config.solver_method == "newton_bisection"
    results = scn.run()

    assert results.converged
    for period in range(2):
        assert results.price("r1", "coal", period) == pytest.approx(27.0, rel=1e-6)
        assert results.price("r1", "electricity", period) == pytest.approx(46.0, rel=1e-6)
        assert results.demand("r1", "electricity", period) == pytest.approx(54.0, rel=1e-6)
