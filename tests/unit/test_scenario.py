"""Unit tests for Scenario construction, configuration and stepping."""

from dataclasses import replace

import pytest

from minicam import Scenario
from minicam.config import Config
from minicam.errors import NonConvergenceError, StructuralError
from minicam.status import ScenarioState

from tests.helpers.factories import (
    inelastic_structure,
    linear_structure,
    model_time,
    two_region_structure,
)


# ───────────────────────────── configuration ────────────────────────────── #


class TestConfigPrecedence:
    def test_package_defaults(self, linear_scenario):
        # packaged defaults and the dataclass defaults agree
        assert replace(linear_scenario.config, logging={}) == Config()
        assert linear_scenario.solver.tolerance == 1e-8

    def test_mapping_config(self):
        scn = Scenario.init(linear_structure(), config={"max_iterations": 42})
        assert scn.config.max_iterations == 42
        assert scn.solver.max_iterations == 42

    def test_yaml_config(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("solver_method: bisection\nn_workers: 2\n")
        scn = Scenario.init(linear_structure(), config=path)
        assert scn.solver.method == "bisection"
        assert scn.world.n_workers == 2

    def test_kwargs_override_config(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("max_iterations: 100\n")
        scn = Scenario.init(linear_structure(), config=path, max_iterations=200)
        assert scn.config.max_iterations == 200

    def test_invalid_override(self):
        with pytest.raises(ValueError, match="Unknown config parameter"):
            Scenario.init(linear_structure(), n_firms=10)

    def test_config_root_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("- 1\n")
        with pytest.raises(TypeError, match="must be mapping"):
            Scenario.init(linear_structure(), config=path)

    def test_initial_price_default(self):
        scn = Scenario.init(inelastic_structure(), initial_price=3.0)
        assert scn.marketplace.get_market("r1", "good").initial_price == 3.0

    def test_config_dict(self, linear_scenario):
        cfg = linear_scenario.config_dict()
        assert cfg["max_iterations"] == 500
        assert cfg["logging"]["default_level"] == "INFO"

    def test_config_is_frozen(self, linear_scenario):
        with pytest.raises(AttributeError):
            linear_scenario.config.tolerance = 1.0  # type: ignore[misc]


class TestCustomPipeline:
    def test_pipeline_path(self, tmp_path):
        path = tmp_path / "pipeline.yml"
        path.write_text(
            "events:\n  - derive_period_inputs\n  - solve_markets\n  - commit_period\n"
        )
        scn = Scenario.init(linear_structure(), pipeline_path=path)
        assert scn.pipeline.names == [
            "derive_period_inputs", "solve_markets", "commit_period",
        ]
        assert scn.config.pipeline_path == str(path)
        assert scn.step().converged

    def test_pipeline_with_unknown_event(self, tmp_path):
        path = tmp_path / "pipeline.yml"
        path.write_text("events:\n  - warp_drive\n")
        with pytest.raises(ValueError, match="warp_drive"):
            Scenario.init(linear_structure(), pipeline_path=path)

    def test_pipeline_without_commit(self, linear_scenario):
        linear_scenario.pipeline.remove("commit_period")
        with pytest.raises(RuntimeError, match="did not commit period 0"):
            linear_scenario.step()

    def test_pipeline_without_solve(self, linear_scenario):
        linear_scenario.pipeline.remove("solve_markets")
        with pytest.raises(RuntimeError, match="needs a solve of period 0"):
            linear_scenario.step()


# ─────────────────────────────── structure ──────────────────────────────── #


class TestStructure:
    def test_missing_model_time(self):
        tree = linear_structure()
        del tree["model_time"]
        with pytest.raises(StructuralError, match="model_time"):
            Scenario.init(tree)

    def test_no_regions(self):
        with pytest.raises(StructuralError, match="at least one region"):
            Scenario.init({"model_time": model_time(2), "regions": []})

    def test_invalid_model_time(self):
        tree = linear_structure()
        tree["model_time"] = {"start_year": 1975}
        with pytest.raises(StructuralError, match="invalid model_time"):
            Scenario.init(tree)

    def test_ag_active_needs_ag_model(self):
        with pytest.raises(StructuralError, match="ag_model"):
            Scenario.init(linear_structure(), ag_sector_active=True)

    def test_ag_model_ignored_when_inactive(self):
        tree = linear_structure()
        tree["ag_model"] = {"kind": "table", "supply": {"r1": {"good": 10.0}}}
        scn = Scenario.init(tree)
        assert scn.world.ag_model is None

    def test_structure_from_yaml(self, tmp_path):
        import yaml

        path = tmp_path / "structure.yml"
        path.write_text(yaml.safe_dump(linear_structure(n_periods=2)))
        scn = Scenario.init(path)
        assert scn.n_periods == 2
        assert scn.marketplace.market_names == ["r1:good"]

    def test_add_ons(self):
        add_on = {"markets": [{"good": "good", "region": "r1", "initial_price": 7.0}]}
        scn = Scenario.init(linear_structure(), add_ons=[add_on])
        assert scn.marketplace.get_market("r1", "good").initial_price == 7.0


# ─────────────────────────────── stepping ───────────────────────────────── #


class TestStep:
    def test_state_machine(self, linear_scenario):
        scn = linear_scenario
        assert scn.state is ScenarioState.NOT_STARTED
        assert scn.year == 1975

        status = scn.step()
        assert status.period == 0
        assert status.year == 1975
        assert scn.period == 1
        assert scn.state is ScenarioState.PERIOD_COMMITTED
        assert scn.year == 1990

        scn.step()
        scn.step()
        assert scn.completed
        assert scn.state is ScenarioState.COMPLETED
        assert scn.year == 2005

    def test_step_after_completion(self, linear_scenario):
        linear_scenario.run()
        with pytest.raises(RuntimeError, match="already completed"):
            linear_scenario.step()

    def test_committed_periods_are_frozen(self, linear_scenario):
        linear_scenario.step()
        assert linear_scenario.marketplace.committed[0]
        assert not linear_scenario.marketplace.committed[1]

    def test_run_records_every_period(self, linear_scenario):
        results = linear_scenario.run()
        assert len(linear_scenario.statuses) == 3
        assert len(linear_scenario.outputs) == 3
        assert len(linear_scenario.traces) == 3
        assert results.n_committed == 3
        assert linear_scenario.run_seconds > 0.0
        assert linear_scenario.setup_seconds > 0.0

    def test_run_resumes_after_step(self, linear_scenario):
        linear_scenario.step()
        linear_scenario.run()
        assert [s.period for s in linear_scenario.statuses] == [0, 1, 2]

    def test_abort_on_nonconvergence(self):
        scn = Scenario.init(
            inelastic_structure(), max_iterations=30, abort_on_nonconvergence=True
        )
        with pytest.raises(NonConvergenceError) as exc_info:
            scn.step()
        assert exc_info.value.status.period == 0
        assert "r1:good" in str(exc_info.value)
        # the failing period is committed before the error is raised
        assert len(scn.statuses) == 1
        assert scn.marketplace.committed[0]
        assert scn.period == 1

    def test_run_releases_region_pool(self):
        scn = Scenario.init(two_region_structure(n_periods=2), n_workers=2)
        scn.step()
        pool = scn.world._pool
        assert pool is not None
        scn.run()
        assert scn.world._pool is None

    def test_repr(self, linear_scenario):
        assert repr(linear_scenario) == (
            "Scenario(state=not_started, period=0/3, markets=1)"
        )
