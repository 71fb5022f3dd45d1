"""Tests for the agricultural sub-model seam."""

import pytest

from minicam.agsector import AgContribution, TableAgModel, build_ag_model
from minicam.errors import StructuralError
from minicam.modeltime import ModelTime


@pytest.fixture
def mt():
    return ModelTime.from_range(1975, 2005, 15)


def test_polling_before_run_raises():
    ag = TableAgModel(supply={"r1": {"corn": 1.0}})
    assert not ag.has_run
    with pytest.raises(RuntimeError, match="before it was run"):
        ag.contributions("r1", 0)


def test_schedules_are_expanded(mt):
    ag = TableAgModel(
        supply={"r1": {"corn": [1.0, 2.0]}},
        demand={"r1": {"fertilizer": 0.5}},
    )
    ag.run(mt, ["r1"])
    assert ag.has_run
    assert ag.contributions("r1", 0) == AgContribution(
        supply={"corn": 1.0}, demand={"fertilizer": 0.5}
    )
    assert ag.contributions("r1", 2).supply == {"corn": 2.0}


def test_region_without_table(mt):
    ag = TableAgModel(supply={"r1": {"corn": 1.0}})
    ag.run(mt, ["r1", "r2"])
    assert ag.contributions("r2", 1) == AgContribution()


def test_unknown_region(mt):
    ag = TableAgModel(supply={"mars": {"corn": 1.0}})
    with pytest.raises(StructuralError, match="mars"):
        ag.run(mt, ["r1"])


def test_traded_goods():
    ag = TableAgModel(supply={"r1": {"corn": 1.0}}, demand={"r1": {"fertilizer": 1.0}})
    assert ag.traded_goods("r1") == {"corn", "fertilizer"}
    assert ag.traded_goods("r2") == set()


def test_internal_output_counts_runs(mt):
    ag = TableAgModel(supply={"r1": {"corn": 1.0}})
    ag.run(mt, ["r1"])
    out = ag.internal_output()
    assert out["n_runs"] == 1
    assert out["supply"]["r1"]["corn"] == (1.0, 1.0, 1.0)


def test_build():
    assert build_ag_model(None) is None
    assert isinstance(build_ag_model({"kind": "table", "supply": {}}), TableAgModel)
    with pytest.raises(StructuralError, match="Unknown agricultural"):
        build_ag_model({"kind": "gcam"})
    with pytest.raises(StructuralError, match="invalid parameters"):
        build_ag_model({"kind": "table", "yields": {}})


def test_non_finite_schedule(mt):
    ag = TableAgModel(supply={"r1": {"corn": [1.0, float("nan")]}})
    with pytest.raises(StructuralError, match="finite"):
        ag.run(mt, ["r1"])
