"""Tests for structural tree loading and add-on merging."""

import pytest
import yaml

from minicam.structure import load_structure, merge_structures

from tests.helpers.factories import linear_structure, two_region_structure


def test_load_structure_copies_mapping():
    tree = linear_structure()
    loaded = load_structure(tree)
    loaded["regions"][0]["name"] = "changed"
    assert tree["regions"][0]["name"] == "r1"


def test_load_structure_from_yaml(tmp_path):
    path = tmp_path / "structure.yml"
    path.write_text(yaml.safe_dump(linear_structure()))
    assert load_structure(path) == linear_structure()
    assert load_structure(str(path)) == linear_structure()


def test_load_structure_rejects_non_mapping(tmp_path):
    path = tmp_path / "structure.yml"
    path.write_text("- a\n- b\n")
    with pytest.raises(TypeError, match="must be mapping"):
        load_structure(path)


def test_scalar_and_mapping_merge():
    base = {"model_time": {"start_year": 1975, "end_year": 2005, "timestep": 15}}
    out = merge_structures(base, {"model_time": {"end_year": 2020}})
    assert out["model_time"] == {"start_year": 1975, "end_year": 2020, "timestep": 15}


def test_named_entries_merge_by_name():
    base = linear_structure()
    add_on = {
        "regions": [
            {
                "name": "r1",
                "sectors": [{"name": "service", "demand": {"intercept": 200.0}}],
            }
        ]
    }
    out = merge_structures(base, add_on)
    (region,) = out["regions"]
    service = next(s for s in region["sectors"] if s["name"] == "service")
    assert service["demand"] == {"kind": "linear", "intercept": 200.0, "slope": 1.0}
    # untouched siblings survive
    assert [s["name"] for s in region["sectors"]] == ["good", "service"]


def test_new_named_entries_are_appended():
    out = merge_structures(
        linear_structure(), {"regions": [{"name": "r2", "sectors": []}]}
    )
    assert [r["name"] for r in out["regions"]] == ["r1", "r2"]


def test_markets_merge_by_region_and_good():
    base = two_region_structure()
    add_on = {
        "markets": [
            {"good": "oil", "region": "global", "initial_price": 40.0},
            {"good": "coal", "region": "r2", "solve": False},
        ]
    }
    out = merge_structures(base, add_on)
    assert out["markets"] == [
        {"good": "oil", "region": "global", "members": ["r1", "r2"], "initial_price": 40.0},
        {"good": "coal", "region": "r2", "solve": False},
    ]


def test_unkeyed_lists_are_replaced():
    base = {"regions": [{"name": "r1", "gdp": [1.0, 1.1, 1.2]}]}
    out = merge_structures(base, {"regions": [{"name": "r1", "gdp": [1.0, 2.0]}]})
    assert out["regions"][0]["gdp"] == [1.0, 2.0]


def test_add_ons_apply_in_order(tmp_path):
    path = tmp_path / "second.yml"
    path.write_text("model_time:\n  timestep: 5\n")
    out = merge_structures(
        {"model_time": {"timestep": 15}}, {"model_time": {"timestep": 10}}, path
    )
    assert out["model_time"]["timestep"] == 5


def test_merge_does_not_mutate_inputs():
    base = linear_structure()
    add_on = {"regions": [{"name": "r1", "caps": {"good": 1.0}}]}
    merge_structures(base, add_on)
    assert "caps" not in base["regions"][0]
    assert add_on == {"regions": [{"name": "r1", "caps": {"good": 1.0}}]}
