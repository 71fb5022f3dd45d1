"""Tests for the command-line runner."""

import pandas as pd
import yaml

from minicam.main import main

from tests.helpers.factories import inelastic_structure, linear_structure


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data))
    return path


def test_run_writes_results(tmp_path):
    structure = write_yaml(tmp_path / "structure.yml", linear_structure(n_periods=2))
    out = tmp_path / "out"

    assert main([str(structure), "--output-dir", str(out), "--log-level", "ERROR"]) == 0

    markets = pd.read_csv(out / "markets.csv")
    # period 1 starts from the cleared price of period 0
    assert markets["price"].nunique() == 1
    assert abs(markets["price"].iloc[0] - 50.0) < 1e-6
    outputs = pd.read_csv(out / "outputs.csv")
    assert list(outputs.columns[:6]) == [
        "Region", "Sector", "Subsector", "Technology", "Variable", "Units",
    ]
    assert list(outputs.columns[6:]) == ["1975", "1990"]
    assert (out / "summary.csv").exists()


def test_add_on_and_config(tmp_path):
    structure = write_yaml(tmp_path / "structure.yml", linear_structure(n_periods=1))
    add_on = write_yaml(
        tmp_path / "policy.yml",
        {"regions": [{"name": "r1", "caps": {"good": 30.0}}]},
    )
    config = write_yaml(tmp_path / "config.yml", {"solver_method": "newton_bisection"})
    out = tmp_path / "out"

    code = main(
        [str(structure), "--config", str(config), "--add-on", str(add_on),
         "--output-dir", str(out)]
    )
    assert code == 0
    markets = pd.read_csv(out / "markets.csv")
    assert abs(markets["price"].iloc[0] - 70.0) < 1e-6


def test_nonconvergence_exit_status(tmp_path):
    structure = write_yaml(tmp_path / "structure.yml", inelastic_structure(n_periods=1))
    config = write_yaml(tmp_path / "config.yml", {"max_iterations": 30})
    assert main([str(structure), "--config", str(config)]) == 1
