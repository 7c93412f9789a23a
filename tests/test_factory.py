# tests/test_factory.py
import json

import numpy as np
import pytest

from sweep_sim import SimulationConfig, run_simulation, utils
from sweep_sim.factory import build_delayed_simulator


@pytest.fixture
def config():
    return SimulationConfig.from_dict(
        {
            "simulation": {"T": 0.5, "h": 0.01, "kernel_decay": 2.0},
            "constraint": {"expression": "R - sqrt(x^2 + y^2)", "R": 0.8},
            "trajectory": {"x": "2*cos(t)", "y": "2*sin(t)"},
            "metadata": {"name": "small"},
        }
    )


def test_run_simulation(config):
    result = run_simulation(config)
    assert len(result) == 51
    assert result.classical.trajectory.shape == (51, 2)
    assert result.h == 0.01
    assert result.meta["kernel_length"] == result.delayed.weights.shape[0]
    assert result.meta["name"] == "small"
    assert result.meta["kernel_degenerate"] is False
    assert result.times[-1] == pytest.approx(0.5)
    # every delayed point lies in the disk around its center
    rel = result.delayed.trajectory - result.delayed.centers
    assert np.all(np.hypot(rel[:, 0], rel[:, 1]) <= 0.8 + 1e-6)


def test_batch_matches_stepping(config):
    result = run_simulation(config)
    sim = build_delayed_simulator(config)
    for n in range(51):
        sim.step(n)
    assert np.array_equal(sim.get_trajectory(), result.delayed.trajectory)


def test_tsv_format(config):
    result = run_simulation(config)
    lines = utils.format_tsv(result).split("\n")
    assert lines[0].split("\t") == utils.TSV_HEADER
    assert len(lines) == 52
    row = lines[3].split("\t")
    assert len(row) == 10
    assert row[0] == "0.020000"
    assert row[1] == f"{result.delayed.trajectory[2, 0]:.6f}"


def test_tsv_short_classical_columns_empty(config):
    result = run_simulation(config)
    result.classical.trajectory = result.classical.trajectory[:10]
    result.classical.gradient_norms = result.classical.gradient_norms[:10]
    lines = utils.format_tsv(result).split("\n")
    assert lines[-1].split("\t")[7:] == ["", "", ""]
    assert lines[10].split("\t")[7] != ""


def test_exports(config, tmp_path):
    result = run_simulation(config)
    utils.export_json(tmp_path / "out.json", result)
    data = json.loads((tmp_path / "out.json").read_text())
    assert len(data["delayed"]["trajectory"]) == 51
    assert set(data) == {"h", "delayed", "classical", "meta"}

    utils.save_run_result(tmp_path / "run.npz", result)
    loaded = utils.load_run_result(tmp_path / "run.npz")
    assert np.array_equal(loaded.delayed.trajectory, result.delayed.trajectory)
    assert loaded.meta["name"] == "small"
    with pytest.raises(FileExistsError):
        utils.save_run_result(tmp_path / "run.npz", result, overwrite=False)


def test_params_file_round_trip(config, tmp_path):
    path = tmp_path / "params" / "config.json"
    utils.save_params(path, config.to_dict())
    again = SimulationConfig.from_dict(utils.load_params(path))
    assert again.simulation == config.simulation
    assert again.metadata["name"] == "small"
