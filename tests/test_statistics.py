# tests/test_statistics.py
import numpy as np
import pytest

from sweep_sim import SimulationConfig, run_simulation
from sweep_sim.statistics import (
    classical_energy,
    delayed_energy,
    run_statistics,
    terminal_statistics,
    trajectory_statistics,
)


def test_straight_line_diagnostics():
    h = 0.1
    traj = np.array([[0.0, 0.0], [0.1, 0.0], [0.3, 0.0], [0.6, 0.0]])
    pre = traj + np.array([0.5, 0.0])
    grads = np.array([1.0, 2.0, 0.0, 0.5])
    stats = trajectory_statistics(traj, pre, grads, np.zeros(4), h)

    assert stats.time == pytest.approx([0.0, 0.1, 0.2, 0.3])
    assert stats.velocity == pytest.approx([0.0, 1.0, 2.0, 3.0])
    assert stats.lagrange_multiplier == pytest.approx([0.5] * 4)
    # vanishing gradient reported as 0
    assert stats.lagrange_multiplier_value == pytest.approx([0.5, 0.25, 0.0, 1.0])
    # constant displacement: no change in lambda G
    assert stats.lagrange_dot_product == pytest.approx([0.0] * 4)
    assert stats.total_energy == pytest.approx(classical_energy(traj, h))
    assert stats.total_energy[1] == pytest.approx(0.01 / (2 * h * h))


def test_delayed_energy_sums_over_lags():
    h = 0.5
    traj = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0]])
    weights = np.array([9.0, 1.0, 0.5])
    e = delayed_energy(traj, weights, h)
    assert e[0] == 0.0
    assert e[1] == pytest.approx(h * 1.0 * 1.0)
    assert e[2] == pytest.approx(h * (1.0 * 1.0 + 0.5 * 2.0))


def test_terminal_statistics():
    cfg = SimulationConfig.from_dict(
        {
            "simulation": {"T": 1.0, "h": 0.01},
            "constraint": {"expression": "R - sqrt(x^2 + y^2)", "R": 0.8},
            "trajectory": {"type": "circular"},
        }
    )
    result = run_simulation(cfg)
    stats = run_statistics(result)
    assert stats["delayed"].position.shape == (101, 2)

    term = terminal_statistics(stats["delayed"])
    assert term["position_x"] == result.delayed.trajectory[-1, 0]
    assert term["total_energy"] == stats["delayed"].total_energy[-1]
    assert term["max_projection_distance"] >= term["min_projection_distance"] >= 0.0

    classical = terminal_statistics(stats["classical"], prefix="classical_")
    assert "classical_lagrange_multiplier_value" in classical
    assert classical["classical_max_lagrange_dot_product"] >= classical["classical_min_lagrange_dot_product"]
