# tests/test_delayed.py
import math

import numpy as np
import pytest

from sweep_sim import (
    ConstraintProjector,
    DelayedSweepingSimulator,
    SimulationConfig,
    SimulationParameters,
    StepOrderError,
    Vec2,
    run_simulation,
)
from sweep_sim.constraint import make_projection_function
from sweep_sim.history import MAX_INITIAL_CAPACITY
from sweep_sim.trajectories import constant_function


def unit_disk(x, y):
    return 1.0 - math.sqrt(x * x + y * y)


def make_sim(past, T=1.0, h=0.01, decay=2.0, center=(0.0, 0.0), angle_func=None):
    params = SimulationParameters(T=T, h=h, kernel_decay=decay)
    return DelayedSweepingSimulator(
        params=params,
        center_func=constant_function(center),
        past_func=constant_function(past),
        project_func=make_projection_function(ConstraintProjector(unit_disk)),
        angle_func=angle_func,
    )


def test_feasible_history_is_never_projected():
    sim = make_sim(past=(0.5, 0.0))
    sim.simulate()
    assert sim.current_step == sim.total_steps + 1 == 101
    traj = sim.get_trajectory()
    assert np.array_equal(traj, sim.get_pre_projection())
    assert np.all(sim.get_projection_distances() == 0.0)
    assert np.allclose(traj[:, 0], 0.5, atol=1e-9)


def test_infeasible_history_is_projected_to_boundary():
    sim = make_sim(past=(2.0, 0.0))
    rec = sim.step(0)
    assert rec.pre_projection.x == pytest.approx(2.0, abs=1e-9)
    assert math.hypot(rec.position.x, rec.position.y) == pytest.approx(1.0, abs=1e-6)
    assert rec.projection_distance == pytest.approx(1.0, abs=1e-6)


def test_steps_must_be_in_order():
    sim = make_sim(past=(0.5, 0.0))
    with pytest.raises(StepOrderError):
        sim.step(1)
    sim.step(0)
    with pytest.raises(StepOrderError) as info:
        sim.step(0)
    assert info.value.expected == 1
    assert sim.current_step == 1


def test_recompute_is_deterministic():
    sim = make_sim(past=(2.0, 0.5), center=(0.3, 0.0))
    for n in range(40):
        sim.step(n)
    first = sim.record(39)
    sim.rewind(39)
    again = sim.step(39)
    assert again == first


def test_pre_projection_is_weighted_history():
    sim = make_sim(past=(2.0, 0.0), T=0.2, h=0.05, decay=3.0)
    for n in range(3):
        sim.step(n)
    h = sim.params.h
    r = sim.weights
    traj = sim.get_trajectory()
    expected = np.zeros(2)
    for j in range(1, r.shape[0]):
        x = traj[3 - j] if 3 - j >= 0 else np.array([2.0, 0.0])
        expected += h * r[j] * x
    xbar = sim.pre_projection_point(3)
    assert xbar.x == pytest.approx(expected[0], abs=1e-12)
    assert xbar.y == pytest.approx(expected[1], abs=1e-12)


def test_fast_memory_reduces_to_classical_step():
    # with J = 3 the average is dominated by X^{n-1}
    sim = make_sim(past=(2.0, 0.0), T=0.5, h=0.01, decay=1000.0, center=(0.5, 0.0))
    sim.simulate()
    traj = sim.get_trajectory()
    pre = sim.get_pre_projection()
    assert sim.kernel_length == 3
    assert np.allclose(pre[1:], traj[:-1], atol=1e-4)


def test_degenerate_kernel_uses_previous_point():
    sim = make_sim(past=(2.0, 0.0), T=5.0, h=1.0, decay=1000.0)
    assert sim.kernel_degenerate
    assert sim.kernel_length == 0
    sim.simulate()
    pre = sim.get_pre_projection()
    traj = sim.get_trajectory()
    assert np.allclose(pre[0], [2.0, 0.0])
    assert np.allclose(pre[1:], traj[:-1])


def test_update_params_recomputes_kernel():
    sim = make_sim(past=(0.5, 0.0), T=1.0, h=0.01, decay=2.0)
    j_before = sim.kernel_length
    sim.step(0)
    sim.update_params(kernel_decay=4.0)
    assert sim.kernel_length < j_before
    assert sim.params.kernel_decay == 4.0
    assert sim.params.h == 0.01
    assert sim.current_step == 1
    sim.update_params(T=2.0)
    assert sim.total_steps == 200


def test_angle_function_is_applied():
    angles = []

    def angle(t):
        angles.append(t)
        return 0.25 * t

    sim = make_sim(past=(0.5, 0.0), T=0.05, h=0.01, angle_func=angle)
    sim.simulate()
    assert len(angles) == 6
    assert sim.get_angles()[-1] == pytest.approx(0.25 * 0.05)


def test_history_grows_past_total_steps():
    sim = make_sim(past=(0.5, 0.0), T=0.05, h=0.01)
    for n in range(50):
        sim.advance()
    assert sim.current_step == 50
    assert sim.get_trajectory().shape == (50, 2)
    assert sim.record(49).time == pytest.approx(0.49)


def test_reset_discards_trajectory():
    sim = make_sim(past=(0.5, 0.0))
    sim.step(0)
    sim.reset()
    assert sim.current_step == 0
    assert sim.get_trajectory().shape == (0, 2)
    assert sim.step(0).index == 0


def test_record_out_of_range():
    sim = make_sim(past=(0.5, 0.0))
    with pytest.raises(IndexError):
        sim.record(0)
    assert isinstance(sim.step(0).position, Vec2)


def test_large_horizon_does_not_preallocate_everything():
    # T is only a window in infinite mode; storage grows on demand
    sim = make_sim(past=(0.5, 0.0), T=1.0e6, h=1.0e-3, decay=50.0)
    assert sim.total_steps > MAX_INITIAL_CAPACITY
    assert sim.buffer.capacity == MAX_INITIAL_CAPACITY
    sim.step(0)
    assert sim.current_step == 1


def _circling_config(decay):
    return SimulationConfig.from_dict(
        {
            "simulation": {
                "T": 2.0,
                "h": 0.01,
                "kernel_decay": decay,
                "past_x": "2",
                "past_y": "-0.8",
            },
            "constraint": {"expression": "R - sqrt(x^2 + y^2)", "R": 0.8},
            "trajectory": {"x": "2*cos(t)", "y": "2*sin(t)"},
        }
    )


def test_short_memory_approaches_classical_trajectory():
    gaps = []
    for decay in (50.0, 500.0, 1300.0):
        result = run_simulation(_circling_config(decay))
        diff = result.delayed.trajectory - result.classical.trajectory
        gaps.append(float(np.max(np.hypot(diff[:, 0], diff[:, 1]))))
    assert gaps[0] > gaps[1] > gaps[2]
    assert gaps[2] < 1e-5
