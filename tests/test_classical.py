# tests/test_classical.py
import math

import numpy as np
import pytest

from sweep_sim import ClassicalSweepingSimulator, ConstraintProjector, SimulationParameters, StepOrderError
from sweep_sim.constraint import make_projection_function
from sweep_sim.trajectories import constant_function


def disk(R):
    return lambda x, y: R - math.sqrt(x * x + y * y)


def circling_run(omega, T=6.0, h=0.01):
    params = SimulationParameters(T=T, h=h)
    sim = ClassicalSweepingSimulator(
        params=params,
        center_func=lambda t: (2.0 * math.cos(omega * t), 2.0 * math.sin(omega * t)),
        # trailing edge of the disk at t = 0
        past_func=constant_function((2.0, -0.8)),
        project_func=make_projection_function(ConstraintProjector(disk(0.8))),
    )
    sim.simulate()
    return sim


def test_quasi_static_limit():
    h = 0.01
    maxima = []
    for omega in (1.0, 0.5, 0.25):
        sim = circling_run(omega, h=h)
        dist = sim.get_projection_distances()
        assert dist.max() <= 2.0 * omega * h + 1e-6
        maxima.append(dist.max())
    assert maxima[0] > maxima[1] > maxima[2]


def test_point_stays_feasible():
    sim = circling_run(1.0)
    traj = sim.get_trajectory()
    centers = sim.get_constraint_centers()
    assert np.all(np.hypot(*(traj - centers).T) <= 0.8 + 1e-6)


def test_first_step_uses_past_at_zero():
    params = SimulationParameters(T=0.1, h=0.01)
    sim = ClassicalSweepingSimulator(
        params=params,
        center_func=constant_function((0.0, 0.0)),
        past_func=lambda t: (3.0 + t, 0.0),
        project_func=make_projection_function(ConstraintProjector(disk(1.0))),
    )
    rec = sim.step(0)
    assert rec.pre_projection == (3.0, 0.0)
    assert rec.projection_distance == pytest.approx(2.0)
    assert rec.position.x == pytest.approx(1.0, abs=1e-6)
    with pytest.raises(StepOrderError):
        sim.step(2)
