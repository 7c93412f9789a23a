# tests/test_runner.py
import math

import pytest

from sweep_sim import (
    ClassicalSweepingSimulator,
    ConstraintProjector,
    DelayedSweepingSimulator,
    SimulationParameters,
    SimulationRunner,
)
from sweep_sim.constraint import make_projection_function
from sweep_sim.trajectories import constant_function


def unit_disk(x, y):
    return 1.0 - math.sqrt(x * x + y * y)


def make_pair(T=0.1, h=0.01):
    params = SimulationParameters(T=T, h=h, kernel_decay=2.0)
    kwargs = dict(
        params=params,
        center_func=lambda t: (0.5 * t, 0.0),
        past_func=constant_function((1.5, 0.0)),
    )
    delayed = DelayedSweepingSimulator(
        project_func=make_projection_function(ConstraintProjector(unit_disk)), **kwargs
    )
    classical = ClassicalSweepingSimulator(
        project_func=make_projection_function(ConstraintProjector(unit_disk)), **kwargs
    )
    return delayed, classical


def test_ticks_advance_in_order():
    delayed, classical = make_pair()
    runner = SimulationRunner(delayed, companion=classical, steps_per_tick=3)
    seen = []
    runner.set_callbacks(lambda rec: seen.append(rec.index))
    runner.start()
    assert runner.tick() == 3
    assert runner.tick() == 3
    assert seen == [0, 1, 2, 3, 4, 5]
    assert delayed.current_step == classical.current_step == 6


def test_not_running_does_nothing():
    delayed, _ = make_pair()
    runner = SimulationRunner(delayed)
    assert runner.tick() == 0
    assert delayed.current_step == 0


def test_completes_after_total_steps():
    delayed, classical = make_pair(T=0.1, h=0.01)
    runner = SimulationRunner(delayed, companion=classical, steps_per_tick=4)
    done = []
    runner.set_callbacks(None, lambda: done.append(runner.step))
    runner.run()
    assert done == [11]
    assert runner.finished and not runner.running
    assert delayed.current_step == 11
    assert runner.progress == 1.0
    # finished runners do not restart on start()
    runner.start()
    assert not runner.running
    assert runner.tick() == 0


def test_pause_and_resume():
    delayed, _ = make_pair()
    runner = SimulationRunner(delayed, steps_per_tick=5)

    def on_step(rec):
        if rec.index == 2:
            runner.pause()

    runner.set_callbacks(on_step)
    runner.start()
    assert runner.tick() == 3
    assert not runner.running
    assert runner.tick() == 0
    runner.set_callbacks(None)
    runner.start()
    assert runner.tick() == 5
    assert runner.step == 8
    assert delayed.get_trajectory().shape[0] == 8


def test_infinite_mode_runs_past_horizon():
    delayed, classical = make_pair(T=0.05, h=0.01)
    runner = SimulationRunner(delayed, companion=classical, steps_per_tick=10, infinite_mode=True)
    with pytest.raises(ValueError):
        runner.run()
    runner.run(max_ticks=3)
    assert runner.step == 30
    assert not runner.finished
    assert classical.current_step == 30


def test_restart_discards_steps():
    delayed, classical = make_pair()
    runner = SimulationRunner(delayed, companion=classical)
    runner.run()
    runner.restart()
    assert runner.step == 0
    assert delayed.current_step == 0 and classical.current_step == 0
    assert not runner.finished
    runner.set_speed(100)
    runner.run(max_ticks=1)
    assert runner.finished
