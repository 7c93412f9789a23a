"""Build simulators from a SimulationConfig and run them in batch mode."""

from __future__ import annotations

import time
from typing import Any, Dict

from .classical import ClassicalSweepingSimulator
from .config import SimulationConfig
from .constraint import ConstraintProjector, make_projection_function
from .delayed import DelayedSweepingSimulator
from .expressions import make_constraint_evaluator
from .trajectories import make_angle_function, make_center_function, make_past_function
from .utils import ClassicalResult, DelayedResult, RunResult


def build_projector(config: SimulationConfig) -> ConstraintProjector:
    return ConstraintProjector(make_constraint_evaluator(config.constraint))


def build_delayed_simulator(config: SimulationConfig, verbose: bool = False) -> DelayedSweepingSimulator:
    return DelayedSweepingSimulator(
        params=config.simulation,
        center_func=make_center_function(config.trajectory),
        past_func=make_past_function(config.simulation),
        project_func=make_projection_function(build_projector(config)),
        angle_func=make_angle_function(config.trajectory),
        verbose=verbose,
    )


def build_classical_simulator(config: SimulationConfig, verbose: bool = False) -> ClassicalSweepingSimulator:
    return ClassicalSweepingSimulator(
        params=config.simulation,
        center_func=make_center_function(config.trajectory),
        past_func=make_past_function(config.simulation),
        project_func=make_projection_function(build_projector(config)),
        angle_func=make_angle_function(config.trajectory),
        verbose=verbose,
    )


def collect_result(
    delayed: DelayedSweepingSimulator,
    classical: ClassicalSweepingSimulator,
    meta: Dict[str, Any] | None = None,
) -> RunResult:
    """Snapshot the arrays of two (possibly partially run) simulators."""
    return RunResult(
        h=float(delayed.params.h),
        delayed=DelayedResult(
            trajectory=delayed.get_trajectory(),
            pre_projection=delayed.get_pre_projection(),
            centers=delayed.get_constraint_centers(),
            projection_distances=delayed.get_projection_distances(),
            gradient_norms=delayed.get_gradient_norms(),
            angles=delayed.get_angles(),
            weights=delayed.weights.copy(),
        ),
        classical=ClassicalResult(
            trajectory=classical.get_trajectory(),
            gradient_norms=classical.get_gradient_norms(),
            pre_projection=classical.get_pre_projection(),
            centers=classical.get_constraint_centers(),
            projection_distances=classical.get_projection_distances(),
        ),
        meta=dict(meta or {}),
    )


def run_simulation(config: SimulationConfig, verbose: bool = False) -> RunResult:
    """
    Run both processes to floor(T/h) and return their sequences.
    """
    start_time = time.time()
    delayed = build_delayed_simulator(config, verbose=verbose)
    classical = build_classical_simulator(config, verbose=verbose)

    delayed.simulate()
    classical.simulate()

    sim = config.simulation
    meta = {
        "model": "delayed_sweeping",
        "T": float(sim.T),
        "h": float(sim.h),
        "kernel_decay": float(sim.kernel_decay),
        "total_steps": int(delayed.total_steps),
        "kernel_length": int(delayed.kernel_length),
        "kernel_degenerate": bool(delayed.kernel_degenerate),
        "constraint": config.constraint.expression,
        "trajectory_type": config.trajectory.type,
        "time_elapsed": time.time() - start_time,
    }
    if config.metadata.get("name"):
        meta["name"] = str(config.metadata["name"])
    return collect_result(delayed, classical, meta)


__all__ = [
    "build_projector",
    "build_delayed_simulator",
    "build_classical_simulator",
    "collect_result",
    "run_simulation",
]
