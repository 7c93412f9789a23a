"""
Delayed Sweeping Process Simulator

This package provides:
- DelayedSweepingSimulator: memory-kernel sweeping process (X^n = P_C(Xbar^n))
- ClassicalSweepingSimulator: memory-less reference process (X^n = P_C(X^{n-1}))
- ConstraintProjector: implicit constraint g >= 0 with a moving, rotating frame
- SimulationRunner: incremental (tick-driven) driver
"""

from .classical import ClassicalSweepingSimulator
from .config import (
    ConfigError,
    ConstraintSpec,
    SimulationConfig,
    SimulationParameters,
    TrajectorySpec,
    load_config,
)
from .constraint import ConstraintFrame, ConstraintProjector, ProjectionResult
from .delayed import DelayedSweepingSimulator
from .expressions import ExpressionError
from .factory import build_classical_simulator, build_delayed_simulator, run_simulation
from .history import StepOrderError, StepRecord
from .kernel import DegenerateKernelError, compute_discrete_weights
from .runner import SimulationRunner
from .vec2 import Vec2
from . import utils

__all__ = [
    # Simulators
    "DelayedSweepingSimulator",
    "ClassicalSweepingSimulator",
    "SimulationRunner",
    "run_simulation",
    "build_delayed_simulator",
    "build_classical_simulator",
    # Constraint
    "ConstraintFrame",
    "ConstraintProjector",
    "ProjectionResult",
    # Configuration classes
    "SimulationConfig",
    "SimulationParameters",
    "ConstraintSpec",
    "TrajectorySpec",
    "load_config",
    # Records / errors
    "Vec2",
    "StepRecord",
    "StepOrderError",
    "DegenerateKernelError",
    "ExpressionError",
    "ConfigError",
    "compute_discrete_weights",
    # Utilities
    "utils",
]
