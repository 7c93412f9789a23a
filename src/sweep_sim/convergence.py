"""
Time-step refinement study.

Each step size is run in finite mode; the finest run is the reference and
every coarser run reports log2 of its terminal position / multiplier error
against it. ``estimate_order`` fits log2(error) against log2(h).
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np
from scipy.stats import linregress

from .config import SimulationConfig
from .factory import run_simulation
from .statistics import run_statistics, terminal_statistics

LOG_ERROR_FLOOR = -50.0
ERROR_FLOOR = 1e-16


def log2_step_sizes(log2_min: float = -8.0, log2_max: float = -4.0, count: int = 5) -> np.ndarray:
    """Step sizes 2**k for k evenly spaced in [log2_min, log2_max]."""
    if count < 1:
        raise ValueError(f"count must be >= 1, got {count}")
    if log2_min > log2_max:
        raise ValueError(f"log2_min ({log2_min}) must not exceed log2_max ({log2_max})")
    return np.power(2.0, np.linspace(log2_min, log2_max, count))


def _log2_error(err: float) -> float:
    return math.log2(err) if err > ERROR_FLOOR else LOG_ERROR_FLOOR


@dataclass
class ConvergencePoint:
    h: float
    terminal: Dict[str, float]
    position: np.ndarray
    lambda_value: float
    classical_position: np.ndarray
    classical_lambda_value: float
    errors: Dict[str, float] = field(default_factory=dict)

    @property
    def log2h(self) -> float:
        return math.log2(self.h)

    def to_dict(self) -> Dict[str, object]:
        return {
            "h": self.h,
            "log2h": self.log2h,
            "terminal": dict(self.terminal),
            "position": [float(v) for v in self.position],
            "lambda_value": self.lambda_value,
            "classical_position": [float(v) for v in self.classical_position],
            "classical_lambda_value": self.classical_lambda_value,
            "errors": dict(self.errors),
        }


def convergence_point(config: SimulationConfig, h: float, verbose: bool = False) -> ConvergencePoint:
    """Run one finite simulation with step h and collect its terminal values."""
    sim = config.simulation.with_updates(h=float(h), infinite_mode=False)
    cfg = dataclasses.replace(config, simulation=sim)
    result = run_simulation(cfg)
    stats = run_statistics(result)

    terminal = terminal_statistics(stats["delayed"])
    terminal.update(terminal_statistics(stats["classical"], prefix="classical_"))
    if verbose:
        print(
            f"[convergence] h={h:.6g}: {len(result)} steps, "
            f"X_T=({terminal['position_x']:.6f}, {terminal['position_y']:.6f})"
        )
    return ConvergencePoint(
        h=float(h),
        terminal=terminal,
        position=result.delayed.trajectory[-1].copy(),
        lambda_value=terminal["lagrange_multiplier_value"],
        classical_position=result.classical.trajectory[-1].copy(),
        classical_lambda_value=terminal["classical_lagrange_multiplier_value"],
    )


def attach_errors(
    points: List[ConvergencePoint], reference_h: Optional[float] = None
) -> List[ConvergencePoint]:
    """
    Fill ``errors`` of every point but the finest (first) one, in place.

    With ``reference_h`` the first point must have been run with that step;
    a missing reference run raises ValueError instead of silently promoting
    the next coarser one.
    """
    if reference_h is not None and (not points or not math.isclose(points[0].h, reference_h)):
        got = points[0].h if points else None
        raise ValueError(f"reference run h={reference_h:g} is missing (finest available: {got})")
    if len(points) < 2:
        return points
    ref = points[0]
    for p in points[1:]:
        p.errors = {
            "log_position_error": _log2_error(float(np.linalg.norm(p.position - ref.position))),
            "log_lambda_error": _log2_error(abs(p.lambda_value - ref.lambda_value)),
            "classical_log_position_error": _log2_error(
                float(np.linalg.norm(p.classical_position - ref.classical_position))
            ),
            "classical_log_lambda_error": _log2_error(
                abs(p.classical_lambda_value - ref.classical_lambda_value)
            ),
        }
    return points


def run_convergence(
    config: SimulationConfig,
    step_sizes: Optional[Sequence[float]] = None,
    verbose: bool = False,
) -> List[ConvergencePoint]:
    """Run the study over ``step_sizes`` (default: log2_step_sizes()), finest first."""
    hs = sorted(float(h) for h in (log2_step_sizes() if step_sizes is None else step_sizes))
    if any(h <= 0.0 for h in hs):
        raise ValueError("step sizes must be positive")
    points = [convergence_point(config, h, verbose=verbose) for h in hs]
    return attach_errors(points, reference_h=hs[0])


def estimate_order(points: Sequence[ConvergencePoint], key: str = "log_position_error") -> Dict[str, float]:
    """
    Least-squares slope of ``errors[key]`` against log2(h).

    Points at the error floor are skipped. Returns slope, intercept and r^2.
    """
    xs, ys = [], []
    for p in points:
        value = p.errors.get(key)
        if value is None or value <= LOG_ERROR_FLOOR:
            continue
        xs.append(p.log2h)
        ys.append(value)
    if len(xs) < 2:
        raise ValueError(f"need at least two usable points to estimate the order of {key!r}")
    fit = linregress(xs, ys)
    return {"order": float(fit.slope), "intercept": float(fit.intercept), "r_squared": float(fit.rvalue**2)}


__all__ = [
    "ConvergencePoint",
    "log2_step_sizes",
    "convergence_point",
    "attach_errors",
    "run_convergence",
    "estimate_order",
]
