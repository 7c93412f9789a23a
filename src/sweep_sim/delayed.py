"""
Delayed sweeping process.

Discrete scheme, for n = 0, 1, 2, ...:

    Xbar^n = h * sum_{j=1}^{J-1} r_j * X^{n-j}      (memory-weighted average)
    X^n    = P_{C(t_n)}(Xbar^n)                     (projection)

X^{n-j} is read from the computed trajectory when n - j >= 0 and from the
past function at t = (n - j) h otherwise. Steps must be taken strictly in
order; every step depends on the whole prefix.
"""

from __future__ import annotations

import time
from typing import Callable, Optional, Tuple

import numpy as np
from numba import njit

from . import vec2
from .config import SimulationParameters
from .history import StepOrderError, StepRecord, TrajectoryBuffer
from .kernel import DEFAULT_TOLERANCE, DegenerateKernelError, compute_discrete_weights
from .vec2 import Vec2

###############################################################################
# Weighted history sum
###############################################################################


@njit(cache=True)
def weighted_history_sum(
    weights: np.ndarray,
    history: np.ndarray,
    past: np.ndarray,
    n: int,
    h: float,
) -> Tuple[float, float]:
    """
    Compute Xbar^n = h * sum_{j>=1} weights[j] * X^{n-j}.

    Args:
        weights: Kernel weights r[0..J)
        history: (>= n, 2) array with X^0..X^{n-1}
        past: (J, 2) array, past[k] = X(-k h) for k >= 1
        n: Step index
        h: Time step

    Returns:
        (xbar_x, xbar_y), summed in increasing lag order.
    """
    sx = 0.0
    sy = 0.0
    for j in range(1, weights.shape[0]):
        w = h * weights[j]
        if n - j >= 0:
            sx += history[n - j, 0] * w
            sy += history[n - j, 1] * w
        else:
            k = j - n
            sx += past[k, 0] * w
            sy += past[k, 1] * w
    return sx, sy


###############################################################################
# Simulator
###############################################################################


class DelayedSweepingSimulator:
    """
    Stateful stepper for the delayed sweeping process.

    Args:
        params: Simulation parameters (h, kernel_decay, T)
        center_func: t -> constraint center in world coordinates
        past_func: t -> X(t) for t < 0
        project_func: (point, center[, angle]) -> ProjectionResult-like object
            with ``projected`` and ``gradient_norm``
        angle_func: optional t -> constraint rotation; when given, the angle is
            passed to project_func as third argument
        tol: kernel truncation tolerance
        verbose: print progress from simulate()
    """

    def __init__(
        self,
        params: SimulationParameters,
        center_func: Callable[[float], Vec2],
        past_func: Callable[[float], Vec2],
        project_func: Callable,
        angle_func: Optional[Callable[[float], float]] = None,
        tol: float = DEFAULT_TOLERANCE,
        verbose: bool = False,
    ) -> None:
        self.params = params
        self.center_func = center_func
        self.past_func = past_func
        self.project_func = project_func
        self.angle_func = angle_func
        self.tol = tol
        self.verbose = verbose

        self.buffer = TrajectoryBuffer(capacity=params.total_steps + 1)
        self._derive()

    def _derive(self) -> None:
        """Recompute kernel weights, step count and sampled history."""
        h = self.params.h
        self.N = self.params.total_steps
        try:
            self.weights = compute_discrete_weights(self.params.kernel_decay, h, self.tol)
            self.kernel_degenerate = False
        except DegenerateKernelError:
            self.weights = np.zeros(0, dtype=np.float64)
            self.kernel_degenerate = True
            if self.verbose:
                print(
                    f"[delayed] degenerate kernel (decay={self.params.kernel_decay:g}, h={h:g}); "
                    "using zero-memory limit"
                )

        # past[k] = X(-k h); row 0 is never read
        length = max(self.weights.shape[0], 2)
        past = np.zeros((length, 2), dtype=np.float64)
        for k in range(1, length):
            p = vec2.as_vec2(self.past_func((-k) * h))
            past[k, 0] = p.x
            past[k, 1] = p.y
        self._past = past

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def pre_projection_point(self, n: int) -> Vec2:
        """Xbar^n from the current prefix (requires n == current_step)."""
        h = self.params.h
        if self.kernel_degenerate:
            if n == 0:
                return Vec2(float(self._past[1, 0]), float(self._past[1, 1]))
            return self.buffer.position(n - 1)
        sx, sy = weighted_history_sum(self.weights, self.buffer.positions, self._past, n, h)
        return Vec2(sx, sy)

    def step(self, n: int) -> StepRecord:
        """
        Compute step n. Raises StepOrderError unless n == current_step.
        """
        if n != self.buffer.length:
            raise StepOrderError(self.buffer.length, n)

        t_n = n * self.params.h
        x_bar = self.pre_projection_point(n)
        center = vec2.as_vec2(self.center_func(t_n))

        if self.angle_func is not None:
            angle = float(self.angle_func(t_n))
            result = self.project_func(x_bar, center, angle)
        else:
            angle = 0.0
            result = self.project_func(x_bar, center)

        x_new = vec2.as_vec2(result.projected)
        record = StepRecord(
            index=n,
            time=t_n,
            position=x_new,
            pre_projection=x_bar,
            center=center,
            angle=angle,
            projection_distance=vec2.distance(x_new, x_bar),
            gradient_norm=float(result.gradient_norm),
        )
        self.buffer.append(record)
        return record

    def advance(self) -> StepRecord:
        """Take the next step."""
        return self.step(self.buffer.length)

    def simulate(self) -> None:
        """Batch mode: reset, then steps 0..total_steps inclusive."""
        self.reset()
        total = self.N
        t_start = time.perf_counter()
        report_every = max(1, total // 10)
        for n in range(total + 1):
            record = self.step(n)
            if self.verbose and n % report_every == 0:
                elapsed = time.perf_counter() - t_start
                print(
                    f"[delayed] {n}/{total} steps, t={record.time:.3f}, "
                    f"|X-Xbar|={record.projection_distance:.3e}, elapsed={elapsed:.2f}s"
                )
        if self.verbose:
            elapsed = time.perf_counter() - t_start
            print(f"[delayed] completed {total + 1} steps in {elapsed:.2f}s (J={self.kernel_length})")

    def reset(self) -> None:
        """Discard the trajectory; parameters are kept."""
        self.buffer.truncate(0)

    def rewind(self, n: int) -> None:
        """Drop steps >= n so that step(n) can be recomputed from the same prefix."""
        self.buffer.truncate(n)

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def update_params(self, params: Optional[SimulationParameters] = None, **changes) -> None:
        """
        Replace parameters (whole object and/or individual fields).

        Kernel weights and step count are recomputed; computed steps are kept.
        """
        if params is not None:
            self.params = params
        if changes:
            self.params = self.params.with_updates(**changes)
        self._derive()

    def set_center_func(self, center_func: Callable[[float], Vec2]) -> None:
        self.center_func = center_func

    def set_angle_func(self, angle_func: Optional[Callable[[float], float]]) -> None:
        self.angle_func = angle_func

    def set_project_func(self, project_func: Callable) -> None:
        self.project_func = project_func

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def current_step(self) -> int:
        return self.buffer.length

    @property
    def total_steps(self) -> int:
        return self.N

    @property
    def kernel_length(self) -> int:
        return int(self.weights.shape[0])

    def record(self, n: int) -> StepRecord:
        return self.buffer.record(n, self.params.h)

    def get_trajectory(self) -> np.ndarray:
        return self.buffer.view("positions")

    def get_pre_projection(self) -> np.ndarray:
        return self.buffer.view("pre_projection")

    def get_constraint_centers(self) -> np.ndarray:
        return self.buffer.view("centers")

    def get_angles(self) -> np.ndarray:
        return self.buffer.view("angles")

    def get_projection_distances(self) -> np.ndarray:
        return self.buffer.view("projection_distances")

    def get_gradient_norms(self) -> np.ndarray:
        return self.buffer.view("gradient_norms")


__all__ = ["DelayedSweepingSimulator", "weighted_history_sum"]
