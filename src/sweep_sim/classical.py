"""Classical (memory-less) sweeping process: X^n = P_{C(t_n)}(X^{n-1})."""

from __future__ import annotations

import time
from typing import Callable, Optional

import numpy as np

from . import vec2
from .config import SimulationParameters
from .history import StepOrderError, StepRecord, TrajectoryBuffer
from .vec2 import Vec2


class ClassicalSweepingSimulator:
    """
    Reference process for the delayed simulator (its zero-memory limit).

    The pre-projection point is X^{n-1} (past_func(0) for n = 0). The recorded
    projection distance is |g(X^{n-1})| in the constraint at t_n, taken from
    ``result.distance`` of project_func.
    """

    def __init__(
        self,
        params: SimulationParameters,
        center_func: Callable[[float], Vec2],
        past_func: Callable[[float], Vec2],
        project_func: Callable,
        angle_func: Optional[Callable[[float], float]] = None,
        verbose: bool = False,
    ) -> None:
        self.params = params
        self.center_func = center_func
        self.past_func = past_func
        self.project_func = project_func
        self.angle_func = angle_func
        self.verbose = verbose
        self.N = params.total_steps
        self.buffer = TrajectoryBuffer(capacity=self.N + 1)

    def step(self, n: int) -> StepRecord:
        if n != self.buffer.length:
            raise StepOrderError(self.buffer.length, n)

        t_n = n * self.params.h
        center = vec2.as_vec2(self.center_func(t_n))
        if n == 0:
            x_prev = vec2.as_vec2(self.past_func(0.0))
        else:
            x_prev = self.buffer.position(n - 1)

        if self.angle_func is not None:
            angle = float(self.angle_func(t_n))
            result = self.project_func(x_prev, center, angle)
        else:
            angle = 0.0
            result = self.project_func(x_prev, center)

        record = StepRecord(
            index=n,
            time=t_n,
            position=vec2.as_vec2(result.projected),
            pre_projection=x_prev,
            center=center,
            angle=angle,
            projection_distance=float(result.distance),
            gradient_norm=float(result.gradient_norm),
        )
        self.buffer.append(record)
        return record

    def advance(self) -> StepRecord:
        return self.step(self.buffer.length)

    def simulate(self) -> None:
        """Batch mode: reset, then steps 0..total_steps inclusive."""
        self.reset()
        t_start = time.perf_counter()
        for n in range(self.N + 1):
            self.step(n)
        if self.verbose:
            elapsed = time.perf_counter() - t_start
            print(f"[classical] completed {self.N + 1} steps in {elapsed:.2f}s")

    def reset(self) -> None:
        self.buffer.truncate(0)

    def rewind(self, n: int) -> None:
        self.buffer.truncate(n)

    def update_params(self, params: Optional[SimulationParameters] = None, **changes) -> None:
        if params is not None:
            self.params = params
        if changes:
            self.params = self.params.with_updates(**changes)
        self.N = self.params.total_steps

    def set_center_func(self, center_func: Callable[[float], Vec2]) -> None:
        self.center_func = center_func

    def set_angle_func(self, angle_func: Optional[Callable[[float], float]]) -> None:
        self.angle_func = angle_func

    def set_project_func(self, project_func: Callable) -> None:
        self.project_func = project_func

    @property
    def current_step(self) -> int:
        return self.buffer.length

    @property
    def total_steps(self) -> int:
        return self.N

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


__all__ = ["ClassicalSweepingSimulator"]
