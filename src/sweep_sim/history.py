"""Per-step storage shared by the sweeping simulators."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .vec2 import Vec2

DEFAULT_CAPACITY = 1024
MAX_INITIAL_CAPACITY = 64 * DEFAULT_CAPACITY  # larger runs grow by doubling


class StepOrderError(RuntimeError):
    """step(n) was called with n different from the number of steps taken."""

    def __init__(self, expected: int, got: int) -> None:
        self.expected = expected
        self.got = got
        super().__init__(f"steps must be taken in order: expected step({expected}), got step({got})")


@dataclass(frozen=True)
class StepRecord:
    """Everything produced by one step of a sweeping simulator."""

    index: int
    time: float
    position: Vec2
    pre_projection: Vec2
    center: Vec2
    angle: float
    projection_distance: float
    gradient_norm: float


class TrajectoryBuffer:
    """
    Growable, index-aligned arrays for positions, pre-projection points,
    constraint centers, angles, projection distances and gradient norms.

    Only appending and truncation are supported; entries are never rewritten.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        capacity = max(1, min(int(capacity), MAX_INITIAL_CAPACITY))
        self.positions = np.zeros((capacity, 2), dtype=np.float64)
        self.pre_projection = np.zeros((capacity, 2), dtype=np.float64)
        self.centers = np.zeros((capacity, 2), dtype=np.float64)
        self.angles = np.zeros(capacity, dtype=np.float64)
        self.projection_distances = np.zeros(capacity, dtype=np.float64)
        self.gradient_norms = np.zeros(capacity, dtype=np.float64)
        self.length = 0

    def __len__(self) -> int:
        return self.length

    @property
    def capacity(self) -> int:
        return self.positions.shape[0]

    def _grow(self) -> None:
        new_cap = 2 * self.capacity
        for name in (
            "positions",
            "pre_projection",
            "centers",
            "angles",
            "projection_distances",
            "gradient_norms",
        ):
            old = getattr(self, name)
            new = np.zeros((new_cap,) + old.shape[1:], dtype=old.dtype)
            new[: self.length] = old[: self.length]
            setattr(self, name, new)

    def append(self, record: StepRecord) -> None:
        if self.length == self.capacity:
            self._grow()
        n = self.length
        self.positions[n] = record.position
        self.pre_projection[n] = record.pre_projection
        self.centers[n] = record.center
        self.angles[n] = record.angle
        self.projection_distances[n] = record.projection_distance
        self.gradient_norms[n] = record.gradient_norm
        self.length = n + 1

    def truncate(self, n: int) -> None:
        if not 0 <= n <= self.length:
            raise IndexError(f"cannot truncate to {n}; buffer holds {self.length} steps")
        self.length = n

    def position(self, n: int) -> Vec2:
        return Vec2(float(self.positions[n, 0]), float(self.positions[n, 1]))

    def record(self, n: int, h: float) -> StepRecord:
        if not 0 <= n < self.length:
            raise IndexError(f"step {n} has not been computed (have {self.length})")
        return StepRecord(
            index=n,
            time=n * h,
            position=self.position(n),
            pre_projection=Vec2(float(self.pre_projection[n, 0]), float(self.pre_projection[n, 1])),
            center=Vec2(float(self.centers[n, 0]), float(self.centers[n, 1])),
            angle=float(self.angles[n]),
            projection_distance=float(self.projection_distances[n]),
            gradient_norm=float(self.gradient_norms[n]),
        )

    def view(self, name: str) -> np.ndarray:
        """Copy of the filled part of one of the arrays."""
        return getattr(self, name)[: self.length].copy()


__all__ = ["MAX_INITIAL_CAPACITY", "StepOrderError", "StepRecord", "TrajectoryBuffer"]
