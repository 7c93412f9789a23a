"""
Constraint evaluation and projection for implicit sets C = {g >= 0}.

The scalar function g is defined in local coordinates; a ConstraintFrame
(center + rotation angle) places it in world coordinates. Projection of an
infeasible point uses Newton steps along the gradient towards the zero level
set, which is exact for a disk and a local approximation otherwise.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple

import numpy as np

from . import vec2
from .vec2 import Vec2

Evaluator = Callable[[float, float], float]

###############################################################################
# Constants
###############################################################################

FD_STEP = 1e-6
NEWTON_MAX_ITERATIONS = 50
NEWTON_TOLERANCE = 1e-8
DEGENERATE_GRAD_SQ = 1e-12


###############################################################################
# Coordinate frame
###############################################################################


@dataclass
class ConstraintFrame:
    """Rigid transform between local constraint coordinates and world coordinates."""

    center: Vec2 = field(default_factory=lambda: Vec2(0.0, 0.0))
    angle: float = 0.0

    def to_local(self, p: Vec2) -> Vec2:
        return vec2.rotate(vec2.sub(p, self.center), -self.angle)

    def to_world(self, p: Vec2) -> Vec2:
        return vec2.add(vec2.rotate(p, self.angle), self.center)

    def direction_to_world(self, v: Vec2) -> Vec2:
        """Rotate a local direction (e.g. a gradient); translation does not apply."""
        return vec2.rotate(v, self.angle)


###############################################################################
# Numerical routines (local coordinates)
###############################################################################


def numerical_gradient(evaluator: Evaluator, x: float, y: float, eps: float = FD_STEP) -> Vec2:
    """Central finite-difference gradient of g at (x, y)."""
    dgdx = (evaluator(x + eps, y) - evaluator(x - eps, y)) / (2.0 * eps)
    dgdy = (evaluator(x, y + eps) - evaluator(x, y - eps)) / (2.0 * eps)
    return Vec2(dgdx, dgdy)


def project_to_constraint(
    evaluator: Evaluator,
    point: Vec2,
    max_iterations: int = NEWTON_MAX_ITERATIONS,
    tolerance: float = NEWTON_TOLERANCE,
) -> Tuple[Vec2, bool]:
    """
    Project a local point onto {g >= 0}.

    Feasible points are returned unchanged. Otherwise damped Newton steps
    p <- p - g(p) * grad / |grad|^2 are taken until g(p) >= -tolerance.

    Returns:
        (point, degenerate): degenerate is True when iteration stopped on a
        vanishing gradient; the point is then the best estimate reached.
    """
    if evaluator(point.x, point.y) >= 0.0:
        return point, False

    px, py = point.x, point.y
    for _ in range(max_iterations):
        g_val = evaluator(px, py)
        if g_val >= -tolerance:
            break

        grad = numerical_gradient(evaluator, px, py)
        grad_sq = vec2.length_sq(grad)
        if grad_sq < DEGENERATE_GRAD_SQ:
            return Vec2(px, py), True

        step = -g_val / grad_sq
        px += step * grad.x
        py += step * grad.y

    return Vec2(px, py), False


def compute_boundary_polygon(
    evaluator: Evaluator,
    num_rays: int = 128,
    max_radius: float = 10.0,
    iterations: int = 50,
) -> np.ndarray:
    """
    Approximate the zero level set by bisection along rays from the origin.

    Suited to star-shaped sets containing the local origin. Returns an
    (num_rays, 2) array in local coordinates.
    """
    out = np.empty((num_rays, 2), dtype=np.float64)
    for i in range(num_rays):
        theta = 2.0 * math.pi * i / num_rays
        dx, dy = math.cos(theta), math.sin(theta)
        lo, hi = 0.0, max_radius
        for _ in range(iterations):
            mid = 0.5 * (lo + hi)
            if evaluator(mid * dx, mid * dy) >= 0.0:
                lo = mid
            else:
                hi = mid
        radius = 0.5 * (lo + hi)
        out[i, 0] = radius * dx
        out[i, 1] = radius * dy
    return out


###############################################################################
# Projector
###############################################################################


@dataclass(frozen=True)
class ProjectionResult:
    projected: Vec2
    gradient_norm: float  # |grad g| at the projected point
    distance: float  # |g| at the input point
    was_outside: bool
    degenerate: bool = False


class ConstraintProjector:
    """
    World-coordinate view of an implicit constraint g(x, y) >= 0.

    The evaluator is treated as pure; the frame is the only mutable state and
    is changed through update().
    """

    def __init__(self, evaluator: Evaluator, frame: Optional[ConstraintFrame] = None) -> None:
        self.evaluator = evaluator
        self.frame = frame if frame is not None else ConstraintFrame()

    @property
    def center(self) -> Vec2:
        return self.frame.center

    @property
    def angle(self) -> float:
        return self.frame.angle

    def update(self, center=None, angle: Optional[float] = None) -> None:
        """Partial frame update; omitted fields keep their value."""
        if center is not None:
            self.frame.center = vec2.as_vec2(center)
        if angle is not None:
            self.frame.angle = float(angle)

    def evaluate(self, p) -> float:
        local = self.frame.to_local(vec2.as_vec2(p))
        return self.evaluator(local.x, local.y)

    def gradient(self, p) -> Vec2:
        local = self.frame.to_local(vec2.as_vec2(p))
        return self.frame.direction_to_world(numerical_gradient(self.evaluator, local.x, local.y))

    def project_point(self, p) -> Tuple[Vec2, bool]:
        p = vec2.as_vec2(p)
        # feasible points must come back bit-for-bit, not via to_world(to_local(p))
        if self.evaluate(p) >= 0.0:
            return p, False
        local, degenerate = project_to_constraint(self.evaluator, self.frame.to_local(p))
        return self.frame.to_world(local), degenerate

    def project(self, p) -> Vec2:
        return self.project_point(p)[0]

    def project_with_stats(self, p) -> ProjectionResult:
        p = vec2.as_vec2(p)
        g = self.evaluate(p)
        projected, degenerate = self.project_point(p)
        return ProjectionResult(
            projected=projected,
            gradient_norm=vec2.length(self.gradient(projected)),
            distance=abs(g),
            was_outside=g < 0.0,
            degenerate=degenerate,
        )

    def boundary_polygon(self, num_rays: int = 128, max_radius: float = 10.0) -> np.ndarray:
        """Boundary outline in world coordinates for the current frame."""
        local = compute_boundary_polygon(self.evaluator, num_rays=num_rays, max_radius=max_radius)
        c, s = math.cos(self.frame.angle), math.sin(self.frame.angle)
        world = np.empty_like(local)
        world[:, 0] = c * local[:, 0] - s * local[:, 1] + self.frame.center.x
        world[:, 1] = s * local[:, 0] + c * local[:, 1] + self.frame.center.y
        return world


ProjectFunction = Callable[..., ProjectionResult]


def make_projection_function(projector: ConstraintProjector) -> ProjectFunction:
    """
    Wrap a projector as ``project(point, center, angle=0.0) -> ProjectionResult``.

    The frame is moved to (center, angle) before every projection.
    """

    def project(point, center, angle: float = 0.0) -> ProjectionResult:
        projector.update(center=center, angle=angle)
        return projector.project_with_stats(point)

    return project


__all__ = [
    "FD_STEP",
    "NEWTON_MAX_ITERATIONS",
    "NEWTON_TOLERANCE",
    "ConstraintFrame",
    "ConstraintProjector",
    "ProjectionResult",
    "numerical_gradient",
    "project_to_constraint",
    "compute_boundary_polygon",
    "make_projection_function",
]
