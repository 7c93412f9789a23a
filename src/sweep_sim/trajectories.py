from __future__ import annotations

import math
from typing import Callable

from .config import TRAJECTORY_TYPES, SimulationParameters, TrajectorySpec
from .expressions import make_time_function
from .vec2 import Vec2

CenterFunction = Callable[[float], Vec2]
AngleFunction = Callable[[float], float]


def make_center_function(spec: TrajectorySpec) -> CenterFunction:
    """Center c(t) of the constraint in world coordinates."""
    p = dict(TRAJECTORY_TYPES.get(spec.type, {}))
    p.update(spec.params)

    if spec.type == "expression":
        fx = make_time_function(spec.x)
        fy = make_time_function(spec.y)
        return lambda t: Vec2(fx(t), fy(t))

    if spec.type == "circular":
        return lambda t: Vec2(
            p["centerX"] + p["radius"] * math.cos(p["omega"] * t + p["phase"]),
            p["centerY"] + p["radius"] * math.sin(p["omega"] * t + p["phase"]),
        )

    if spec.type == "ellipse":
        return lambda t: Vec2(
            p["centerX"] + p["semiMajor"] * math.cos(p["omega"] * t + p["phase"]),
            p["centerY"] + p["semiMinor"] * math.sin(p["omega"] * t + p["phase"]),
        )

    if spec.type == "lissajous":
        return lambda t: Vec2(
            p["centerX"] + p["amplitudeX"] * math.sin(p["freqX"] * t + p["phaseX"]),
            p["centerY"] + p["amplitudeY"] * math.sin(p["freqY"] * t + p["phaseY"]),
        )

    if spec.type == "linear":
        return lambda t: Vec2(
            p["startX"] + p["velocityX"] * t,
            p["startY"] + p["velocityY"] * t,
        )

    # stationary
    return lambda t: Vec2(0.0, 0.0)


def make_angle_function(spec: TrajectorySpec) -> AngleFunction:
    """Rotation angle alpha(t) of the constraint (radians)."""
    return make_time_function(spec.alpha or "0")


def make_past_function(params: SimulationParameters) -> CenterFunction:
    """History X(t) for t < 0 from the past_x / past_y expressions."""
    fx = make_time_function(params.past_x)
    fy = make_time_function(params.past_y)
    return lambda t: Vec2(fx(t), fy(t))


def constant_function(point) -> CenterFunction:
    """c(t) = point for every t."""
    fixed = Vec2(float(point[0]), float(point[1]))
    return lambda t: fixed


__all__ = [
    "CenterFunction",
    "AngleFunction",
    "make_center_function",
    "make_angle_function",
    "make_past_function",
    "constant_function",
]
