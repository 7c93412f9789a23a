from __future__ import annotations

import math
from typing import NamedTuple


class Vec2(NamedTuple):
    """Immutable 2D point / vector."""

    x: float
    y: float


ZERO = Vec2(0.0, 0.0)


def add(a: Vec2, b: Vec2) -> Vec2:
    return Vec2(a.x + b.x, a.y + b.y)


def sub(a: Vec2, b: Vec2) -> Vec2:
    return Vec2(a.x - b.x, a.y - b.y)


def scale(v: Vec2, s: float) -> Vec2:
    return Vec2(v.x * s, v.y * s)


def dot(a: Vec2, b: Vec2) -> float:
    return a.x * b.x + a.y * b.y


def length_sq(v: Vec2) -> float:
    return v.x * v.x + v.y * v.y


def length(v: Vec2) -> float:
    return math.sqrt(v.x * v.x + v.y * v.y)


def distance(a: Vec2, b: Vec2) -> float:
    dx = a.x - b.x
    dy = a.y - b.y
    return math.sqrt(dx * dx + dy * dy)


def normalize(v: Vec2) -> Vec2:
    """Unit vector along v; the zero vector for |v| < 1e-10."""
    n = length(v)
    if n < 1e-10:
        return ZERO
    return Vec2(v.x / n, v.y / n)


def rotate(v: Vec2, angle: float) -> Vec2:
    """Rotate counter-clockwise by angle (radians)."""
    c = math.cos(angle)
    s = math.sin(angle)
    return Vec2(v.x * c - v.y * s, v.x * s + v.y * c)


def as_vec2(p) -> Vec2:
    """Coerce a Vec2, 2-sequence or length-2 array into a Vec2 of floats."""
    if isinstance(p, Vec2):
        return p
    return Vec2(float(p[0]), float(p[1]))


__all__ = [
    "Vec2",
    "ZERO",
    "add",
    "sub",
    "scale",
    "dot",
    "length_sq",
    "length",
    "distance",
    "normalize",
    "rotate",
    "as_vec2",
]
