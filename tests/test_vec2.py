# tests/test_vec2.py
import math

import numpy as np
import pytest

from sweep_sim import vec2
from sweep_sim.vec2 import Vec2


def test_arithmetic():
    a, b = Vec2(1.0, 2.0), Vec2(3.0, -1.0)
    assert vec2.add(a, b) == (4.0, 1.0)
    assert vec2.sub(a, b) == (-2.0, 3.0)
    assert vec2.scale(a, 2.0) == (2.0, 4.0)
    assert vec2.dot(a, b) == 1.0
    assert vec2.distance(a, b) == pytest.approx(math.sqrt(13.0))


def test_normalize():
    n = vec2.normalize(Vec2(3.0, 4.0))
    assert n == pytest.approx((0.6, 0.8))
    assert vec2.normalize(Vec2(1e-12, 0.0)) == vec2.ZERO


def test_rotate_quarter_turn():
    r = vec2.rotate(Vec2(1.0, 0.0), math.pi / 2)
    assert r == pytest.approx((0.0, 1.0), abs=1e-15)


def test_as_vec2():
    v = vec2.as_vec2(np.array([1, 2]))
    assert isinstance(v, Vec2)
    assert isinstance(v.x, float)
    assert v == (1.0, 2.0)
