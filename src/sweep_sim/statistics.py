"""
Per-step diagnostics of sweeping trajectories.

With X^n the trajectory and Xbar^n the pre-projection points:

- lagrange_multiplier[n]       = |X^n - Xbar^n|                 (|lambda_n G_n|)
- lagrange_multiplier_value[n] = |X^n - Xbar^n| / |grad g(X^n)| (lambda_n)
- lagrange_dot_product[n]      = <(X^n - Xbar^n) - (X^{n-1} - Xbar^{n-1}), X^n - X^{n-1}>
- delayed energy E_n           = h * sum_{1<=j<=n} r_j |X^n - X^{n-j}|^2
- classical energy             = |X^n - X^{n-1}|^2 / (2 h^2)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np
from numba import njit

GRADIENT_FLOOR = 1e-10


@njit(cache=True)
def delayed_energy(trajectory: np.ndarray, weights: np.ndarray, h: float) -> np.ndarray:
    n_steps = trajectory.shape[0]
    out = np.zeros(n_steps, dtype=np.float64)
    for i in range(n_steps):
        e = 0.0
        j = 1
        while j < weights.shape[0] and i - j >= 0:
            dx = trajectory[i, 0] - trajectory[i - j, 0]
            dy = trajectory[i, 1] - trajectory[i - j, 1]
            e += h * weights[j] * (dx * dx + dy * dy)
            j += 1
        out[i] = e
    return out


def classical_energy(trajectory: np.ndarray, h: float) -> np.ndarray:
    out = np.zeros(trajectory.shape[0], dtype=np.float64)
    if trajectory.shape[0] > 1:
        d = np.diff(trajectory, axis=0)
        out[1:] = np.sum(d * d, axis=1) / (2.0 * h * h)
    return out


def step_lengths(trajectory: np.ndarray) -> np.ndarray:
    """|X^n - X^{n-1}| with 0 at n = 0."""
    out = np.zeros(trajectory.shape[0], dtype=np.float64)
    if trajectory.shape[0] > 1:
        out[1:] = np.linalg.norm(np.diff(trajectory, axis=0), axis=1)
    return out


def lagrange_terms(trajectory: np.ndarray, pre_projection: np.ndarray) -> np.ndarray:
    """Displacement vectors X^n - Xbar^n, shape (N, 2)."""
    return np.asarray(trajectory, dtype=np.float64) - np.asarray(pre_projection, dtype=np.float64)


def multiplier_values(lagrange_norms: np.ndarray, gradient_norms: np.ndarray) -> np.ndarray:
    """lambda_n; samples with gradient norm <= GRADIENT_FLOOR are reported as 0."""
    grads = np.asarray(gradient_norms, dtype=np.float64)
    out = np.zeros_like(lagrange_norms)
    ok = grads > GRADIENT_FLOOR
    out[ok] = lagrange_norms[ok] / grads[ok]
    return out


def dot_products(trajectory: np.ndarray, terms: np.ndarray) -> np.ndarray:
    out = np.zeros(trajectory.shape[0], dtype=np.float64)
    if trajectory.shape[0] > 1:
        d_terms = np.diff(terms, axis=0)
        d_pos = np.diff(trajectory, axis=0)
        out[1:] = np.sum(d_terms * d_pos, axis=1)
    return out


@dataclass
class TrajectoryStatistics:
    time: np.ndarray
    position: np.ndarray
    velocity: np.ndarray
    distance_from_origin: np.ndarray
    projection_distance: np.ndarray
    gradient_norm: np.ndarray
    lagrange_multiplier: np.ndarray
    lagrange_multiplier_value: np.ndarray
    lagrange_dot_product: np.ndarray
    total_energy: np.ndarray

    def as_columns(self, prefix: str = "") -> Dict[str, np.ndarray]:
        return {
            f"{prefix}position_x": self.position[:, 0],
            f"{prefix}position_y": self.position[:, 1],
            f"{prefix}velocity": self.velocity,
            f"{prefix}distance_from_origin": self.distance_from_origin,
            f"{prefix}projection_distance": self.projection_distance,
            f"{prefix}gradient_norm": self.gradient_norm,
            f"{prefix}lagrange_multiplier": self.lagrange_multiplier,
            f"{prefix}lagrange_multiplier_value": self.lagrange_multiplier_value,
            f"{prefix}lagrange_dot_product": self.lagrange_dot_product,
            f"{prefix}total_energy": self.total_energy,
        }


def trajectory_statistics(
    trajectory: np.ndarray,
    pre_projection: np.ndarray,
    gradient_norms: np.ndarray,
    projection_distances: np.ndarray,
    h: float,
    weights: Optional[np.ndarray] = None,
) -> TrajectoryStatistics:
    """
    Per-step diagnostics for one process.

    With ``weights`` the delayed energy is used, otherwise the classical
    kinetic energy.
    """
    X = np.asarray(trajectory, dtype=np.float64).reshape(-1, 2)
    terms = lagrange_terms(X, np.asarray(pre_projection, dtype=np.float64).reshape(-1, 2))
    lam_g = np.linalg.norm(terms, axis=1)
    if weights is not None:
        energy = delayed_energy(X, np.asarray(weights, dtype=np.float64), float(h))
    else:
        energy = classical_energy(X, h)

    return TrajectoryStatistics(
        time=np.arange(X.shape[0], dtype=np.float64) * h,
        position=X,
        velocity=step_lengths(X) / h,
        distance_from_origin=np.linalg.norm(X, axis=1),
        projection_distance=np.asarray(projection_distances, dtype=np.float64),
        gradient_norm=np.asarray(gradient_norms, dtype=np.float64),
        lagrange_multiplier=lam_g,
        lagrange_multiplier_value=multiplier_values(lam_g, gradient_norms),
        lagrange_dot_product=dot_products(X, terms),
        total_energy=energy,
    )


def run_statistics(result) -> Dict[str, TrajectoryStatistics]:
    """Statistics of both processes of a RunResult, keyed 'delayed' / 'classical'."""
    d = result.delayed
    c = result.classical
    return {
        "delayed": trajectory_statistics(
            d.trajectory, d.pre_projection, d.gradient_norms, d.projection_distances, result.h, d.weights
        ),
        "classical": trajectory_statistics(
            c.trajectory, c.pre_projection, c.gradient_norms, c.projection_distances, result.h
        ),
    }


def _min_max(values: np.ndarray, prefix: str, key: str, positive_only: bool = False) -> Dict[str, float]:
    v = values[values > 0] if positive_only else values
    if v.size == 0:
        return {f"{prefix}max_{key}": 0.0, f"{prefix}min_{key}": 0.0}
    return {f"{prefix}max_{key}": float(np.max(v)), f"{prefix}min_{key}": float(np.min(v))}


def terminal_statistics(stats: TrajectoryStatistics, prefix: str = "") -> Dict[str, float]:
    """
    Terminal values plus extrema over the run.

    Extrema of multiplier values and dot products skip n = 0, minimum
    projection distance only considers positive samples.
    """
    if stats.position.shape[0] == 0:
        return {}
    last = stats.position.shape[0] - 1
    out = {
        f"{prefix}position_x": float(stats.position[last, 0]),
        f"{prefix}position_y": float(stats.position[last, 1]),
        f"{prefix}velocity": float(stats.velocity[last]),
        f"{prefix}distance_from_origin": float(stats.distance_from_origin[last]),
        f"{prefix}projection_distance": float(stats.projection_distance[last]),
        f"{prefix}gradient_norm": float(stats.gradient_norm[last]),
        f"{prefix}lagrange_multiplier": float(stats.lagrange_multiplier[last]),
        f"{prefix}lagrange_multiplier_value": float(stats.lagrange_multiplier_value[last]),
        f"{prefix}lagrange_dot_product": float(stats.lagrange_dot_product[last]),
        f"{prefix}total_energy": float(stats.total_energy[last]),
    }
    out.update(_min_max(stats.projection_distance, prefix, "projection_distance", positive_only=True))
    out.update(_min_max(stats.lagrange_multiplier_value[1:], prefix, "lagrange_multiplier_value"))
    out.update(_min_max(stats.lagrange_dot_product[1:], prefix, "lagrange_dot_product"))
    return out


__all__ = [
    "GRADIENT_FLOOR",
    "TrajectoryStatistics",
    "delayed_energy",
    "classical_energy",
    "trajectory_statistics",
    "run_statistics",
    "terminal_statistics",
]
