"""
Discrete memory-kernel weights for the exponential kernel.

For rho(a) = lam * exp(-lam * a) the cell averages over [j h, (j+1) h) are

    R_j = (1/h) * exp(-lam * j * h) * (1 - exp(-lam * h))

and the weights consumed by the delayed recursion are r_j = R_j / mu with
mu = h * sum_{j>=1} R_j, so that h * sum_{j>=1} r_j = 1. Lag 0 is kept in the
returned array for indexing convenience but never used by the recursion.
"""

from __future__ import annotations

import math

import numpy as np

###############################################################################
# Constants
###############################################################################

DEFAULT_TOLERANCE = 1e-12
MAX_KERNEL_LENGTH = 100_000  # hard ceiling regardless of tolerance
DEFAULT_MEMORY_THRESHOLD = 0.01


class DegenerateKernelError(ValueError):
    """Raised when no weight survives at lag >= 1 (lam * h too large)."""

    def __init__(self, decay: float, h: float, length: int) -> None:
        self.decay = decay
        self.h = h
        self.length = length
        super().__init__(
            f"kernel with decay={decay:g}, h={h:g} truncates to {length} weight(s); "
            "no memory at lag >= 1"
        )


def _check_inputs(decay: float, h: float, tol: float) -> None:
    if not (decay > 0.0 and math.isfinite(decay)):
        raise ValueError(f"kernel decay must be a positive finite number, got {decay!r}")
    if not (h > 0.0 and math.isfinite(h)):
        raise ValueError(f"step size h must be a positive finite number, got {h!r}")
    if not (0.0 < tol < 1.0):
        raise ValueError(f"truncation tolerance must lie in (0, 1), got {tol!r}")


def truncation_length(decay: float, h: float, tol: float = DEFAULT_TOLERANCE) -> int:
    """
    Number of weights J_max kept for the kernel.

    Smallest J with exp(-decay * J * h) < tol, capped at MAX_KERNEL_LENGTH.
    Non-increasing in both decay and h.
    """
    _check_inputs(decay, h, tol)
    return min(math.ceil(-math.log(tol) / (decay * h)), MAX_KERNEL_LENGTH)


def compute_discrete_weights(
    decay: float,
    h: float,
    tol: float = DEFAULT_TOLERANCE,
) -> np.ndarray:
    """
    Compute normalized discrete kernel weights r[0..J_max).

    Args:
        decay: Exponential decay rate (larger = shorter memory)
        h: Time step
        tol: Truncation tolerance on exp(-decay * J * h)

    Returns:
        float64 array of length J_max, strictly decreasing, with
        h * r[1:].sum() == 1 up to rounding.

    Raises:
        DegenerateKernelError: if fewer than two weights survive truncation.
    """
    j_max = truncation_length(decay, h, tol)
    if j_max < 2:
        raise DegenerateKernelError(decay, h, j_max)

    factor = (1.0 / h) * (1.0 - math.exp(-decay * h))
    lags = np.arange(j_max, dtype=np.float64)
    R = factor * np.exp(-decay * lags * h)

    mu = h * float(np.sum(R[1:]))
    if not (mu > 0.0 and math.isfinite(mu)):
        raise DegenerateKernelError(decay, h, j_max)

    return R / mu


def memory_length(decay: float, tol: float = DEFAULT_MEMORY_THRESHOLD) -> float:
    """Time span over which the kernel keeps weight above tol."""
    if not decay > 0.0:
        raise ValueError(f"kernel decay must be positive, got {decay!r}")
    return -math.log(tol) / decay


__all__ = [
    "DEFAULT_TOLERANCE",
    "MAX_KERNEL_LENGTH",
    "DegenerateKernelError",
    "truncation_length",
    "compute_discrete_weights",
    "memory_length",
]
