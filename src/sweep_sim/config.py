"""Simulation configuration: parameters, constraint, center trajectory, metadata.

A configuration is four sections, mirroring the files accepted by
``load_config``::

    [simulation]  T, h, kernel_decay, infinite_mode, past_x, past_y
    [constraint]  expression, R, r, a, b
    [trajectory]  type, x, y, alpha, (type-specific parameters)
    [metadata]    free-form, optional

The camelCase keys of older configuration files (``epsilon``, ``kernelDecay``,
``xPastExpression``, ``xExpression``...) are accepted as aliases.
"""

from __future__ import annotations

import dataclasses
import math
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from . import utils
from .expressions import ExpressionError, compile_expression

__all__ = [
    "ConfigError",
    "SimulationParameters",
    "ConstraintSpec",
    "TrajectorySpec",
    "SimulationConfig",
    "TRAJECTORY_TYPES",
    "load_config",
]


class ConfigError(ValueError):
    """Malformed configuration; the run is rejected as a whole."""


# Parameters (and defaults) of the parametric center trajectories.
TRAJECTORY_TYPES: Dict[str, Dict[str, float]] = {
    "expression": {},
    "stationary": {},
    "circular": {"centerX": 0.0, "centerY": 0.0, "radius": 2.0, "omega": 1.0, "phase": 0.0},
    "ellipse": {
        "centerX": 0.0,
        "centerY": 0.0,
        "semiMajor": 2.0,
        "semiMinor": 1.0,
        "omega": 1.0,
        "phase": 0.0,
    },
    "lissajous": {
        "centerX": 0.0,
        "centerY": 0.0,
        "amplitudeX": 2.0,
        "amplitudeY": 2.0,
        "freqX": 1.0,
        "freqY": 2.0,
        "phaseX": 0.0,
        "phaseY": 0.0,
    },
    "linear": {"startX": 0.0, "startY": 0.0, "velocityX": 1.0, "velocityY": 0.0},
}

_SIMULATION_ALIASES = {
    "kernelDecay": "kernel_decay",
    "epsilon": "kernel_decay",
    "lambda": "kernel_decay",
    "infiniteMode": "infinite_mode",
    "pastX": "past_x",
    "xPastExpression": "past_x",
    "pastY": "past_y",
    "yPastExpression": "past_y",
}

_TRAJECTORY_ALIASES = {
    "xExpression": "x",
    "yExpression": "y",
    "alphaExpression": "alpha",
}


def _rename(data: Mapping[str, Any], aliases: Mapping[str, str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in data.items():
        out[aliases.get(key, key)] = value
    return out


def _number(section: str, key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"[{section}] {key} must be a number, got {value!r}")
    try:
        out = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"[{section}] {key} must be a number, got {value!r}") from None
    if not math.isfinite(out):
        raise ConfigError(f"[{section}] {key} must be finite, got {value!r}")
    return out


def _check_time_expression(section: str, key: str, text: Any) -> str:
    if not isinstance(text, str):
        text = str(text)
    try:
        compile_expression(text, ("t",))
    except ExpressionError as exc:
        raise ConfigError(f"[{section}] {key}: {exc}") from exc
    return text


@dataclass
class SimulationParameters:
    """
    Attributes
    ----------
    T
        Final time (window length in infinite mode).
    h
        Time step.
    kernel_decay
        Decay rate of the exponential memory kernel (epsilon / lambda).
    infinite_mode
        Run until stopped by the caller instead of stopping at floor(T/h).
    past_x, past_y
        Expressions in ``t`` for the history at t < 0.
    """

    T: float = 12.0
    h: float = 0.01
    kernel_decay: float = 2.0
    infinite_mode: bool = False
    past_x: str = "2*cos(t)"
    past_y: str = "2*sin(t)"

    @property
    def total_steps(self) -> int:
        return int(math.floor(self.T / self.h))

    def with_updates(self, **changes: Any) -> "SimulationParameters":
        """Copy with some fields replaced (partial update)."""
        return dataclasses.replace(self, **changes)

    def validate(self) -> "SimulationParameters":
        for key in ("T", "h", "kernel_decay"):
            value = _number("simulation", key, getattr(self, key))
            if value <= 0.0:
                raise ConfigError(f"[simulation] {key} must be > 0, got {value!r}")
            setattr(self, key, value)
        self.infinite_mode = bool(self.infinite_mode)
        self.past_x = _check_time_expression("simulation", "past_x", self.past_x)
        self.past_y = _check_time_expression("simulation", "past_y", self.past_y)
        return self


@dataclass
class ConstraintSpec:
    """Implicit constraint g(x, y) >= 0 with named parameters R, r, a, b."""

    expression: str = "R - sqrt(x^2 + y^2)"
    R: float = 0.8
    r: float = 0.5
    a: float = 0.0
    b: float = 0.0

    def validate(self) -> "ConstraintSpec":
        if not isinstance(self.expression, str):
            raise ConfigError(f"[constraint] expression must be a string, got {self.expression!r}")
        for key in ("R", "r", "a", "b"):
            setattr(self, key, _number("constraint", key, getattr(self, key)))
        return self


@dataclass
class TrajectorySpec:
    """Center trajectory of the constraint and its rotation angle alpha(t)."""

    type: str = "expression"
    x: str = "2*cos(t)"
    y: str = "2*sin(t)"
    alpha: str = "0"
    params: Dict[str, float] = field(default_factory=dict)

    def validate(self) -> "TrajectorySpec":
        if self.type not in TRAJECTORY_TYPES:
            raise ConfigError(
                f"[trajectory] unknown type {self.type!r}; expected one of {sorted(TRAJECTORY_TYPES)}"
            )
        known = TRAJECTORY_TYPES[self.type]
        merged = dict(known)
        for key, value in self.params.items():
            if key not in known:
                raise ConfigError(f"[trajectory] {self.type} has no parameter {key!r}")
            merged[key] = _number("trajectory", key, value)
        self.params = merged
        if self.type == "expression":
            self.x = _check_time_expression("trajectory", "x", self.x)
            self.y = _check_time_expression("trajectory", "y", self.y)
        self.alpha = _check_time_expression("trajectory", "alpha", self.alpha)
        return self

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TrajectorySpec":
        data = _rename(data, _TRAJECTORY_ALIASES)
        kind = str(data.pop("type", "expression"))
        params = dict(data.pop("params", {}) or {})
        kwargs: Dict[str, Any] = {"type": kind}
        for key in ("x", "y", "alpha"):
            if key in data:
                kwargs[key] = data.pop(key)
        # flat layout: type-specific parameters next to ``type``
        params.update(data)
        kwargs["params"] = params
        return cls(**kwargs)


@dataclass
class SimulationConfig:
    simulation: SimulationParameters = field(default_factory=SimulationParameters)
    constraint: ConstraintSpec = field(default_factory=ConstraintSpec)
    trajectory: TrajectorySpec = field(default_factory=TrajectorySpec)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> "SimulationConfig":
        self.simulation.validate()
        self.constraint.validate()
        self.trajectory.validate()
        return self

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SimulationConfig":
        """Build and validate a configuration from a parsed JSON/TOML mapping."""
        if not isinstance(data, Mapping):
            raise ConfigError("configuration must be a mapping of sections")
        missing = [s for s in ("simulation", "constraint", "trajectory") if s not in data]
        if missing:
            raise ConfigError(f"missing required section(s): {', '.join(missing)}")

        sections = {}
        for name in ("simulation", "constraint", "trajectory"):
            if not isinstance(data[name], Mapping):
                raise ConfigError(f"[{name}] must be a table")
            sections[name] = data[name]

        sim_fields = {f.name for f in dataclasses.fields(SimulationParameters)}
        sim = _rename(sections["simulation"], _SIMULATION_ALIASES)
        unknown = set(sim) - sim_fields
        if unknown:
            raise ConfigError(f"[simulation] unknown key(s): {', '.join(sorted(unknown))}")

        con_fields = {f.name for f in dataclasses.fields(ConstraintSpec)}
        con = dict(sections["constraint"])
        unknown = set(con) - con_fields
        if unknown:
            raise ConfigError(f"[constraint] unknown key(s): {', '.join(sorted(unknown))}")

        config = cls(
            simulation=SimulationParameters(**sim),
            constraint=ConstraintSpec(**con),
            trajectory=TrajectorySpec.from_dict(sections["trajectory"]),
            metadata=dict(data.get("metadata") or {}),
        )
        return config.validate()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "simulation": dataclasses.asdict(self.simulation),
            "constraint": dataclasses.asdict(self.constraint),
            "trajectory": dataclasses.asdict(self.trajectory),
            "metadata": dict(self.metadata),
        }


def load_config(path: str | os.PathLike[str]) -> SimulationConfig:
    """Load and validate a JSON or TOML configuration file."""
    try:
        data = utils.load_params(path)
    except (OSError, ValueError, RuntimeError) as exc:
        raise ConfigError(f"cannot read configuration {path}: {exc}") from exc
    config = SimulationConfig.from_dict(data)
    config.metadata.setdefault("source", str(path))
    return config
