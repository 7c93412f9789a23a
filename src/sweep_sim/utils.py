# src/sweep_sim/utils.py
from __future__ import annotations

import json
import os
import time
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np


@dataclass
class DelayedResult:
    trajectory: np.ndarray
    pre_projection: np.ndarray
    centers: np.ndarray
    projection_distances: np.ndarray
    gradient_norms: np.ndarray
    angles: Optional[np.ndarray] = None
    weights: Optional[np.ndarray] = None


@dataclass
class ClassicalResult:
    trajectory: np.ndarray
    gradient_norms: np.ndarray
    pre_projection: Optional[np.ndarray] = None
    centers: Optional[np.ndarray] = None
    projection_distances: Optional[np.ndarray] = None


@dataclass
class RunResult:
    """Common container for batch outputs; sequences are indexed by step n."""

    h: float
    delayed: DelayedResult
    classical: ClassicalResult
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def times(self) -> np.ndarray:
        return np.arange(len(self), dtype=np.float64) * self.h

    def __len__(self) -> int:
        return int(self.delayed.trajectory.shape[0])


def now_str() -> str:
    return time.strftime("%Y%m%d-%H%M%S")


###############################################################################
# Parameter files
###############################################################################


def load_params(path: str | os.PathLike[str]) -> Dict[str, Any]:
    """
    Load simulation parameters from JSON or TOML.
    """
    path = str(path)
    with open(path, "rb") as fh:
        data = fh.read()
    suffix = Path(path).suffix.lower()
    if suffix in {".json", ""}:
        return json.loads(data.decode("utf-8"))
    if suffix in {".toml", ".tml"}:
        return tomllib.loads(data.decode("utf-8"))
    raise ValueError(f"Unsupported parameter file format: {suffix}")


def save_params(path: str | os.PathLike[str], params: Dict[str, Any]) -> None:
    """Write parameters as JSON (TOML output is not supported)."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(params, fh, indent=2)


###############################################################################
# Result files
###############################################################################

_DELAYED_FIELDS = ("trajectory", "pre_projection", "centers", "projection_distances", "gradient_norms", "angles", "weights")
_CLASSICAL_FIELDS = ("trajectory", "gradient_norms", "pre_projection", "centers", "projection_distances")


def save_run_result(path: str | os.PathLike[str], result: RunResult, *, overwrite: bool = True) -> None:
    """Serialize a RunResult to a compressed .npz file."""
    out_dir = Path(path).parent
    out_dir.mkdir(parents=True, exist_ok=True)
    if not overwrite and Path(path).exists():
        raise FileExistsError(f"{path} already exists")

    out: Dict[str, Any] = {"h": np.float64(result.h)}
    for name in _DELAYED_FIELDS:
        value = getattr(result.delayed, name)
        if value is not None:
            out[f"delayed_{name}"] = np.asarray(value, dtype=np.float64)
    for name in _CLASSICAL_FIELDS:
        value = getattr(result.classical, name)
        if value is not None:
            out[f"classical_{name}"] = np.asarray(value, dtype=np.float64)
    out["meta"] = np.array(json.dumps(result.meta or {}, default=str))
    np.savez_compressed(path, **out)


def load_run_result(path: str | os.PathLike[str]) -> RunResult:
    """
    Load a .npz written by save_run_result.
    """
    with np.load(path, allow_pickle=False) as data:
        delayed = {
            name: data[f"delayed_{name}"] for name in _DELAYED_FIELDS if f"delayed_{name}" in data
        }
        classical = {
            name: data[f"classical_{name}"] for name in _CLASSICAL_FIELDS if f"classical_{name}" in data
        }
        meta = json.loads(str(data["meta"])) if "meta" in data else {}
        h = float(data["h"])
    return RunResult(h=h, delayed=DelayedResult(**delayed), classical=ClassicalResult(**classical), meta=meta)


###############################################################################
# Tabular export
###############################################################################

TSV_HEADER = [
    "time",
    "delayed_x",
    "delayed_y",
    "delayed_xBar",
    "delayed_yBar",
    "delayed_projDist",
    "delayed_gradNorm",
    "classical_x",
    "classical_y",
    "classical_gradNorm",
]


def _fmt(values: np.ndarray, i: int, col: Optional[int] = None) -> str:
    if values is None or i >= values.shape[0]:
        return ""
    v = values[i] if col is None else values[i, col]
    return f"{float(v):.6f}"


def format_tsv(result: RunResult) -> str:
    """
    Tab-separated table, one row per step, time = n * h.

    Classical columns are left empty where the classical run is shorter.
    """
    d = result.delayed
    c = result.classical
    lines: List[str] = ["\t".join(TSV_HEADER)]
    for i in range(d.trajectory.shape[0]):
        row = [
            f"{i * result.h:.6f}",
            _fmt(d.trajectory, i, 0),
            _fmt(d.trajectory, i, 1),
            _fmt(d.pre_projection, i, 0),
            _fmt(d.pre_projection, i, 1),
            _fmt(d.projection_distances, i),
            _fmt(d.gradient_norms, i),
            _fmt(c.trajectory, i, 0),
            _fmt(c.trajectory, i, 1),
            _fmt(c.gradient_norms, i),
        ]
        lines.append("\t".join(row))
    return "\n".join(lines)


def export_tsv(path: str | os.PathLike[str], result: RunResult) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(format_tsv(result))


def result_to_dict(result: RunResult) -> Dict[str, Any]:
    """Nested lists in the layout {delayed: {...}, classical: {...}}."""

    def _section(obj, names) -> Dict[str, Any]:
        return {n: np.asarray(getattr(obj, n)).tolist() for n in names if getattr(obj, n) is not None}

    return {
        "h": result.h,
        "delayed": _section(result.delayed, _DELAYED_FIELDS),
        "classical": _section(result.classical, _CLASSICAL_FIELDS),
        "meta": dict(result.meta),
    }


def export_json(path: str | os.PathLike[str], result: RunResult) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(result_to_dict(result), fh, indent=2, default=str)
