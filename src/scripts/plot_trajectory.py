# src/scripts/plot_trajectory.py
import argparse
import sys
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

SRC = Path(__file__).resolve().parents[1]
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from sweep_sim import ConstraintProjector, load_config, utils  # type: ignore[import]
from sweep_sim.expressions import make_constraint_evaluator
from sweep_sim.statistics import run_statistics


def format_title(meta):
    """
    Title string with the main run parameters from metadata.
    """
    if not meta:
        return None
    parts = []
    if meta.get("name"):
        parts.append(str(meta["name"]))
    for key, label in (("h", "h"), ("kernel_decay", "lambda"), ("T", "T")):
        if meta.get(key) is not None:
            parts.append(f"{label}={meta[key]:g}")
    if meta.get("kernel_length") is not None:
        parts.append(f"J={meta['kernel_length']}")
    return " | ".join(parts)


def boundary_outlines(config, result, count=4):
    """
    Constraint outlines at ``count`` evenly spaced steps of the run.

    Returns a list of (time, (num_rays, 2) array).
    """
    projector = ConstraintProjector(make_constraint_evaluator(config.constraint))
    centers = result.delayed.centers
    angles = result.delayed.angles
    n_steps = centers.shape[0]
    outlines = []
    for n in np.linspace(0, n_steps - 1, count).astype(int):
        angle = float(angles[n]) if angles is not None else 0.0
        projector.update(center=centers[n], angle=angle)
        outlines.append((n * result.h, projector.boundary_polygon()))
    return outlines


def render(result, config=None, output=None, dpi=200):
    """
    Trajectories (left) and projection diagnostics over time (right).

    Args:
        result: RunResult
        config: Optional SimulationConfig; enables constraint outlines
        output: Output file path (None to show interactively)
        dpi: DPI for output
    """
    if len(result) == 0:
        print("Empty result; nothing to plot")
        return

    fig, (ax_xy, ax_t) = plt.subplots(1, 2, figsize=(13, 6))

    if config is not None:
        for i, (t, outline) in enumerate(boundary_outlines(config, result)):
            closed = np.vstack([outline, outline[:1]])
            ax_xy.plot(
                closed[:, 0],
                closed[:, 1],
                color="0.6",
                lw=0.8,
                ls="--",
                label="C(t)" if i == 0 else None,
            )

    d = result.delayed.trajectory
    c = result.classical.trajectory
    ax_xy.plot(result.delayed.centers[:, 0], result.delayed.centers[:, 1], color="0.3", lw=0.8, label="center c(t)")
    ax_xy.plot(d[:, 0], d[:, 1], color="#3b82f6", lw=1.4, label="delayed X")
    ax_xy.plot(c[:, 0], c[:, 1], color="#7c3aed", lw=1.0, alpha=0.8, label="classical X")
    ax_xy.scatter([d[0, 0]], [d[0, 1]], color="k", s=12, zorder=5)
    ax_xy.set_aspect("equal")
    ax_xy.set_xlabel("x")
    ax_xy.set_ylabel("y")
    ax_xy.legend(loc="upper right", fontsize=8)

    stats = run_statistics(result)
    times = result.times
    ax_t.plot(times, stats["delayed"].projection_distance, color="#3b82f6", label="|X - Xbar|")
    ax_t.plot(
        stats["classical"].time,
        stats["classical"].projection_distance,
        color="#7c3aed",
        label="classical |g(X^{n-1})|",
    )
    ax_t.plot(times, stats["delayed"].lagrange_multiplier_value, color="#f59e0b", lw=0.8, label="lambda_n")
    ax_t.set_xlabel("t")
    ax_t.legend(loc="upper right", fontsize=8)

    title = format_title(result.meta)
    if title:
        fig.suptitle(title)
    fig.tight_layout()

    if output:
        Path(output).parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output, dpi=dpi)
        print(f"Saved figure to {output}")
        plt.close(fig)
    else:
        plt.show()


def main():
    parser = argparse.ArgumentParser(description="Plot a saved sweeping run (.npz)")
    parser.add_argument("result", help="Result file written by run_sim.py -f npz")
    parser.add_argument("--config", default=None, help="Configuration used for the run (draws C(t))")
    parser.add_argument("--out", default=None, help="Output image (default: show)")
    parser.add_argument("--dpi", type=int, default=200)
    args = parser.parse_args()

    result = utils.load_run_result(args.result)
    config = load_config(args.config) if args.config else None
    render(result, config=config, output=args.out, dpi=args.dpi)


if __name__ == "__main__":
    main()
