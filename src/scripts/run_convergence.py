#!/usr/bin/env python3
"""
Time-step Convergence Study

Runs one configuration for a range of step sizes h = 2**k in parallel and
reports log2 errors of the terminal position and multiplier against the
finest run, plus the fitted convergence order.
"""

import argparse
import json
import sys
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict

# Add src/ to path
SRC = Path(__file__).resolve().parents[1]
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from sweep_sim import ConfigError, load_config, utils
from sweep_sim.convergence import (
    attach_errors,
    convergence_point,
    estimate_order,
    log2_step_sizes,
)


def run_single_step_size(config_path: str, h: float) -> Dict[str, Any]:
    """
    Run one step size and return its ConvergencePoint.

    Must be at module level (not nested) for pickling by ProcessPoolExecutor.
    """
    config = load_config(config_path)
    return {"h": h, "point": convergence_point(config, h)}


def main():
    parser = argparse.ArgumentParser(
        description="Convergence study over step sizes h = 2**k",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("config", help="TOML or JSON configuration file")
    parser.add_argument("--log2-min", type=float, default=-8.0, help="Smallest log2(h) (default: -8)")
    parser.add_argument("--log2-max", type=float, default=-4.0, help="Largest log2(h) (default: -4)")
    parser.add_argument("--count", type=int, default=5, help="Number of step sizes (default: 5)")
    parser.add_argument("--jobs", type=int, default=1, help="Number of parallel processes (default: 1)")
    parser.add_argument("--name", type=str, default="convergence", help="Name for the output folder")

    args = parser.parse_args()

    try:
        load_config(args.config)
        step_sizes = log2_step_sizes(args.log2_min, args.log2_max, args.count)
    except (ConfigError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    timestamp = utils.now_str()
    out_dir = Path("results") / "convergence" / f"{args.name}_{timestamp}"
    out_dir.mkdir(parents=True, exist_ok=True)

    print("Convergence study started:")
    print(f"  Config: {args.config}")
    print(f"  Step sizes: {', '.join(f'{h:.6g}' for h in step_sizes)}")
    print(f"  Parallel jobs: {args.jobs}")
    print(f"  Output directory: {out_dir}")
    print()

    start_time = time.time()
    points = []
    failed = []
    with ProcessPoolExecutor(max_workers=args.jobs) as executor:
        future_to_h = {
            executor.submit(run_single_step_size, args.config, float(h)): float(h)
            for h in step_sizes
        }
        completed = 0
        for future in as_completed(future_to_h):
            completed += 1
            h = future_to_h[future]
            try:
                points.append(future.result()["point"])
                print(f"  [{completed}/{len(step_sizes)}] Completed: h={h:.6g}")
            except Exception as e:
                failed.append({"h": h, "error": str(e)})
                print(f"  [{completed}/{len(step_sizes)}] FAILED: h={h:.6g} - {e}")

    points.sort(key=lambda p: p.h)
    reference_error = None
    try:
        attach_errors(points, reference_h=float(min(step_sizes)))
    except ValueError as exc:
        reference_error = str(exc)
        print(f"  No errors computed: {exc}")
    elapsed_time = time.time() - start_time

    orders: Dict[str, Any] = {}
    for key in ("log_position_error", "log_lambda_error", "classical_log_position_error"):
        try:
            orders[key] = estimate_order(points, key)
        except ValueError as exc:
            orders[key] = {"error": str(exc)}

    manifest = {
        "config": str(args.config),
        "log2_min": args.log2_min,
        "log2_max": args.log2_max,
        "count": args.count,
        "jobs": args.jobs,
        "timestamp": timestamp,
        "time_elapsed": elapsed_time,
        "points": [p.to_dict() for p in points],
        "orders": orders,
        "failed": failed,
        "reference_error": reference_error,
    }
    manifest_path = out_dir / "manifest.json"
    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2)

    print()
    print(f"{'log2 h':>8}  {'log2 |dX|':>10}  {'log2 |dlam|':>11}")
    for p in points:
        if p.errors:
            print(
                f"{p.log2h:8.2f}  {p.errors['log_position_error']:10.3f}  "
                f"{p.errors['log_lambda_error']:11.3f}"
            )
        else:
            label = "(reference)" if reference_error is None else "(no error)"
            print(f"{p.log2h:8.2f}  {label:>10}")
    fit = orders["log_position_error"]
    if "order" in fit:
        print(f"\nEstimated order (position): {fit['order']:.3f}  (r^2 = {fit['r_squared']:.3f})")
    print(f"\nTime elapsed: {elapsed_time:.2f} seconds")
    print(f"Manifest saved to: {manifest_path}")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
