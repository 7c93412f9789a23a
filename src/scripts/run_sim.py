#!/usr/bin/env python3
"""
Sweeping Simulation Runner

Runs the delayed and the classical sweeping process for one configuration
file (TOML or JSON) and writes both sequences as TSV, JSON or .npz.
"""

import argparse
import sys
import time
from pathlib import Path

# Add src/ to path
SRC = Path(__file__).resolve().parents[1]
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from sweep_sim import ConfigError, load_config, run_simulation, utils
from sweep_sim.kernel import memory_length


def write_result(result, out: str, fmt: str) -> None:
    if fmt == "tsv":
        utils.export_tsv(out, result)
    elif fmt == "json":
        utils.export_json(out, result)
    elif fmt == "npz":
        utils.save_run_result(out, result)
    else:
        raise ValueError(f"Unknown format: {fmt}")


def main():
    parser = argparse.ArgumentParser(
        description="Run a delayed sweeping simulation from a configuration file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "The config file has the sections:\n"
            "  [simulation]  T, h, kernel_decay, past_x, past_y, infinite_mode\n"
            "  [constraint]  expression, R, r, a, b\n"
            "  [trajectory]  type, x, y, alpha (+ type parameters)\n"
            "  [metadata]    optional: name, description, author"
        ),
    )
    parser.add_argument("config", help="TOML or JSON configuration file")
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output file (default: results/<name>_<timestamp>.<format>)",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["tsv", "json", "npz"],
        default="tsv",
        help="Output format (default: tsv)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    sim = config.simulation
    if args.verbose:
        print(f"Loaded configuration from: {args.config}")
        print(f"  T = {sim.T}, h = {sim.h}, kernel_decay = {sim.kernel_decay}")
        print(f"  Memory length (1% of kernel mass): {memory_length(sim.kernel_decay):.3f}")
        print(f"  Constraint: {config.constraint.expression}")
        if config.trajectory.type == "expression":
            print(f"  Trajectory: x(t) = {config.trajectory.x}")
            print(f"              y(t) = {config.trajectory.y}")
        else:
            print(f"  Trajectory: {config.trajectory.type} {config.trajectory.params}")
        print(f"              alpha(t) = {config.trajectory.alpha}")
        if sim.infinite_mode:
            print("  infinite_mode is ignored in batch runs; stopping at floor(T/h)")
        print()

    start_time = time.time()
    result = run_simulation(config, verbose=args.verbose)
    elapsed_time = time.time() - start_time

    if args.output is None:
        name = str(config.metadata.get("name") or Path(args.config).stem)
        output_dir = Path("results")
        output_dir.mkdir(exist_ok=True)
        args.output = str(output_dir / f"{name}_{utils.now_str()}.{args.format}")

    write_result(result, args.output, args.format)

    print("Simulation completed")
    print(f"   Time elapsed: {elapsed_time:.2f} seconds")
    print(f"   Steps: {len(result)} (kernel length {result.meta.get('kernel_length')})")
    if result.meta.get("kernel_degenerate"):
        print("   Warning: kernel degenerate for this h; delayed run used the zero-memory limit")
    print(f"   Output saved to: {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
