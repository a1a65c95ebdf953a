"""CLI entry point for chart generation."""

import sys
from pathlib import Path

from retirement_sim.charts import plot_mc_distribution, plot_projection, plot_sequence_risk
from retirement_sim.config import parse_args
from retirement_sim.monte_carlo import MonteCarloConfig, run_monte_carlo
from retirement_sim.simulation import run_projection


def _add_chart_args(parser):
    parser.add_argument(
        "--output", type=Path, default=Path("reports/charts"),
        help="output directory (default: reports/charts)",
    )
    parser.add_argument(
        "--no-mc", action="store_true",
        help="skip Monte Carlo charts (deterministic only, faster)",
    )
    parser.add_argument(
        "--mc-runs", type=int, default=1000,
        help="Monte Carlo runs (default: 1000)",
    )
    parser.add_argument(
        "--seed", type=int, default=42,
        help="random seed (default: 42)",
    )
    parser.add_argument(
        "--name", type=str, default="",
        help="output filename suffix (e.g. base → projection-base.png)",
    )


def main():
    settings, args = parse_args("Retirement simulation charts", _add_chart_args)
    output_dir = args.output
    chart_name = args.name

    print(f"Deterministic projection ({settings.projection_years} years)...", file=sys.stderr)
    projection = run_projection(settings)
    path = plot_projection(projection, output_dir, name=chart_name)
    print(f"  → {path}", file=sys.stderr)

    if not args.no_mc:
        print(f"Monte Carlo simulation (N={args.mc_runs:,})...", file=sys.stderr)
        mc = run_monte_carlo(settings, config=MonteCarloConfig(n_simulations=args.mc_runs, seed=args.seed), quiet=False)
        path = plot_mc_distribution(mc.distribution, output_dir, name=chart_name, runs=mc.stats.runs)
        print(f"  → {path}", file=sys.stderr)
        if mc.stats.sequence_risk is not None:
            path = plot_sequence_risk(mc.stats.sequence_risk, output_dir, name=chart_name)
            print(f"  → {path}", file=sys.stderr)
        else:
            print("  sequence risk: needs at least 100 runs (skipped)", file=sys.stderr)

    print("done", file=sys.stderr)


if __name__ == "__main__":
    main()
