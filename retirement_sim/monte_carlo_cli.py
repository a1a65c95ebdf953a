"""CLI entry point for Monte Carlo simulation."""

import sys

from retirement_sim.config import parse_args
from retirement_sim.events import EventRiskConfig
from retirement_sim.monte_carlo import MonteCarloAnalysis, MonteCarloConfig, run_monte_carlo


def _add_mc_args(parser):
    parser.add_argument(
        "--mc-runs", type=int, default=1000,
        help="number of simulations (default: 1000)",
    )
    parser.add_argument(
        "--seed", type=int, default=42,
        help="random seed (default: 42)",
    )
    parser.add_argument(
        "--volatility", type=float, default=15.0,
        help="annual return volatility σ in %% (default: 15)",
    )
    parser.add_argument(
        "--crash-prob", type=float, default=0.05,
        help="annual market crash probability (default: 0.05)",
    )
    parser.add_argument(
        "--workers", type=int, default=1,
        help="worker processes (default: 1)",
    )
    parser.add_argument(
        "--no-events", action="store_true",
        help="disable crashes and spending/health shocks",
    )


def _no_event_risk() -> EventRiskConfig:
    return EventRiskConfig(crash_probability=0, spending_shock_prob=0, health_shock_prob=0)


def _print_results(mc: MonteCarloAnalysis, vol: float, has_events: bool):
    st = mc.stats
    event_label = "with event risk" if has_events else "no event risk"
    print()
    print(f"【Monte Carlo (N={st.runs:,}, σ={vol:.0f}%, {event_label})】")
    print("─" * 80)
    print(
        f"{'Success':>10}"
        f"{'P10':>14}"
        f"{'P25':>14}"
        f"{'P50':>14}"
        f"{'P75':>14}"
        f"{'P90':>14}"
    )
    print("─" * 80)
    print(
        f"{st.success_rate:>9.1f}%"
        f"{st.percentile_10:>14,.0f}"
        f"{st.percentile_25:>14,.0f}"
        f"{st.median_balance:>14,.0f}"
        f"{st.percentile_75:>14,.0f}"
        f"{st.percentile_90:>14,.0f}"
    )
    print("─" * 80)
    print(f"  Mean ${st.mean_balance:,.0f} / Worst ${st.worst_case:,.0f} / Best ${st.best_case:,.0f}")
    if st.avg_depletion_year > 0:
        print(f"  Average depletion year (failed runs): {st.avg_depletion_year:.1f}")
    print(f"  Crashes per run: {st.avg_crashes_per_run:.2f} / shocks per run: {st.avg_shocks_per_run:.2f}")

    print(f"\n{'Final balance':<18} {'Runs':>8} {'Share':>8}")
    print("─" * 40)
    for bucket in mc.distribution.buckets:
        print(f"{bucket.label:<18} {bucket.count:>8,} {bucket.percentage:>7.1f}%")
    print("─" * 40)

    sr = st.sequence_risk
    if sr is None:
        print("\n(sequence-risk breakdown needs at least 100 runs)")
        return
    print("\n【Sequence-of-Returns Risk】")
    print("─" * 60)
    print(f"{'First crash':<16} {'Runs':>8} {'Survival':>10}")
    print("─" * 60)
    for label, count, survival in [
        ("none", sr.no_crash_count, sr.no_crash_survival),
        ("years 1-5", sr.early_crash_count, sr.early_crash_survival),
        ("years 6-15", sr.mid_crash_count, sr.mid_crash_survival),
        ("after year 15", sr.late_crash_count, sr.late_crash_survival),
    ]:
        print(f"{label:<16} {count:>8,} {survival:>9.1f}%")
    print("─" * 60)
    print(f"  Impact (no crash − any crash): {st.sequence_risk_impact:+.1f}pp")
    print(f"  {sr.buffer_rationale}")
    print(f"  Buffer: {sr.recommended_buffer} years (${sr.buffer_amount:,.0f} of ${sr.annual_expenses:,.0f}/yr)")
    print(f"  Adjusted spending: ${sr.adjusted_spending:,.0f}/mo")


def main():
    settings, args = parse_args("Monte Carlo retirement simulation", _add_mc_args)

    if args.no_events:
        event_risks = _no_event_risk()
    else:
        event_risks = EventRiskConfig(crash_probability=args.crash_prob)

    mc_config = MonteCarloConfig(
        n_simulations=args.mc_runs,
        seed=args.seed,
        return_volatility=args.volatility,
        workers=args.workers,
        event_risks=event_risks,
    )

    print("=" * 80)
    print(f"Monte Carlo Retirement Simulation (age {settings.current_age}, {settings.projection_years} years)")
    print(f"  N={args.mc_runs:,} / σ={args.volatility:.0f}% / seed={args.seed} / workers={args.workers}")
    print(f"  Portfolio: ${settings.portfolio_value:,.0f} / Living: ${settings.monthly_living_expenses:,.0f}/mo "
          f"/ Return: {settings.investment_return:.1f}%")
    event_info = "disabled" if args.no_events else f"enabled (crash {args.crash_prob:.0%}/yr)"
    print(f"  Event risk: {event_info}")
    print("=" * 80)

    mc = run_monte_carlo(settings, config=mc_config, quiet=False)
    print("done", file=sys.stderr)

    _print_results(mc, args.volatility, not args.no_events)


if __name__ == "__main__":
    main()
