"""CLI entry point for the full retirement analysis report."""

import argparse
import json
import sys

from retirement_sim.analysis import Analysis, run_analysis
from retirement_sim.config import parse_args
from retirement_sim.monte_carlo import MonteCarloConfig
from retirement_sim.params import Settings, healthcare_model, PersonHealthcare


def _add_report_args(parser: argparse.ArgumentParser):
    parser.add_argument(
        "--mc-runs", type=int, default=1000,
        help="Monte Carlo runs (default: 1000)",
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="random seed (default: fresh entropy)",
    )
    parser.add_argument(
        "--json", action="store_true",
        help="print the whole analysis as JSON",
    )


def _fmt_years(years: float | None) -> str:
    return "never depletes" if years is None else f"{years:.1f} years"


def _print_header(s: Settings):
    print("=" * 80)
    print(f"Retirement Sufficiency Analysis (age {s.current_age}, {s.projection_years} years)")
    print(f"  Portfolio: ${s.portfolio_value:,.0f} ({s.tax_deferred_percent:.0f}% tax-deferred)")
    print(f"  Living expenses: ${s.monthly_living_expenses:,.0f}/mo "
          f"(inflation {s.inflation_rate:.1f}% - decline {s.spending_decline_rate:.1f}%)")
    model = healthcare_model(s)
    if isinstance(model, PersonHealthcare):
        for p in model.persons:
            print(f"  Healthcare: {p.name or 'person'} age {p.current_age}, {p.current_coverage} "
                  f"${p.current_monthly_cost:,.0f}/mo")
            has_transition, years, pre_cost, medicare_cost = p.transition_info()
            if has_transition:
                print(f"    → Medicare in {years} years (${pre_cost:,.0f} → ${medicare_cost:,.0f}/mo)")
    else:
        print(f"  Healthcare: ${model.monthly_cost:,.0f}/mo from year {model.start_years} "
              f"(inflation {model.inflation:.1f}%)")
    for src in s.income_sources:
        end = "perpetual" if src.end_month is None else f"until month {src.end_month}"
        print(f"  Income: {src.name} ${src.amount:,.0f}/mo from month {src.start_month}, {end} "
              f"(COLA {src.cola_rate:.1%})")
    for src in s.expense_sources:
        end = "perpetual" if src.end_year == 0 else f"until year {src.end_year}"
        print(f"  Expense: {src.name} ${src.amount:,.0f}/mo from year {src.start_year}, {end}")
    print(f"  Return: {s.investment_return:.1f}% / Discount: {s.discount_rate:.1f}%")
    print("=" * 80)
    print()


def _print_projection(a: Analysis):
    p = a.projection
    print("【Deterministic Projection】")
    print("-" * 80)
    print(f"  Longevity: {_fmt_years(p.longevity_years)} / Final balance: ${p.final_balance:,.0f}")
    print(f"{'Year':>5} {'Expenses':>12} {'Income':>12} {'Withdrawal':>12} {'RMD':>10} {'Balance':>15}")
    print("-" * 80)
    for m in p.months:
        if m.month % 60 == 0 or m.month == len(p.months) - 1:
            print(
                f"{m.month // 12:>5} "
                f"{m.total_expenses:>12,.0f} "
                f"{m.total_income:>12,.0f} "
                f"{m.net_withdrawal:>12,.0f} "
                f"{m.rmd_withdrawal:>10,.0f} "
                f"{m.portfolio_balance:>15,.0f}"
            )
    print("-" * 80)


def _print_valuation(a: Analysis):
    b = a.budget_fit
    pv = a.present_value
    sc = a.sustainability
    print("\n【Budget Fit】")
    print(f"  Monthly expenses: ${b.monthly_expenses:,.0f} / income: ${b.monthly_income:,.0f} / RMD: ${b.monthly_rmd:,.0f}")
    print(f"  Monthly gap: ${b.monthly_gap:,.0f} (annual ${b.annual_gap:,.0f}) → required rate {b.required_rate:.2f}%")
    if b.monthly_rmd > 0:
        print(f"  RMD covers ${b.rmd_coverage:,.0f}/mo of the gap; excess ${b.excess_rmd:,.0f}/mo")
    print("\n【Present Value】")
    print(f"  PV expenses: ${pv.pv_expenses:,.0f} / PV income: ${pv.pv_income:,.0f}")
    print(f"  Coverage ratio: {pv.coverage_ratio:.2f} / Surplus(deficit): ${pv.surplus_deficit:,.0f}")
    print(f"\n【Sustainability】 {sc.score}/100 {sc.label} ({sc.description})")


def _print_sensitivity(a: Analysis):
    print("\n【Sensitivity】")
    print("-" * 80)
    print(f"{'Scenario':<20} {'Change':>8} {'Longevity':>16} {'Final balance':>16} {'Score Δ':>8}")
    print("-" * 80)
    for r in a.sensitivity:
        print(
            f"{r.scenario.name:<20} "
            f"{r.scenario.change:>8} "
            f"{_fmt_years(r.longevity_years):>16} "
            f"{r.final_balance:>16,.0f} "
            f"{r.score_change:>+8d}"
        )
    print("-" * 80)

    fp = a.failure_points
    print("\n【Failure Points】")
    if not fp.baseline_survives:
        print("  Baseline plan already depletes; no thresholds computed.")
        return
    for point in fp.failure_points:
        print(
            f"  {point.param_label:<20} current {point.current_value:>12,.1f} → "
            f"fails {point.direction} {point.threshold:>12,.1f} "
            f"(margin {point.margin:.1f}, {point.safety_level})"
        )


def _print_monte_carlo(a: Analysis):
    st = a.monte_carlo.stats
    print(f"\n【Monte Carlo (N={st.runs:,})】")
    print("-" * 80)
    print(f"  Success rate: {st.success_rate:.1f}%")
    print(f"  Median ${st.median_balance:,.0f} / Mean ${st.mean_balance:,.0f}")
    print(f"  P10 ${st.percentile_10:,.0f} / P25 ${st.percentile_25:,.0f} / "
          f"P75 ${st.percentile_75:,.0f} / P90 ${st.percentile_90:,.0f}")
    print(f"  Worst ${st.worst_case:,.0f} / Best ${st.best_case:,.0f}")
    if st.avg_depletion_year > 0:
        print(f"  Average depletion year (failed runs): {st.avg_depletion_year:.1f}")
    print(f"  Runs with crash: {st.market_crash_count:,} / spending shock: {st.spending_shock_count:,} / "
          f"health shock: {st.health_shock_count:,}")
    for bucket in a.monte_carlo.distribution.buckets:
        bar = "#" * int(bucket.percentage / 2)
        print(f"  {bucket.label:>16} {bucket.count:>6} {bucket.percentage:>5.1f}% {bar}")

    sr = st.sequence_risk
    if sr is None:
        return
    print("\n【Sequence-of-Returns Risk】")
    print(f"  Survival: no crash {sr.no_crash_survival:.1f}% ({sr.no_crash_count}) / "
          f"early {sr.early_crash_survival:.1f}% ({sr.early_crash_count}) / "
          f"mid {sr.mid_crash_survival:.1f}% ({sr.mid_crash_count}) / "
          f"late {sr.late_crash_survival:.1f}% ({sr.late_crash_count})")
    print(f"  Early vs none: {sr.early_vs_none_impact:+.1f}pp / early vs late: {sr.early_vs_late_impact:+.1f}pp")
    print(f"  {sr.buffer_rationale}")
    print(f"  Buffer: {sr.recommended_buffer} years = ${sr.buffer_amount:,.0f} → "
          f"adjusted spending ${sr.adjusted_spending:,.0f}/mo")


def _print_rmd(a: Analysis):
    r = a.rmd
    print("\n【Required Minimum Distributions】")
    if r.starts_in_years > 0:
        print(f"  RMDs start at {r.start_age} ({r.starts_in_years} years from now)")
    for p in r.projections[:10]:
        print(f"  age {p.age:>3}: ${p.rmd_amount:>12,.0f} ({p.rmd_percent:.2f}% of ${p.tax_deferred_balance:,.0f})")
    print(f"  First 10 years total: ${r.total_rmds_10yr:,.0f}")


def main():
    settings, args = parse_args("Retirement sufficiency analysis", _add_report_args)
    config = MonteCarloConfig(n_simulations=args.mc_runs, seed=args.seed)
    analysis = run_analysis(settings, config=config)

    if args.json:
        json.dump(analysis.to_dict(), sys.stdout, indent=2)
        print()
        return

    _print_header(settings)
    _print_projection(analysis)
    _print_valuation(analysis)
    _print_sensitivity(analysis)
    _print_monte_carlo(analysis)
    _print_rmd(analysis)


if __name__ == "__main__":
    main()
