"""Monte Carlo simulation engine."""

import sys
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from random import Random

from retirement_sim.cashflow import total_expenses
from retirement_sim.events import EventRiskConfig, sample_events
from retirement_sim.params import Settings
from retirement_sim.simulation import run_projection

DEFAULT_RUNS = 1000

# Breakdowns below this many runs are too noisy to report
MIN_RUNS_FOR_SEQUENCE_RISK = 100

# Buffer recommendation: (early-vs-none survival impact above, years)
_BUFFER_BANDS: tuple[tuple[float, int, str], ...] = (
    (30, 5, "High sequence risk detected: 5-year buffer recommended to weather early crashes"),
    (20, 4, "Significant sequence risk: 4-year buffer recommended"),
    (10, 3, "Moderate sequence risk: 3-year buffer provides good protection"),
    (5, 2, "Standard 2-year buffer for moderate sequence risk"),
)
DEFAULT_BUFFER_YEARS = 2
DEFAULT_BUFFER_RATIONALE = "Low sequence risk: 2-year buffer is sufficient"
SAFE_WITHDRAWAL_RATE = 0.04


@dataclass
class MonteCarloConfig:
    """Configuration for Monte Carlo simulation."""

    n_simulations: int = DEFAULT_RUNS
    seed: int | None = None            # None = fresh entropy
    return_volatility: float = 15.0    # annual σ (%)
    longevity_variation: int = 5       # ± years on the projection horizon
    min_projection_years: int = 10
    workers: int = 1                   # >1 fans trials out over processes
    event_risks: EventRiskConfig = field(default_factory=EventRiskConfig)


@dataclass
class MonteCarloResult:
    """Outcome of a single simulated run."""

    final_balance: float
    depletion_year: float  # 0 if survives
    survives: bool
    market_crashes: int = 0
    spending_shocks: int = 0
    health_shocks: int = 0
    projection_years: int = 0
    early_crashes: int = 0
    mid_crashes: int = 0
    late_crashes: int = 0
    first_crash_year: int = 0


@dataclass
class SequenceRiskBreakdown:
    no_crash_survival: float
    early_crash_survival: float
    mid_crash_survival: float
    late_crash_survival: float
    no_crash_count: int
    early_crash_count: int
    mid_crash_count: int
    late_crash_count: int
    early_vs_late_impact: float
    early_vs_none_impact: float
    recovery_rate: float         # % of early-crash runs that still survive
    avg_recovery_years: float    # mean first-crash year among crash runs
    recommended_buffer: int      # years of annual expenses
    buffer_rationale: str
    buffer_amount: float
    annual_expenses: float
    adjusted_spending: float     # monthly, 4% of portfolio left after the buffer


@dataclass
class MonteCarloStats:
    runs: int
    success_rate: float
    median_balance: float
    mean_balance: float
    percentile_10: float
    percentile_25: float
    percentile_75: float
    percentile_90: float
    worst_case: float
    best_case: float
    avg_depletion_year: float = 0.0  # failed runs only
    market_crash_count: int = 0      # runs with at least one crash
    spending_shock_count: int = 0
    health_shock_count: int = 0
    avg_crashes_per_run: float = 0.0
    avg_shocks_per_run: float = 0.0
    sequence_risk_impact: float = 0.0
    sequence_risk: SequenceRiskBreakdown | None = None


@dataclass
class DistributionBucket:
    label: str
    count: int
    percentage: float


@dataclass
class Distribution:
    buckets: list[DistributionBucket] = field(default_factory=list)


@dataclass
class MonteCarloAnalysis:
    stats: MonteCarloStats
    distribution: Distribution
    results: list[MonteCarloResult] = field(default_factory=list, repr=False)


def run_trial(settings: Settings, config: MonteCarloConfig, rng: Random) -> MonteCarloResult:
    """Run one randomized projection."""
    years = settings.projection_years
    if config.longevity_variation > 0:
        v = config.longevity_variation
        years = max(config.min_projection_years, years + rng.randint(-v, v))

    events = sample_events(
        rng, config.event_risks, settings.investment_return, config.return_volatility, years,
    )
    projection = run_projection(events.apply(settings))
    timing = events.crash_timing

    return MonteCarloResult(
        final_balance=max(0.0, projection.final_balance),
        depletion_year=projection.longevity_years or 0.0,
        survives=projection.survives,
        market_crashes=timing.total_crashes,
        spending_shocks=events.spending_shocks,
        health_shocks=events.health_shocks,
        projection_years=years,
        early_crashes=timing.early_crashes,
        mid_crashes=timing.mid_crashes,
        late_crashes=timing.late_crashes,
        first_crash_year=timing.first_crash_year,
    )


def _run_seeded_trial(args: tuple[Settings, MonteCarloConfig, int]) -> MonteCarloResult:
    settings, config, seed = args
    return run_trial(settings, config, Random(seed))


def _percentile_from_sorted(sorted_vals: list[float], p: int) -> float:
    n = len(sorted_vals)
    idx = max(0, min(n * p // 100, n - 1))
    return sorted_vals[idx]


def _safe_pct(num: int, denom: int) -> float:
    if denom == 0:
        return 0.0
    return num / denom * 100


def calculate_sequence_risk_impact(results: list[MonteCarloResult]) -> float:
    """Survival rate without crashes minus survival rate with crashes (pp)."""
    if len(results) < MIN_RUNS_FOR_SEQUENCE_RISK:
        return 0.0
    crash = [r for r in results if r.market_crashes > 0]
    no_crash = [r for r in results if r.market_crashes == 0]
    if not crash or not no_crash:
        return 0.0
    with_crashes = _safe_pct(sum(r.survives for r in crash), len(crash))
    without_crashes = _safe_pct(sum(r.survives for r in no_crash), len(no_crash))
    return without_crashes - with_crashes


def recommend_buffer(early_vs_none_impact: float) -> tuple[int, str]:
    for threshold, years, rationale in _BUFFER_BANDS:
        if early_vs_none_impact > threshold:
            return years, rationale
    return DEFAULT_BUFFER_YEARS, DEFAULT_BUFFER_RATIONALE


def calculate_sequence_risk_breakdown(
    results: list[MonteCarloResult],
    annual_expenses: float,
    portfolio_value: float,
) -> SequenceRiskBreakdown | None:
    """Compare survival by the timing of each run's earliest crash."""
    if len(results) < MIN_RUNS_FOR_SEQUENCE_RISK:
        return None

    buckets: dict[str, list[MonteCarloResult]] = {"none": [], "early": [], "mid": [], "late": []}
    first_crash_years = []
    for r in results:
        if r.market_crashes == 0:
            buckets["none"].append(r)
            continue
        if r.first_crash_year > 0:
            first_crash_years.append(r.first_crash_year)
        if r.early_crashes > 0:
            buckets["early"].append(r)
        elif r.mid_crashes > 0:
            buckets["mid"].append(r)
        elif r.late_crashes > 0:
            buckets["late"].append(r)

    survival = {
        name: _safe_pct(sum(r.survives for r in runs), len(runs))
        for name, runs in buckets.items()
    }
    early_vs_late = survival["late"] - survival["early"]
    early_vs_none = survival["none"] - survival["early"]

    avg_recovery_years = 0.0
    if first_crash_years:
        avg_recovery_years = sum(first_crash_years) / len(first_crash_years)

    buffer_years, rationale = recommend_buffer(early_vs_none)
    buffer_amount = buffer_years * annual_expenses
    remaining = portfolio_value - buffer_amount
    adjusted_spending = remaining * SAFE_WITHDRAWAL_RATE / 12 if remaining > 0 else 0.0

    return SequenceRiskBreakdown(
        no_crash_survival=survival["none"],
        early_crash_survival=survival["early"],
        mid_crash_survival=survival["mid"],
        late_crash_survival=survival["late"],
        no_crash_count=len(buckets["none"]),
        early_crash_count=len(buckets["early"]),
        mid_crash_count=len(buckets["mid"]),
        late_crash_count=len(buckets["late"]),
        early_vs_late_impact=early_vs_late,
        early_vs_none_impact=early_vs_none,
        recovery_rate=survival["early"],
        avg_recovery_years=avg_recovery_years,
        recommended_buffer=buffer_years,
        buffer_rationale=rationale,
        buffer_amount=buffer_amount,
        annual_expenses=annual_expenses,
        adjusted_spending=adjusted_spending,
    )


def _bucket_boundaries(max_val: float) -> list[float]:
    """Histogram edges: finer up to 3M, coarser above."""
    if max_val <= 0:
        return [0]
    if max_val < 100_000:
        return [0, 10_000, 25_000, 50_000, 75_000, 100_000]
    if max_val < 1_000_000:
        return [0, 100_000, 250_000, 500_000, 750_000, 1_000_000]
    if max_val < 3_000_000:
        return [0, 250_000, 500_000, 1_000_000, 1_500_000, 2_000_000, 2_500_000, 3_000_000]
    boundaries = [0, 250_000, 500_000, 1_000_000, 2_000_000, 3_000_000, 5_000_000, 10_000_000]
    if max_val > 10_000_000:
        boundaries.append(20_000_000)
    return boundaries


def format_bucket_label(low: float, high: float | None) -> str:
    def fmt(v: float) -> str:
        if v >= 1_000_000:
            return f"${v / 1_000_000:.1f}M"
        return f"${v / 1000:.0f}K"

    if high is None:
        return f"{fmt(low)}+"
    return f"{fmt(low)}-{fmt(high)}"


def create_distribution(sorted_balances: list[float]) -> Distribution:
    """Group final balances into display buckets.

    The bottom range and the open-ended top bucket are always present.
    """
    total = len(sorted_balances)
    if total == 0:
        return Distribution()
    boundaries = _bucket_boundaries(sorted_balances[-1])

    buckets = []
    for i, (low, high) in enumerate(zip(boundaries, boundaries[1:])):
        count = sum(1 for b in sorted_balances if low <= b < high)
        if count > 0 or i == 0:
            buckets.append(DistributionBucket(format_bucket_label(low, high), count, count / total * 100))

    last = boundaries[-1]
    count = sum(1 for b in sorted_balances if b >= last)
    buckets.append(DistributionBucket(format_bucket_label(last, None), count, count / total * 100))
    return Distribution(buckets=buckets)


def summarize(results: list[MonteCarloResult], settings: Settings) -> MonteCarloStats:
    runs = len(results)
    balances = sorted(r.final_balance for r in results)
    depletion_years = [r.depletion_year for r in results if r.depletion_year > 0]

    stats = MonteCarloStats(
        runs=runs,
        success_rate=_safe_pct(sum(r.survives for r in results), runs),
        median_balance=_percentile_from_sorted(balances, 50),
        mean_balance=sum(balances) / runs,
        percentile_10=_percentile_from_sorted(balances, 10),
        percentile_25=_percentile_from_sorted(balances, 25),
        percentile_75=_percentile_from_sorted(balances, 75),
        percentile_90=_percentile_from_sorted(balances, 90),
        worst_case=balances[0],
        best_case=balances[-1],
        market_crash_count=sum(1 for r in results if r.market_crashes > 0),
        spending_shock_count=sum(1 for r in results if r.spending_shocks > 0),
        health_shock_count=sum(1 for r in results if r.health_shocks > 0),
        avg_crashes_per_run=sum(r.market_crashes for r in results) / runs,
        avg_shocks_per_run=sum(r.spending_shocks + r.health_shocks for r in results) / runs,
    )
    if depletion_years:
        stats.avg_depletion_year = sum(depletion_years) / len(depletion_years)

    stats.sequence_risk_impact = calculate_sequence_risk_impact(results)
    annual_expenses = total_expenses(settings, 0) * 12
    stats.sequence_risk = calculate_sequence_risk_breakdown(results, annual_expenses, settings.portfolio_value)
    return stats


def run_monte_carlo(
    settings: Settings,
    runs: int | None = None,
    config: MonteCarloConfig | None = None,
    rng: Random | None = None,
    quiet: bool = True,
) -> MonteCarloAnalysis:
    """Run N independent randomized projections and aggregate them.

    runs: overrides config.n_simulations; None or <= 0 falls back to 1000.
    rng: master generator; each trial gets its own Random seeded from it,
    so results do not depend on config.workers.
    """
    if config is None:
        config = MonteCarloConfig()
    if runs is None:
        runs = config.n_simulations
    if runs <= 0:
        runs = DEFAULT_RUNS
    if rng is None:
        rng = Random(config.seed)

    seeds = [rng.getrandbits(64) for _ in range(runs)]
    jobs = [(settings, config, seed) for seed in seeds]

    results: list[MonteCarloResult] = []
    if config.workers > 1:
        with ProcessPoolExecutor(max_workers=config.workers) as pool:
            chunksize = max(1, runs // (config.workers * 4))
            for i, result in enumerate(pool.map(_run_seeded_trial, jobs, chunksize=chunksize)):
                results.append(result)
                if not quiet and (i + 1) % 100 == 0:
                    print(f"\r  trials: {i + 1}/{runs}", end="", file=sys.stderr)
    else:
        for i, job in enumerate(jobs):
            results.append(_run_seeded_trial(job))
            if not quiet and (i + 1) % 100 == 0:
                print(f"\r  trials: {i + 1}/{runs}", end="", file=sys.stderr)

    if not quiet and runs >= 100:
        print(file=sys.stderr)

    stats = summarize(results, settings)
    distribution = create_distribution(sorted(r.final_balance for r in results))
    return MonteCarloAnalysis(stats=stats, distribution=distribution, results=results)
