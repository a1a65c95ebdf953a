"""Market crash and spending/health shock sampling for Monte Carlo simulation."""

import dataclasses
from dataclasses import dataclass, field
from random import Random

from retirement_sim.params import Settings

# Return bounds (annual %)
MIN_ANNUAL_RETURN = -50.0
MAX_ANNUAL_RETURN = 50.0

CRASH_NOISE_RANGE = 10.0      # crash return = severity ± 5pp (uniform)
RECOVERY_VOLATILITY = 8.0     # σ of the post-crash recovery year

# Crash timing buckets (0-indexed year)
EARLY_CRASH_END = 5   # years 0-4
MID_CRASH_END = 15    # years 5-14

# Annual inflation jitter (pp, uniform)
LIVING_INFLATION_JITTER = 1.0
HEALTHCARE_INFLATION_JITTER = 2.0


@dataclass
class EventRiskConfig:
    """Probability parameters for market and expense shocks."""

    crash_probability: float = 0.05   # annual
    crash_severity: float = -30.0     # annual return % in a crash year
    recovery_boost: float = 5.0       # extra return % the year after a crash
    spending_shock_prob: float = 0.08
    spending_shock_min: float = 5000
    spending_shock_max: float = 25000
    health_shock_prob: float = 0.05
    health_shock_min: float = 10000
    health_shock_max: float = 50000


@dataclass
class CrashTiming:
    total_crashes: int = 0
    early_crashes: int = 0
    mid_crashes: int = 0
    late_crashes: int = 0
    first_crash_year: int = 0  # 1-indexed; 0 = no crash

    def record(self, year: int) -> None:
        self.total_crashes += 1
        if self.first_crash_year == 0:
            self.first_crash_year = year + 1
        if year < EARLY_CRASH_END:
            self.early_crashes += 1
        elif year < MID_CRASH_END:
            self.mid_crashes += 1
        else:
            self.late_crashes += 1


@dataclass
class TrialEvents:
    """Pre-sampled market path and shocks for a single simulation run."""

    projection_years: int
    annual_returns: list[float] = field(default_factory=list)
    inflation_offsets: list[float] = field(default_factory=list)
    healthcare_offsets: list[float] = field(default_factory=list)
    extra_expenses: list[float] = field(default_factory=list)  # monthly, per year
    crash_timing: CrashTiming = field(default_factory=CrashTiming)
    spending_shocks: int = 0
    health_shocks: int = 0

    def apply(self, settings: Settings) -> Settings:
        """Copy of settings that follows this run's sampled path."""
        return dataclasses.replace(
            settings,
            projection_years=self.projection_years,
            annual_returns=self.annual_returns,
            annual_inflation_offsets=self.inflation_offsets,
            annual_healthcare_offsets=self.healthcare_offsets,
            annual_extra_expenses=self.extra_expenses,
        )


def generate_yearly_returns(
    rng: Random,
    config: EventRiskConfig,
    base_return: float,
    volatility: float,
    years: int,
    timing: CrashTiming,
) -> list[float]:
    """Sample one annual return (%) per year with crashes and recoveries."""
    returns = []
    last_crash_year: int | None = None

    for y in range(years):
        if rng.random() < config.crash_probability:
            year_return = config.crash_severity + (rng.random() - 0.5) * CRASH_NOISE_RANGE
            timing.record(y)
            last_crash_year = y
        elif last_crash_year is not None and y == last_crash_year + 1:
            year_return = base_return + config.recovery_boost + rng.gauss(0, RECOVERY_VOLATILITY)
        else:
            year_return = base_return + rng.gauss(0, volatility)

        returns.append(max(MIN_ANNUAL_RETURN, min(MAX_ANNUAL_RETURN, year_return)))
    return returns


def _roll_shock(rng: Random, prob: float, low: float, high: float) -> float | None:
    """Annual shock amount, or None if no shock occurs."""
    if rng.random() < prob:
        return low + rng.random() * (high - low)
    return None


def sample_events(
    rng: Random,
    config: EventRiskConfig,
    base_return: float,
    volatility: float,
    projection_years: int,
) -> TrialEvents:
    """Sample a complete market path and shock timeline for one run.

    Inflation offsets at index y apply to the step from year y to y+1.
    Shock amounts are spread evenly over the months of their year.
    """
    events = TrialEvents(projection_years=projection_years)
    events.annual_returns = generate_yearly_returns(
        rng, config, base_return, volatility, projection_years, events.crash_timing,
    )

    for _ in range(projection_years):
        events.inflation_offsets.append(rng.uniform(-LIVING_INFLATION_JITTER, LIVING_INFLATION_JITTER))
        events.healthcare_offsets.append(rng.uniform(-HEALTHCARE_INFLATION_JITTER, HEALTHCARE_INFLATION_JITTER))

        extra = 0.0
        spending = _roll_shock(rng, config.spending_shock_prob, config.spending_shock_min, config.spending_shock_max)
        if spending is not None:
            events.spending_shocks += 1
            extra += spending / 12
        health = _roll_shock(rng, config.health_shock_prob, config.health_shock_min, config.health_shock_max)
        if health is not None:
            events.health_shocks += 1
            extra += health / 12
        events.extra_expenses.append(extra)

    return events
