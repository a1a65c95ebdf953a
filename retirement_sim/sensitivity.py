"""Sensitivity scenarios and failure-threshold search."""

import dataclasses
from dataclasses import dataclass, field
from typing import Callable

from retirement_sim.cashflow import expense_breakdown
from retirement_sim.params import Settings, scale_healthcare
from retirement_sim.simulation import run_projection
from retirement_sim.valuation import calculate_budget_fit, calculate_sustainability_score

SAFE = "safe"
MARGINAL = "marginal"
CRITICAL = "critical"


@dataclass(frozen=True)
class SensitivityScenario:
    name: str
    param_name: str
    param_value: float
    change: str  # e.g. "+2%"


@dataclass
class SensitivityResult:
    scenario: SensitivityScenario
    longevity_years: float | None
    final_balance: float
    survives: bool
    score_change: int  # vs baseline


@dataclass
class FailurePoint:
    param_name: str
    param_label: str
    current_value: float
    threshold: float
    direction: str    # "below" or "above": failure side of the threshold
    margin: float
    safety_level: str


@dataclass
class FailurePointAnalysis:
    failure_points: list[FailurePoint] = field(default_factory=list)
    baseline_survives: bool = True  # thresholds are only meaningful when True


def _replace(name: str) -> Callable[[Settings, float], Settings]:
    return lambda s, v: dataclasses.replace(s, **{name: v})


def sensitivity_scenarios(settings: Settings) -> list[tuple[SensitivityScenario, Settings]]:
    """Single-parameter variations of settings, each paired with its modified copy."""
    s = settings
    scenarios = [
        (SensitivityScenario("Higher Returns", "investment_return", s.investment_return + 2, "+2%"),
         _replace("investment_return")),
        (SensitivityScenario("Lower Returns", "investment_return", s.investment_return - 2, "-2%"),
         _replace("investment_return")),
        (SensitivityScenario("Higher Inflation", "inflation_rate", s.inflation_rate + 1, "+1%"),
         _replace("inflation_rate")),
        (SensitivityScenario("Lower Inflation", "inflation_rate", s.inflation_rate - 1, "-1%"),
         _replace("inflation_rate")),
        (SensitivityScenario("Higher Spending", "monthly_living_expenses", s.monthly_living_expenses * 1.1, "+10%"),
         _replace("monthly_living_expenses")),
    ]
    result = [(scenario, setter(s, scenario.param_value)) for scenario, setter in scenarios]

    # Healthcare may be a person list; report the scaled month-0 cost
    scaled = scale_healthcare(s, 1.5)
    healthcare_now = expense_breakdown(scaled, 0).healthcare
    result.append((
        SensitivityScenario("Higher Healthcare", "monthly_healthcare", healthcare_now, "+50%"),
        scaled,
    ))
    return result


def _score(settings: Settings, survives: bool) -> int:
    rate = calculate_budget_fit(settings).required_rate
    return calculate_sustainability_score(rate, survives).score


def calculate_sensitivity(settings: Settings) -> list[SensitivityResult]:
    """Re-run the projection under each single-parameter scenario."""
    base = run_projection(settings)
    base_score = _score(settings, base.survives)

    results = []
    for scenario, modified in sensitivity_scenarios(settings):
        projection = run_projection(modified)
        results.append(SensitivityResult(
            scenario=scenario,
            longevity_years=projection.longevity_years,
            final_balance=projection.final_balance,
            survives=projection.survives,
            score_change=_score(modified, projection.survives) - base_score,
        ))
    return results


def survives_with(settings: Settings, setter: Callable[[Settings, float], Settings], value: float) -> bool:
    return run_projection(setter(settings, value)).survives


def bisect_threshold(
    settings: Settings,
    setter: Callable[[Settings, float], Settings],
    surviving: float,
    failing: float,
    precision: float,
) -> float:
    """Narrow [surviving, failing] until they are within precision.

    Works in either direction; returns the last value known to survive.
    """
    while abs(failing - surviving) > precision:
        mid = (surviving + failing) / 2
        if survives_with(settings, setter, mid):
            surviving = mid
        else:
            failing = mid
    return surviving


@dataclass(frozen=True)
class ThresholdSearch:
    param_name: str
    param_label: str
    getter: Callable[[Settings], float]
    setter: Callable[[Settings, float], Settings]
    bound: Callable[[float], float]     # extreme value to search toward
    precision: float
    direction: str                      # "below": failure at lower values
    relative_margin: bool               # margin as % of current value
    critical_margin: float
    marginal_margin: float
    requires_positive: bool = False

    def margin(self, current: float, threshold: float) -> float:
        if self.relative_margin:
            if current == 0:
                return 0.0
            if self.direction == "below":
                return (current - threshold) / current * 100
            return (threshold / current - 1) * 100
        if self.direction == "below":
            return current - threshold
        return threshold - current

    def safety_level(self, margin: float) -> str:
        if margin < self.critical_margin:
            return CRITICAL
        if margin < self.marginal_margin:
            return MARGINAL
        return SAFE

    def round_threshold(self, value: float) -> float:
        return round(round(value / self.precision) * self.precision, 10)


THRESHOLD_SEARCHES: tuple[ThresholdSearch, ...] = (
    ThresholdSearch(
        "investment_return", "Investment Return",
        getter=lambda s: s.investment_return, setter=_replace("investment_return"),
        bound=lambda current: -5.0, precision=0.1, direction="below",
        relative_margin=False, critical_margin=1, marginal_margin=2,
    ),
    ThresholdSearch(
        "inflation_rate", "Inflation Rate",
        getter=lambda s: s.inflation_rate, setter=_replace("inflation_rate"),
        bound=lambda current: 15.0, precision=0.1, direction="above",
        relative_margin=False, critical_margin=1, marginal_margin=2,
    ),
    ThresholdSearch(
        "monthly_expenses", "Monthly Expenses",
        getter=lambda s: s.monthly_living_expenses, setter=_replace("monthly_living_expenses"),
        bound=lambda current: current * 3, precision=50.0, direction="above",
        relative_margin=True, critical_margin=10, marginal_margin=25, requires_positive=True,
    ),
    ThresholdSearch(
        "portfolio_value", "Portfolio Value",
        getter=lambda s: s.portfolio_value, setter=_replace("portfolio_value"),
        bound=lambda current: 0.0, precision=1000.0, direction="below",
        relative_margin=True, critical_margin=10, marginal_margin=25, requires_positive=True,
    ),
)


def find_threshold(settings: Settings, search: ThresholdSearch) -> FailurePoint | None:
    """Locate the survive/fail boundary for one parameter.

    If the extreme bound still survives, the bound itself is reported.
    """
    current = search.getter(settings)
    if search.requires_positive and current <= 0:
        return None

    extreme = search.bound(current)
    if survives_with(settings, search.setter, extreme):
        margin = search.margin(current, extreme)
        return FailurePoint(
            param_name=search.param_name,
            param_label=search.param_label,
            current_value=current,
            threshold=extreme,
            direction=search.direction,
            margin=margin,
            safety_level=SAFE,
        )

    surviving = bisect_threshold(settings, search.setter, current, extreme, search.precision)
    threshold = search.round_threshold(surviving)
    margin = search.margin(current, threshold)
    return FailurePoint(
        param_name=search.param_name,
        param_label=search.param_label,
        current_value=current,
        threshold=threshold,
        direction=search.direction,
        margin=margin,
        safety_level=search.safety_level(margin),
    )


def calculate_failure_points(settings: Settings) -> FailurePointAnalysis:
    if not run_projection(settings).survives:
        return FailurePointAnalysis(failure_points=[], baseline_survives=False)

    points = []
    for search in THRESHOLD_SEARCHES:
        point = find_threshold(settings, search)
        if point is not None:
            points.append(point)
    return FailurePointAnalysis(failure_points=points, baseline_survives=True)
