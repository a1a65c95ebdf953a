"""Present-value, budget-gap and sustainability calculations (closed form)."""

from dataclasses import dataclass

from retirement_sim.cashflow import total_expenses, total_income
from retirement_sim.params import LegacyHealthcare, Settings, healthcare_model
from retirement_sim.rmd import RMD_START_AGE, calculate_rmd

# Growth and discount closer than this are treated as equal
_RATE_EPSILON = 1e-10


@dataclass
class PresentValueAnalysis:
    pv_expenses: float
    pv_income: float
    pv_gap: float
    coverage_ratio: float   # (portfolio + PV income) / PV expenses
    surplus_deficit: float  # portfolio + PV income - PV expenses


@dataclass
class BudgetFitAnalysis:
    monthly_expenses: float
    monthly_income: float
    monthly_rmd: float
    monthly_gap: float       # expenses - income - RMD
    annual_gap: float
    required_rate: float     # % of portfolio per year needed to cover the gap
    gap_before_rmd: float
    rmd_coverage: float      # part of the gap covered by the RMD
    excess_rmd: float        # forced distribution beyond the gap


@dataclass
class SustainabilityScore:
    score: int
    label: str
    color: str
    description: str


# (max required rate %, score, label, color, description)
_SCORE_BANDS: tuple[tuple[float, int, str, str, str], ...] = (
    (3, 100, "Excellent", "green", "Very sustainable withdrawal rate"),
    (4, 90, "Good", "green", "Sustainable based on 4% rule"),
    (5, 75, "Fair", "yellow", "Moderate risk, consider reducing expenses"),
    (6, 60, "Caution", "orange", "Higher risk of depletion"),
    (8, 40, "Poor", "orange", "High withdrawal rate, adjustments recommended"),
)


def present_value(future_value: float, annual_rate: float, periods: int) -> float:
    """PV = FV / (1 + r)^n with a monthly rate derived from an annual %."""
    if periods <= 0 or annual_rate <= 0:
        return future_value
    monthly_rate = annual_rate / 100 / 12
    return future_value / (1 + monthly_rate) ** periods


def present_value_annuity(
    payment: float,
    discount_rate: float,
    growth_rate: float,
    start_month: int,
    num_payments: int,
) -> float:
    """PV of a monthly payment stream, optionally growing and deferred.

    discount_rate, growth_rate: annual %.
    """
    if num_payments <= 0 or payment == 0:
        return 0.0

    r = discount_rate / 100 / 12
    g = growth_rate / 100 / 12

    if r <= 0:
        if g <= 0:
            pv_at_start = payment * num_payments
        else:
            pv_at_start = sum(payment * (1 + g) ** m for m in range(num_payments))
    elif abs(r - g) < _RATE_EPSILON:
        pv_at_start = payment * num_payments
    elif g > 0:
        growth_factor = (1 + g) / (1 + r)
        pv_at_start = payment * (1 - growth_factor ** num_payments) / (r - g)
    else:
        pv_at_start = payment * (1 - (1 + r) ** -num_payments) / r

    if start_month > 0 and r > 0:
        return pv_at_start / (1 + r) ** start_month
    return pv_at_start


def _pv_healthcare(settings: Settings, months: int) -> float:
    model = healthcare_model(settings)
    rate = settings.discount_rate

    if isinstance(model, LegacyHealthcare):
        if model.monthly_cost <= 0:
            return 0.0
        start = model.start_years * 12
        return present_value_annuity(model.monthly_cost, rate, model.inflation, start, months - start)

    total = 0.0
    for person in model.persons:
        if person.is_on_medicare():
            total += present_value_annuity(
                person.current_monthly_cost, rate, person.post_medicare_inflation, 0, months,
            )
            continue
        switch = min(person.years_until_medicare() * 12, months)
        total += present_value_annuity(
            person.current_monthly_cost, rate, person.pre_medicare_inflation, 0, switch,
        )
        total += present_value_annuity(
            person.medicare_monthly_cost, rate, person.post_medicare_inflation, switch, months - switch,
        )
    return total


def calculate_present_value_analysis(settings: Settings) -> PresentValueAnalysis:
    months = settings.projection_years * 12
    rate = settings.discount_rate

    pv_expenses = present_value_annuity(
        settings.monthly_living_expenses, rate, settings.net_inflation, 0, months,
    )
    pv_expenses += _pv_healthcare(settings, months)

    for source in settings.expense_sources:
        start = source.start_year * 12
        end = min(source.end_year * 12, months) if source.end_year > 0 else months
        growth = settings.inflation_rate if source.inflation else 0.0
        pv_expenses += present_value_annuity(source.amount, rate, growth, start, end - start)

    pv_income = 0.0
    for source in settings.income_sources:
        end = min(source.end_month, months) if source.end_month is not None else months
        pv_income += present_value_annuity(
            source.amount, rate, source.cola_rate * 100, source.start_month, end - source.start_month,
        )

    coverage_ratio = 0.0
    if pv_expenses > 0:
        coverage_ratio = (settings.portfolio_value + pv_income) / pv_expenses

    return PresentValueAnalysis(
        pv_expenses=pv_expenses,
        pv_income=pv_income,
        pv_gap=pv_expenses - pv_income,
        coverage_ratio=coverage_ratio,
        surplus_deficit=settings.portfolio_value + pv_income - pv_expenses,
    )


def calculate_budget_fit(settings: Settings) -> BudgetFitAnalysis:
    """Month-0 budget gap and the withdrawal rate needed to close it."""
    monthly_expenses = total_expenses(settings, 0)
    monthly_income = total_income(settings, 0)

    monthly_rmd = 0.0
    if settings.current_age >= RMD_START_AGE and settings.tax_deferred_percent > 0:
        annual_rmd, _ = calculate_rmd(settings.tax_deferred_value(), settings.current_age)
        monthly_rmd = annual_rmd / 12

    gap_before_rmd = monthly_expenses - monthly_income
    rmd_coverage = 0.0
    excess_rmd = 0.0
    if monthly_rmd > 0:
        if gap_before_rmd > 0:
            rmd_coverage = min(monthly_rmd, gap_before_rmd)
            excess_rmd = max(0.0, monthly_rmd - gap_before_rmd)
        else:
            excess_rmd = monthly_rmd

    monthly_gap = gap_before_rmd - monthly_rmd
    annual_gap = monthly_gap * 12

    required_rate = 0.0
    if settings.portfolio_value > 0 and monthly_gap > 0:
        required_rate = annual_gap / settings.portfolio_value * 100

    return BudgetFitAnalysis(
        monthly_expenses=monthly_expenses,
        monthly_income=monthly_income,
        monthly_rmd=monthly_rmd,
        monthly_gap=monthly_gap,
        annual_gap=annual_gap,
        required_rate=required_rate,
        gap_before_rmd=gap_before_rmd,
        rmd_coverage=rmd_coverage,
        excess_rmd=excess_rmd,
    )


def calculate_sustainability_score(required_rate: float, survives: bool) -> SustainabilityScore:
    """Map a required withdrawal rate (%) onto a 0-100 banded score."""
    if not survives:
        return SustainabilityScore(0, "Critical", "red", "Portfolio depletes before projection end")
    for max_rate, score, label, color, description in _SCORE_BANDS:
        if required_rate <= max_rate:
            return SustainabilityScore(score, label, color, description)
    score = int(max(0.0, 100 - (required_rate - 3) * 15))
    return SustainabilityScore(score, "Critical", "red", "Unsustainable withdrawal rate")
