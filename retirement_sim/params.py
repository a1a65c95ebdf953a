"""Retirement settings and cash-flow stream definitions."""

import dataclasses
import uuid
from dataclasses import dataclass, field

# Healthcare coverage categories
COVERAGE_MEDICARE = "medicare"
COVERAGE_ACA = "aca"            # marketplace plan
COVERAGE_EMPLOYER = "employer"  # employer-subsidized
COVERAGE_TYPES = (COVERAGE_MEDICARE, COVERAGE_ACA, COVERAGE_EMPLOYER)

MEDICARE_ELIGIBLE_AGE = 65

# Income categories (display only, the engine treats all sources alike)
INCOME_FIXED = "fixed"          # pension, social security
INCOME_TEMPORARY = "temporary"  # ends after a period
INCOME_DELAYED = "delayed"      # starts in the future
INCOME_VARIABLE = "variable"

# Coverage defaults: (current cost, pre-Medicare inflation %, Medicare cost at eligibility)
_COVERAGE_DEFAULTS: dict[str, tuple[float, float, float]] = {
    COVERAGE_MEDICARE: (459, 4.0, 459),   # Part B + Medigap G + Part D
    COVERAGE_ACA: (1100, 7.0, 600),       # 4% healthcare + 3% age-rating
    COVERAGE_EMPLOYER: (500, 5.0, 500),
}
DEFAULT_POST_MEDICARE_INFLATION = 4.0


def _new_id() -> str:
    return str(uuid.uuid4())


def _compound(rate: float, years: int, offsets: list[float] | None = None, start_year: int = 0) -> float:
    """Growth factor over `years` whole years at an annual % rate.

    offsets: per-calendar-year pp adjustments, indexed from start_year.
    """
    if years <= 0:
        return 1.0
    if not offsets:
        return (1 + rate / 100) ** years
    factor = 1.0
    for y in range(start_year, start_year + years):
        offset = offsets[y] if y < len(offsets) else 0.0
        factor *= 1 + (rate + offset) / 100
    return factor


@dataclass
class IncomeSource:
    name: str = ""
    amount: float = 0.0              # monthly
    start_month: int = 0             # 0 = immediate
    end_month: int | None = None     # None = perpetual
    cola_rate: float = 0.0           # fraction, e.g. 0.02 for 2%
    income_type: str = INCOME_FIXED
    inflation_adjusted: bool = False
    id: str = field(default_factory=_new_id)

    def is_active(self, month: int) -> bool:
        if month < self.start_month:
            return False
        if self.end_month is not None and month >= self.end_month:
            return False
        return True

    def adjusted_amount(self, month: int) -> float:
        """Monthly income with COLA compounded once per full year active."""
        if not self.is_active(month):
            return 0.0
        years_active = (month - self.start_month) // 12
        if years_active > 0:
            return self.amount * (1 + self.cola_rate) ** years_active
        return self.amount


@dataclass
class ExpenseSource:
    name: str = ""
    amount: float = 0.0        # monthly
    start_year: int = 0        # offset from now
    end_year: int = 0          # 0 = perpetual
    inflation: bool = True
    discretionary: bool = False  # reducible under stress; not acted on by the engine
    id: str = field(default_factory=_new_id)

    def is_active(self, month: int) -> bool:
        if month < self.start_year * 12:
            return False
        if self.end_year > 0 and month >= self.end_year * 12:
            return False
        return True

    def adjusted_amount(self, month: int, annual_inflation_rate: float) -> float:
        if self.amount <= 0 or not self.is_active(month):
            return 0.0
        if not self.inflation:
            return self.amount
        years_since_start = (month - self.start_year * 12) // 12
        return self.amount * _compound(annual_inflation_rate, years_since_start)


@dataclass
class HealthcarePerson:
    name: str = ""
    current_age: int = 65
    current_coverage: str = COVERAGE_MEDICARE
    current_monthly_cost: float = 0.0
    pre_medicare_inflation: float = 0.0    # annual %
    medicare_monthly_cost: float = 0.0     # cost on reaching eligibility
    post_medicare_inflation: float = DEFAULT_POST_MEDICARE_INFLATION
    medicare_eligible_age: int = MEDICARE_ELIGIBLE_AGE
    id: str = field(default_factory=_new_id)

    def is_on_medicare(self) -> bool:
        return self.current_coverage == COVERAGE_MEDICARE or self.current_age >= self.medicare_eligible_age

    def years_until_medicare(self) -> int:
        if self.is_on_medicare():
            return 0
        return self.medicare_eligible_age - self.current_age

    def monthly_cost(self, month: int, offsets: list[float] | None = None) -> float:
        """Healthcare cost for a projection month (0 = now).

        Derived from the month alone: the switch to Medicare happens in the
        first year the person's age reaches the eligibility age.
        """
        years_elapsed = month // 12
        age_at_month = self.current_age + years_elapsed

        if self.current_coverage != COVERAGE_MEDICARE and age_at_month >= self.medicare_eligible_age:
            years_until = max(0, self.medicare_eligible_age - self.current_age)
            years_on_medicare = years_elapsed - years_until
            return self.medicare_monthly_cost * _compound(
                self.post_medicare_inflation, years_on_medicare, offsets, years_until,
            )

        if self.current_coverage == COVERAGE_MEDICARE:
            return self.current_monthly_cost * _compound(self.post_medicare_inflation, years_elapsed, offsets)

        return self.current_monthly_cost * _compound(self.pre_medicare_inflation, years_elapsed, offsets)

    def transition_info(self) -> tuple[bool, int, float, float]:
        """(has_transition, years_until, pre-Medicare cost at transition, Medicare cost)."""
        if self.is_on_medicare():
            return False, 0, 0.0, 0.0
        years_until = self.years_until_medicare()
        cost_at_transition = self.current_monthly_cost * _compound(self.pre_medicare_inflation, years_until)
        return True, years_until, cost_at_transition, self.medicare_monthly_cost


def new_healthcare_person(name: str, age: int, coverage: str) -> HealthcarePerson:
    """Create a person with typical costs for the coverage category."""
    if coverage not in _COVERAGE_DEFAULTS:
        raise ValueError(f"unknown coverage type: {coverage!r} (expected one of {', '.join(COVERAGE_TYPES)})")
    current_cost, pre_inflation, medicare_cost = _COVERAGE_DEFAULTS[coverage]
    return HealthcarePerson(
        name=name,
        current_age=age,
        current_coverage=coverage,
        current_monthly_cost=current_cost,
        pre_medicare_inflation=pre_inflation,
        medicare_monthly_cost=medicare_cost,
    )


@dataclass
class Settings:

    # Portfolio
    portfolio_value: float = 0.0
    current_age: int = 65
    tax_deferred_percent: float = 70.0

    # Expenses
    monthly_living_expenses: float = 4000.0

    # Rates (annual %, e.g. 3.0 for 3%)
    inflation_rate: float = 3.0
    healthcare_inflation: float = 6.0
    spending_decline_rate: float = 1.0
    investment_return: float = 6.0
    discount_rate: float = 5.0

    projection_years: int = 30

    income_sources: list[IncomeSource] = field(default_factory=list)
    expense_sources: list[ExpenseSource] = field(default_factory=list)
    healthcare_persons: list[HealthcarePerson] = field(default_factory=list)

    # Legacy single-value healthcare (used only when healthcare_persons is empty)
    monthly_healthcare: float = 500.0
    healthcare_start_years: int = 0

    # Monte Carlo: per-year overrides (None = use the scalar rates above)
    annual_returns: list[float] | None = None
    annual_inflation_offsets: list[float] | None = None   # pp added to net living inflation
    annual_healthcare_offsets: list[float] | None = None  # pp added to healthcare inflation
    annual_extra_expenses: list[float] | None = None      # monthly shock amounts

    @property
    def net_inflation(self) -> float:
        """Living-expense growth rate (%) after the spending decline."""
        return self.inflation_rate - self.spending_decline_rate

    def get_investment_return(self, year: int) -> float:
        if self.annual_returns is not None and year < len(self.annual_returns):
            return self.annual_returns[year]
        return self.investment_return

    def living_factor(self, years: int) -> float:
        return _compound(self.net_inflation, years, self.annual_inflation_offsets)

    def extra_expense(self, year: int) -> float:
        if self.annual_extra_expenses is not None and year < len(self.annual_extra_expenses):
            return self.annual_extra_expenses[year]
        return 0.0

    def tax_deferred_value(self) -> float:
        return self.portfolio_value * (self.tax_deferred_percent / 100)


@dataclass(frozen=True)
class LegacyHealthcare:
    """Single healthcare stream starting after `start_years`."""

    monthly_cost: float
    start_years: int
    inflation: float

    def cost(self, month: int, offsets: list[float] | None = None) -> float:
        start_month = self.start_years * 12
        if month < start_month:
            return 0.0
        years_active = (month - start_month) // 12
        return self.monthly_cost * _compound(self.inflation, years_active, offsets, self.start_years)


@dataclass(frozen=True)
class PersonHealthcare:
    """Per-person healthcare with a one-time switch to Medicare."""

    persons: tuple[HealthcarePerson, ...]

    def cost(self, month: int, offsets: list[float] | None = None) -> float:
        return sum(p.monthly_cost(month, offsets) for p in self.persons)


HealthcareModel = LegacyHealthcare | PersonHealthcare


def healthcare_model(settings: Settings) -> HealthcareModel:
    """Resolve the healthcare representation for a settings record."""
    if settings.healthcare_persons:
        return PersonHealthcare(tuple(settings.healthcare_persons))
    return LegacyHealthcare(
        monthly_cost=settings.monthly_healthcare,
        start_years=settings.healthcare_start_years,
        inflation=settings.healthcare_inflation,
    )


def scale_healthcare(settings: Settings, factor: float) -> Settings:
    """Copy of settings with every healthcare cost multiplied by factor."""
    if settings.healthcare_persons:
        persons = [
            dataclasses.replace(
                p,
                current_monthly_cost=p.current_monthly_cost * factor,
                medicare_monthly_cost=p.medicare_monthly_cost * factor,
            )
            for p in settings.healthcare_persons
        ]
        return dataclasses.replace(settings, healthcare_persons=persons)
    return dataclasses.replace(settings, monthly_healthcare=settings.monthly_healthcare * factor)


def settings_to_dict(settings: Settings) -> dict:
    return dataclasses.asdict(settings)


def settings_from_dict(data: dict) -> Settings:
    """Build Settings from a plain dict (e.g. parsed JSON). Unknown keys are ignored."""
    known = {f.name for f in dataclasses.fields(Settings)}
    kwargs = {k: v for k, v in data.items() if k in known}
    kwargs["income_sources"] = [_build(IncomeSource, d) for d in data.get("income_sources") or []]
    kwargs["expense_sources"] = [_build(ExpenseSource, d) for d in data.get("expense_sources") or []]
    kwargs["healthcare_persons"] = [_build(HealthcarePerson, d) for d in data.get("healthcare_persons") or []]
    return Settings(**kwargs)


def _build(cls, data: dict):
    known = {f.name for f in dataclasses.fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in known})
