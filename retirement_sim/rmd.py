"""Required minimum distribution (RMD) calculations."""

from dataclasses import dataclass, field

from retirement_sim.params import Settings

# RMD start age (SECURE 2.0 Act)
RMD_START_AGE = 73

# Table begins at 72; younger ages have no distribution
_FIRST_TABLE_AGE = 72
_MIN_FACTOR = 2.0

# IRS Uniform Lifetime Table (Publication 590-B, Table III)
# Used when the sole beneficiary is not a spouse more than 10 years younger
_UNIFORM_LIFETIME_TABLE: dict[int, float] = {
    72: 27.4, 73: 26.5, 74: 25.5, 75: 24.6, 76: 23.7, 77: 22.9, 78: 22.0, 79: 21.1,
    80: 20.2, 81: 19.4, 82: 18.5, 83: 17.7, 84: 16.8, 85: 16.0, 86: 15.2, 87: 14.4,
    88: 13.7, 89: 12.9, 90: 12.2, 91: 11.5, 92: 10.8, 93: 10.1, 94: 9.5, 95: 8.9,
    96: 8.4, 97: 7.8, 98: 7.3, 99: 6.8, 100: 6.4, 101: 6.0, 102: 5.6, 103: 5.2,
    104: 4.9, 105: 4.6, 106: 4.3, 107: 4.1, 108: 3.9, 109: 3.7, 110: 3.5, 111: 3.4,
    112: 3.3, 113: 3.1, 114: 3.0, 115: 2.9, 116: 2.8, 117: 2.7, 118: 2.5, 119: 2.3,
    120: 2.0,
}

MAX_SCHEDULE_YEARS = 20
SUMMARY_YEARS = 10


@dataclass
class RMDProjection:
    age: int
    year: int                 # years from now
    tax_deferred_balance: float  # estimated balance at start of year
    life_expectancy_factor: float
    rmd_amount: float
    rmd_percent: float


@dataclass
class RMDAnalysis:
    starts_in_years: int
    start_age: int
    current_age: int
    tax_deferred_value: float
    projections: list[RMDProjection] = field(default_factory=list)
    total_rmds_10yr: float = 0.0


def life_expectancy_factor(age: int) -> float:
    """Return the distribution divisor for an age (0 = no RMD required)."""
    if age < _FIRST_TABLE_AGE:
        return 0.0
    return _UNIFORM_LIFETIME_TABLE.get(age, _MIN_FACTOR)


def calculate_rmd(tax_deferred_balance: float, age: int) -> tuple[float, float]:
    """Return (annual RMD amount, RMD as % of balance) for a balance and age."""
    factor = life_expectancy_factor(age)
    if factor == 0:
        return 0.0, 0.0
    return tax_deferred_balance / factor, 100 / factor


def calculate_rmd_analysis(settings: Settings) -> RMDAnalysis:
    """Project future RMDs from the current tax-deferred balance.

    Simplified: the balance only grows at the assumed return and shrinks by
    each year's distribution; spending withdrawals are ignored.
    """
    tax_deferred_value = settings.tax_deferred_value()
    monthly_return = settings.investment_return / 100 / 12

    projections: list[RMDProjection] = []
    total_10yr = 0.0
    balance = tax_deferred_value

    for year in range(settings.projection_years + 1):
        if len(projections) >= MAX_SCHEDULE_YEARS:
            break
        age = settings.current_age + year
        if age >= RMD_START_AGE:
            amount, percent = calculate_rmd(balance, age)
            projections.append(RMDProjection(
                age=age,
                year=year,
                tax_deferred_balance=balance,
                life_expectancy_factor=life_expectancy_factor(age),
                rmd_amount=amount,
                rmd_percent=percent,
            ))
            if len(projections) <= SUMMARY_YEARS:
                total_10yr += amount
            balance = max(0.0, balance - amount)
        for _ in range(12):
            balance *= 1 + monthly_return

    return RMDAnalysis(
        starts_in_years=max(0, RMD_START_AGE - settings.current_age),
        start_age=RMD_START_AGE,
        current_age=settings.current_age,
        tax_deferred_value=tax_deferred_value,
        projections=projections,
        total_rmds_10yr=total_10yr,
    )
