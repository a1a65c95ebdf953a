"""Deterministic month-by-month portfolio projection."""

from dataclasses import dataclass, field

from retirement_sim.cashflow import expense_breakdown, total_income
from retirement_sim.params import Settings
from retirement_sim.rmd import RMD_START_AGE, calculate_rmd


@dataclass(frozen=True)
class ProjectionMonth:
    month: int
    year: float
    tax_deferred_balance: float
    taxable_balance: float
    portfolio_balance: float
    general_expenses: float
    healthcare_expense: float
    source_expenses: float
    total_expenses: float
    total_income: float
    net_withdrawal: float
    rmd_withdrawal: float     # forced distribution (age 73+)
    portfolio_growth: float
    depleted: bool


@dataclass
class ProjectionResult:
    months: list[ProjectionMonth] = field(default_factory=list)
    longevity_years: float | None = None  # None if the portfolio survives
    final_balance: float = 0.0
    depletion_month: int | None = None
    survives: bool = True


def apply_withdrawals(
    tax_deferred: float,
    taxable: float,
    needed: float,
    monthly_rmd: float,
) -> tuple[float, float, float, float]:
    """Withdraw one month's need from the two balances.

    Order: RMD share, then taxable, then remaining tax-deferred. When income
    covers expenses the RMD is still taken and moved into the taxable balance.

    Returns (tax_deferred, taxable, total_withdrawn, rmd_withdrawn).
    """
    rmd_withdrawal = 0.0
    withdrawn = 0.0

    if needed > 0:
        if monthly_rmd > 0:
            rmd_used = min(monthly_rmd, needed, tax_deferred)
            tax_deferred -= rmd_used
            needed -= rmd_used
            rmd_withdrawal = rmd_used
            withdrawn += rmd_used

        if needed > 0 and taxable > 0:
            from_taxable = min(needed, taxable)
            taxable -= from_taxable
            needed -= from_taxable
            withdrawn += from_taxable

        if needed > 0 and tax_deferred > 0:
            from_tax_deferred = min(needed, tax_deferred)
            tax_deferred -= from_tax_deferred
            needed -= from_tax_deferred
            withdrawn += from_tax_deferred
    elif monthly_rmd > 0 and tax_deferred > 0:
        rmd_withdrawal = min(monthly_rmd, tax_deferred)
        tax_deferred -= rmd_withdrawal
        taxable += rmd_withdrawal

    return tax_deferred, taxable, withdrawn, rmd_withdrawal


def run_projection(settings: Settings) -> ProjectionResult:
    """Project balances month by month over settings.projection_years.

    Growth is applied before withdrawals. Once depleted the balance stays at
    zero for the rest of the horizon.
    """
    months = max(0, settings.projection_years) * 12
    tax_deferred = settings.tax_deferred_value()
    taxable = settings.portfolio_value - tax_deferred

    log: list[ProjectionMonth] = []
    depletion_month: int | None = None
    longevity_years: float | None = None
    monthly_rmd = 0.0

    for m in range(months):
        year = m // 12
        age = settings.current_age + year

        # RMD is fixed at the start of each year from the balance at that time
        if m % 12 == 0:
            if age >= RMD_START_AGE and tax_deferred > 0:
                annual_rmd, _ = calculate_rmd(tax_deferred, age)
                monthly_rmd = annual_rmd / 12
            else:
                monthly_rmd = 0.0

        expenses = expense_breakdown(settings, m)
        income = total_income(settings, m)
        needed = expenses.total - income

        opening = tax_deferred + taxable
        monthly_return = settings.get_investment_return(year) / 100 / 12
        growth = 0.0
        withdrawn = 0.0
        rmd_withdrawal = 0.0

        if depletion_month is None:
            td_growth = tax_deferred * monthly_return
            tx_growth = taxable * monthly_return
            growth = td_growth + tx_growth
            tax_deferred += td_growth
            taxable += tx_growth

            tax_deferred, taxable, withdrawn, rmd_withdrawal = apply_withdrawals(
                tax_deferred, taxable, needed, monthly_rmd,
            )

            total = tax_deferred + taxable
            if total <= 0 and (needed > 0 or opening > 0):
                depletion_month = m
                longevity_years = m / 12

        if depletion_month is not None:
            tax_deferred = 0.0
            taxable = 0.0

        log.append(ProjectionMonth(
            month=m,
            year=m / 12,
            tax_deferred_balance=tax_deferred,
            taxable_balance=taxable,
            portfolio_balance=tax_deferred + taxable,
            general_expenses=expenses.living,
            healthcare_expense=expenses.healthcare,
            source_expenses=expenses.sources,
            total_expenses=expenses.total,
            total_income=income,
            net_withdrawal=withdrawn,
            rmd_withdrawal=rmd_withdrawal,
            portfolio_growth=growth,
            depleted=depletion_month is not None,
        ))

    final_balance = log[-1].portfolio_balance if log else 0.0
    return ProjectionResult(
        months=log,
        longevity_years=longevity_years,
        final_balance=final_balance,
        depletion_month=depletion_month,
        survives=depletion_month is None,
    )
