"""Monthly income and expense evaluation."""

from typing import NamedTuple

from retirement_sim.params import Settings, healthcare_model


class ExpenseBreakdown(NamedTuple):
    living: float
    healthcare: float
    sources: float  # expense sources plus any simulated shock for the year

    @property
    def total(self) -> float:
        return self.living + self.healthcare + self.sources


def total_income(settings: Settings, month: int) -> float:
    return sum(source.adjusted_amount(month) for source in settings.income_sources)


def expense_breakdown(settings: Settings, month: int) -> ExpenseBreakdown:
    """Expenses for a projection month (0 = now), split by category.

    Living expenses compound yearly at inflation minus spending decline;
    healthcare follows the settings' healthcare model.
    """
    years = month // 12
    living = settings.monthly_living_expenses * settings.living_factor(years)
    healthcare = healthcare_model(settings).cost(month, settings.annual_healthcare_offsets)
    sources = sum(
        source.adjusted_amount(month, settings.inflation_rate)
        for source in settings.expense_sources
    )
    sources += settings.extra_expense(years)
    return ExpenseBreakdown(living, healthcare, sources)


def total_expenses(settings: Settings, month: int) -> float:
    return expense_breakdown(settings, month).total
