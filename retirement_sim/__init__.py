"""Retirement Sufficiency Simulation Package."""

from retirement_sim.params import (
    Settings,
    IncomeSource,
    ExpenseSource,
    HealthcarePerson,
    LegacyHealthcare,
    PersonHealthcare,
    new_healthcare_person,
    healthcare_model,
    scale_healthcare,
    settings_to_dict,
    settings_from_dict,
)
from retirement_sim.rmd import (
    RMD_START_AGE,
    life_expectancy_factor,
    calculate_rmd,
    calculate_rmd_analysis,
)
from retirement_sim.cashflow import total_income, total_expenses, expense_breakdown
from retirement_sim.simulation import ProjectionMonth, ProjectionResult, run_projection
from retirement_sim.valuation import (
    present_value,
    present_value_annuity,
    calculate_present_value_analysis,
    calculate_budget_fit,
    calculate_sustainability_score,
)
from retirement_sim.sensitivity import (
    calculate_sensitivity,
    calculate_failure_points,
    bisect_threshold,
)
from retirement_sim.events import EventRiskConfig
from retirement_sim.monte_carlo import MonteCarloConfig, MonteCarloResult, run_monte_carlo
from retirement_sim.analysis import Analysis, AnalysisCache, run_analysis

__all__ = [
    "Settings",
    "IncomeSource",
    "ExpenseSource",
    "HealthcarePerson",
    "LegacyHealthcare",
    "PersonHealthcare",
    "new_healthcare_person",
    "healthcare_model",
    "scale_healthcare",
    "settings_to_dict",
    "settings_from_dict",
    "RMD_START_AGE",
    "life_expectancy_factor",
    "calculate_rmd",
    "calculate_rmd_analysis",
    "total_income",
    "total_expenses",
    "expense_breakdown",
    "ProjectionMonth",
    "ProjectionResult",
    "run_projection",
    "present_value",
    "present_value_annuity",
    "calculate_present_value_analysis",
    "calculate_budget_fit",
    "calculate_sustainability_score",
    "calculate_sensitivity",
    "calculate_failure_points",
    "bisect_threshold",
    "EventRiskConfig",
    "MonteCarloConfig",
    "MonteCarloResult",
    "run_monte_carlo",
    "Analysis",
    "AnalysisCache",
    "run_analysis",
]
