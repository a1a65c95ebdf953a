"""Full analysis entry point and a caller-owned result cache."""

import dataclasses
import hashlib
import json
import time
from dataclasses import dataclass, field
from random import Random
from typing import Callable

from retirement_sim.monte_carlo import MonteCarloAnalysis, MonteCarloConfig, run_monte_carlo
from retirement_sim.params import Settings, settings_to_dict
from retirement_sim.rmd import RMDAnalysis, calculate_rmd_analysis
from retirement_sim.sensitivity import (
    FailurePointAnalysis,
    SensitivityResult,
    calculate_failure_points,
    calculate_sensitivity,
)
from retirement_sim.simulation import ProjectionResult, run_projection
from retirement_sim.valuation import (
    BudgetFitAnalysis,
    PresentValueAnalysis,
    SustainabilityScore,
    calculate_budget_fit,
    calculate_present_value_analysis,
    calculate_sustainability_score,
)

DEFAULT_CACHE_TTL = 300.0  # seconds


@dataclass
class Analysis:
    settings: Settings
    projection: ProjectionResult
    budget_fit: BudgetFitAnalysis
    present_value: PresentValueAnalysis
    sustainability: SustainabilityScore
    sensitivity: list[SensitivityResult]
    failure_points: FailurePointAnalysis
    monte_carlo: MonteCarloAnalysis
    rmd: RMDAnalysis

    def to_dict(self) -> dict:
        data = dataclasses.asdict(self)
        data["monte_carlo"].pop("results", None)
        return data


def settings_key(settings: Settings, runs: int, config: MonteCarloConfig | None = None) -> str:
    """Content hash identifying an analysis request.

    Stream ids are left out so equal content maps to the same key.
    The worker count is left out of the simulation config since it does
    not change results.
    """
    data = settings_to_dict(settings)
    for key in ("income_sources", "expense_sources", "healthcare_persons"):
        for item in data[key]:
            item.pop("id", None)
    mc = dataclasses.asdict(config if config is not None else MonteCarloConfig())
    mc.pop("workers")
    payload = json.dumps({"settings": data, "monte_carlo": mc}, sort_keys=True)
    return hashlib.sha256(f"{payload}|{runs}".encode()).hexdigest()


@dataclass
class AnalysisCache:
    """Analyses keyed by settings and simulation config, expiring after ttl_seconds."""

    ttl_seconds: float = DEFAULT_CACHE_TTL
    clock: Callable[[], float] = time.monotonic
    _entries: dict[str, tuple[float, Analysis]] = field(default_factory=dict, repr=False)

    def get(self, settings: Settings, runs: int, config: MonteCarloConfig | None = None) -> Analysis | None:
        key = settings_key(settings, runs, config)
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, analysis = entry
        if self.clock() - stored_at > self.ttl_seconds:
            del self._entries[key]
            return None
        return analysis

    def put(
        self, settings: Settings, runs: int, analysis: Analysis, config: MonteCarloConfig | None = None,
    ) -> None:
        self._entries[settings_key(settings, runs, config)] = (self.clock(), analysis)

    def clear(self) -> None:
        self._entries.clear()


def run_analysis(
    settings: Settings,
    runs: int | None = None,
    config: MonteCarloConfig | None = None,
    rng: Random | None = None,
    cache: AnalysisCache | None = None,
) -> Analysis:
    """Run every deterministic and stochastic analysis for one settings record.

    With a cache, a fresh entry for the same settings, run count and
    simulation config is returned as-is.
    """
    if config is None:
        config = MonteCarloConfig()
    effective_runs = runs if runs is not None and runs > 0 else config.n_simulations

    if cache is not None:
        cached = cache.get(settings, effective_runs, config)
        if cached is not None:
            return cached

    projection = run_projection(settings)
    budget_fit = calculate_budget_fit(settings)
    analysis = Analysis(
        settings=settings,
        projection=projection,
        budget_fit=budget_fit,
        present_value=calculate_present_value_analysis(settings),
        sustainability=calculate_sustainability_score(budget_fit.required_rate, projection.survives),
        sensitivity=calculate_sensitivity(settings),
        failure_points=calculate_failure_points(settings),
        monte_carlo=run_monte_carlo(settings, effective_runs, config, rng),
        rmd=calculate_rmd_analysis(settings),
    )

    if cache is not None:
        cache.put(settings, effective_runs, analysis, config)
    return analysis
