"""Tests for the full analysis entry point and result cache."""

import json
from random import Random

import pytest

from retirement_sim.analysis import AnalysisCache, run_analysis, settings_key
from retirement_sim.events import EventRiskConfig
from retirement_sim.monte_carlo import MonteCarloConfig
from retirement_sim.params import IncomeSource, Settings


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _settings(**overrides) -> Settings:
    values = dict(
        portfolio_value=800_000,
        current_age=70,
        monthly_living_expenses=3500,
        projection_years=15,
        income_sources=[IncomeSource(name="Social Security", amount=1500, cola_rate=0.02)],
    )
    values.update(overrides)
    return Settings(**values)


class TestRunAnalysis:
    def setup_method(self):
        self.s = _settings()
        self.a = run_analysis(self.s, runs=30, rng=Random(1))

    def test_all_parts_present(self):
        a = self.a
        assert a.settings is self.s
        assert len(a.projection.months) == 180
        assert a.monte_carlo.stats.runs == 30
        assert len(a.sensitivity) == 6
        assert a.failure_points.baseline_survives == a.projection.survives
        assert a.rmd.starts_in_years == 3

    def test_score_consistent_with_budget(self):
        a = self.a
        assert a.budget_fit.monthly_income == pytest.approx(1500)
        assert a.sustainability.score >= 0

    def test_json_serializable(self):
        data = self.a.to_dict()
        assert "results" not in data["monte_carlo"]
        text = json.dumps(data)
        assert json.loads(text)["settings"]["portfolio_value"] == 800_000

    def test_reproducible(self):
        again = run_analysis(self.s, runs=30, rng=Random(1))
        assert again.monte_carlo.stats == self.a.monte_carlo.stats

    def test_runs_from_config(self):
        a = run_analysis(self.s, config=MonteCarloConfig(n_simulations=12, seed=2))
        assert a.monte_carlo.stats.runs == 12


class TestSettingsKey:
    def test_stable(self):
        assert settings_key(_settings(), 100) == settings_key(_settings(), 100)

    def test_differs_by_content_and_runs(self):
        base = settings_key(_settings(), 100)
        assert settings_key(_settings(portfolio_value=900_000), 100) != base
        assert settings_key(_settings(), 200) != base

    def test_default_config_matches_none(self):
        assert settings_key(_settings(), 100, MonteCarloConfig()) == settings_key(_settings(), 100)

    def test_differs_by_simulation_config(self):
        base = settings_key(_settings(), 100, MonteCarloConfig())
        assert settings_key(_settings(), 100, MonteCarloConfig(return_volatility=40)) != base
        assert settings_key(_settings(), 100, MonteCarloConfig(longevity_variation=0)) != base
        crashy = MonteCarloConfig(event_risks=EventRiskConfig(crash_probability=1.0))
        assert settings_key(_settings(), 100, crashy) != base

    def test_ignores_worker_count(self):
        assert settings_key(_settings(), 100, MonteCarloConfig(workers=4)) == settings_key(_settings(), 100)


class TestAnalysisCache:
    def setup_method(self):
        self.clock = FakeClock()
        self.cache = AnalysisCache(ttl_seconds=300, clock=self.clock)
        self.s = _settings()

    def test_miss_when_empty(self):
        assert self.cache.get(self.s, 30) is None

    def test_hit_within_ttl(self):
        a = run_analysis(self.s, runs=30, rng=Random(1))
        self.cache.put(self.s, 30, a)
        self.clock.now += 299
        assert self.cache.get(self.s, 30) is a

    def test_stale_after_ttl(self):
        a = run_analysis(self.s, runs=30, rng=Random(1))
        self.cache.put(self.s, 30, a)
        self.clock.now += 301
        assert self.cache.get(self.s, 30) is None

    def test_run_analysis_uses_cache(self):
        first = run_analysis(self.s, runs=30, rng=Random(1), cache=self.cache)
        second = run_analysis(self.s, runs=30, rng=Random(2), cache=self.cache)
        assert second is first

    def test_other_run_count_misses(self):
        first = run_analysis(self.s, runs=30, rng=Random(1), cache=self.cache)
        other = run_analysis(self.s, runs=20, rng=Random(1), cache=self.cache)
        assert other is not first
        assert other.monte_carlo.stats.runs == 20

    def test_other_config_misses(self):
        calm = MonteCarloConfig(return_volatility=0, event_risks=EventRiskConfig(crash_probability=0))
        stormy = MonteCarloConfig(return_volatility=40, event_risks=EventRiskConfig(crash_probability=1.0))
        first = run_analysis(self.s, runs=30, config=calm, rng=Random(1), cache=self.cache)
        second = run_analysis(self.s, runs=30, config=stormy, rng=Random(1), cache=self.cache)
        assert second is not first
        assert first.monte_carlo.stats.avg_crashes_per_run == 0
        assert second.monte_carlo.stats.avg_crashes_per_run > 0
        assert run_analysis(self.s, runs=30, config=calm, rng=Random(2), cache=self.cache) is first

    def test_clear(self):
        run_analysis(self.s, runs=30, rng=Random(1), cache=self.cache)
        self.cache.clear()
        assert self.cache.get(self.s, 30) is None
