"""Smoke tests for chart generation."""

from random import Random

import pytest

from retirement_sim.charts import plot_mc_distribution, plot_projection, plot_sequence_risk
from retirement_sim.monte_carlo import Distribution, run_monte_carlo
from retirement_sim.params import Settings
from retirement_sim.simulation import run_projection


class TestCharts:
    def test_projection_png(self, tmp_path):
        path = plot_projection(run_projection(Settings(portfolio_value=300_000)), tmp_path, name="base")
        assert path == tmp_path / "projection-base.png"
        assert path.stat().st_size > 0

    def test_mc_charts(self, tmp_path):
        mc = run_monte_carlo(Settings(portfolio_value=1_000_000, projection_years=15), runs=100, rng=Random(1))
        path = plot_mc_distribution(mc.distribution, tmp_path, runs=mc.stats.runs)
        assert path.name == "mc_distribution.png"
        assert path.exists()
        path = plot_sequence_risk(mc.stats.sequence_risk, tmp_path / "nested")
        assert path.exists()

    def test_empty_distribution_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            plot_mc_distribution(Distribution(), tmp_path)
