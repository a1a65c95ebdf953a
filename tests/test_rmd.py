"""Tests for required minimum distribution calculations."""

import pytest

from retirement_sim.params import Settings
from retirement_sim.rmd import (
    MAX_SCHEDULE_YEARS,
    RMD_START_AGE,
    calculate_rmd,
    calculate_rmd_analysis,
    life_expectancy_factor,
)


class TestLifeExpectancyFactor:
    def test_below_table(self):
        assert life_expectancy_factor(71) == 0.0
        assert life_expectancy_factor(40) == 0.0

    def test_table_values(self):
        assert life_expectancy_factor(72) == pytest.approx(27.4)
        assert life_expectancy_factor(73) == pytest.approx(26.5)
        assert life_expectancy_factor(100) == pytest.approx(6.4)
        assert life_expectancy_factor(120) == pytest.approx(2.0)

    def test_beyond_table(self):
        assert life_expectancy_factor(121) == pytest.approx(2.0)
        assert life_expectancy_factor(130) == pytest.approx(2.0)

    def test_non_increasing(self):
        factors = [life_expectancy_factor(age) for age in range(72, 122)]
        assert all(a >= b for a, b in zip(factors, factors[1:]))


class TestCalculateRMD:
    def test_zero_below_72(self):
        for age in range(50, 72):
            assert calculate_rmd(500_000, age) == (0.0, 0.0)

    def test_positive_from_72(self):
        for age in range(72, 125):
            amount, percent = calculate_rmd(100_000, age)
            assert amount > 0
            assert percent > 0

    def test_amount_and_percent(self):
        amount, percent = calculate_rmd(265_000, 73)
        assert amount == pytest.approx(10_000)
        assert percent == pytest.approx(100 / 26.5)


class TestRMDAnalysis:
    def test_starts_in_years(self):
        a = calculate_rmd_analysis(Settings(portfolio_value=1_000_000, current_age=65))
        assert a.starts_in_years == 8
        assert a.start_age == RMD_START_AGE
        assert a.tax_deferred_value == pytest.approx(700_000)
        assert a.projections[0].age == 73
        assert a.projections[0].year == 8

    def test_already_started(self):
        a = calculate_rmd_analysis(Settings(portfolio_value=1_000_000, current_age=80))
        assert a.starts_in_years == 0
        assert a.projections[0].age == 80
        assert a.projections[0].tax_deferred_balance == pytest.approx(700_000)

    def test_zero_return_balance_shrinks_by_distribution(self):
        s = Settings(portfolio_value=1_000_000, tax_deferred_percent=100, current_age=73, investment_return=0)
        a = calculate_rmd_analysis(s)
        first, second = a.projections[0], a.projections[1]
        assert first.rmd_amount == pytest.approx(1_000_000 / 26.5)
        assert second.tax_deferred_balance == pytest.approx(1_000_000 - first.rmd_amount)

    def test_schedule_capped(self):
        a = calculate_rmd_analysis(Settings(portfolio_value=1_000_000, current_age=65, projection_years=40))
        assert len(a.projections) == MAX_SCHEDULE_YEARS

    def test_ten_year_total(self):
        a = calculate_rmd_analysis(Settings(portfolio_value=1_000_000, current_age=73))
        assert a.total_rmds_10yr == pytest.approx(sum(p.rmd_amount for p in a.projections[:10]))

    def test_horizon_before_start(self):
        a = calculate_rmd_analysis(Settings(portfolio_value=1_000_000, current_age=50, projection_years=10))
        assert a.projections == []
        assert a.total_rmds_10yr == 0.0
