"""Tests for settings and cash-flow stream definitions."""

import pytest

from retirement_sim.params import (
    ExpenseSource,
    HealthcarePerson,
    IncomeSource,
    LegacyHealthcare,
    PersonHealthcare,
    Settings,
    healthcare_model,
    new_healthcare_person,
    scale_healthcare,
    settings_from_dict,
    settings_to_dict,
)


class TestIncomeSource:
    def test_flat_within_first_year(self):
        src = IncomeSource(amount=1000, cola_rate=0.02)
        assert src.adjusted_amount(0) == pytest.approx(1000)
        assert src.adjusted_amount(11) == pytest.approx(1000)

    def test_cola_compounds_per_full_year(self):
        src = IncomeSource(amount=1000, cola_rate=0.02)
        assert src.adjusted_amount(12) == pytest.approx(1020)
        assert src.adjusted_amount(24) == pytest.approx(1000 * 1.02 ** 2)

    def test_cola_counted_from_start_month(self):
        src = IncomeSource(amount=1000, start_month=24, cola_rate=0.03)
        assert src.adjusted_amount(23) == 0.0
        assert src.adjusted_amount(24) == pytest.approx(1000)
        assert src.adjusted_amount(36) == pytest.approx(1030)

    def test_end_month_exclusive(self):
        src = IncomeSource(amount=500, end_month=12)
        assert src.is_active(11)
        assert not src.is_active(12)
        assert src.adjusted_amount(12) == 0.0

    def test_perpetual_without_end(self):
        assert IncomeSource(amount=500).is_active(10_000)

    def test_ids_are_unique(self):
        assert IncomeSource().id != IncomeSource().id


class TestExpenseSource:
    def test_window(self):
        src = ExpenseSource(amount=300, start_year=2, end_year=4)
        assert src.adjusted_amount(23) == 0.0
        assert src.adjusted_amount(24) == pytest.approx(300)
        assert src.adjusted_amount(47) > 0
        assert src.adjusted_amount(48) == 0.0

    def test_inflates_from_start(self):
        src = ExpenseSource(amount=1000, start_year=1)
        assert src.adjusted_amount(12, 3.0) == pytest.approx(1000)
        assert src.adjusted_amount(24, 3.0) == pytest.approx(1030)

    def test_no_inflation_flag(self):
        src = ExpenseSource(amount=1000, inflation=False)
        assert src.adjusted_amount(120, 3.0) == pytest.approx(1000)

    def test_non_positive_amount_contributes_nothing(self):
        assert ExpenseSource(amount=0).adjusted_amount(0, 3.0) == 0.0
        assert ExpenseSource(amount=-50).adjusted_amount(0, 3.0) == 0.0


class TestHealthcarePerson:
    def test_aca_defaults(self):
        p = new_healthcare_person("A", 62, "aca")
        assert p.current_monthly_cost == 1100
        assert p.pre_medicare_inflation == 7.0
        assert p.medicare_monthly_cost == 600
        assert p.post_medicare_inflation == 4.0
        assert p.medicare_eligible_age == 65

    def test_unknown_coverage_rejected(self):
        with pytest.raises(ValueError):
            new_healthcare_person("A", 60, "cobra")

    def test_pre_medicare_inflation(self):
        p = new_healthcare_person("A", 62, "aca")
        assert p.monthly_cost(0) == pytest.approx(1100)
        assert p.monthly_cost(12) == pytest.approx(1177)

    def test_switch_to_medicare_at_eligibility(self):
        p = new_healthcare_person("A", 62, "aca")
        assert p.monthly_cost(35) == pytest.approx(1100 * 1.07 ** 2)
        assert p.monthly_cost(36) == pytest.approx(600)
        assert p.monthly_cost(48) == pytest.approx(624)

    def test_already_on_medicare_uses_post_rate(self):
        p = new_healthcare_person("B", 70, "medicare")
        assert p.monthly_cost(12) == pytest.approx(459 * 1.04)

    def test_past_eligibility_switches_immediately(self):
        p = new_healthcare_person("C", 67, "employer")
        assert p.is_on_medicare()
        assert p.monthly_cost(0) == pytest.approx(500)

    def test_offsets_add_to_rate(self):
        p = HealthcarePerson(current_age=50, current_coverage="employer",
                             current_monthly_cost=1000, pre_medicare_inflation=5.0)
        assert p.monthly_cost(24, [1.0, -2.0]) == pytest.approx(1000 * 1.06 * 1.03)

    def test_transition_info(self):
        has_transition, years, pre_cost, medicare_cost = new_healthcare_person("A", 62, "aca").transition_info()
        assert has_transition
        assert years == 3
        assert pre_cost == pytest.approx(1100 * 1.07 ** 3)
        assert medicare_cost == 600

    def test_no_transition_when_on_medicare(self):
        assert new_healthcare_person("B", 66, "medicare").transition_info() == (False, 0, 0.0, 0.0)


class TestHealthcareModel:
    def test_legacy_when_no_persons(self):
        model = healthcare_model(Settings(monthly_healthcare=400, healthcare_start_years=2))
        assert isinstance(model, LegacyHealthcare)
        assert model.monthly_cost == 400
        assert model.start_years == 2

    def test_persons_take_precedence(self):
        s = Settings(monthly_healthcare=400, healthcare_persons=[new_healthcare_person("A", 66, "medicare")])
        model = healthcare_model(s)
        assert isinstance(model, PersonHealthcare)
        assert model.cost(0) == pytest.approx(459)

    def test_legacy_delayed_start(self):
        model = LegacyHealthcare(monthly_cost=500, start_years=2, inflation=6.0)
        assert model.cost(23) == 0.0
        assert model.cost(24) == pytest.approx(500)
        assert model.cost(36) == pytest.approx(530)

    def test_scale_legacy(self):
        s = Settings(monthly_healthcare=500)
        scaled = scale_healthcare(s, 1.5)
        assert scaled.monthly_healthcare == pytest.approx(750)
        assert s.monthly_healthcare == 500

    def test_scale_persons(self):
        s = Settings(healthcare_persons=[new_healthcare_person("A", 62, "aca")])
        scaled = scale_healthcare(s, 2.0)
        assert scaled.healthcare_persons[0].current_monthly_cost == pytest.approx(2200)
        assert scaled.healthcare_persons[0].medicare_monthly_cost == pytest.approx(1200)
        assert s.healthcare_persons[0].current_monthly_cost == 1100


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.current_age == 65
        assert s.monthly_living_expenses == 4000
        assert s.monthly_healthcare == 500
        assert s.projection_years == 30
        assert s.net_inflation == pytest.approx(2.0)

    def test_tax_deferred_value(self):
        assert Settings(portfolio_value=1_000_000, tax_deferred_percent=70).tax_deferred_value() == pytest.approx(700_000)

    def test_annual_returns_override(self):
        s = Settings(investment_return=6.0, annual_returns=[-10.0, 20.0])
        assert s.get_investment_return(0) == -10.0
        assert s.get_investment_return(1) == 20.0
        assert s.get_investment_return(2) == 6.0

    def test_living_factor_with_offsets(self):
        s = Settings(inflation_rate=3.0, spending_decline_rate=1.0, annual_inflation_offsets=[1.0, -1.0])
        assert s.living_factor(2) == pytest.approx(1.03 * 1.01)
        assert s.living_factor(3) == pytest.approx(1.03 * 1.01 * 1.02)

    def test_extra_expense_past_end(self):
        s = Settings(annual_extra_expenses=[100.0])
        assert s.extra_expense(0) == 100.0
        assert s.extra_expense(5) == 0.0

    def test_dict_round_trip(self):
        s = Settings(
            portfolio_value=250_000,
            income_sources=[IncomeSource(name="SS", amount=2000, cola_rate=0.02)],
            expense_sources=[ExpenseSource(name="Travel", amount=300, end_year=10, discretionary=True)],
            healthcare_persons=[new_healthcare_person("A", 62, "aca")],
        )
        assert settings_from_dict(settings_to_dict(s)) == s

    def test_from_dict_ignores_unknown_keys(self):
        s = settings_from_dict({"portfolio_value": 10.0, "theme": "dark"})
        assert s.portfolio_value == 10.0
