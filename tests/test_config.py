"""Tests for config loading, resolution and validation."""

import argparse

import pytest

from retirement_sim.config import (
    DEFAULTS,
    build_settings,
    load_config,
    parse_args,
    resolve,
    validate_settings,
)
from retirement_sim.params import Settings


def _write(tmp_path, text: str):
    path = tmp_path / "config.toml"
    path.write_text(text)
    return path


class TestLoadConfig:
    def test_missing_file(self, tmp_path):
        assert load_config(tmp_path / "nope.toml") == {}

    def test_reads_values(self, tmp_path):
        path = _write(tmp_path, "portfolio_value = 750000\ncurrent_age = 62\n")
        assert load_config(path) == {"portfolio_value": 750000, "current_age": 62}

    def test_legacy_healthcare_key(self, tmp_path):
        path = _write(tmp_path, "healthcare = 800\n")
        assert load_config(path) == {"monthly_healthcare": 800}

    def test_new_healthcare_key_wins(self, tmp_path):
        path = _write(tmp_path, "healthcare = 800\nmonthly_healthcare = 650\n")
        assert load_config(path) == {"monthly_healthcare": 650}

    def test_invalid_toml_exits(self, tmp_path, capsys):
        path = _write(tmp_path, "portfolio_value = = 1\n")
        with pytest.raises(SystemExit) as exc:
            load_config(path)
        assert exc.value.code == 1
        assert "Failed to read config file" in capsys.readouterr().err


class TestResolve:
    def test_priority(self):
        args = argparse.Namespace(portfolio_value=5.0, current_age=None)
        r = resolve(args, {"portfolio_value": 10.0, "current_age": 60})
        assert r["portfolio_value"] == 5.0
        assert r["current_age"] == 60
        assert r["projection_years"] == DEFAULTS["projection_years"]


class TestBuildSettings:
    def test_scalars(self):
        s = build_settings(dict(DEFAULTS, portfolio_value=400_000))
        assert isinstance(s, Settings)
        assert s.portfolio_value == 400_000
        assert s.healthcare_persons == []

    def test_sources(self):
        config = {
            "income_sources": [
                {"name": "Pension", "amount": 1800, "cola_rate": 0.02},
                {"name": "Part-time", "amount": 1000, "end_month": 36, "income_type": "temporary"},
            ],
            "expense_sources": [{"name": "Travel", "amount": 400, "end_year": 10, "discretionary": True}],
        }
        s = build_settings(DEFAULTS, config)
        assert s.income_sources[0].end_month is None
        assert s.income_sources[1].end_month == 36
        assert s.income_sources[1].income_type == "temporary"
        assert s.expense_sources[0].discretionary

    def test_person_coverage_defaults_and_overrides(self):
        config = {"healthcare_persons": [
            {"name": "A", "age": 62, "coverage": "aca"},
            {"name": "B", "age": 60, "coverage": "employer", "current_monthly_cost": 350},
        ]}
        s = build_settings(DEFAULTS, config)
        assert s.healthcare_persons[0].current_monthly_cost == 1100
        assert s.healthcare_persons[0].medicare_monthly_cost == 600
        assert s.healthcare_persons[1].current_monthly_cost == 350
        assert s.healthcare_persons[1].pre_medicare_inflation == 5.0


class TestValidateSettings:
    def test_defaults_valid(self):
        assert validate_settings(Settings()) == []

    def test_collects_errors(self):
        errors = validate_settings(Settings(projection_years=-1, current_age=-3, tax_deferred_percent=120))
        assert len(errors) == 3

    def test_source_windows(self):
        from retirement_sim.params import ExpenseSource, IncomeSource
        s = Settings(
            income_sources=[IncomeSource(name="x", start_month=24, end_month=12)],
            expense_sources=[ExpenseSource(name="y", start_year=5, end_year=2)],
        )
        assert len(validate_settings(s)) == 2


class TestParseArgs:
    def test_cli_overrides_config(self, tmp_path):
        path = _write(tmp_path, "portfolio_value = 750000\ncurrent_age = 62\n")
        settings, args = parse_args("test", argv=["--config", str(path), "--portfolio", "500000"])
        assert settings.portfolio_value == 500_000
        assert settings.current_age == 62

    def test_extra_args(self, tmp_path):
        def add(parser):
            parser.add_argument("--mc-runs", type=int, default=1000)

        _, args = parse_args("test", add, argv=["--config", str(tmp_path / "none.toml"), "--mc-runs", "50"])
        assert args.mc_runs == 50

    def test_invalid_settings_exit(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc:
            parse_args("test", argv=["--config", str(tmp_path / "none.toml"), "--tax-deferred", "150"])
        assert exc.value.code == 1
        assert "tax-deferred" in capsys.readouterr().err

    def test_unknown_coverage_exit(self, tmp_path):
        path = _write(tmp_path, '[[healthcare_persons]]\nname = "A"\nage = 60\ncoverage = "cobra"\n')
        with pytest.raises(SystemExit):
            parse_args("test", argv=["--config", str(path)])
