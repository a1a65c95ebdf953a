"""TOML config loader with CLI > config > default resolution."""

import argparse
import sys
import tomllib
from pathlib import Path
from typing import Callable

from retirement_sim.params import (
    ExpenseSource,
    HealthcarePerson,
    IncomeSource,
    Settings,
    new_healthcare_person,
)

DEFAULT_CONFIG_PATH = Path("config.toml")

DEFAULTS = {
    "portfolio_value": 0.0,
    "current_age": 65,
    "tax_deferred_percent": 70.0,
    "monthly_living_expenses": 4000.0,
    "monthly_healthcare": 500.0,
    "healthcare_start_years": 0,
    "inflation_rate": 3.0,
    "healthcare_inflation": 6.0,
    "spending_decline_rate": 1.0,
    "investment_return": 6.0,
    "discount_rate": 5.0,
    "projection_years": 30,
}


def load_config(path: Path | None = None) -> dict:
    """Load TOML config file. Returns empty dict if file doesn't exist."""
    if path is None:
        path = DEFAULT_CONFIG_PATH
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        print(f"Failed to read config file: {path}: {e}", file=sys.stderr)
        raise SystemExit(1)
    # Migrate legacy scalar healthcare key
    if "healthcare" in raw and "monthly_healthcare" not in raw:
        raw["monthly_healthcare"] = raw.pop("healthcare")
    elif "healthcare" in raw:
        raw.pop("healthcare")  # new key takes precedence
    return raw


def create_parser(description: str) -> argparse.ArgumentParser:
    """Create argparse parser with shared settings flags."""
    d = DEFAULTS
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--config", type=Path, default=None, help="config file path (default: config.toml)")
    parser.add_argument("--portfolio", dest="portfolio_value", type=float, default=None, help=f"portfolio value in $ (default: {d['portfolio_value']:.0f})")
    parser.add_argument("--age", dest="current_age", type=int, default=None, help=f"current age (default: {d['current_age']})")
    parser.add_argument("--tax-deferred", dest="tax_deferred_percent", type=float, default=None, help=f"tax-deferred share of the portfolio, %% (default: {d['tax_deferred_percent']})")
    parser.add_argument("--living", dest="monthly_living_expenses", type=float, default=None, help=f"monthly living expenses in $ (default: {d['monthly_living_expenses']:.0f})")
    parser.add_argument("--healthcare", dest="monthly_healthcare", type=float, default=None, help=f"monthly healthcare in $ when no persons are configured (default: {d['monthly_healthcare']:.0f})")
    parser.add_argument("--inflation", dest="inflation_rate", type=float, default=None, help=f"annual inflation, %% (default: {d['inflation_rate']})")
    parser.add_argument("--healthcare-inflation", dest="healthcare_inflation", type=float, default=None, help=f"annual healthcare inflation, %% (default: {d['healthcare_inflation']})")
    parser.add_argument("--spending-decline", dest="spending_decline_rate", type=float, default=None, help=f"annual real spending decline, %% (default: {d['spending_decline_rate']})")
    parser.add_argument("--return", dest="investment_return", type=float, default=None, help=f"annual investment return, %% (default: {d['investment_return']})")
    parser.add_argument("--discount", dest="discount_rate", type=float, default=None, help=f"discount rate for present values, %% (default: {d['discount_rate']})")
    parser.add_argument("--years", dest="projection_years", type=int, default=None, help=f"projection horizon in years (default: {d['projection_years']})")
    return parser


def resolve(args: argparse.Namespace, config: dict) -> dict:
    """Resolve values with priority: CLI flag > config.toml > hardcoded default."""
    resolved = {}
    for key, default in DEFAULTS.items():
        cli_val = getattr(args, key, None)
        resolved[key] = cli_val if cli_val is not None else config.get(key, default)
    return resolved


def parse_income_source(d: dict) -> IncomeSource:
    return IncomeSource(
        name=d.get("name", ""),
        amount=float(d.get("amount", 0.0)),
        start_month=int(d.get("start_month", 0)),
        end_month=int(d["end_month"]) if d.get("end_month") is not None else None,
        cola_rate=float(d.get("cola_rate", 0.0)),
        income_type=d.get("income_type", "fixed"),
        inflation_adjusted=bool(d.get("inflation_adjusted", False)),
    )


def parse_expense_source(d: dict) -> ExpenseSource:
    return ExpenseSource(
        name=d.get("name", ""),
        amount=float(d.get("amount", 0.0)),
        start_year=int(d.get("start_year", 0)),
        end_year=int(d.get("end_year", 0)),
        inflation=bool(d.get("inflation", True)),
        discretionary=bool(d.get("discretionary", False)),
    )


def parse_healthcare_person(d: dict) -> HealthcarePerson:
    """Person from config; unspecified costs and rates come from the coverage defaults."""
    person = new_healthcare_person(
        d.get("name", ""),
        int(d.get("age", d.get("current_age", 65))),
        d.get("coverage", d.get("current_coverage", "medicare")),
    )
    for key in (
        "current_monthly_cost",
        "pre_medicare_inflation",
        "medicare_monthly_cost",
        "post_medicare_inflation",
    ):
        if key in d:
            setattr(person, key, float(d[key]))
    if "medicare_eligible_age" in d:
        person.medicare_eligible_age = int(d["medicare_eligible_age"])
    return person


def build_settings(r: dict, config: dict | None = None) -> Settings:
    """Build Settings from resolved scalars plus the config's source lists."""
    if config is None:
        config = {}
    return Settings(
        portfolio_value=float(r["portfolio_value"]),
        current_age=int(r["current_age"]),
        tax_deferred_percent=float(r["tax_deferred_percent"]),
        monthly_living_expenses=float(r["monthly_living_expenses"]),
        monthly_healthcare=float(r["monthly_healthcare"]),
        healthcare_start_years=int(r["healthcare_start_years"]),
        inflation_rate=float(r["inflation_rate"]),
        healthcare_inflation=float(r["healthcare_inflation"]),
        spending_decline_rate=float(r["spending_decline_rate"]),
        investment_return=float(r["investment_return"]),
        discount_rate=float(r["discount_rate"]),
        projection_years=int(r["projection_years"]),
        income_sources=[parse_income_source(d) for d in config.get("income_sources", [])],
        expense_sources=[parse_expense_source(d) for d in config.get("expense_sources", [])],
        healthcare_persons=[parse_healthcare_person(d) for d in config.get("healthcare_persons", [])],
    )


def validate_settings(settings: Settings) -> list[str]:
    """Validate settings for the CLI. Returns list of error messages."""
    errors = []
    if settings.projection_years < 0:
        errors.append(f"projection years must not be negative (got {settings.projection_years})")
    if settings.current_age < 0:
        errors.append(f"age must not be negative (got {settings.current_age})")
    if not 0 <= settings.tax_deferred_percent <= 100:
        errors.append(f"tax-deferred percent must be within 0-100 (got {settings.tax_deferred_percent})")
    if settings.portfolio_value < 0:
        errors.append(f"portfolio value must not be negative (got {settings.portfolio_value:.0f})")
    for source in settings.income_sources:
        if source.end_month is not None and source.end_month < source.start_month:
            errors.append(f"income source {source.name!r}: end month {source.end_month} is before start month {source.start_month}")
    for source in settings.expense_sources:
        if source.end_year > 0 and source.end_year < source.start_year:
            errors.append(f"expense source {source.name!r}: end year {source.end_year} is before start year {source.start_year}")
    return errors


def parse_args(
    description: str,
    add_args_fn: Callable[[argparse.ArgumentParser], None] | None = None,
    argv: list[str] | None = None,
) -> tuple[Settings, argparse.Namespace]:
    """Parse CLI args, load config, resolve and validate settings.

    Prints validation errors to stderr and exits with status 1.
    Returns (settings, namespace); the namespace carries extra CLI args
    added via add_args_fn.
    """
    parser = create_parser(description)
    if add_args_fn:
        add_args_fn(parser)
    args = parser.parse_args(argv)
    try:
        config = load_config(args.config)
        settings = build_settings(resolve(args, config), config)
    except (ValueError, KeyError, TypeError) as e:
        print(f"Invalid config: {e}", file=sys.stderr)
        raise SystemExit(1)
    errors = validate_settings(settings)
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        raise SystemExit(1)
    return settings, args
