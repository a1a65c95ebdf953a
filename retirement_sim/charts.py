"""Chart generation for retirement analysis results."""

from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import matplotlib.ticker as ticker

from retirement_sim.monte_carlo import Distribution, SequenceRiskBreakdown
from retirement_sim.simulation import ProjectionResult

COLOR_TAXABLE = "#1f77b4"       # blue
COLOR_TAX_DEFERRED = "#ff7f0e"  # orange
COLOR_DEPLETION = "#d62728"     # red
COLOR_SURVIVAL = "#2ca02c"      # green


def _format_dollar_axis(ax: plt.Axes):
    ax.yaxis.set_major_formatter(
        ticker.FuncFormatter(lambda x, _: f"${x / 1_000_000:.1f}M" if abs(x) >= 1_000_000 else f"${x / 1000:,.0f}K")
    )


def _save(fig, output_path: Path, stem: str, name: str) -> Path:
    output_path.mkdir(parents=True, exist_ok=True)
    suffix = f"-{name}" if name else ""
    filepath = output_path / f"{stem}{suffix}.png"
    fig.tight_layout()
    fig.savefig(filepath, dpi=150)
    plt.close(fig)
    return filepath


def plot_projection(result: ProjectionResult, output_path: Path, name: str = "") -> Path:
    """Stacked taxable / tax-deferred balance by year from a deterministic projection.

    Args:
        result: run_projection() output.
        output_path: directory to save the PNG.
        name: optional suffix for the output filename (e.g. "base" → "projection-base.png").

    Returns:
        Path to the generated PNG file.
    """
    # Year-start snapshot plus the final month
    months = [m for m in result.months if m.month % 12 == 0]
    if result.months and result.months[-1] not in months:
        months.append(result.months[-1])

    years = [m.year for m in months]
    taxable = [m.taxable_balance for m in months]
    tax_deferred = [m.tax_deferred_balance for m in months]

    fig, ax = plt.subplots(figsize=(12, 7))
    ax.stackplot(
        years, taxable, tax_deferred,
        labels=["Taxable", "Tax-deferred"],
        colors=[COLOR_TAXABLE, COLOR_TAX_DEFERRED],
        alpha=0.8,
    )
    if result.longevity_years is not None:
        ax.axvline(result.longevity_years, color=COLOR_DEPLETION, linestyle="--", linewidth=1.5)
        ax.annotate(
            f"Depleted at {result.longevity_years:.1f} years",
            xy=(result.longevity_years, 0),
            xytext=(5, 20), textcoords="offset points",
            color=COLOR_DEPLETION, fontsize=11,
        )

    ax.set_xlabel("Years from now")
    ax.set_ylabel("Portfolio balance")
    ax.set_title("Portfolio Projection (deterministic)")
    ax.legend(loc="upper right")
    ax.grid(True, alpha=0.3)
    _format_dollar_axis(ax)
    return _save(fig, output_path, "projection", name)


def plot_mc_distribution(distribution: Distribution, output_path: Path, name: str = "", runs: int = 0) -> Path:
    """Bar chart of Monte Carlo final balances by bucket."""
    if not distribution.buckets:
        raise ValueError("Distribution has no buckets")

    labels = [b.label for b in distribution.buckets]
    shares = [b.percentage for b in distribution.buckets]

    fig, ax = plt.subplots(figsize=(12, 6))
    bars = ax.bar(labels, shares, color=COLOR_TAXABLE)
    # Depleted runs land in the bottom bucket
    bars[0].set_color(COLOR_DEPLETION)
    for bar, b in zip(bars, distribution.buckets):
        ax.annotate(
            f"{b.count:,}",
            xy=(bar.get_x() + bar.get_width() / 2, bar.get_height()),
            ha="center", va="bottom", fontsize=9,
        )

    title = "Final Balance Distribution"
    if runs:
        title += f" (N={runs:,})"
    ax.set_title(title)
    ax.set_xlabel("Final balance")
    ax.set_ylabel("Share of runs (%)")
    ax.grid(True, axis="y", alpha=0.3)
    plt.setp(ax.get_xticklabels(), rotation=30, ha="right")
    return _save(fig, output_path, "mc_distribution", name)


def plot_sequence_risk(breakdown: SequenceRiskBreakdown, output_path: Path, name: str = "") -> Path:
    """Survival rate by the timing of each run's first market crash."""
    labels = ["No crash", "Years 1-5", "Years 6-15", "After 15"]
    survival = [
        breakdown.no_crash_survival,
        breakdown.early_crash_survival,
        breakdown.mid_crash_survival,
        breakdown.late_crash_survival,
    ]
    counts = [
        breakdown.no_crash_count,
        breakdown.early_crash_count,
        breakdown.mid_crash_count,
        breakdown.late_crash_count,
    ]

    fig, ax = plt.subplots(figsize=(10, 6))
    colors = [COLOR_SURVIVAL, COLOR_DEPLETION, COLOR_TAX_DEFERRED, COLOR_TAXABLE]
    bars = ax.bar(labels, survival, color=colors)
    for bar, count in zip(bars, counts):
        ax.annotate(
            f"n={count:,}",
            xy=(bar.get_x() + bar.get_width() / 2, bar.get_height()),
            ha="center", va="bottom", fontsize=10,
        )

    ax.set_ylim(0, 105)
    ax.set_ylabel("Survival rate (%)")
    ax.set_title(
        f"Sequence-of-Returns Risk (buffer: {breakdown.recommended_buffer} years, "
        f"${breakdown.buffer_amount:,.0f})"
    )
    ax.grid(True, axis="y", alpha=0.3)
    return _save(fig, output_path, "sequence_risk", name)
