"""
Bar charts of grouped weighted rates.

Charts are rendered with the non-interactive Agg backend and saved as PNG.
"""

from pathlib import Path
from typing import Optional, Sequence
import logging

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.ticker import PercentFormatter  # noqa: E402

from nativity_health_aggregation import GroupSummary  # noqa: E402

logger = logging.getLogger(__name__)


GROUP_COLORS = {
    'U.S.-born': '#4E79A7',
    'Naturalized citizen': '#F28E2B',
    'Non-citizen': '#E15759',
    'Other': '#BAB0AC',
}
TENURE_COLOR = '#4E79A7'


def _error_bars(summaries: Sequence[GroupSummary]) -> Optional[list]:
    if not summaries or not all(s.has_interval for s in summaries):
        return None
    # max() maps NaN bounds to a zero-length whisker
    below = [max(0.0, s.rate - s.lower) for s in summaries]
    above = [max(0.0, s.upper - s.rate) for s in summaries]
    return [below, above]


def _bar_chart(
    summaries: Sequence[GroupSummary],
    output_path: str,
    title: str,
    xlabel: str,
    ylabel: str,
    colors,
    subtitle: Optional[str] = None,
    caption: Optional[str] = None
) -> Path:
    labels = [str(s.group) for s in summaries]
    rates = [s.rate for s in summaries]

    fig, ax = plt.subplots(figsize=(8, 5))
    try:
        bars = ax.bar(labels, rates, color=colors, yerr=_error_bars(summaries), capsize=4)

        for bar, rate in zip(bars, rates):
            if rate == rate:  # skip NaN
                ax.annotate(f"{rate:.1%}",
                            xy=(bar.get_x() + bar.get_width() / 2, rate),
                            xytext=(0, 3), textcoords='offset points',
                            ha='center', va='bottom')

        ax.yaxis.set_major_formatter(PercentFormatter(xmax=1.0))
        ax.set_xlabel(xlabel)
        ax.set_ylabel(ylabel)
        ax.spines['top'].set_visible(False)
        ax.spines['right'].set_visible(False)

        if subtitle:
            fig.suptitle(title, fontweight='bold')
            ax.set_title(subtitle)
        else:
            ax.set_title(title, fontweight='bold')
        if caption:
            fig.text(0.99, 0.01, caption, ha='right', va='bottom', fontsize=8)

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.tight_layout()
        fig.savefig(output_path, dpi=150)
    finally:
        plt.close(fig)

    logger.info(f"Saved chart to {output_path}")
    return output_path


def plot_insured_rates(
    summaries: Sequence[GroupSummary],
    output_path: str,
    survey_year: int = 2023
) -> Path:
    """
    Bar chart of the insured rate by population group.

    Args:
        summaries: Insured-rate summaries (complements of the uninsured rate)
        output_path: PNG file to write
        survey_year: Survey year shown in the caption

    Returns:
        Path of the written chart
    """
    colors = [GROUP_COLORS.get(s.group, '#76B7B2') for s in summaries]
    return _bar_chart(
        summaries,
        output_path,
        title="Health Insurance Coverage Varies by Citizenship Status",
        xlabel="",
        ylabel="Percentage Insured",
        colors=colors,
        caption=f"Data: {survey_year} NHIS",
    )


def plot_mental_health_by_tenure(summaries: Sequence[GroupSummary], output_path: str) -> Path:
    """Bar chart of depression/anxiety rates by years in the United States."""
    return _bar_chart(
        summaries,
        output_path,
        title="Mental Health Issues Increase with Time in U.S.",
        subtitle="Among foreign-born residents",
        xlabel="Years in United States",
        ylabel="Percentage with Depression/Anxiety",
        colors=TENURE_COLOR,
    )
