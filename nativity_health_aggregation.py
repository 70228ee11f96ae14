"""
Weighted aggregation submodel for grouped survey rates.

Computes the Hajek (ratio) weighted mean of a binary outcome within each
group: rate(g) = sum(w * y) / sum(w). Weights are normalized within a group,
so groups with different total sampling weight stay comparable as rates.
"""

from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Sequence, Union
import numpy as np
import pandas as pd
import logging

from nativity_health_recoding import DerivedRecord, records_to_frame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroupSummary:
    """
    Weighted rate for one group.

    Attributes:
        group: Group label
        rate: Weighted rate in [0, 1], NaN when the group has no weight
        lower: Lower confidence bound (None when not computed)
        upper: Upper confidence bound (None when not computed)
        n: Unweighted number of respondents
        weight_total: Sum of survey weights
    """
    group: str
    rate: float
    lower: Optional[float] = None
    upper: Optional[float] = None
    n: int = 0
    weight_total: float = 0.0

    @property
    def has_interval(self) -> bool:
        return self.lower is not None and self.upper is not None

    def complement(self) -> 'GroupSummary':
        """Summary of the complementary outcome (1 - y), e.g. insured from uninsured."""
        return replace(
            self,
            rate=1.0 - self.rate,
            lower=None if self.upper is None else 1.0 - self.upper,
            upper=None if self.lower is None else 1.0 - self.lower,
        )


def as_frame(data: Union[pd.DataFrame, Iterable[DerivedRecord]]) -> pd.DataFrame:
    """Accept either a recoded DataFrame or a sequence of DerivedRecords."""
    if isinstance(data, pd.DataFrame):
        return data
    return records_to_frame(list(data))


def group_order(groups: pd.Series, order: Optional[Sequence] = None) -> List:
    """
    Distinct group values in output order.

    Labels in ``order`` come first (absent labels skipped); any other values
    follow in order of first appearance.
    """
    present = list(pd.unique(groups.dropna()))
    if order is None:
        return present
    ordered = [g for g in order if g in present]
    return ordered + [g for g in present if g not in ordered]


def usable_rows(
    df: pd.DataFrame,
    key: str,
    outcome: str,
    weight: str = 'weight'
) -> pd.DataFrame:
    """Rows with a group key, an outcome and a present, non-negative weight."""
    frame = pd.DataFrame({
        'group': df[key].to_numpy(),
        'w': pd.to_numeric(df[weight], errors='coerce').to_numpy(),
        'y': pd.to_numeric(df[outcome], errors='coerce').to_numpy(),
    }, index=df.index)
    mask = frame['group'].notna() & frame['w'].notna() & frame['y'].notna() & (frame['w'] >= 0)
    return frame[mask.to_numpy()]


def weighted_mean(values: np.ndarray, weights: np.ndarray) -> float:
    """Weighted mean of values, or NaN if the weights sum to zero."""
    weights = np.asarray(weights, dtype=float)
    weight_total = float(np.sum(weights))
    if not np.isfinite(weight_total) or weight_total <= 0:
        return np.nan
    # Numerator and denominator share one summation order
    return float(np.sum(weights * np.asarray(values, dtype=float)) / weight_total)


def weighted_rate(values: np.ndarray, weights: np.ndarray) -> float:
    """Weighted mean of 0/1 values, clamped to [0, 1]."""
    rate = weighted_mean(values, weights)
    if np.isnan(rate):
        return rate
    return min(max(rate, 0.0), 1.0)


def weighted_rates(
    data: Union[pd.DataFrame, Iterable[DerivedRecord]],
    key: str,
    outcome: str,
    weight: str = 'weight',
    order: Optional[Sequence] = None
) -> List[GroupSummary]:
    """
    Compute the weighted rate of a binary outcome per group.

    Args:
        data: Filtered, recoded respondents
        key: Grouping column (e.g. 'population_group')
        outcome: 0/1 outcome column (e.g. 'uninsured')
        weight: Survey weight column
        order: Preferred output order of group labels

    Returns:
        One GroupSummary per distinct group value present in the data
    """
    df = as_frame(data)
    if df.empty:
        return []

    frame = usable_rows(df, key, outcome, weight)

    summaries = []
    for group in group_order(frame['group'], order):
        members = frame[(frame['group'] == group).to_numpy()]
        w = members['w'].to_numpy(dtype=float)
        y = members['y'].to_numpy(dtype=float)

        rate = weighted_rate(y, w)
        if np.isnan(rate):
            logger.warning(f"Group '{group}' has zero total weight; rate is undefined")

        summaries.append(GroupSummary(
            group=group,
            rate=rate,
            n=len(members),
            weight_total=float(w.sum()),
        ))

    return summaries


def summaries_to_frame(summaries: Sequence[GroupSummary], rate_name: str = 'rate') -> pd.DataFrame:
    """Tabulate summaries, one row per group."""
    rows = []
    for s in summaries:
        rows.append({
            'group': s.group,
            rate_name: s.rate,
            'lower': s.lower,
            'upper': s.upper,
            'n': s.n,
            'weight_total': s.weight_total,
        })
    return pd.DataFrame(rows, columns=['group', rate_name, 'lower', 'upper', 'n', 'weight_total'])
