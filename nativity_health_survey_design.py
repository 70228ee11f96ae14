"""
Survey design and confidence intervals for grouped weighted rates.

A SurveyDesign binds a dataset to its weight column. Respondents are treated
as independent observations with sampling weights only (no clusters or
strata). Group rates are domain estimates: the variance of each group's
Hajek mean is Taylor-linearized over the whole design sample,

    v(g) = n / (n - 1) * sum_{i in g} (w_i * (y_i - rate_g) / W_g) ** 2

with n the number of respondents in the design and W_g the group's total
weight. Intervals are Wald-type, rate +/- z * sqrt(v), clipped to [0, 1].
"""

from dataclasses import dataclass, replace
from typing import List, Optional, Sequence
import numpy as np
import pandas as pd
from scipy import stats
import logging

from nativity_health_aggregation import GroupSummary, group_order, usable_rows, weighted_rate

logger = logging.getLogger(__name__)


def critical_value(level: float) -> float:
    """Two-sided standard normal critical value for a confidence level."""
    if not 0 < level < 1:
        raise ValueError(f"Confidence level must be in (0, 1), got {level}")
    return float(stats.norm.ppf(0.5 + level / 2))


@dataclass(frozen=True, eq=False)
class SurveyDesign:
    """
    Weighted survey design over a recoded dataset.

    Attributes:
        data: Recoded respondents (the full design sample)
        weight: Survey weight column
        domain: Boolean mask restricting estimation to a subpopulation
    """
    data: pd.DataFrame
    weight: str = 'weight'
    domain: Optional[pd.Series] = None

    def __post_init__(self):
        if self.weight not in self.data.columns:
            raise ValueError(f"Weight column '{self.weight}' not in design data")

    @property
    def weights(self) -> pd.Series:
        return pd.to_numeric(self.data[self.weight], errors='coerce')

    @property
    def n(self) -> int:
        """Number of respondents with a usable weight in the design sample."""
        w = self.weights
        return int((w.notna() & (w >= 0)).sum())

    def subset(self, mask: pd.Series) -> 'SurveyDesign':
        """
        Restrict estimation to a subpopulation.

        The design sample is kept whole so that domain variances use the
        full sample size. The mask is matched to the design rows by
        position, not by index label; missing entries count as False.
        """
        if isinstance(mask, pd.Series):
            mask = mask.fillna(False)
        values = np.asarray(mask, dtype=bool)
        if len(values) != len(self.data):
            raise ValueError(f"Domain mask has {len(values)} entries, design has {len(self.data)}")
        if self.domain is not None:
            values = values & self.domain.to_numpy()
        return replace(self, domain=pd.Series(values, index=self.data.index))

    def _domain_data(self) -> pd.DataFrame:
        if self.domain is None:
            return self.data
        return self.data[self.domain.to_numpy()]

    def weighted_rates_ci(
        self,
        key: str,
        outcome: str,
        level: float = 0.95,
        order: Optional[Sequence] = None
    ) -> List[GroupSummary]:
        """
        Weighted rate per group with Wald confidence bounds.

        Args:
            key: Grouping column
            outcome: 0/1 outcome column
            level: Confidence level
            order: Preferred output order of group labels

        Returns:
            One GroupSummary per group, with lower/upper bounds (NaN when the
            group has fewer than two respondents or zero weight)
        """
        z = critical_value(level)
        n = self.n

        frame = usable_rows(self._domain_data(), key, outcome, self.weight)

        summaries = []
        for group in group_order(frame['group'], order):
            members = frame[(frame['group'] == group).to_numpy()]
            w = members['w'].to_numpy(dtype=float)
            y = members['y'].to_numpy(dtype=float)

            rate = weighted_rate(y, w)
            lower = upper = np.nan

            if np.isnan(rate):
                logger.warning(f"Group '{group}' has zero total weight; rate is undefined")
            elif len(members) < 2 or n < 2:
                logger.warning(f"Group '{group}' has {len(members)} respondent(s); no interval")
            else:
                scores = w * (y - rate) / w.sum()
                variance = n / (n - 1) * np.sum(scores ** 2)
                se = float(np.sqrt(variance))
                lower = min(max(0.0, rate - z * se), rate)
                upper = max(min(1.0, rate + z * se), rate)

            summaries.append(GroupSummary(
                group=group,
                rate=rate,
                lower=lower,
                upper=upper,
                n=len(members),
                weight_total=float(w.sum()),
            ))

        return summaries
