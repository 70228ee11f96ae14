"""
Quality checks for recoded data and grouped rate summaries.

Provides validation of derived categories and of the rate summaries handed
to the charts and tables.
"""

import numpy as np
import pandas as pd
from typing import Dict, Sequence
import logging

from nativity_health_aggregation import GroupSummary
from nativity_health_recoding import POPULATION_GROUPS, TENURE_GROUPS

logger = logging.getLogger(__name__)


def validate_derived(df: pd.DataFrame) -> Dict:
    """
    Validate derived columns of a recoded DataFrame.

    Args:
        df: Output of Recoder.recode_frame

    Returns:
        Dictionary with validation results
    """
    results = {}

    # Check categorical totality
    results['population_group_total'] = bool(df['population_group'].isin(POPULATION_GROUPS).all())
    results['years_in_us_group_total'] = bool(df['years_in_us_group'].isin(TENURE_GROUPS).all())

    # Check binary flags
    results['uninsured_binary'] = bool(df['uninsured'].isin([0, 1]).all())
    mental_health = df['mental_health_issue'].dropna()
    results['mental_health_binary'] = bool(mental_health.isin([0, 1]).all())

    results['missing_values'] = {
        col: int(count) for col, count in df.isnull().sum().items() if count > 0
    }
    results['population_group_distribution'] = df['population_group'].value_counts().to_dict()

    results['overall_valid'] = all(
        v for k, v in results.items() if isinstance(v, bool)
    )
    if not results['overall_valid']:
        logger.error(f"Derived data failed validation: {results}")

    return results


def _in_unit_interval(value) -> bool:
    return value is None or np.isnan(value) or 0.0 <= value <= 1.0


def validate_summaries(summaries: Sequence[GroupSummary]) -> Dict:
    """
    Validate grouped rate summaries.

    Rates and bounds must lie in [0, 1] (or be undefined), and bounds must
    bracket the rate.
    """
    results = {}

    results['rates_in_range'] = all(_in_unit_interval(s.rate) for s in summaries)
    results['bounds_in_range'] = all(
        _in_unit_interval(s.lower) and _in_unit_interval(s.upper) for s in summaries
    )

    ordered = []
    for s in summaries:
        if s.has_interval and not np.isnan(s.rate) and not np.isnan(s.lower):
            ordered.append(s.lower <= s.rate <= s.upper)
    results['bounds_ordered'] = all(ordered)

    results['undefined_groups'] = [s.group for s in summaries if np.isnan(s.rate)]
    results['unique_groups'] = len({s.group for s in summaries}) == len(summaries)

    results['overall_valid'] = all(
        v for k, v in results.items() if isinstance(v, bool)
    )
    if not results['overall_valid']:
        logger.error(f"Rate summaries failed validation: {results}")

    return results
