"""
Descriptive summary table of respondent characteristics by population group.
"""

from typing import Optional, Sequence
import pandas as pd
import logging

from nativity_health_aggregation import group_order, weighted_mean

logger = logging.getLogger(__name__)


SEX_LABELS = {1: 'Male', 2: 'Female'}

# NHIS reserve codes for refused / not ascertained / don't know
AGE_MISSING_CODES = (97, 98, 99)


def _weighted_mean(values: pd.Series, weights: pd.Series) -> float:
    values = pd.to_numeric(values, errors='coerce')
    mask = values.notna() & weights.notna() & (weights >= 0)
    return weighted_mean(values[mask].to_numpy(dtype=float), weights[mask].to_numpy(dtype=float))


def _describe(sub: pd.DataFrame, weight: str) -> dict:
    """Weighted characteristics of one group of respondents."""
    w = pd.to_numeric(sub[weight], errors='coerce')
    column = {('N', ''): len(sub)}

    age = pd.to_numeric(sub['age'], errors='coerce')
    age = age.where(~age.isin(AGE_MISSING_CODES))
    column[('Age, mean', '')] = round(_weighted_mean(age, w), 1)

    sex = pd.to_numeric(sub['sex'], errors='coerce')
    for code, label in SEX_LABELS.items():
        column[('Sex, %', label)] = round(100 * _weighted_mean((sex == code).astype(float), w), 1)
    unknown = (~sex.isin(list(SEX_LABELS))).astype(float)
    column[('Sex, %', 'Unknown')] = round(100 * _weighted_mean(unknown, w), 1)

    column[('Uninsured, %', '')] = round(100 * _weighted_mean(sub['uninsured'], w), 1)
    column[('Depression or anxiety, %', '')] = round(
        100 * _weighted_mean(sub['mental_health_issue'], w), 1
    )
    return column


def demographic_summary(
    df: pd.DataFrame,
    by: str = 'population_group',
    weight: str = 'weight',
    order: Optional[Sequence] = None
) -> pd.DataFrame:
    """
    Cross-tabulate respondent characteristics by group.

    Args:
        df: Filtered, recoded respondents
        by: Grouping column
        weight: Survey weight column
        order: Preferred column order of group labels

    Returns:
        DataFrame indexed by (variable, level) with one column per group
        plus 'Overall'. Percentages and means are survey-weighted; N is the
        unweighted count.
    """
    columns = {}
    for group in group_order(df[by], order):
        columns[group] = _describe(df[df[by] == group], weight)
    columns['Overall'] = _describe(df, weight)

    rows = list(columns['Overall'])
    table = pd.DataFrame(
        {group: [values[row] for row in rows] for group, values in columns.items()},
        index=pd.MultiIndex.from_tuples(rows, names=['variable', 'level'])
    )

    logger.info(f"Built demographic summary for {len(columns) - 1} groups")
    return table
