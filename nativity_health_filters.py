"""
Row filters applied between recoding and aggregation.

Both filters are order preserving and return new DataFrames.
"""

from typing import Iterable, Union
import numpy as np
import pandas as pd
import logging

from nativity_health_aggregation import as_frame
from nativity_health_recoding import OTHER, TENURE_MISSING, DerivedRecord

logger = logging.getLogger(__name__)

Respondents = Union[pd.DataFrame, Iterable[DerivedRecord]]


def drop_incomplete(data: Respondents, drop_other: bool = True) -> pd.DataFrame:
    """
    Keep respondents usable for weighted aggregation.

    Args:
        data: Recoded DataFrame or sequence of DerivedRecords
        drop_other: Also drop the "Other" population group

    Returns:
        Rows with a present, non-negative weight and a population group
    """
    df = as_frame(data)
    if df.empty:
        return df

    weight = pd.to_numeric(df['weight'], errors='coerce')
    mask = weight.notna() & (weight >= 0) & df['population_group'].notna()
    if drop_other:
        mask &= df['population_group'] != OTHER

    filtered = df[mask.to_numpy()]
    logger.info(f"Kept {len(filtered)} of {len(df)} respondents "
                f"({len(df) - len(filtered)} dropped, drop_other={drop_other})")
    return filtered


def foreign_born_tenure_mask(df: pd.DataFrame, foreign_born_code: int = 2) -> np.ndarray:
    """Positional mask of foreign-born respondents with a known years-in-U.S. bucket."""
    nativity = pd.to_numeric(df['nativity'], errors='coerce')
    mask = (nativity == foreign_born_code) & (df['years_in_us_group'] != TENURE_MISSING)
    return mask.to_numpy(dtype=bool)


def foreign_born_with_tenure(data: Respondents, foreign_born_code: int = 2) -> pd.DataFrame:
    """Restrict to foreign-born respondents with a known years-in-U.S. bucket."""
    df = as_frame(data)
    if df.empty:
        return df

    filtered = df[foreign_born_tenure_mask(df, foreign_born_code)]
    logger.info(f"Foreign-born respondents with known tenure: {len(filtered)}")
    return filtered
