"""
Pytest Configuration and Shared Fixtures.
"""

from typing import Dict, List

import numpy as np
import pandas as pd
import pytest

from nativity_health_utils_config import AnalysisConfig
from nativity_health_utils_data_loader import NHISDataLoader


RESPONDENT_DEFAULTS = {
    'weight': 1.0,
    'sex': 1,
    'age': 40,
    'citizenship': 1,
    'nativity': 1,
    'years_in_us': np.nan,
    'health_insurance': 1,
    'depression': 2,
    'anxiety': 2,
}


def make_respondents(rows: List[Dict]) -> pd.DataFrame:
    """Build a loaded-extract DataFrame, filling unspecified fields with defaults."""
    records = []
    for i, row in enumerate(rows):
        record = {'id': f"R{i:03d}"}
        record.update(RESPONDENT_DEFAULTS)
        record.update(row)
        records.append(record)
    return pd.DataFrame(records)


@pytest.fixture
def config(tmp_path) -> AnalysisConfig:
    """Default NHIS configuration writing into a temporary directory."""
    return AnalysisConfig(output_dir=str(tmp_path / "outputs"))


@pytest.fixture
def loader(config) -> NHISDataLoader:
    return NHISDataLoader(config)


@pytest.fixture
def synthetic_extract(loader) -> pd.DataFrame:
    """Synthetic extract with NHIS source column names."""
    return loader.generate_synthetic_extract(n_records=1500, seed=7)


@pytest.fixture
def synthetic_data(loader, synthetic_extract) -> pd.DataFrame:
    """Synthetic extract with analysis column names."""
    return loader.select_columns(synthetic_extract)


@pytest.fixture
def respondents():
    """Factory fixture building respondent DataFrames from partial rows."""
    return make_respondents
