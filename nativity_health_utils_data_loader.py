"""
Data loading utilities for the NHIS adult survey extract.

Provides functions to load the public-use CSV extract, normalize its column
names and select the fields used by the nativity and health analysis.
"""

import pandas as pd
import numpy as np
from pathlib import Path
from typing import Optional
import logging

logger = logging.getLogger(__name__)


NUMERIC_COLUMNS = [
    'weight', 'sex', 'age', 'citizenship', 'nativity',
    'years_in_us', 'health_insurance', 'depression', 'anxiety'
]


class LoadError(Exception):
    """Raised when the survey extract cannot be read or lacks required columns."""


def clean_column_names(df: pd.DataFrame) -> pd.DataFrame:
    """Lower-case column names and collapse non-alphanumerics to underscores."""
    df = df.copy()
    df.columns = (
        df.columns.astype(str)
        .str.strip()
        .str.lower()
        .str.replace(r'[^0-9a-z]+', '_', regex=True)
        .str.strip('_')
    )
    return df


class NHISDataLoader:
    """
    NHIS survey extract loader.

    Handles loading, column selection and type coercion of the adult
    survey extract.
    """

    def __init__(self, config):
        """
        Initialize data loader.

        Args:
            config: Analysis configuration object
        """
        self.config = config
        self.output_dir = Path(config.output_dir)

    def load(self, file_path: Optional[str] = None) -> pd.DataFrame:
        """
        Load the survey extract named by the argument or the configuration.

        Args:
            file_path: Path to the CSV extract (defaults to config.input_file)

        Returns:
            DataFrame with the analysis columns

        Raises:
            LoadError: If no input file is configured or loading fails
        """
        file_path = file_path or self.config.input_file
        if not file_path:
            raise LoadError("No input file given")
        return self.load_from_file(str(file_path))

    def load_from_file(self, file_path: str) -> pd.DataFrame:
        """Load the survey extract from a CSV file."""
        logger.info(f"Loading survey extract from {file_path}")

        path = Path(file_path)
        if not path.is_file():
            raise LoadError(f"Survey extract not found: {file_path}")

        try:
            df = pd.read_csv(path, low_memory=False)
        except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
            raise LoadError(f"Could not read survey extract {file_path}: {exc}") from exc

        return self.select_columns(df)

    def select_columns(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Select and rename the analysis columns from a raw extract.

        Args:
            df: Raw extract with source column names

        Returns:
            DataFrame with analysis column names and numeric codes

        Raises:
            LoadError: If any required source column is absent
        """
        df = clean_column_names(df)
        column_map = {src.lower(): dst for src, dst in self.config.column_map.items()}

        # Validate required columns
        missing_cols = [col for col in column_map if col not in df.columns]
        if missing_cols:
            raise LoadError(f"Missing required columns: {missing_cols}")

        selected = df[list(column_map)].rename(columns=column_map).copy()

        for col in NUMERIC_COLUMNS:
            if col in selected.columns:
                selected[col] = pd.to_numeric(selected[col], errors='coerce')

        logger.info(f"✓ Loaded {len(selected)} respondents with {len(selected.columns)} columns")
        return selected

    def generate_synthetic_extract(self, n_records: int = 2000, seed: Optional[int] = None) -> pd.DataFrame:
        """
        Generate a synthetic extract with NHIS source column names.

        Used for demos and tests when the public-use file is not available.
        """
        logger.info(f"Generating synthetic survey extract ({n_records} respondents)")
        rng = np.random.default_rng(seed)

        # 1 = born in U.S., 2 = foreign-born, 9 = don't know
        nativity = rng.choice([1, 2, 9], size=n_records, p=[0.82, 0.17, 0.01])
        foreign = nativity == 2

        citizenship = np.where(
            foreign,
            rng.choice([2, 3, 9], size=n_records, p=[0.55, 0.43, 0.02]),
            1
        )

        years_in_us = np.where(foreign, np.round(rng.uniform(0, 45, size=n_records), 1), np.nan)
        years_in_us[foreign & (rng.random(n_records) < 0.05)] = np.nan

        # Uninsured more common among non-citizens
        uninsured_prob = np.select(
            [citizenship == 3, citizenship == 2],
            [0.25, 0.10],
            default=0.07
        )
        cover = np.where(
            rng.random(n_records) < uninsured_prob,
            4,
            rng.choice([1, 2, 3, 5], size=n_records, p=[0.60, 0.20, 0.15, 0.05])
        )

        condition_prob = np.where(foreign, 0.08 + 0.004 * np.nan_to_num(years_in_us), 0.20)
        depression = np.where(rng.random(n_records) < condition_prob, 1, 2)
        anxiety = np.where(rng.random(n_records) < condition_prob, 1, 2)
        depression[rng.random(n_records) < 0.01] = 9

        data = pd.DataFrame({
            'HHX': [f"H{i:06d}" for i in range(n_records)],
            'WTFA_A': np.round(rng.lognormal(mean=8.5, sigma=0.6, size=n_records), 1),
            'SEX_A': rng.choice([1, 2], size=n_records),
            'AGEP_A': rng.integers(18, 86, size=n_records),
            'CITZNSTP_A': citizenship,
            'NATUSBORN_A': nativity,
            'YRSINUS_A': years_in_us,
            'COVER_A': cover,
            'DEPEV_A': depression,
            'ANXEV_A': anxiety,
        })

        return data

    def save_data(self, data: pd.DataFrame, filename: str) -> Path:
        """Save processed data to the output directory."""
        output_path = self.output_dir / filename
        output_path.parent.mkdir(parents=True, exist_ok=True)

        data.to_csv(output_path, index=False)
        logger.info(f"Saved data to {output_path}")
        return output_path
