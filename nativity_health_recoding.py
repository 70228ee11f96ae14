"""
Recoding submodel for deriving analysis categories from raw survey codes.

This module maps each respondent's raw NHIS codes to the categorical fields
used by the analysis: population group, uninsured flag, mental health flag and
years-in-U.S. bucket. Categorical fields are built from ordered decision lists
(first matching rule wins, with a mandatory default), so every respondent
lands in exactly one category.
"""

import math
from dataclasses import dataclass, asdict
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union
import numpy as np
import pandas as pd
import logging

from nativity_health_utils_config import AnalysisConfig

logger = logging.getLogger(__name__)


US_BORN = "U.S.-born"
NATURALIZED = "Naturalized citizen"
NON_CITIZEN = "Non-citizen"
OTHER = "Other"

TENURE_0_4 = "0-4 years"
TENURE_5_9 = "5-9 years"
TENURE_10_PLUS = "10+ years"
TENURE_MISSING = "Missing"

POPULATION_GROUPS = [US_BORN, NATURALIZED, NON_CITIZEN, OTHER]
TENURE_GROUPS = [US_BORN, TENURE_0_4, TENURE_5_9, TENURE_10_PLUS, TENURE_MISSING]

CODE_FIELDS = [
    'weight', 'sex', 'age', 'citizenship', 'nativity',
    'years_in_us', 'health_insurance', 'depression', 'anxiety'
]

Row = Union[Dict[str, float], pd.DataFrame]
Predicate = Callable[[Row], object]


@dataclass(frozen=True)
class RawRecord:
    """One surveyed individual, as loaded from the extract."""
    id: str
    weight: Optional[float] = None
    sex: Optional[int] = None
    age: Optional[int] = None
    citizenship: Optional[int] = None
    nativity: Optional[int] = None
    years_in_us: Optional[float] = None
    health_insurance: Optional[int] = None
    depression: Optional[int] = None
    anxiety: Optional[int] = None


@dataclass(frozen=True)
class DerivedRecord:
    """A RawRecord together with its derived analysis categories."""
    raw: RawRecord
    population_group: str
    uninsured: int
    mental_health_issue: Optional[int]
    years_in_us_group: str

    @property
    def weight(self) -> Optional[float]:
        return self.raw.weight

    def as_dict(self) -> Dict:
        row = asdict(self.raw)
        row.update(
            population_group=self.population_group,
            uninsured=self.uninsured,
            mental_health_issue=self.mental_health_issue,
            years_in_us_group=self.years_in_us_group,
        )
        return row


class DecisionList:
    """
    Ordered (predicate, label) rules with a default label.

    Predicates receive either a mapping of scalar codes (one respondent) or a
    DataFrame (vectorized), and must return a truthy value or a boolean Series
    respectively. Missing codes are NaN, which never satisfies a comparison.
    """

    def __init__(self, rules: Sequence[Tuple[Predicate, str]], default: str):
        self.rules = list(rules)
        self.default = default

    @property
    def labels(self) -> List[str]:
        labels = []
        for _, label in self.rules:
            if label not in labels:
                labels.append(label)
        if self.default not in labels:
            labels.append(self.default)
        return labels

    def evaluate(self, row: Dict[str, float]) -> str:
        """Return the label of the first rule the row satisfies."""
        for predicate, label in self.rules:
            if bool(predicate(row)):
                return label
        return self.default

    def evaluate_frame(self, df: pd.DataFrame) -> pd.Series:
        """Vectorized evaluate over every row of a DataFrame."""
        if not self.rules:
            return pd.Series(self.default, index=df.index, dtype=object)

        conditions = [np.asarray(predicate(df), dtype=bool) for predicate, _ in self.rules]
        choices = [label for _, label in self.rules]
        values = np.select(conditions, choices, default=self.default)
        return pd.Series(values, index=df.index, dtype=object)


def _as_code(value) -> float:
    """Coerce a raw code to float, mapping missing or non-numeric values to NaN."""
    if value is None:
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _record_codes(raw: RawRecord) -> Dict[str, float]:
    return {name: _as_code(getattr(raw, name)) for name in CODE_FIELDS}


class Recoder:
    """
    Recoding component.

    Derives the analysis categories from raw codes using the survey codes and
    missing-data policies of the analysis configuration.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        """
        Initialize recoder.

        Args:
            config: Analysis configuration object (defaults to NHIS codes)
        """
        self.config = config or AnalysisConfig()
        self.population_group_rules = self._build_population_group_rules()
        self.tenure_rules = self._build_tenure_rules()

    def _build_population_group_rules(self) -> DecisionList:
        cfg = self.config
        return DecisionList([
            (lambda r: r['nativity'] == cfg.nativity_us_born, US_BORN),
            (lambda r: r['citizenship'] == cfg.citizenship_naturalized, NATURALIZED),
            (lambda r: r['citizenship'] == cfg.citizenship_non_citizen, NON_CITIZEN),
        ], default=OTHER)

    def _build_tenure_rules(self) -> DecisionList:
        cfg = self.config
        short, medium = cfg.tenure_cutpoints
        return DecisionList([
            (lambda r: r['nativity'] == cfg.nativity_us_born, US_BORN),
            (lambda r: r['years_in_us'] < short, TENURE_0_4),
            (lambda r: r['years_in_us'] < medium, TENURE_5_9),
            (lambda r: r['years_in_us'] >= medium, TENURE_10_PLUS),
        ], default=TENURE_MISSING)

    def recode_record(self, raw: RawRecord) -> DerivedRecord:
        """
        Derive the analysis categories for a single respondent.

        Args:
            raw: Raw survey record

        Returns:
            DerivedRecord with every category assigned
        """
        codes = _record_codes(raw)
        yes = self.config.condition_yes

        depression, anxiety = codes['depression'], codes['anxiety']
        if depression == yes or anxiety == yes:
            mental_health_issue = 1
        elif self.config.missing_mental_health == 'propagate' and (
                math.isnan(depression) or math.isnan(anxiety)):
            mental_health_issue = None
        else:
            mental_health_issue = 0

        return DerivedRecord(
            raw=raw,
            population_group=self.population_group_rules.evaluate(codes),
            uninsured=int(codes['health_insurance'] == self.config.insurance_uninsured),
            mental_health_issue=mental_health_issue,
            years_in_us_group=self.tenure_rules.evaluate(codes),
        )

    def recode_frame(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Add the derived analysis columns to a loaded extract.

        Args:
            df: DataFrame with the analysis columns from the data loader

        Returns:
            Copy of the DataFrame with population_group, uninsured,
            mental_health_issue and years_in_us_group columns
        """
        codes = df.copy()
        for col in CODE_FIELDS:
            if col in codes.columns:
                codes[col] = pd.to_numeric(codes[col], errors='coerce')

        yes = self.config.condition_yes
        any_yes = (codes['depression'] == yes) | (codes['anxiety'] == yes)

        result = df.copy()
        result['population_group'] = self.population_group_rules.evaluate_frame(codes)
        result['uninsured'] = (codes['health_insurance'] == self.config.insurance_uninsured).astype(int)

        if self.config.missing_mental_health == 'propagate':
            any_missing = codes['depression'].isna() | codes['anxiety'].isna()
            result['mental_health_issue'] = np.where(
                any_yes, 1.0, np.where(any_missing, np.nan, 0.0)
            )
        else:
            result['mental_health_issue'] = any_yes.astype(int)

        result['years_in_us_group'] = self.tenure_rules.evaluate_frame(codes)

        logger.info(f"Recoded {len(result)} respondents")
        return result


def to_raw_records(df: pd.DataFrame) -> Iterator[RawRecord]:
    """Yield RawRecords from a loaded extract, mapping NaN to None."""
    for row in df.to_dict('records'):
        values = {
            name: (None if pd.isna(row.get(name)) else row.get(name))
            for name in CODE_FIELDS
        }
        yield RawRecord(id=str(row.get('id', '')), **values)


def recode_record(raw: RawRecord, config: Optional[AnalysisConfig] = None) -> DerivedRecord:
    """Recode a single respondent with the given (or default) configuration."""
    return Recoder(config).recode_record(raw)


def recode_frame(df: pd.DataFrame, config: Optional[AnalysisConfig] = None) -> pd.DataFrame:
    """Recode a loaded extract with the given (or default) configuration."""
    return Recoder(config).recode_frame(df)


def records_to_frame(records: Sequence[DerivedRecord]) -> pd.DataFrame:
    """Flatten DerivedRecords into a DataFrame with one column per field."""
    return pd.DataFrame([record.as_dict() for record in records])
