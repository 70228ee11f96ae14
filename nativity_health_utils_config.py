"""
Configuration management for the nativity and health analysis.

Centralizes survey codes, column mappings and analysis policies and
provides validation.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Optional
import yaml
import logging

logger = logging.getLogger(__name__)


# NHIS 2023 adult file variable names -> analysis column names
DEFAULT_COLUMN_MAP = {
    'hhx': 'id',
    'wtfa_a': 'weight',
    'sex_a': 'sex',
    'agep_a': 'age',
    'citznstp_a': 'citizenship',
    'natusborn_a': 'nativity',
    'yrsinus_a': 'years_in_us',
    'cover_a': 'health_insurance',
    'depev_a': 'depression',
    'anxev_a': 'anxiety',
}

MISSING_MENTAL_HEALTH_POLICIES = ('as_no', 'propagate')


@dataclass
class AnalysisConfig:
    """
    Configuration for the nativity and health survey analysis.

    Attributes:
        version: Analysis version
        column_map: Source column name -> analysis column name
        nativity_us_born: Nativity code for respondents born in the U.S.
        nativity_foreign_born: Nativity code for foreign-born respondents
        citizenship_naturalized: Citizenship code for naturalized citizens
        citizenship_non_citizen: Citizenship code for non-citizens
        insurance_uninsured: Coverage code meaning "uninsured"
        condition_yes: Code meaning "yes" for depression/anxiety
        tenure_cutpoints: Upper bounds of the 0-4 and 5-9 year buckets
        drop_other_group: Drop the "Other" population group before aggregating
        missing_mental_health: 'as_no' or 'propagate' for missing indicators
        confidence_level: Confidence level for Wald intervals
    """
    version: str = "1.0.0"
    column_map: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_COLUMN_MAP))

    # Survey codes
    nativity_us_born: int = 1
    nativity_foreign_born: int = 2
    citizenship_naturalized: int = 2
    citizenship_non_citizen: int = 3
    insurance_uninsured: int = 4
    condition_yes: int = 1
    tenure_cutpoints: tuple = (5, 10)

    # Analysis policies
    drop_other_group: bool = True
    missing_mental_health: str = 'as_no'
    confidence_level: float = 0.95

    # Data paths
    input_file: Optional[str] = None
    output_dir: str = "outputs"
    survey_year: int = 2023

    # Output settings
    render_charts: bool = True
    enable_validation: bool = True

    def __post_init__(self):
        # YAML has no tuple type
        self.tenure_cutpoints = tuple(self.tenure_cutpoints)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'AnalysisConfig':
        """Load configuration from YAML file."""
        with open(yaml_path, 'r') as f:
            config_dict = yaml.safe_load(f) or {}
        return cls(**config_dict)

    def to_yaml(self, yaml_path: str):
        """Save configuration to YAML file."""
        config_dict = asdict(self)
        config_dict['tenure_cutpoints'] = list(self.tenure_cutpoints)

        with open(yaml_path, 'w') as f:
            yaml.dump(config_dict, f, default_flow_style=False)

    def validate(self) -> bool:
        """Validate configuration parameters."""
        checks = []

        # Confidence level must be a proper probability
        checks.append(0 < self.confidence_level < 1)

        # Tenure buckets must be increasing and positive
        checks.append(len(self.tenure_cutpoints) == 2)
        if len(self.tenure_cutpoints) == 2:
            low, high = self.tenure_cutpoints
            checks.append(0 < low < high)

        checks.append(self.missing_mental_health in MISSING_MENTAL_HEALTH_POLICIES)
        checks.append(self.nativity_us_born != self.nativity_foreign_born)
        checks.append(self.citizenship_naturalized != self.citizenship_non_citizen)

        # Every analysis column needs a source column
        checks.append(set(DEFAULT_COLUMN_MAP.values()) <= set(self.column_map.values()))

        is_valid = all(checks)
        if not is_valid:
            logger.error("Invalid configuration parameters")

        return is_valid
