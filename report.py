"""
NATIVITY AND HEALTH SURVEY REPORT
=================================

Runs the full analysis over an NHIS adult extract:
1. Load and select the analysis columns
2. Recode population group, insurance, mental health and tenure categories
3. Drop incomplete respondents (and the "Other" group, unless configured)
4. Compute survey-weighted rates with confidence intervals:
   - insured rate by population group
   - depression/anxiety rate by years in U.S. (foreign-born only)
5. Build the demographic summary table and render the two bar charts

Usage:
    python report.py --input data/adult23.csv --output-dir outputs

    report = NativityHealthReport(AnalysisConfig(input_file="adult23.csv"))
    results = report.run()
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
import yaml

from nativity_health_aggregation import GroupSummary, summaries_to_frame
from nativity_health_charts import plot_insured_rates, plot_mental_health_by_tenure
from nativity_health_filters import drop_incomplete, foreign_born_tenure_mask
from nativity_health_recoding import POPULATION_GROUPS, TENURE_GROUPS, Recoder
from nativity_health_survey_design import SurveyDesign
from nativity_health_tables import demographic_summary
from nativity_health_utils_config import AnalysisConfig
from nativity_health_utils_data_loader import LoadError, NHISDataLoader
from nativity_health_validation import validate_derived, validate_summaries

logger = logging.getLogger(__name__)


class NativityHealthReport:
    """
    Nativity and health report pipeline.

    Holds the configuration, loader and recoder; each run is a single pass
    from the raw extract to the summaries, table and charts.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        """
        Initialize the report pipeline.

        Args:
            config: Analysis configuration object

        Raises:
            ValueError: If the configuration is invalid
        """
        self.config = config or AnalysisConfig()
        if not self.config.validate():
            raise ValueError("Invalid analysis configuration")

        self.loader = NHISDataLoader(self.config)
        self.recoder = Recoder(self.config)

    def prepare(self, data: pd.DataFrame) -> pd.DataFrame:
        """Recode a loaded extract and drop respondents unusable for aggregation."""
        recoded = self.recoder.recode_frame(data)

        if self.config.enable_validation:
            validation = validate_derived(recoded)
            logger.info(f"  Derived data valid: {validation['overall_valid']}")

        return drop_incomplete(recoded, drop_other=self.config.drop_other_group)

    def insurance_rates(self, clean: pd.DataFrame) -> List[GroupSummary]:
        """Insured rate (1 - weighted uninsured rate) by population group."""
        design = SurveyDesign(clean, weight='weight')
        uninsured = design.weighted_rates_ci(
            'population_group', 'uninsured',
            level=self.config.confidence_level,
            order=POPULATION_GROUPS
        )
        return [s.complement() for s in uninsured]

    def mental_health_by_tenure(self, clean: pd.DataFrame) -> List[GroupSummary]:
        """Depression/anxiety rate by years in U.S. among foreign-born respondents."""
        domain = foreign_born_tenure_mask(clean, self.config.nativity_foreign_born)
        logger.info(f"  Foreign-born respondents with known tenure: {int(domain.sum())}")
        design = SurveyDesign(clean, weight='weight').subset(domain)
        return design.weighted_rates_ci(
            'years_in_us_group', 'mental_health_issue',
            level=self.config.confidence_level,
            order=TENURE_GROUPS
        )

    def run(self, data: Optional[pd.DataFrame] = None, output_dir: Optional[str] = None) -> Dict:
        """
        Run the full report.

        Args:
            data: Loaded extract (analysis column names); loaded from
                config.input_file when omitted
            output_dir: Output directory (defaults to config.output_dir)

        Returns:
            Dictionary with the clean data, summaries, table and output paths
        """
        output_dir = Path(output_dir or self.config.output_dir)

        logger.info("=" * 80)
        logger.info("NATIVITY AND HEALTH SURVEY REPORT")
        logger.info("=" * 80)

        if data is None:
            data = self.loader.load()

        logger.info("\n1. Recoding and filtering respondents...")
        clean = self.prepare(data)

        logger.info("\n2. Computing weighted insured rates by population group...")
        insured = self.insurance_rates(clean)
        for s in insured:
            logger.info(f"  {s.group}: {s.rate:.1%} [{s.lower:.1%}, {s.upper:.1%}] (n={s.n})")

        logger.info("\n3. Computing mental health rates by years in U.S....")
        mental_health = self.mental_health_by_tenure(clean)
        for s in mental_health:
            logger.info(f"  {s.group}: {s.rate:.1%} [{s.lower:.1%}, {s.upper:.1%}] (n={s.n})")

        logger.info("\n4. Building demographic summary table...")
        table = demographic_summary(clean, by='population_group', order=POPULATION_GROUPS)

        validation = {}
        if self.config.enable_validation:
            validation = {
                'insured_rates': validate_summaries(insured),
                'mental_health_rates': validate_summaries(mental_health),
            }

        logger.info("\n5. Saving outputs...")
        output_dir.mkdir(parents=True, exist_ok=True)
        outputs = {
            'insurance_rates': output_dir / "insurance_rates.csv",
            'mental_health_by_tenure': output_dir / "mental_health_by_tenure.csv",
            'demographic_summary': output_dir / "demographic_summary.csv",
        }
        summaries_to_frame(insured, rate_name='insured_rate').to_csv(
            outputs['insurance_rates'], index=False)
        summaries_to_frame(mental_health, rate_name='rate').to_csv(
            outputs['mental_health_by_tenure'], index=False)
        table.to_csv(outputs['demographic_summary'])

        if self.config.render_charts:
            outputs['insurance_chart'] = plot_insured_rates(
                insured, output_dir / "insurance_coverage.png", self.config.survey_year)
            outputs['mental_health_chart'] = plot_mental_health_by_tenure(
                mental_health, output_dir / "mental_health_by_tenure.png")

        for name, path in outputs.items():
            logger.info(f" ✓ {name}: {path}")
        logger.info(f"\n{'=' * 80}\n")

        return {
            'clean_data': clean,
            'insured_rates': insured,
            'mental_health_rates': mental_health,
            'demographic_summary': table,
            'validation': validation,
            'outputs': outputs,
        }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Nativity and health survey report (NHIS)")
    parser.add_argument("--input", help="NHIS adult extract CSV (e.g. adult23.csv)")
    parser.add_argument("--output-dir", help="Directory for tables and charts")
    parser.add_argument("--config", help="YAML analysis configuration")
    parser.add_argument("--confidence-level", type=float, help="Confidence level (default: 0.95)")
    parser.add_argument("--keep-other", action="store_true",
                        help="Keep the 'Other' population group in the analysis")
    parser.add_argument("--no-charts", action="store_true", help="Skip chart rendering")
    parser.add_argument("--synthetic", type=int, metavar="N",
                        help="Run on N synthetic respondents instead of an input file")
    parser.add_argument("--seed", type=int, help="Random seed for --synthetic")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO),
                        format='%(asctime)s - %(levelname)s - %(message)s')

    try:
        config = AnalysisConfig.from_yaml(args.config) if args.config else AnalysisConfig()
    except (OSError, yaml.YAMLError, TypeError) as e:
        logger.error(f"ERROR reading configuration {args.config}: {e}")
        return 2

    if args.input:
        config.input_file = args.input
    if args.output_dir:
        config.output_dir = args.output_dir
    if args.confidence_level is not None:
        config.confidence_level = args.confidence_level
    if args.keep_other:
        config.drop_other_group = False
    if args.no_charts:
        config.render_charts = False

    if not config.input_file and not args.synthetic:
        logger.error("No input file: pass --input, set input_file in --config, or use --synthetic")
        return 2

    try:
        report = NativityHealthReport(config)
    except ValueError as e:
        logger.error(f"ERROR: {e}")
        return 2

    try:
        data = None
        if args.synthetic:
            raw = report.loader.generate_synthetic_extract(args.synthetic, seed=args.seed)
            data = report.loader.select_columns(raw)
        report.run(data=data)
    except LoadError as e:
        logger.error(f"ERROR loading survey extract: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
