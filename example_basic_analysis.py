"""
Basic nativity and health analysis example.

This script demonstrates basic usage of the recoding and weighted
aggregation pipeline on a synthetic NHIS-style extract.
"""

from nativity_health_aggregation import weighted_rates
from nativity_health_filters import drop_incomplete
from nativity_health_recoding import POPULATION_GROUPS, Recoder
from nativity_health_utils_config import AnalysisConfig
from nativity_health_utils_data_loader import NHISDataLoader
from report import NativityHealthReport


def main():
    """Run basic nativity and health analysis."""

    print("Nativity and Health Survey Analysis - Basic Example")
    print("=" * 60)

    # Initialize configuration
    print("\n1. Initializing configuration...")
    config = AnalysisConfig(output_dir="outputs/example", render_charts=False)

    # Load survey extract (using synthetic data for demo)
    print("2. Generating synthetic survey extract...")
    loader = NHISDataLoader(config)
    data = loader.select_columns(loader.generate_synthetic_extract(n_records=5000, seed=42))

    # Recode and filter
    print("3. Recoding respondents...")
    clean = drop_incomplete(Recoder(config).recode_frame(data))

    # Weighted uninsured rates without intervals
    print("\n" + "=" * 60)
    print("WEIGHTED UNINSURED RATES")
    print("=" * 60)
    for summary in weighted_rates(clean, 'population_group', 'uninsured', order=POPULATION_GROUPS):
        print(f"  {summary.group:22s} {summary.rate:6.1%}  (n={summary.n:,})")

    # Full report with confidence intervals
    print("\n4. Running full report...")
    results = NativityHealthReport(config).run(data=data)

    print("\nInsured rate by population group (95% CI):")
    for s in results['insured_rates']:
        print(f"  {s.group:22s} {s.rate:6.1%}  [{s.lower:.1%}, {s.upper:.1%}]")

    print("\nDepression/anxiety by years in U.S. (foreign-born):")
    for s in results['mental_health_rates']:
        print(f"  {s.group:22s} {s.rate:6.1%}  [{s.lower:.1%}, {s.upper:.1%}]")

    print("\n" + "=" * 60)
    print("Analysis complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
