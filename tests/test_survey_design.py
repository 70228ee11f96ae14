"""
Unit Tests for SurveyDesign confidence intervals.
"""

import math

import numpy as np
import pandas as pd
import pytest

from nativity_health_aggregation import weighted_rates
from nativity_health_survey_design import SurveyDesign, critical_value
from nativity_health_validation import validate_summaries


@pytest.fixture
def survey_frame() -> pd.DataFrame:
    rng = np.random.default_rng(11)
    n = 400
    groups = rng.choice(["a", "b"], size=n, p=[0.7, 0.3])
    outcome = (rng.random(n) < np.where(groups == "a", 0.2, 0.5)).astype(int)
    weight = rng.lognormal(mean=8.0, sigma=0.5, size=n)
    return pd.DataFrame({'group': groups, 'y': outcome, 'weight': weight})


def _linearized_se(df: pd.DataFrame, group: str, n: int) -> float:
    members = df[df['group'] == group]
    w = members['weight'].to_numpy()
    y = members['y'].to_numpy()
    rate = np.sum(w * y) / np.sum(w)
    scores = w * (y - rate) / np.sum(w)
    return math.sqrt(n / (n - 1) * np.sum(scores ** 2))


class TestCriticalValue:

    def test_95_percent(self) -> None:
        assert critical_value(0.95) == pytest.approx(1.959964, abs=1e-6)

    @pytest.mark.parametrize("level", [0, 1, -0.5, 1.5])
    def test_rejects_invalid_levels(self, level) -> None:
        with pytest.raises(ValueError):
            critical_value(level)


class TestWeightedRatesCI:
    """Wald intervals from the linearized domain variance."""

    def test_rates_match_point_estimates(self, survey_frame) -> None:
        design = SurveyDesign(survey_frame)
        with_ci = design.weighted_rates_ci('group', 'y')
        point = weighted_rates(survey_frame, 'group', 'y')

        assert [s.group for s in with_ci] == [s.group for s in point]
        for a, b in zip(with_ci, point):
            assert a.rate == pytest.approx(b.rate)

    def test_bounds_follow_linearized_variance(self, survey_frame) -> None:
        design = SurveyDesign(survey_frame)

        for summary in design.weighted_rates_ci('group', 'y', level=0.95):
            se = _linearized_se(survey_frame, summary.group, len(survey_frame))
            assert summary.lower == pytest.approx(summary.rate - 1.959964 * se, rel=1e-5)
            assert summary.upper == pytest.approx(summary.rate + 1.959964 * se, rel=1e-5)

    def test_interval_brackets_rate(self, survey_frame) -> None:
        for summary in SurveyDesign(survey_frame).weighted_rates_ci('group', 'y'):
            assert 0.0 <= summary.lower <= summary.rate <= summary.upper <= 1.0

    def test_higher_level_is_wider(self, survey_frame) -> None:
        design = SurveyDesign(survey_frame)
        narrow = design.weighted_rates_ci('group', 'y', level=0.90)
        wide = design.weighted_rates_ci('group', 'y', level=0.99)

        for n_, w_ in zip(narrow, wide):
            assert (w_.upper - w_.lower) > (n_.upper - n_.lower)

    def test_bounds_clipped_to_unit_interval(self) -> None:
        df = pd.DataFrame({'group': ["a"] * 3, 'y': [1, 1, 0], 'weight': [1.0, 1.0, 1.0]})
        [summary] = SurveyDesign(df).weighted_rates_ci('group', 'y')
        assert summary.upper == 1.0

    def test_single_respondent_has_no_interval(self) -> None:
        df = pd.DataFrame({'group': ["a", "a", "b"], 'y': [1, 0, 1], 'weight': [1.0, 2.0, 3.0]})
        summaries = {s.group: s for s in SurveyDesign(df).weighted_rates_ci('group', 'y')}

        assert summaries["b"].rate == 1.0
        assert math.isnan(summaries["b"].lower)
        assert math.isnan(summaries["b"].upper)

    def test_zero_weight_group(self) -> None:
        df = pd.DataFrame({'group': ["a", "a", "b", "b"], 'y': [1, 0, 1, 0], 'weight': [0.0, 0.0, 1.0, 1.0]})
        summaries = {s.group: s for s in SurveyDesign(df).weighted_rates_ci('group', 'y')}

        assert math.isnan(summaries["a"].rate)
        assert math.isnan(summaries["a"].lower)
        assert summaries["b"].rate == 0.5

    def test_invalid_level_raises(self, survey_frame) -> None:
        with pytest.raises(ValueError):
            SurveyDesign(survey_frame).weighted_rates_ci('group', 'y', level=95)


class TestSubset:
    """Domain estimation keeps the full design sample."""

    def test_subset_restricts_groups(self, survey_frame) -> None:
        design = SurveyDesign(survey_frame).subset(survey_frame['group'] == "b")
        summaries = design.weighted_rates_ci('group', 'y')

        assert [s.group for s in summaries] == ["b"]
        assert design.n == len(survey_frame)

    def test_subset_variance_uses_full_sample_size(self, survey_frame) -> None:
        design = SurveyDesign(survey_frame).subset(survey_frame['group'] == "b")
        [summary] = design.weighted_rates_ci('group', 'y')

        se = _linearized_se(survey_frame, "b", len(survey_frame))
        assert summary.upper - summary.rate == pytest.approx(1.959964 * se, rel=1e-5)

    def test_nested_subsets_intersect(self, survey_frame) -> None:
        design = (SurveyDesign(survey_frame)
                  .subset(survey_frame['group'] == "a")
                  .subset(survey_frame['y'] == 1))
        [summary] = design.weighted_rates_ci('group', 'y')

        assert summary.group == "a"
        assert summary.rate == 1.0


def test_missing_weight_column_rejected() -> None:
    with pytest.raises(ValueError):
        SurveyDesign(pd.DataFrame({'group': ["a"], 'y': [1]}), weight='weight')


class TestAllPositiveGroup:
    """Rates and bounds stay inside [0, 1] when every outcome is 1."""

    def test_bounds_ordered_and_complement_valid(self) -> None:
        """
        SCENARIO: 40 respondents with lognormal weights, all with the outcome,
                  next to a mixed group
        EXPECTED: rate 1.0, lower <= rate <= upper, insured complement valid
        """
        rng = np.random.default_rng(3)
        df = pd.DataFrame({
            'group': ["a"] * 40 + ["b"] * 40,
            'y': [1] * 40 + [0, 1] * 20,
            'weight': rng.lognormal(mean=8.0, sigma=0.5, size=80),
        })

        summaries = SurveyDesign(df).weighted_rates_ci('group', 'y')
        all_positive = summaries[0]

        assert all_positive.rate == 1.0
        assert all_positive.lower <= all_positive.rate <= all_positive.upper <= 1.0
        assert validate_summaries(summaries)['overall_valid']
        assert validate_summaries([s.complement() for s in summaries])['overall_valid']


class TestReferenceStandardErrors:
    """Domain standard errors as reported by R survey for the same data."""

    def test_matches_svyby_svymean(self) -> None:
        """
        SCENARIO: svyby(~y, ~g, svydesign(ids=~1, weights=~w), svymean) on
                  g = a a a b b, y = 1 0 1 0 1, w = 1 2 3 2 2
        EXPECTED: mean a = 0.6666667 (SE 0.3167154), b = 0.5 (SE 0.3952847)
        """
        df = pd.DataFrame({
            'group': ["a", "a", "a", "b", "b"],
            'y': [1, 0, 1, 0, 1],
            'weight': [1.0, 2.0, 3.0, 2.0, 2.0],
        })
        level = 0.5
        z = critical_value(level)

        summaries = {s.group: s for s in SurveyDesign(df).weighted_rates_ci('group', 'y', level=level)}

        assert summaries["a"].rate == pytest.approx(0.6666667, abs=1e-7)
        assert summaries["b"].rate == pytest.approx(0.5)
        assert (summaries["a"].upper - summaries["a"].lower) / (2 * z) == pytest.approx(0.3167154, abs=1e-7)
        assert (summaries["b"].upper - summaries["b"].lower) / (2 * z) == pytest.approx(0.3952847, abs=1e-7)


class TestDuplicateIndex:
    """Domain masks are positional, so repeated index labels are harmless."""

    def test_subset_with_repeated_labels(self) -> None:
        df = pd.DataFrame(
            {'group': ["a", "b", "a", "b"], 'y': [1, 0, 0, 1], 'weight': [1.0, 1.0, 3.0, 1.0]},
            index=[0, 0, 0, 0],
        )
        design = SurveyDesign(df).subset(np.array([True, False, True, False]))

        [summary] = design.weighted_rates_ci('group', 'y')

        assert summary.group == "a"
        assert summary.rate == pytest.approx(0.25)
        assert design.n == 4

    def test_mask_length_mismatch(self, survey_frame) -> None:
        with pytest.raises(ValueError):
            SurveyDesign(survey_frame).subset(np.array([True, False]))
