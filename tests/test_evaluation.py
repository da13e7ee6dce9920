"""Tests for MUS and classical variables planning and sample evaluation."""

import math

import pytest

from auditsampler.analyzers.evaluation import (
    AttributesConclusion,
    MisstatementConclusion,
    SampleEvaluator,
    TestedItem,
    reliability_factor,
)
from auditsampler.errors import (
    EmptyPopulationError,
    InvalidPrecisionError,
    InvalidSampleSizeError,
    SamplingError,
    UnsupportedConfidenceLevelError,
    ZeroPopulationValueError,
)


def _clean_items(n: int, book_value: float = 500.0) -> list[TestedItem]:
    return [TestedItem(item_id=i, book_value=book_value, audited_value=book_value) for i in range(n)]


class TestReliabilityFactor:
    def test_table_values(self) -> None:
        assert reliability_factor(95, 0) == 3.0
        assert reliability_factor(90, 1) == 3.89
        assert reliability_factor(99, 5) == 13.11

    def test_extends_beyond_table(self) -> None:
        assert reliability_factor(99, 6) == pytest.approx(13.11 + (13.11 - 11.61))
        assert reliability_factor(95, 12) == pytest.approx(16.97 + 2 * (16.97 - 15.71))

    def test_unknown_confidence_raises(self) -> None:
        with pytest.raises(UnsupportedConfidenceLevelError):
            reliability_factor(97, 0)


class TestPlanMUSSample:
    def test_no_expected_misstatement(self) -> None:
        plan = SampleEvaluator.plan_mus_sample(1_000_000, 50_000)

        assert plan.reliability_factor == 3.0
        assert plan.expected_errors == 0
        assert plan.sampling_interval == 16_666
        assert plan.sample_size == 61

    def test_expected_misstatement_raises_factor(self) -> None:
        plan = SampleEvaluator.plan_mus_sample(1_000_000, 50_000, expected_misstatement=10_000)

        assert plan.expected_errors == 1
        assert plan.reliability_factor == 4.75
        assert plan.sampling_interval == 8421
        assert plan.sample_size == 119

    def test_capped_at_population_size(self) -> None:
        plan = SampleEvaluator.plan_mus_sample(1_000_000, 50_000, population_size=50)
        assert plan.sample_size == 50

    def test_expected_not_below_tolerable_raises(self) -> None:
        with pytest.raises(InvalidPrecisionError):
            SampleEvaluator.plan_mus_sample(1_000_000, 50_000, expected_misstatement=50_000)

    def test_non_positive_population_value_raises(self) -> None:
        with pytest.raises(SamplingError):
            SampleEvaluator.plan_mus_sample(0, 50_000)


class TestProjectMUSMisstatement:
    def test_no_exceptions_is_basic_precision(self) -> None:
        result = SampleEvaluator.project_mus_misstatement(_clean_items(30), 10_000, 50_000)

        assert result.known_misstatement == 0
        assert result.projected_misstatement == 0
        assert result.basic_precision == pytest.approx(30_000)
        assert result.upper_misstatement_limit == pytest.approx(30_000)
        assert result.conclusion == MisstatementConclusion.ACCEPTABLE

    def test_tainting_projection(self) -> None:
        items = _clean_items(5) + [TestedItem(item_id="X", book_value=1000, audited_value=900)]
        result = SampleEvaluator.project_mus_misstatement(items, 10_000, 50_000)

        assert result.taintings == (pytest.approx(0.1),)
        assert result.projected_misstatement == pytest.approx(1000)
        assert result.incremental_allowance == pytest.approx(750)
        assert result.upper_misstatement_limit == pytest.approx(31_750)

    def test_taintings_capped_and_sorted(self) -> None:
        items = [
            TestedItem(item_id=1, book_value=100, audited_value=90),
            TestedItem(item_id=2, book_value=100, audited_value=-50),
            TestedItem(item_id=3, book_value=100, audited_value=50),
        ]
        result = SampleEvaluator.project_mus_misstatement(items, 1000, 50_000)
        assert result.taintings == pytest.approx((1.0, 0.5, 0.1))

    def test_items_above_interval_are_known_misstatement(self) -> None:
        items = [TestedItem(item_id="big", book_value=20_000, audited_value=15_000)]
        result = SampleEvaluator.project_mus_misstatement(items, 10_000, 50_000)

        assert result.known_misstatement == pytest.approx(5_000)
        assert result.taintings == ()
        assert result.upper_misstatement_limit == pytest.approx(35_000)

    def test_requires_expansion(self) -> None:
        result = SampleEvaluator.project_mus_misstatement(_clean_items(10), 10_000, 25_000)
        assert result.conclusion == MisstatementConclusion.REQUIRES_EXPANSION

    def test_unacceptable(self) -> None:
        result = SampleEvaluator.project_mus_misstatement(_clean_items(10), 10_000, 10_000)
        assert result.conclusion == MisstatementConclusion.UNACCEPTABLE
        assert "adjustment" in result.conclusion_rationale


class TestEvaluateAttributesSample:
    def test_no_deviations_supports_reliance(self) -> None:
        result = SampleEvaluator.evaluate_attributes_sample(_clean_items(60), tolerable_deviation_rate=5)

        assert result.exceptions == 0
        assert result.sample_deviation_rate == 0
        assert result.upper_deviation_limit == pytest.approx(5.0)
        assert result.conclusion == AttributesConclusion.RELIANCE_SUPPORTED

    def test_one_deviation_fails(self) -> None:
        items = _clean_items(59) + [TestedItem(item_id="x", exception=True)]
        result = SampleEvaluator.evaluate_attributes_sample(items, tolerable_deviation_rate=5)

        assert result.exceptions == 1
        assert result.sample_deviation_rate == pytest.approx(100 / 60)
        assert result.upper_deviation_limit == pytest.approx(4.75 / 60 * 100)
        assert result.conclusion == AttributesConclusion.RELIANCE_NOT_SUPPORTED

    def test_ninety_nine_percent_uses_fallback_factor(self) -> None:
        result = SampleEvaluator.evaluate_attributes_sample(_clean_items(60), 10, confidence_level=99)
        assert result.upper_deviation_limit == pytest.approx(2.3 / 60 * 100)

    def test_eighty_five_percent_uses_table(self) -> None:
        result = SampleEvaluator.evaluate_attributes_sample(_clean_items(50), 10, confidence_level=85)
        assert result.upper_deviation_limit == pytest.approx(1.90 / 50 * 100)

    def test_unlisted_confidence_uses_fallback_factor(self) -> None:
        result = SampleEvaluator.evaluate_attributes_sample(_clean_items(60), 10, confidence_level=97)
        assert result.upper_deviation_limit == pytest.approx(2.3 / 60 * 100)

    def test_empty_sample_raises(self) -> None:
        with pytest.raises(EmptyPopulationError):
            SampleEvaluator.evaluate_attributes_sample([], 5)


class TestTestedItem:
    def test_difference_and_exception(self) -> None:
        assert TestedItem(book_value=100, audited_value=80).difference == 20
        assert TestedItem(book_value=100, audited_value=80).is_exception is True
        assert TestedItem(book_value=100).is_exception is False
        assert TestedItem(book_value=100, exception=True).is_exception is True


def _ratio_items() -> list[TestedItem]:
    return [
        TestedItem(item_id=1, book_value=100, audited_value=100),
        TestedItem(item_id=2, book_value=100, audited_value=90),
        TestedItem(item_id=3, book_value=100, audited_value=100),
        TestedItem(item_id=4, book_value=100, audited_value=80),
    ]


class TestPlanClassicalVariablesSample:
    def test_without_population_value(self) -> None:
        plan = SampleEvaluator.plan_classical_variables_sample(1000)

        assert plan.standard_deviation == pytest.approx(500)
        assert plan.precision == pytest.approx(50)
        assert plan.sample_size == 278

    def test_with_value_and_tolerable(self) -> None:
        plan = SampleEvaluator.plan_classical_variables_sample(
            1000, population_value=1_000_000, tolerable_misstatement=5_000
        )

        assert plan.standard_deviation == pytest.approx(1_000_000 * 0.5 / math.sqrt(1000))
        assert plan.precision == 5_000
        assert plan.sample_size == 38

    def test_default_precision_is_five_percent_of_value(self) -> None:
        plan = SampleEvaluator.plan_classical_variables_sample(1000, population_value=200_000)
        assert plan.precision == pytest.approx(10_000)

    def test_higher_confidence_needs_more(self) -> None:
        sizes = [SampleEvaluator.plan_classical_variables_sample(5000, cl).sample_size for cl in (90, 95, 99)]
        assert sizes == sorted(sizes)
        assert sizes[0] < sizes[2]

    def test_never_exceeds_population(self) -> None:
        assert SampleEvaluator.plan_classical_variables_sample(1).sample_size == 1

    def test_invalid_inputs_raise(self) -> None:
        with pytest.raises(UnsupportedConfidenceLevelError):
            SampleEvaluator.plan_classical_variables_sample(1000, confidence_level=80)
        with pytest.raises(InvalidSampleSizeError):
            SampleEvaluator.plan_classical_variables_sample(0)
        with pytest.raises(InvalidPrecisionError):
            SampleEvaluator.plan_classical_variables_sample(1000, tolerable_misstatement=0)
        with pytest.raises(SamplingError):
            SampleEvaluator.plan_classical_variables_sample(1000, population_value=-5)


class TestProjectClassicalMisstatement:
    def test_ratio_estimation(self) -> None:
        result = SampleEvaluator.project_classical_misstatement(_ratio_items(), 100_000, 1000, 20_000)
        precision = 1.96 * math.sqrt(275 / 3) / 2 * 1000

        assert result.ratio == pytest.approx(0.925)
        assert result.projected_misstatement == pytest.approx(7_500)
        assert result.precision == pytest.approx(precision)
        assert result.allowance_for_sampling_risk == result.precision
        assert result.upper_misstatement_limit == pytest.approx(7_500 + precision)
        assert result.lower_misstatement_limit == 0
        assert result.conclusion == MisstatementConclusion.ACCEPTABLE

    @pytest.mark.parametrize(
        ("tolerable", "conclusion"),
        [
            (15_000, MisstatementConclusion.REQUIRES_EXPANSION),
            (10_000, MisstatementConclusion.UNACCEPTABLE),
        ],
    )
    def test_conclusions(self, tolerable: float, conclusion: MisstatementConclusion) -> None:
        result = SampleEvaluator.project_classical_misstatement(_ratio_items(), 100_000, 1000, tolerable)
        assert result.conclusion == conclusion

    def test_no_differences_has_no_allowance(self) -> None:
        result = SampleEvaluator.project_classical_misstatement(_clean_items(3), 100_000, 500, 1_000)

        assert result.projected_misstatement == 0
        assert result.precision == 0
        assert result.upper_misstatement_limit == 0
        assert result.conclusion == MisstatementConclusion.ACCEPTABLE

    def test_understatement_is_absolute(self) -> None:
        items = [
            TestedItem(item_id=1, book_value=100, audited_value=110),
            TestedItem(item_id=2, book_value=100, audited_value=100),
        ]
        result = SampleEvaluator.project_classical_misstatement(items, 10_000, 100, 50_000)

        assert result.projected_misstatement == pytest.approx(500)
        assert result.lower_misstatement_limit >= 0

    def test_untested_items_ignored(self) -> None:
        items = _ratio_items() + [TestedItem(item_id="pending", book_value=5_000)]
        result = SampleEvaluator.project_classical_misstatement(items, 100_000, 1000, 20_000)
        assert result.ratio == pytest.approx(0.925)

    def test_no_tested_items_raises(self) -> None:
        with pytest.raises(EmptyPopulationError):
            SampleEvaluator.project_classical_misstatement([TestedItem(book_value=100)], 1_000, 10, 100)

    def test_single_tested_item_raises(self) -> None:
        with pytest.raises(InvalidSampleSizeError):
            SampleEvaluator.project_classical_misstatement(_clean_items(1), 1_000, 10, 100)

    def test_zero_book_value_raises(self) -> None:
        items = [TestedItem(item_id=i, book_value=0, audited_value=5) for i in range(3)]
        with pytest.raises(ZeroPopulationValueError):
            SampleEvaluator.project_classical_misstatement(items, 1_000, 10, 100)
