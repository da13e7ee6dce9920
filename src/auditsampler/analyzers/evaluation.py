"""
Sample Evaluator — plan MUS samples and evaluate tested samples.

Covers the steps around selection in an audit sampling application:
- MUS sample size and sampling interval from reliability factors
- MUS misstatement projection and upper misstatement limit
- Classical variables sample size and ratio-estimation projection
- Attributes (test of controls) evaluation against a tolerable deviation rate

Reliability factors are the Poisson confidence factors for k observed errors
published in the AICPA audit sampling guide.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

from auditsampler.analyzers.sampling import Z_SCORES
from auditsampler.errors import (
    EmptyPopulationError,
    InvalidPrecisionError,
    InvalidSampleSizeError,
    SamplingError,
    UnsupportedConfidenceLevelError,
    ZeroPopulationValueError,
)

logger = logging.getLogger("auditsampler.analyzers.evaluation")

# confidence level -> reliability factor for 0, 1, 2, ... errors
RELIABILITY_FACTORS: dict[int, tuple[float, ...]] = {
    80: (1.61, 2.99, 4.28, 5.52, 6.73, 7.91, 9.08, 10.24, 11.38, 12.52, 13.66),
    85: (1.90, 3.38, 4.72, 6.02, 7.27, 8.50, 9.71, 10.90, 12.08, 13.25, 14.42),
    90: (2.31, 3.89, 5.33, 6.69, 8.00, 9.28, 10.54, 11.78, 13.00, 14.21, 15.41),
    95: (3.00, 4.75, 6.30, 7.76, 9.16, 10.52, 11.85, 13.15, 14.44, 15.71, 16.97),
    99: (4.61, 6.64, 8.41, 10.05, 11.61, 13.11),
}

MAX_PLANNED_ERRORS = 5

# Attributes evaluation only has published factors at these confidence levels
ATTRIBUTES_CONFIDENCE_LEVELS = (80, 85, 90, 95)

# Classical variables planning: assumed coefficient of variation and the
# default precision (share of population value) when no tolerable is given
CLASSICAL_COEFFICIENT_OF_VARIATION = 0.5
CLASSICAL_DEFAULT_PRECISION = 0.05


class MisstatementConclusion(str, Enum):
    ACCEPTABLE = "acceptable"
    REQUIRES_EXPANSION = "requires_expansion"
    UNACCEPTABLE = "unacceptable"


class AttributesConclusion(str, Enum):
    RELIANCE_SUPPORTED = "reliance_supported"
    RELIANCE_NOT_SUPPORTED = "reliance_not_supported"


@dataclass(frozen=True)
class TestedItem:
    """A sampled item after audit testing."""

    __test__ = False  # keep pytest from collecting this class

    item_id: Any = None
    book_value: float = 0.0
    audited_value: float | None = None
    exception: bool = False  # non-monetary deviation (e.g. missing approval)

    @property
    def difference(self) -> float:
        """Book minus audited value (positive = overstatement)."""
        if self.audited_value is None:
            return 0.0
        return self.book_value - self.audited_value

    @property
    def is_exception(self) -> bool:
        return self.exception or self.difference != 0


@dataclass(frozen=True)
class MUSPlan:
    sample_size: int
    sampling_interval: int
    reliability_factor: float
    expected_errors: int
    confidence_level: int


@dataclass(frozen=True)
class MUSProjection:
    """Projected misstatement and upper misstatement limit for a MUS sample."""

    known_misstatement: float
    projected_misstatement: float
    basic_precision: float
    incremental_allowance: float
    upper_misstatement_limit: float
    conclusion: MisstatementConclusion
    conclusion_rationale: str
    taintings: tuple[float, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ClassicalVariablesPlan:
    sample_size: int
    standard_deviation: float  # estimated
    precision: float
    confidence_level: int


@dataclass(frozen=True)
class ClassicalProjection:
    """Ratio-estimation projection of a classical variables sample."""

    projected_misstatement: float
    allowance_for_sampling_risk: float
    upper_misstatement_limit: float
    lower_misstatement_limit: float
    precision: float
    ratio: float
    conclusion: MisstatementConclusion
    conclusion_rationale: str


@dataclass(frozen=True)
class AttributesEvaluation:
    sample_size: int
    exceptions: int
    sample_deviation_rate: float  # %
    upper_deviation_limit: float  # %
    conclusion: AttributesConclusion
    conclusion_rationale: str


def reliability_factor(confidence_level: int, errors: int) -> float:
    """Reliability factor for ``errors`` observed errors.

    Beyond the published table the factor is extended linearly using the
    table's last increment.
    """
    factors = RELIABILITY_FACTORS.get(confidence_level)
    if factors is None:
        supported = ", ".join(str(c) for c in RELIABILITY_FACTORS)
        raise UnsupportedConfidenceLevelError(
            f"No reliability factors for confidence level {confidence_level} (supported: {supported})",
            confidence_level=confidence_level,
        )
    if errors < 0:
        raise SamplingError(f"Error count cannot be negative (got {errors})")
    if errors < len(factors):
        return factors[errors]
    step = factors[-1] - factors[-2]
    return factors[-1] + step * (errors - len(factors) + 1)


def _misstatement_conclusion(upper: float, tolerable: float) -> tuple[MisstatementConclusion, str]:
    """Acceptable up to tolerable, expansion up to 1.5x tolerable, unacceptable beyond."""
    if upper <= tolerable:
        return MisstatementConclusion.ACCEPTABLE, (
            f"Upper misstatement limit (${upper:,.0f}) is less than tolerable misstatement "
            f"(${tolerable:,.0f}). Sampling results support the conclusion that "
            "the account is not materially misstated."
        )
    if upper <= tolerable * 1.5:
        return MisstatementConclusion.REQUIRES_EXPANSION, (
            f"Upper misstatement limit (${upper:,.0f}) exceeds tolerable misstatement "
            f"(${tolerable:,.0f}). Consider expanding the sample or performing "
            "additional procedures."
        )
    return MisstatementConclusion.UNACCEPTABLE, (
        f"Upper misstatement limit (${upper:,.0f}) significantly exceeds tolerable misstatement "
        f"(${tolerable:,.0f}). Material misstatement likely exists. "
        "Consider proposing an adjustment."
    )


class SampleEvaluator:
    """MUS and classical variables planning, and sample evaluation."""

    @staticmethod
    def plan_mus_sample(
        population_value: float,
        tolerable_misstatement: float,
        confidence_level: int = 95,
        expected_misstatement: float = 0.0,
        population_size: int | None = None,
    ) -> MUSPlan:
        """Sample size and interval for monetary unit sampling.

        Expected misstatement is converted to a planned error count
        (``floor(expected / tolerable * 5)``, capped at 5) which picks the
        reliability factor. interval = floor((tolerable - expected) / RF),
        n = ceil(population value / interval).
        """
        if population_value <= 0:
            raise SamplingError("Population value must be positive", population_value=population_value)
        if tolerable_misstatement <= 0:
            raise InvalidPrecisionError("Tolerable misstatement must be positive")
        if expected_misstatement < 0:
            raise SamplingError("Expected misstatement cannot be negative")
        if expected_misstatement >= tolerable_misstatement:
            raise InvalidPrecisionError(
                "Expected misstatement must be less than tolerable misstatement",
                expected_misstatement=expected_misstatement,
                tolerable_misstatement=tolerable_misstatement,
            )

        expected_errors = min(
            math.floor(expected_misstatement / tolerable_misstatement * MAX_PLANNED_ERRORS),
            MAX_PLANNED_ERRORS,
        )
        rf = reliability_factor(confidence_level, expected_errors)
        interval = math.floor((tolerable_misstatement - expected_misstatement) / rf)
        if interval <= 0:
            raise InvalidPrecisionError(
                "Tolerable misstatement is too small for a sampling interval of at least 1",
                tolerable_misstatement=tolerable_misstatement,
            )

        sample_size = math.ceil(population_value / interval)
        if population_size is not None:
            if population_size < 1:
                raise InvalidSampleSizeError("Population size must be positive")
            sample_size = min(sample_size, population_size)

        logger.debug("MUS plan: n=%d interval=%d rf=%.2f", sample_size, interval, rf)
        return MUSPlan(
            sample_size=sample_size,
            sampling_interval=interval,
            reliability_factor=rf,
            expected_errors=expected_errors,
            confidence_level=confidence_level,
        )

    @staticmethod
    def project_mus_misstatement(
        items: Sequence[TestedItem],
        sampling_interval: float,
        tolerable_misstatement: float,
        confidence_level: int = 95,
    ) -> MUSProjection:
        """Upper misstatement limit for a tested MUS sample.

        Items at or above the sampling interval contribute their actual
        misstatement. Smaller items contribute a tainting (misstatement as a
        fraction of book value, capped at 1) projected over the interval, with
        incremental allowances applied in descending tainting order.
        """
        if sampling_interval <= 0:
            raise SamplingError("Sampling interval must be positive", sampling_interval=sampling_interval)

        known = 0.0
        taintings: list[float] = []
        for item in items:
            if not item.is_exception or item.difference == 0:
                continue
            if item.book_value >= sampling_interval:
                known += abs(item.difference)
            elif item.book_value <= 0:
                raise SamplingError(
                    f"Cannot compute tainting for item {item.item_id!r} with non-positive book value",
                    item_id=item.item_id,
                )
            else:
                taintings.append(min(abs(item.difference) / item.book_value, 1.0))

        taintings.sort(reverse=True)

        basic_precision = reliability_factor(confidence_level, 0) * sampling_interval
        projected = 0.0
        incremental = 0.0
        for k, tainting in enumerate(taintings):
            projected += tainting * sampling_interval
            # the tainting itself is already in the projection, hence the -1
            factor = reliability_factor(confidence_level, k + 1) - reliability_factor(confidence_level, k) - 1
            incremental += factor * tainting * sampling_interval

        upper = known + projected + basic_precision + incremental

        conclusion, rationale = _misstatement_conclusion(upper, tolerable_misstatement)

        logger.info("MUS projection: UML=%.2f (%s)", upper, conclusion.value)
        return MUSProjection(
            known_misstatement=known,
            projected_misstatement=projected,
            basic_precision=basic_precision,
            incremental_allowance=incremental,
            upper_misstatement_limit=upper,
            conclusion=conclusion,
            conclusion_rationale=rationale,
            taintings=tuple(taintings),
        )

    @staticmethod
    def plan_classical_variables_sample(
        population_size: int,
        confidence_level: int = 95,
        population_value: float | None = None,
        tolerable_misstatement: float | None = None,
    ) -> ClassicalVariablesPlan:
        """Sample size for classical variables (mean-per-unit) sampling.

        The standard deviation is estimated from a coefficient of variation of
        0.5: ``V * 0.5 / sqrt(N)`` with a population value, ``N * 0.5``
        without. Precision is the tolerable misstatement, else 5% of the
        population value (or of N). n0 = (z * sd / precision)^2, then the
        finite population correction ``n0 * N / (n0 + N - 1)``, capped at N.
        """
        z = Z_SCORES.get(confidence_level)
        if z is None:
            raise UnsupportedConfidenceLevelError(
                f"Unsupported confidence level {confidence_level} (use 90, 95 or 99)",
                confidence_level=confidence_level,
            )
        if population_size < 1:
            raise InvalidSampleSizeError(
                f"Population size must be positive (got {population_size})",
                population_size=population_size,
            )
        if population_value is not None and population_value <= 0:
            raise SamplingError("Population value must be positive", population_value=population_value)
        if tolerable_misstatement is not None and tolerable_misstatement <= 0:
            raise InvalidPrecisionError(
                "Tolerable misstatement must be positive",
                tolerable_misstatement=tolerable_misstatement,
            )

        base = population_value if population_value is not None else population_size
        if population_value is not None:
            std_dev = population_value * CLASSICAL_COEFFICIENT_OF_VARIATION / math.sqrt(population_size)
        else:
            std_dev = population_size * CLASSICAL_COEFFICIENT_OF_VARIATION
        if tolerable_misstatement is not None:
            precision = tolerable_misstatement
        else:
            precision = base * CLASSICAL_DEFAULT_PRECISION

        n0 = (z * std_dev / precision) ** 2
        sample_size = min(math.ceil(n0 * population_size / (n0 + population_size - 1)), population_size)

        logger.debug("Classical variables plan: n=%d sd=%.2f precision=%.2f", sample_size, std_dev, precision)
        return ClassicalVariablesPlan(
            sample_size=sample_size,
            standard_deviation=std_dev,
            precision=precision,
            confidence_level=confidence_level,
        )

    @staticmethod
    def project_classical_misstatement(
        items: Sequence[TestedItem],
        population_value: float,
        population_size: int,
        tolerable_misstatement: float,
        confidence_level: int = 95,
    ) -> ClassicalProjection:
        """Project misstatement by ratio estimation.

        Only items with an audited value count as tested. The ratio of audited
        to book value in the sample projects the population's audited value;
        the allowance for sampling risk is ``z * sd(differences) / sqrt(n) * N``.
        Limits are the absolute projected misstatement plus and minus that
        allowance (the lower one floored at 0).

        Raises:
            EmptyPopulationError: No item has an audited value.
            InvalidSampleSizeError: Fewer than two tested items, so no spread.
            ZeroPopulationValueError: The tested items' book values sum to zero.
        """
        z = Z_SCORES.get(confidence_level)
        if z is None:
            raise UnsupportedConfidenceLevelError(
                f"Unsupported confidence level {confidence_level} (use 90, 95 or 99)",
                confidence_level=confidence_level,
            )
        if population_size < 1:
            raise InvalidSampleSizeError(
                f"Population size must be positive (got {population_size})",
                population_size=population_size,
            )

        tested = [item for item in items if item.audited_value is not None]
        n = len(tested)
        if n == 0:
            raise EmptyPopulationError("No tested items to project")
        if n < 2:
            raise InvalidSampleSizeError(
                "Ratio estimation needs at least two tested items",
                tested_items=n,
            )

        book_total = sum(item.book_value for item in tested)
        if book_total == 0:
            raise ZeroPopulationValueError("Book value of the tested items sums to zero")
        audited = [item.audited_value or 0.0 for item in tested]
        audited_total = sum(audited)

        ratio = audited_total / book_total
        projected = abs(population_value - ratio * population_value)

        differences = [a - item.book_value for a, item in zip(audited, tested)]
        mean_diff = sum(differences) / n
        std_dev = math.sqrt(sum((d - mean_diff) ** 2 for d in differences) / (n - 1))
        precision = z * std_dev / math.sqrt(n) * population_size

        upper = projected + precision
        lower = max(0.0, projected - precision)
        conclusion, rationale = _misstatement_conclusion(upper, tolerable_misstatement)

        logger.info("Classical projection: UML=%.2f (%s)", upper, conclusion.value)
        return ClassicalProjection(
            projected_misstatement=projected,
            allowance_for_sampling_risk=precision,
            upper_misstatement_limit=upper,
            lower_misstatement_limit=lower,
            precision=precision,
            ratio=ratio,
            conclusion=conclusion,
            conclusion_rationale=rationale,
        )

    @staticmethod
    def evaluate_attributes_sample(
        items: Sequence[TestedItem],
        tolerable_deviation_rate: float,
        confidence_level: int = 95,
    ) -> AttributesEvaluation:
        """Compare the upper deviation limit of a controls sample with the tolerable rate.

        Rates are percentages. The upper limit is RF(k) / n for k deviations.
        Published factors exist for 80, 85, 90 and 95% confidence; at any other
        level (99% included) the factor falls back to ``2.3 + 1.5 * k``.
        """
        n = len(items)
        if n == 0:
            raise EmptyPopulationError("Cannot evaluate an empty sample")

        exceptions = sum(1 for item in items if item.is_exception)
        if confidence_level in ATTRIBUTES_CONFIDENCE_LEVELS:
            factor = reliability_factor(confidence_level, exceptions)
        else:
            factor = 2.3 + exceptions * 1.5

        deviation_rate = exceptions * 100 / n
        upper = factor * 100 / n

        if upper <= tolerable_deviation_rate:
            conclusion = AttributesConclusion.RELIANCE_SUPPORTED
            rationale = (
                f"Upper deviation limit ({upper:.1f}%) does not exceed the tolerable deviation rate "
                f"({tolerable_deviation_rate:.1f}%). The control appears to be operating effectively."
            )
        else:
            conclusion = AttributesConclusion.RELIANCE_NOT_SUPPORTED
            rationale = (
                f"Upper deviation limit ({upper:.1f}%) exceeds the tolerable deviation rate "
                f"({tolerable_deviation_rate:.1f}%). The control may not be operating effectively. "
                "Consider revising the assessed level of control risk."
            )

        return AttributesEvaluation(
            sample_size=n,
            exceptions=exceptions,
            sample_deviation_rate=deviation_rate,
            upper_deviation_limit=upper,
            conclusion=conclusion,
            conclusion_rationale=rationale,
        )
