"""
Benford's Law Analyzer — detect fabricated or manipulated financial data.

Benford's Law states that in naturally occurring datasets, the leading digit
is "1" approximately 30.1% of the time, "2" about 17.6%, and so on.
Significant deviations suggest data manipulation, rounding, or synthetic data.

This module computes:
- First-digit distribution against the Benford expectation
- Chi-squared goodness-of-fit test (8 degrees of freedom)
- Per-digit deviation flags and a mean absolute deviation figure
- A deterministic, human-readable recommendation
"""

from __future__ import annotations

import logging
import math
import numbers
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable

from auditsampler.errors import EmptyPopulationError, UnsupportedSignificanceLevelError

logger = logging.getLogger("auditsampler.analyzers.benfords")

# Benford's expected probabilities for first digit (1-9), P(d) = log10(1 + 1/d)
# rounded to three decimals so that the nine buckets sum to exactly 1.000.
BENFORD_FIRST_DIGIT: dict[int, float] = {
    1: 0.301,
    2: 0.176,
    3: 0.125,
    4: 0.097,
    5: 0.079,
    6: 0.067,
    7: 0.058,
    8: 0.051,
    9: 0.046,
}

DEGREES_OF_FREEDOM = 8

# Chi-squared critical values for df=8, keyed by significance level (alpha)
CHI_SQ_CRITICAL_DF8: dict[float, float] = {
    0.10: 13.362,
    0.05: 15.507,
    0.025: 17.535,
    0.01: 20.090,
    0.005: 21.955,
    0.001: 26.124,
}

SUSPICIOUS_DEVIATION_PCT = 30.0


@dataclass(frozen=True)
class BenfordDigitResult:
    """Observed vs. expected figures for one leading digit."""

    digit: int
    expected_frequency: float
    actual_frequency: float
    actual_count: int
    expected_count: float
    deviation: float  # actual_frequency - expected_frequency
    deviation_percentage: float  # deviation relative to expected, in %
    chi_square_contribution: float


@dataclass(frozen=True)
class BenfordAnalysis:
    """Complete first-digit Benford's Law analysis."""

    results: tuple[BenfordDigitResult, ...]
    total_records: int
    chi_square_statistic: float
    degrees_of_freedom: int
    critical_value: float
    passed_test: bool
    significance_level: float
    suspicious_digits: tuple[int, ...]
    overall_deviation: float  # mean absolute deviation of the proportions
    recommendation: str
    p_value_approx: float = 1.0
    context: str | None = None

    def digit(self, d: int) -> BenfordDigitResult:
        """Return the bucket for leading digit ``d`` (1-9)."""
        return self.results[d - 1]


@dataclass(frozen=True)
class ChiSquareInterpretation:
    conforms_to_law: bool
    strength: str  # strong, moderate, weak, none
    description: str


@dataclass
class ChartData:
    """Series ready for a bar/line chart of expected vs. actual frequencies."""

    labels: list[str] = field(default_factory=list)
    expected: list[float] = field(default_factory=list)
    actual: list[float] = field(default_factory=list)
    deviation: list[float] = field(default_factory=list)


class BenfordsAnalyzer:
    """Perform Benford's Law first-digit analysis on a list of amounts."""

    @classmethod
    def analyze(
        cls,
        data: Iterable[Any],
        significance_level: float = 0.05,
        *,
        context: str | None = None,
        suspicious_threshold: float = SUSPICIOUS_DEVIATION_PCT,
    ) -> BenfordAnalysis:
        """Run Benford's Law analysis on a sequence of numbers.

        Args:
            data: Numeric values. Zero, non-numeric, NaN and infinite entries are ignored.
            significance_level: Test alpha; must be one of ``CHI_SQ_CRITICAL_DF8``.
            context: Optional label describing the dataset (e.g. "expenses").
            suspicious_threshold: Relative deviation (%) above which a digit is flagged.

        Returns:
            BenfordAnalysis with per-digit results and the test verdict.

        Raises:
            EmptyPopulationError: No value with a non-zero significant digit.
            UnsupportedSignificanceLevelError: No critical value for ``significance_level``.
        """
        critical_value = cls.critical_value(significance_level)

        digits = [d for d in (cls.first_digit(v) for v in data) if d is not None]
        total = len(digits)
        if total == 0:
            raise EmptyPopulationError(
                "No valid records found for Benford's Law analysis",
                context=context,
            )

        counts = Counter(digits)
        results: list[BenfordDigitResult] = []
        chi_sq = 0.0
        total_abs_deviation = 0.0
        suspicious: list[int] = []

        for digit, expected_freq in BENFORD_FIRST_DIGIT.items():
            expected_count = total * expected_freq
            actual_count = counts.get(digit, 0)
            actual_freq = actual_count / total
            deviation = actual_freq - expected_freq
            deviation_pct = deviation / expected_freq * 100
            contribution = (actual_count - expected_count) ** 2 / expected_count

            chi_sq += contribution
            total_abs_deviation += abs(deviation)
            if abs(deviation_pct) > suspicious_threshold:
                suspicious.append(digit)

            results.append(
                BenfordDigitResult(
                    digit=digit,
                    expected_frequency=expected_freq,
                    actual_frequency=actual_freq,
                    actual_count=actual_count,
                    expected_count=expected_count,
                    deviation=deviation,
                    deviation_percentage=deviation_pct,
                    chi_square_contribution=contribution,
                )
            )

        passed = chi_sq < critical_value
        analysis = BenfordAnalysis(
            results=tuple(results),
            total_records=total,
            chi_square_statistic=chi_sq,
            degrees_of_freedom=DEGREES_OF_FREEDOM,
            critical_value=critical_value,
            passed_test=passed,
            significance_level=significance_level,
            suspicious_digits=tuple(suspicious),
            overall_deviation=total_abs_deviation / len(BENFORD_FIRST_DIGIT),
            recommendation=cls._build_recommendation(passed, suspicious),
            p_value_approx=cls._approx_p_value(chi_sq, DEGREES_OF_FREEDOM),
            context=context,
        )

        logger.info(
            "Benford's analysis%s: n=%d chi2=%.4f (%s)",
            f" [{context}]" if context else "",
            total,
            chi_sq,
            "PASS" if passed else "FAIL",
        )
        return analysis

    # ------------------------------------------------------------------ #
    #  Context wrappers                                                   #
    # ------------------------------------------------------------------ #

    @classmethod
    def analyze_accounts_receivable(cls, balances: Iterable[Any]) -> BenfordAnalysis:
        return cls.analyze(balances, context="accounts_receivable")

    @classmethod
    def analyze_accounts_payable(cls, balances: Iterable[Any]) -> BenfordAnalysis:
        return cls.analyze(balances, context="accounts_payable")

    @classmethod
    def analyze_expenses(cls, amounts: Iterable[Any]) -> BenfordAnalysis:
        return cls.analyze(amounts, context="expenses")

    @classmethod
    def analyze_revenue(cls, amounts: Iterable[Any]) -> BenfordAnalysis:
        return cls.analyze(amounts, context="revenue")

    @classmethod
    def analyze_journal_entries(cls, amounts: Iterable[Any]) -> BenfordAnalysis:
        return cls.analyze(amounts, context="journal_entries")

    # ------------------------------------------------------------------ #
    #  Interpretation                                                     #
    # ------------------------------------------------------------------ #

    @staticmethod
    def interpret_chi_square(chi_square: float, critical_value: float) -> ChiSquareInterpretation:
        """Bucket a chi-square statistic by its ratio to the critical value."""
        conforms = chi_square < critical_value

        if chi_square < critical_value * 0.5:
            strength = "strong"
            description = "Data strongly conforms to Benford's Law"
        elif chi_square < critical_value:
            strength = "moderate"
            description = "Data moderately conforms to Benford's Law"
        elif chi_square < critical_value * 1.5:
            strength = "weak"
            description = "Data shows weak conformance to Benford's Law - investigate further"
        else:
            strength = "none"
            description = "Data does not conform to Benford's Law - high risk of manipulation"

        return ChiSquareInterpretation(conforms_to_law=conforms, strength=strength, description=description)

    @staticmethod
    def chart_data(analysis: BenfordAnalysis) -> ChartData:
        """Expected/actual percentages per digit for charting."""
        return ChartData(
            labels=[f"Digit {r.digit}" for r in analysis.results],
            expected=[r.expected_frequency * 100 for r in analysis.results],
            actual=[r.actual_frequency * 100 for r in analysis.results],
            deviation=[abs(r.deviation_percentage) for r in analysis.results],
        )

    @staticmethod
    def critical_value(significance_level: float) -> float:
        """Chi-squared critical value for 8 degrees of freedom."""
        for alpha, value in CHI_SQ_CRITICAL_DF8.items():
            if math.isclose(alpha, significance_level, rel_tol=1e-9, abs_tol=1e-12):
                return value
        supported = ", ".join(str(a) for a in CHI_SQ_CRITICAL_DF8)
        raise UnsupportedSignificanceLevelError(
            f"No chi-square critical value for significance level {significance_level} "
            f"(supported: {supported})",
            significance_level=significance_level,
        )

    @staticmethod
    def first_digit(value: Any) -> int | None:
        """Return the first significant digit of ``value``, or None if it has none."""
        if isinstance(value, bool) or not isinstance(value, (numbers.Real, Decimal)):
            return None
        if isinstance(value, Decimal):
            if not value.is_finite():
                return None
        elif isinstance(value, numbers.Integral):
            value = int(value)  # numpy integer scalars
        else:
            value = float(value)
            if not math.isfinite(value):
                return None

        magnitude = abs(value)
        if magnitude == 0:
            return None

        # Exponent notation ("1.5e-07") keeps the mantissa first, so the
        # first non-zero character is still the leading digit.
        for ch in str(magnitude).replace(".", ""):
            if ch.isdigit() and ch != "0":
                return int(ch)
        return None

    # ------------------------------------------------------------------ #
    #  Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _approx_p_value(chi_sq: float, df: int) -> float:
        """Upper-tail p-value using the Wilson-Hilferty approximation."""
        z = ((chi_sq / df) ** (1 / 3) - (1 - 2 / (9 * df))) / math.sqrt(2 / (9 * df))
        p_value = 0.5 * (1 - math.erf(z / math.sqrt(2)))
        return round(max(0.0, min(1.0, p_value)), 6)

    @staticmethod
    def _build_recommendation(passed: bool, suspicious: list[int]) -> str:
        if passed:
            return "The dataset conforms to Benford's Law. No significant anomalies detected."
        if not suspicious:
            return (
                "The dataset shows minor deviations from Benford's Law. "
                "Consider investigating if combined with other red flags."
            )
        if len(suspicious) <= 2:
            digits = ", ".join(str(d) for d in suspicious)
            return (
                f"The dataset shows significant deviations for digit(s): {digits}. "
                "Recommend investigating transactions starting with these digits."
            )
        return (
            f"The dataset significantly deviates from Benford's Law ({len(suspicious)} digits affected). "
            "This may indicate data manipulation, rounding, or artificial data generation. "
            "Recommend detailed investigation."
        )


def analyze_benfords(
    data: Iterable[Any],
    significance_level: float = 0.05,
    context: str | None = None,
) -> BenfordAnalysis:
    """Convenience wrapper around :meth:`BenfordsAnalyzer.analyze`."""
    return BenfordsAnalyzer.analyze(data, significance_level, context=context)
