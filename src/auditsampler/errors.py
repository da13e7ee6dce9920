"""
Error taxonomy for auditsampler.

Every error is a ``ValueError`` subclass so callers that already guard the
analyzers with ``except ValueError`` keep working. Each class carries a stable
``kind`` string that downstream applications can map onto their own formats.
"""

from __future__ import annotations

from typing import Any


class SamplingError(ValueError):
    """Base class for invalid input to an analyzer or selector."""

    kind = "SamplingError"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.context: dict[str, Any] = dict(context)


class EmptyPopulationError(SamplingError):
    """No valid (non-zero, numeric) records to analyze."""

    kind = "EmptyOrInvalidPopulation"


class SampleSizeExceedsPopulationError(SamplingError):
    kind = "SampleSizeExceedsPopulation"


class NegativeValueError(SamplingError):
    """Monetary-unit sampling was given a negative value."""

    kind = "NegativeValueNotAllowed"


class ZeroPopulationValueError(SamplingError):
    kind = "ZeroPopulationValue"


class InvalidPrecisionError(SamplingError):
    """Tolerable rate (or misstatement) does not exceed the expected one."""

    kind = "InvalidPrecisionBounds"


class InvalidSampleSizeError(SamplingError):
    kind = "InvalidSampleSize"


class UnsupportedConfidenceLevelError(SamplingError):
    kind = "UnsupportedConfidenceLevel"


class UnsupportedSignificanceLevelError(SamplingError):
    kind = "UnsupportedSignificanceLevel"


__all__ = [
    "SamplingError",
    "EmptyPopulationError",
    "SampleSizeExceedsPopulationError",
    "NegativeValueError",
    "ZeroPopulationValueError",
    "InvalidPrecisionError",
    "InvalidSampleSizeError",
    "UnsupportedConfidenceLevelError",
    "UnsupportedSignificanceLevelError",
]
