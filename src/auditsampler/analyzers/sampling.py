"""
Sample Selector — statistical sample selection for audit procedures.

Implements the selection designs used in substantive and controls testing:
1. **Simple random**: Fisher-Yates shuffle, optionally seeded for re-performance.
2. **Systematic**: every k-th item from a (random) start offset.
3. **Stratified**: independent random samples within caller-defined value bands.
4. **Monetary unit (MUS / PPS)**: selection probability proportional to value.
5. **Top stratum**: 100% of material items plus a random sample of the rest.

Plus attribute-sampling sample size determination with a finite population
correction. Population items are plain dicts carrying an ``"id"`` and a numeric
value (``"value"`` by default); any other keys pass through untouched. The
caller's population list is never modified.
"""

from __future__ import annotations

import logging
import math
import random
from bisect import bisect_left
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable, Mapping, Sequence

from auditsampler.errors import (
    InvalidPrecisionError,
    InvalidSampleSizeError,
    NegativeValueError,
    SampleSizeExceedsPopulationError,
    SamplingError,
    UnsupportedConfidenceLevelError,
    ZeroPopulationValueError,
)

logger = logging.getLogger("auditsampler.analyzers.sampling")

SampleItem = Mapping[str, Any]

# Two-tailed z-scores for the supported confidence levels
Z_SCORES: dict[int, float] = {
    90: 1.645,
    95: 1.960,
    99: 2.576,
}

# Finite population correction applies below this population size
FPC_POPULATION_LIMIT = 100_000

# Linear congruential generator constants. Samples drawn with a recorded seed
# must re-perform identically, so these never change.
_LCG_MULTIPLIER = 9301
_LCG_INCREMENT = 49297
_LCG_MODULUS = 233280


@dataclass(frozen=True)
class StratificationBand:
    """A value range [min, max] and the number of items to draw from it."""

    name: str
    min: float
    max: float
    sample_size: int

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


@dataclass(frozen=True)
class SampleSelectionResult:
    """Outcome of one selection run."""

    selected_items: tuple[SampleItem, ...]
    selection_method: str
    sample_size: int  # achieved
    requested_sample_size: int
    population_size: int
    sampling_interval: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def selected_ids(self) -> list[Any]:
        return [item.get("id") for item in self.selected_items]

    @property
    def shortfall(self) -> int:
        """How many fewer items were selected than requested."""
        return max(0, self.requested_sample_size - self.sample_size)


def seeded_random(seed: int) -> Callable[[], float]:
    """Deterministic uniform [0, 1) generator for reproducible selections.

    The same seed always yields the same stream, so an external reviewer can
    re-perform a sample from the seed recorded in the working papers.
    """
    state = int(seed)

    def _next() -> float:
        nonlocal state
        state = (state * _LCG_MULTIPLIER + _LCG_INCREMENT) % _LCG_MODULUS
        return state / _LCG_MODULUS

    return _next


class SampleSelector:
    """Audit sample selection engine. All methods are pure."""

    @classmethod
    def random_sampling(
        cls,
        population: Sequence[SampleItem],
        sample_size: int,
        seed: int | None = None,
    ) -> SampleSelectionResult:
        """Simple random sampling without replacement.

        Args:
            population: Items to draw from.
            sample_size: Number of items to select.
            seed: If given, selection is reproducible from this seed.

        Raises:
            SampleSizeExceedsPopulationError: ``sample_size`` > population size.
            InvalidSampleSizeError: ``sample_size`` is negative.
        """
        cls._check_size(sample_size, len(population), minimum=0)
        rand = seeded_random(seed) if seed is not None else random.random

        shuffled = list(population)
        for i in range(len(shuffled) - 1, 0, -1):
            j = math.floor(rand() * (i + 1))
            shuffled[i], shuffled[j] = shuffled[j], shuffled[i]

        selected = tuple(shuffled[:sample_size])
        logger.debug("Random sampling: %d of %d (seed=%s)", sample_size, len(population), seed)

        return SampleSelectionResult(
            selected_items=selected,
            selection_method="Simple Random Sampling",
            sample_size=len(selected),
            requested_sample_size=sample_size,
            population_size=len(population),
            metadata={
                "seed": seed if seed is not None else "none",
                "selection_rate": (sample_size / len(population) * 100) if population else 0.0,
            },
        )

    @classmethod
    def systematic_sampling(
        cls,
        population: Sequence[SampleItem],
        sample_size: int,
        start_index: int | None = None,
        seed: int | None = None,
    ) -> SampleSelectionResult:
        """Select every k-th item, k = floor(N / n), from a start offset.

        The start offset defaults to a random index in [0, k). The result may
        hold fewer than ``sample_size`` items when the interval runs past the
        end of the population.
        """
        n = len(population)
        cls._check_size(sample_size, n, minimum=1)

        interval = n // sample_size
        if start_index is None:
            rand = seeded_random(seed) if seed is not None else random.random
            start = math.floor(rand() * interval)
        else:
            if not 0 <= start_index < n:
                raise InvalidSampleSizeError(
                    f"Start index {start_index} is outside the population (0..{n - 1})",
                    start_index=start_index,
                )
            start = start_index

        selected: list[SampleItem] = []
        i = start
        while len(selected) < sample_size and i < n:
            selected.append(population[i])
            i += interval

        if len(selected) < sample_size:
            logger.debug("Systematic sampling ran past the population end: %d < %d", len(selected), sample_size)

        return SampleSelectionResult(
            selected_items=tuple(selected),
            selection_method="Systematic Sampling",
            sample_size=len(selected),
            requested_sample_size=sample_size,
            population_size=n,
            sampling_interval=interval,
            metadata={
                "start_index": start,
                "interval": interval,
                "seed": seed if seed is not None else "none",
            },
        )

    @classmethod
    def stratified_sampling(
        cls,
        population: Sequence[SampleItem],
        bands: Sequence[StratificationBand],
        value_key: str = "value",
        seed: int | None = None,
    ) -> SampleSelectionResult:
        """Random sample within each value band.

        Bands are inclusive at both ends. An item belongs to the first band
        (in the order given) whose range contains its value, so an item on a
        boundary shared by two bands is only ever drawn once.
        """
        strata: list[list[SampleItem]] = [[] for _ in bands]
        unassigned = 0
        for item in population:
            value = cls._value(item, value_key)
            for idx, band in enumerate(bands):
                if band.contains(value):
                    strata[idx].append(item)
                    break
            else:
                unassigned += 1

        selected: list[SampleItem] = []
        strata_results: dict[str, int] = {}
        requested = 0
        for idx, (band, stratum) in enumerate(zip(bands, strata)):
            if band.sample_size < 0:
                raise InvalidSampleSizeError(
                    f"Band '{band.name}' has a negative sample size",
                    band=band.name,
                )
            requested += band.sample_size
            stratum_size = min(band.sample_size, len(stratum))
            band_seed = seed + idx if seed is not None else None
            stratum_sample = cls.random_sampling(stratum, stratum_size, seed=band_seed)
            selected.extend(stratum_sample.selected_items)
            strata_results[band.name] = stratum_sample.sample_size

        if unassigned:
            logger.debug("Stratified sampling: %d items fall outside every band", unassigned)

        return SampleSelectionResult(
            selected_items=tuple(selected),
            selection_method="Stratified Sampling",
            sample_size=len(selected),
            requested_sample_size=requested,
            population_size=len(population),
            metadata={
                "stratification_bands": len(bands),
                "strata_results": strata_results,
                "unassigned_items": unassigned,
                "seed": seed if seed is not None else "none",
            },
        )

    @classmethod
    def monetary_unit_sampling(
        cls,
        population: Sequence[SampleItem],
        sample_size: int,
        value_key: str = "value",
        seed: int | None = None,
        start_point: float | None = None,
    ) -> SampleSelectionResult:
        """Probability-proportional-to-size selection over cumulative value.

        Each of ``sample_size`` targets ``start + i * interval`` selects the
        item whose monetary range contains it. An item hit by several targets
        is selected once and not replaced, so the achieved size can be smaller
        than requested.

        Raises:
            NegativeValueError: Any item has a negative value.
            ZeroPopulationValueError: The population's total value is zero.
        """
        if sample_size < 1:
            raise InvalidSampleSizeError(
                f"Sample size must be at least 1 (got {sample_size})",
                sample_size=sample_size,
            )

        cumulative: list[float] = []
        total = 0.0
        for item in population:
            value = cls._value(item, value_key)
            if value < 0:
                raise NegativeValueError(
                    "MUS cannot be used with negative values",
                    item_id=item.get("id"),
                    value=value,
                )
            total += value
            cumulative.append(total)

        if total == 0:
            raise ZeroPopulationValueError("Total population value is zero")

        interval = total / sample_size
        if start_point is None:
            rand = seeded_random(seed) if seed is not None else random.random
            start = rand() * interval
        else:
            if not 0 <= start_point < interval:
                raise InvalidSampleSizeError(
                    f"Start point {start_point} must lie in [0, {interval})",
                    start_point=start_point,
                )
            start = start_point

        selected: list[SampleItem] = []
        seen: set[Hashable] = set()
        for i in range(sample_size):
            target = start + i * interval
            idx = bisect_left(cumulative, target)
            if idx >= len(population):
                continue
            item = population[idx]
            key = cls._identity(item)
            if key in seen:
                continue
            seen.add(key)
            selected.append(item)

        logger.debug(
            "MUS: %d of %d requested, interval=%.2f start=%.2f",
            len(selected),
            sample_size,
            interval,
            start,
        )

        return SampleSelectionResult(
            selected_items=tuple(selected),
            selection_method="Monetary Unit Sampling (MUS)",
            sample_size=len(selected),
            requested_sample_size=sample_size,
            population_size=len(population),
            sampling_interval=interval,
            metadata={
                "total_population_value": total,
                "interval": interval,
                "start_point": start,
                "seed": seed if seed is not None else "none",
            },
        )

    @classmethod
    def top_stratum_sampling(
        cls,
        population: Sequence[SampleItem],
        threshold: float,
        remaining_sample_size: int,
        value_key: str = "value",
        seed: int | None = None,
    ) -> SampleSelectionResult:
        """Select every item at or above ``threshold`` plus a random sample of the rest."""
        if remaining_sample_size < 0:
            raise InvalidSampleSizeError(
                f"Remaining sample size cannot be negative (got {remaining_sample_size})",
                sample_size=remaining_sample_size,
            )

        top: list[SampleItem] = []
        rest: list[SampleItem] = []
        top_value = 0.0
        for item in population:
            value = cls._value(item, value_key)
            if value >= threshold:
                top.append(item)
                top_value += value
            else:
                rest.append(item)

        rest_sample = cls.random_sampling(rest, min(remaining_sample_size, len(rest)), seed=seed)
        selected = tuple(top) + rest_sample.selected_items

        return SampleSelectionResult(
            selected_items=selected,
            selection_method="Top Stratum Sampling",
            sample_size=len(selected),
            requested_sample_size=len(top) + remaining_sample_size,
            population_size=len(population),
            metadata={
                "threshold": threshold,
                "top_stratum_size": len(top),
                "top_stratum_value": top_value,
                "remaining_sample_size": rest_sample.sample_size,
                "seed": seed if seed is not None else "none",
            },
        )

    @staticmethod
    def calculate_sample_size(
        population_size: int,
        confidence_level: int,
        expected_error_rate: float,
        tolerable_error_rate: float,
        *,
        fpc_population_limit: int = FPC_POPULATION_LIMIT,
    ) -> int:
        """Attribute sampling size: n = z^2 p(1-p) / e^2 with finite population correction.

        Rates are percentages (5 means 5%). An expected error rate of 0 gives a
        size of 0.

        Raises:
            UnsupportedConfidenceLevelError: Confidence level not 90, 95 or 99.
            InvalidPrecisionError: A rate is outside [0, 100] or the tolerable rate
                does not exceed the expected rate.
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

        for name, rate in (("Expected", expected_error_rate), ("Tolerable", tolerable_error_rate)):
            if not 0 <= rate <= 100:
                raise InvalidPrecisionError(
                    f"{name} error rate must be between 0 and 100 (got {rate})",
                    expected_error_rate=expected_error_rate,
                    tolerable_error_rate=tolerable_error_rate,
                )

        p = expected_error_rate / 100
        precision = (tolerable_error_rate - expected_error_rate) / 100
        if precision <= 0:
            raise InvalidPrecisionError(
                "Tolerable error rate must be greater than expected error rate",
                expected_error_rate=expected_error_rate,
                tolerable_error_rate=tolerable_error_rate,
            )

        n = z * z * p * (1 - p) / (precision * precision)
        # n == 0 (no expected errors) needs no correction and would divide by zero when N == 1
        if n > 0 and population_size < fpc_population_limit:
            n = n / (1 + (n - 1) / population_size)

        return math.ceil(n)

    # ------------------------------------------------------------------ #
    #  Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _check_size(sample_size: int, population_size: int, *, minimum: int) -> None:
        if sample_size < minimum:
            raise InvalidSampleSizeError(
                f"Sample size must be at least {minimum} (got {sample_size})",
                sample_size=sample_size,
            )
        if sample_size > population_size:
            raise SampleSizeExceedsPopulationError(
                "Sample size cannot exceed population size",
                sample_size=sample_size,
                population_size=population_size,
            )

    @staticmethod
    def _value(item: SampleItem, value_key: str) -> float:
        raw = item.get(value_key)
        try:
            value = float(raw)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            raise SamplingError(
                f"Item {item.get('id')!r} has a non-numeric '{value_key}': {raw!r}",
                item_id=item.get("id"),
            ) from None
        if math.isnan(value):
            raise SamplingError(f"Item {item.get('id')!r} has a NaN '{value_key}'", item_id=item.get("id"))
        return value

    @staticmethod
    def _identity(item: SampleItem) -> Hashable:
        item_id = item.get("id")
        return item_id if item_id is not None else id(item)


def select_sample(
    method: str,
    population: Sequence[SampleItem],
    sample_size: int,
    **kwargs: Any,
) -> SampleSelectionResult:
    """Dispatch to a selection method by name (random, systematic, mus, top_stratum)."""
    methods: dict[str, Callable[..., SampleSelectionResult]] = {
        "random": SampleSelector.random_sampling,
        "systematic": SampleSelector.systematic_sampling,
        "mus": SampleSelector.monetary_unit_sampling,
        "monetary_unit": SampleSelector.monetary_unit_sampling,
    }
    key = method.lower().replace("-", "_")
    if key == "top_stratum":
        threshold = kwargs.pop("threshold")
        return SampleSelector.top_stratum_sampling(population, threshold, sample_size, **kwargs)
    if key not in methods:
        raise ValueError(f"Unknown sampling method: {method}")
    return methods[key](population, sample_size, **kwargs)
