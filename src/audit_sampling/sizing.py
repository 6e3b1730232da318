"""Statistical sample-size formulas.

Substantive tests use monetary-unit sizing derived from the Poisson
distribution; control tests use the Cochran formula for proportions with a
finite-population correction. Both operate on the residual population and
share the same clamp and fallback policy.
"""

from __future__ import annotations

import math
from typing import Sequence

from .models import SamplingParameters, Transaction

MIN_SAMPLE_SIZE = 30
FALLBACK_RATE = 0.05
FALLBACK_CAP = 100

Z_SCORES = {90: 1.65, 95: 1.96, 99: 2.58}


def z_score(confidence_level: int) -> float:
    """Two-sided normal quantile for the confidence level (1.96 if unknown)."""
    return Z_SCORES.get(confidence_level, 1.96)


def poisson_factor(confidence_level: float) -> float:
    """Zero-error Poisson reliability factor, ``-ln(1 - c/100)``."""
    return -math.log(1 - confidence_level / 100)


def fallback_sample_size(population_size: int) -> int:
    """Heuristic size used when the formula inputs are missing."""
    return min(
        FALLBACK_CAP,
        max(MIN_SAMPLE_SIZE, math.ceil(population_size * FALLBACK_RATE)),
    )


def _clamp(size: int, population_size: int) -> int:
    return min(population_size, max(MIN_SAMPLE_SIZE, size))


def mus_sample_size(
    params: SamplingParameters,
    population: Sequence[Transaction],
) -> int:
    """Monetary-unit sample size for substantive tests.

    Args:
        params (SamplingParameters): Requires materiality and expected
            misstatement; otherwise the fallback heuristic applies.
        population (Sequence[Transaction]): Residual population.

    Returns:
        int: Base sample size before risk adjustment.
    """
    materiality = params.materiality
    expected = params.expected_misstatement
    if materiality is None or expected is None or materiality <= 0:
        return fallback_sample_size(len(population))

    population_sum = sum(t.amount_abs for t in population)
    size = math.ceil(
        (population_sum / materiality)
        * (poisson_factor(params.confidence_level) + expected / materiality)
    )
    return _clamp(size, len(population))


def attribute_sample_size(
    params: SamplingParameters,
    population: Sequence[Transaction],
) -> int:
    """Attribute sample size for control tests (Cochran with FPC).

    Args:
        params (SamplingParameters): Requires tolerable and expected deviation
            rates in percent; otherwise the fallback heuristic applies.
        population (Sequence[Transaction]): Residual population.

    Returns:
        int: Base sample size before risk adjustment.
    """
    tolerable = params.tolerable_deviation_rate
    expected = params.expected_deviation_rate
    if tolerable is None or expected is None:
        return fallback_sample_size(len(population))

    population_size = len(population)
    if population_size == 0:
        return 0

    precision = (tolerable - expected) / 100
    if precision <= 0:
        # no tolerance for deviations: every item has to be tested
        return population_size

    z = z_score(params.confidence_level)
    p = expected / 100
    q = 1 - p
    n0 = (z * z * p * q) / (precision * precision)
    if n0 <= 0:
        # no expected deviations: the formula gives nothing to correct
        return _clamp(0, population_size)
    n = n0 / (1 + (n0 - 1) / population_size)
    return _clamp(math.ceil(n), population_size)


def base_sample_size(
    params: SamplingParameters,
    population: Sequence[Transaction],
) -> int:
    """Dispatch to the sizing formula for the configured test type."""
    if not population:
        return 0
    if params.test_type == "SUBSTANTIVE":
        return mus_sample_size(params, population)
    return attribute_sample_size(params, population)


def final_sample_size(n_base: int, risk_factor: float) -> int:
    """Scale the base size by the risk multiplier, rounding up."""
    # round first so 30 * 1.1 stays 33 rather than ceiling float noise to 34
    return math.ceil(round(n_base * risk_factor, 9))
