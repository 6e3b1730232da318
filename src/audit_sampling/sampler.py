"""Sampling engine: threshold split, sizing, selection and result assembly."""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from typing import Any, Sequence

from .logging_setup import get_logger
from .models import (
    CalculationTrace,
    EventCode,
    SampleItem,
    SamplePlan,
    SampleSet,
    SamplingMetadata,
    SamplingParameters,
    SamplingResult,
    Transaction,
)
from .risk import resolve_risk_factor
from .rng import SeededRandom
from .selection import mark_transaction, select_residual_sample
from .sizing import base_sample_size, final_sample_size
from .threshold import split_by_threshold
from .validator import parameter_warnings

log = get_logger("sampler")


def generate_sample(
    transactions: list[Transaction],
    params: SamplingParameters,
    timestamp: datetime | None = None,
) -> SamplingResult:
    """Generate a reproducible audit sample.

    The parameters are expected to have passed
    ``validator.validate_parameters``; they are not re-validated here.

    Args:
        transactions (list[Transaction]): Population to sample from.
        params (SamplingParameters): Audit configuration including the seed.
        timestamp (datetime | None): Generation time recorded in the plan;
            defaults to now (UTC).

    Returns:
        SamplingResult: Plan summary, sample partition, strata and metadata.

    Raises:
        UnsupportedSamplingMethodError: If ``params.method`` is unknown.
    """
    rng = SeededRandom(params.seed)

    targeted, residual, threshold = split_by_threshold(transactions, params)

    n_base = base_sample_size(params, residual)
    risk_factor = resolve_risk_factor(params.risk_level, params.risk_matrix)
    final_n = final_sample_size(n_base, risk_factor)
    log.info(
        EventCode.SAMPLE_SIZE_CALCULATED.value,
        test_type=params.test_type,
        residual_population=len(residual),
        n_base=n_base,
        risk_factor=risk_factor,
        final_n=final_n,
    )

    residual_sample, strata = select_residual_sample(
        residual, final_n, params, rng
    )
    targeted_sample = [
        mark_transaction(t, "TARGETED", "THRESHOLD") for t in targeted
    ]

    result = SamplingResult(
        plan=SamplePlan(
            recommended_sample_size=n_base,
            actual_sample_size=len(targeted_sample) + len(residual_sample),
            coverage_percentage=coverage_percentage(
                targeted_sample + residual_sample, params.population_sum
            ),
            method=params.method,
            test_type=params.test_type,
            generated_at=timestamp or datetime.now(timezone.utc),
            param_hash=param_hash(params),
            seed=params.seed,
        ),
        samples=SampleSet(
            targeted=targeted_sample,
            residual=residual_sample,
            total=targeted_sample + residual_sample,
        ),
        strata=strata,
        metadata=SamplingMetadata(
            threshold_used=threshold,
            strata_bounds=params.strata_bounds,
            risk_matrix_used=params.risk_matrix,
            calculations=CalculationTrace(
                n_base=n_base,
                risk_factor=risk_factor,
                final_n=final_n,
            ),
        ),
        warnings=parameter_warnings(params),
    )

    log.info(
        EventCode.SAMPLING_DONE.value,
        method=params.method,
        targeted=len(targeted_sample),
        residual=len(residual_sample),
        coverage=result.plan.coverage_percentage,
    )
    return result


def coverage_percentage(
    sample: Sequence[SampleItem], population_sum: float
) -> float:
    """Share of the population value covered by the sample, in percent.

    Args:
        sample (Sequence[SampleItem]): Targeted and residual selections.
        population_sum (float): Total absolute value of the population.

    Returns:
        float: Percentage rounded to two decimals; 0 for an empty population.
    """
    if population_sum <= 0:
        return 0.0
    covered = sum(item.amount_abs for item in sample)
    return round(covered / population_sum * 100, 2)


def param_hash(params: SamplingParameters | dict[str, Any]) -> str:
    """Stable fingerprint of a parameter set, independent of key order."""
    data = (
        params.model_dump(mode="json")
        if isinstance(params, SamplingParameters)
        else params
    )
    encoded = json.dumps(
        data, sort_keys=True, separators=(",", ":"), default=str
    )
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:16]


def verify_reproducibility(
    result: SamplingResult,
    transactions: list[Transaction],
    params: SamplingParameters,
) -> bool:
    """Check that re-running the engine reconstructs a stored result.

    Args:
        result (SamplingResult): Previously generated (or reloaded) result.
        transactions (list[Transaction]): Population used originally.
        params (SamplingParameters): Parameters used originally.

    Returns:
        bool: ``True`` when the hash, seed and ordered total sample match.
    """
    if result.plan.param_hash != param_hash(params):
        return False
    if result.plan.seed != params.seed:
        return False
    rerun = generate_sample(transactions, params)
    return [i.transaction_id for i in rerun.samples.total] == [
        i.transaction_id for i in result.samples.total
    ]
