"""Business-rule validation and advisory warnings for sampling parameters.

Both functions are pure: they return messages and never raise, so the caller
decides whether to proceed.
"""

from __future__ import annotations

from .models import CONFIDENCE_LEVELS, RISK_LEVELS, SamplingParameters
from .risk import RISK_WEIGHT_ALPHA

THRESHOLD_BASIS = {
    "performance-materiality": (
        "performance_materiality",
        "Performance materiality",
    ),
    "total-materiality": ("materiality", "Materiality"),
    "custom": ("threshold_amount", "Threshold amount"),
}


def _is_positive(value: float | None) -> bool:
    return value is not None and value > 0


def validate_parameters(params: SamplingParameters) -> list[str]:
    """Return human-readable rule violations, empty when valid.

    Args:
        params (SamplingParameters): Configuration to check.

    Returns:
        list[str]: One message per violated rule.
    """
    errors: list[str] = []

    if params.population_size <= 0:
        errors.append("Population size must be greater than zero")
    if params.population_sum <= 0:
        errors.append("Population sum must be greater than zero")

    if params.test_type == "SUBSTANTIVE":
        errors.extend(_substantive_errors(params))
    else:
        errors.extend(_control_errors(params))

    if params.performance_materiality is not None:
        if params.performance_materiality <= 0:
            errors.append("Performance materiality must be greater than zero")
        elif (
            params.materiality is not None
            and params.performance_materiality > params.materiality
        ):
            errors.append("Performance materiality cannot exceed materiality")

    if params.confidence_level not in CONFIDENCE_LEVELS:
        errors.append("Confidence level must be 90, 95 or 99")
    if params.risk_level not in RISK_LEVELS:
        errors.append("Risk level must be low, moderate or high")
    if params.risk_weighting not in RISK_WEIGHT_ALPHA:
        errors.append("Risk weighting must be disabled, moderate or high")
    if params.seed <= 0:
        errors.append("Seed must be a positive integer")

    errors.extend(_threshold_errors(params))

    if params.min_per_stratum < 0:
        errors.append("Minimum per stratum cannot be negative")
    if params.strata_bounds and any(b <= 0 for b in params.strata_bounds):
        errors.append("Strata bounds must be positive amounts")

    for level, factor in params.risk_matrix.model_dump().items():
        if factor <= 0:
            errors.append(f"Risk matrix factor for {level} must be positive")

    return errors


def _substantive_errors(params: SamplingParameters) -> list[str]:
    errors = []
    if not _is_positive(params.materiality):
        errors.append(
            "Materiality must be greater than zero for substantive tests"
        )
    if params.expected_misstatement is not None:
        if params.expected_misstatement < 0:
            errors.append("Expected misstatement cannot be negative")
        elif (
            params.materiality is not None
            and params.expected_misstatement >= params.materiality
        ):
            errors.append("Expected misstatement must be less than materiality")
    return errors


def _control_errors(params: SamplingParameters) -> list[str]:
    errors = []
    if not _is_positive(params.tolerable_deviation_rate):
        errors.append(
            "Tolerable deviation rate must be greater than zero for control tests"
        )
    elif (
        params.expected_deviation_rate is not None
        and params.expected_deviation_rate >= params.tolerable_deviation_rate
    ):
        errors.append(
            "Expected deviation rate must be less than tolerable deviation rate"
        )
    expected = params.expected_deviation_rate
    if expected is not None and expected < 0:
        errors.append("Expected deviation rate cannot be negative")
    return errors


def _threshold_errors(params: SamplingParameters) -> list[str]:
    if params.threshold_mode == "disabled":
        return []
    basis = THRESHOLD_BASIS.get(params.threshold_mode)
    if basis is None:
        return [f"Unknown threshold mode: {params.threshold_mode}"]
    field, label = basis
    if not _is_positive(getattr(params, field)):
        return [
            f"{label} must be provided and positive for threshold mode "
            f"'{params.threshold_mode}'"
        ]
    return []


def parameter_warnings(params: SamplingParameters) -> list[str]:
    """Return advisory warnings that do not block sampling.

    Args:
        params (SamplingParameters): Configuration to review.

    Returns:
        list[str]: Warning messages, empty when nothing stands out.
    """
    warnings: list[str] = []
    materiality = params.materiality

    if (
        _is_positive(materiality)
        and params.expected_misstatement is not None
        and params.expected_misstatement > 0.5 * materiality
    ):
        warnings.append(
            "Expected misstatement exceeds 50% of materiality; "
            "the sample size will be large"
        )
    if (
        _is_positive(materiality)
        and _is_positive(params.performance_materiality)
        and params.performance_materiality < 0.5 * materiality
    ):
        warnings.append("Performance materiality is below 50% of materiality")
    if (
        params.test_type == "CONTROL"
        and _is_positive(params.tolerable_deviation_rate)
        and params.expected_deviation_rate is not None
        and params.expected_deviation_rate > 0.5 * params.tolerable_deviation_rate
    ):
        warnings.append(
            "Expected deviation rate exceeds 50% of the tolerable deviation rate"
        )
    if (
        params.threshold_mode == "custom"
        and _is_positive(materiality)
        and _is_positive(params.threshold_amount)
        and params.threshold_amount > materiality
    ):
        warnings.append(
            "Custom threshold exceeds materiality; items between materiality "
            "and the threshold are only covered statistically"
        )
    if params.strata_bounds and params.method != "STRATIFIED":
        warnings.append(
            "Strata bounds are ignored unless the STRATIFIED method is selected"
        )
    if params.method == "STRATIFIED" and params.strata_bounds:
        strata_count = len(set(params.strata_bounds)) + 1
        if params.min_per_stratum * strata_count > params.population_size:
            warnings.append(
                "Minimum per stratum across all strata exceeds the population size"
            )
    return warnings
