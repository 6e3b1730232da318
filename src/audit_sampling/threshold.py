"""High-value threshold resolution and population splitting."""

from __future__ import annotations

from .logging_setup import get_logger
from .models import EventCode, SamplingParameters, Transaction
from .risk import resolve_risk_factor

log = get_logger("threshold")


def resolve_threshold(params: SamplingParameters) -> float | None:
    """Return the absolute threshold for the configured mode.

    Args:
        params (SamplingParameters): Sampling configuration.

    Returns:
        float | None: Threshold amount, or ``None`` when splitting is disabled
        or the mode's basis value is missing or not positive.
    """
    basis = {
        "performance-materiality": params.performance_materiality,
        "total-materiality": params.materiality,
        "custom": params.threshold_amount,
    }.get(params.threshold_mode)

    if basis is None or basis <= 0:
        return None
    return basis


def split_by_threshold(
    transactions: list[Transaction],
    params: SamplingParameters,
) -> tuple[list[Transaction], list[Transaction], float | None]:
    """Partition the population into targeted and residual items.

    Items with ``|amount| >= threshold`` are targeted (examined in full); the
    rest form the residual population that is sampled statistically.

    Args:
        transactions (list[Transaction]): Full population.
        params (SamplingParameters): Sampling configuration.

    Returns:
        tuple[list[Transaction], list[Transaction], float | None]: Targeted
        items, residual items and the threshold used.
    """
    threshold = resolve_threshold(params)
    if threshold is None:
        return [], list(transactions), None

    targeted = [t for t in transactions if t.amount_abs >= threshold]
    residual = [t for t in transactions if t.amount_abs < threshold]

    log.info(
        EventCode.THRESHOLD_SPLIT.value,
        mode=params.threshold_mode,
        threshold=threshold,
        targeted=len(targeted),
        residual=len(residual),
    )
    return targeted, residual, threshold


def suggest_threshold(params: SamplingParameters) -> float:
    """Suggest a high-value threshold from planning materiality figures.

    ``(PM - EM) / (confidence_factor * risk_factor)``, with the risk factor
    looked up for ``params.risk_level`` and a missing expected misstatement
    counted as 0.

    Args:
        params (SamplingParameters): Planning figures and risk settings.

    Returns:
        float: Suggested threshold; 0 when performance materiality is missing
        or the denominator is not positive.
    """
    if params.performance_materiality is None:
        return 0.0
    risk_factor = resolve_risk_factor(params.risk_level, params.risk_matrix)
    denominator = params.confidence_factor * risk_factor
    if denominator <= 0:
        return 0.0
    expected = params.expected_misstatement or 0.0
    return (params.performance_materiality - expected) / denominator
