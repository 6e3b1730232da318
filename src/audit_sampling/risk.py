"""Risk level multipliers and risk-weighted monetary amounts."""

from __future__ import annotations

from .models import RiskMatrix

# Weight applied to a transaction's risk score under each weighting mode
RISK_WEIGHT_ALPHA = {
    "disabled": 0.0,
    "moderate": 0.6,
    "high": 1.0,
}


def resolve_risk_factor(level: str, matrix: RiskMatrix) -> float:
    """Look up the sample-size multiplier for a qualitative risk level.

    Args:
        level (str): One of ``low``, ``moderate`` or ``high``.
        matrix (RiskMatrix): Multipliers supplied with the parameters.

    Returns:
        float: Multiplier applied to the base sample size.

    Raises:
        ValueError: If ``level`` is not a known risk level.
    """
    factors = matrix.model_dump()
    if level not in factors:
        raise ValueError(f"Unknown risk level: {level!r}")
    return factors[level]


def risk_weighted_amount(
    amount: float,
    risk_score: float | None,
    weighting: str,
) -> float:
    """Scale an absolute amount by its risk score for PPS selection.

    Args:
        amount (float): Signed transaction amount.
        risk_score (float | None): Score in [0, 1]; ``None`` counts as 0.
        weighting (str): ``disabled``, ``moderate`` or ``high``.

    Returns:
        float: Non-negative weighted amount.
    """
    base = abs(amount)
    alpha = RISK_WEIGHT_ALPHA.get(weighting, 0.0)
    if alpha == 0.0:
        return base
    return base * (1 + alpha * (risk_score or 0.0))
