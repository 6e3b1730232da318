"""Amount-based strata construction and sample allocation."""

from __future__ import annotations

import math
from typing import Sequence

from .models import Stratum, Transaction


def normalize_bounds(bounds: Sequence[float]) -> list[float]:
    """Return positive, de-duplicated bounds in ascending order."""
    return sorted({float(b) for b in bounds if b > 0})


def build_strata(
    transactions: Sequence[Transaction],
    bounds: Sequence[float],
    min_per_stratum: int,
) -> list[Stratum]:
    """Partition transactions into ``[lower, upper)`` strata by ``|amount|``.

    Args:
        transactions (Sequence[Transaction]): Residual population.
        bounds (Sequence[float]): Interior bounds; 0 and +inf are implied.
        min_per_stratum (int): Minimum allocation for each non-empty stratum.

    Returns:
        list[Stratum]: Strata ordered by ascending lower bound with zero
        allocations.
    """
    edges: list[float] = [0.0, *normalize_bounds(bounds), math.inf]
    strata = []
    for index, (lower, upper) in enumerate(zip(edges, edges[1:])):
        members = [t for t in transactions if lower <= t.amount_abs < upper]
        strata.append(
            Stratum(
                index=index,
                lower_bound=lower,
                upper_bound=None if math.isinf(upper) else upper,
                transactions=members,
                min_sample_size=min_per_stratum,
            )
        )
    return strata


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def allocate_sample(strata: Sequence[Stratum], total: int) -> list[Stratum]:
    """Distribute ``total`` sample items across strata.

    Each non-empty stratum first receives its floor
    ``min(min_sample_size, size)``. The remainder is shared in proportion to
    each stratum's absolute amount, rounded half-up and capped at the
    stratum's spare capacity. Rounding drift is then reconciled in ascending
    stratum index order: increments go to strata with spare capacity,
    decrements come from strata above their floor. When the floors alone
    exceed ``total`` they are trimmed one item at a time, cycling through
    the strata from the lowest index, so the allocations always sum to
    ``min(total, population size)``.

    Args:
        strata (Sequence[Stratum]): Strata from ``build_strata``.
        total (int): Sample size to distribute.

    Returns:
        list[Stratum]: New strata carrying ``allocated_sample_size``; the
        inputs are left untouched.
    """
    allocations = [s.floor for s in strata]
    remaining = total - sum(allocations)

    total_weight = sum(s.total_amount for s in strata)
    if remaining > 0 and total_weight > 0:
        for i, stratum in enumerate(strata):
            if not stratum.size:
                continue
            share = _round_half_up(
                stratum.total_amount / total_weight * remaining
            )
            allocations[i] += min(share, stratum.size - allocations[i])

    drift = total - sum(allocations)
    for i, stratum in enumerate(strata):
        if drift == 0:
            break
        if drift > 0:
            step = min(drift, stratum.size - allocations[i])
            allocations[i] += step
            drift -= step
        else:
            step = min(-drift, allocations[i] - stratum.floor)
            allocations[i] -= step
            drift += step

    # floors alone exceed the total: trim them one item per stratum at a
    # time, lowest amount band first
    while drift < 0 and any(allocations):
        for i in range(len(allocations)):
            if drift == 0:
                break
            if allocations[i] > 0:
                allocations[i] -= 1
                drift += 1

    return [
        s.model_copy(update={"allocated_sample_size": n})
        for s, n in zip(strata, allocations)
    ]


def quantile_strata_bounds(amounts: Sequence[float], count: int) -> list[float]:
    """Suggest interior strata bounds at equal-count quantiles of ``|amount|``.

    Args:
        amounts (Sequence[float]): Population amounts (sign ignored).
        count (int): Desired number of strata.

    Returns:
        list[float]: Strictly increasing bounds, at most ``count - 1`` of them.
    """
    values = sorted(abs(a) for a in amounts)
    if not values or count < 2:
        return []

    bounds: list[float] = []
    for i in range(1, count):
        candidate = values[min(len(values) - 1, (i * len(values)) // count)]
        if candidate > 0 and (not bounds or candidate > bounds[-1]):
            bounds.append(candidate)
    return bounds
