"""Selection strategies applied to the residual population.

Every strategy consumes the run's ``SeededRandom`` and returns at most
``min(sample_size, len(population))`` distinct items tagged ``RESIDUAL``.
"""

from __future__ import annotations

import bisect
from itertools import accumulate
from typing import Callable

from .logging_setup import get_logger
from .models import SampleItem, SamplingParameters, Stratum, Transaction
from .risk import risk_weighted_amount
from .rng import SeededRandom
from .stratification import allocate_sample, build_strata

log = get_logger("selection")


class UnsupportedSamplingMethodError(ValueError):
    """Raised when a sampling method has no selection strategy."""


def mark_transaction(
    txn: Transaction,
    sample_type: str,
    selection_method: str | None = None,
    rank: int | None = None,
    stratum_index: int | None = None,
) -> SampleItem:
    """Create a sample item from a transaction.

    Args:
        txn (Transaction): Population item to annotate.
        sample_type (str): ``TARGETED`` or ``RESIDUAL``.
        selection_method (str | None): Label of the strategy that chose it.
        rank (int | None): 1-based selection rank, where meaningful.
        stratum_index (int | None): Stratum the item was drawn from.

    Returns:
        SampleItem: Annotated copy; the transaction itself is unchanged.
    """
    data = txn.model_dump(include=set(Transaction.model_fields))
    return SampleItem(
        **data,
        sample_type=sample_type,
        selection_method=selection_method,
        rank=rank,
        stratum_index=stratum_index,
    )


def simple_random_sample(
    transactions: list[Transaction],
    sample_size: int,
    rng: SeededRandom,
) -> list[SampleItem]:
    """Shuffle the population and take the first ``sample_size`` items."""
    if sample_size <= 0 or not transactions:
        return []
    chosen = rng.shuffled(transactions)[:sample_size]
    return [mark_transaction(t, "RESIDUAL", "SRS") for t in chosen]


def systematic_sample(
    transactions: list[Transaction],
    sample_size: int,
    rng: SeededRandom,
) -> list[SampleItem]:
    """Select every ``N // n``-th item from a random start.

    Args:
        transactions (list[Transaction]): Residual population in ledger order.
        sample_size (int): Requested number of items, capped at ``N``.
        rng (SeededRandom): Run generator, used once for the start.

    Returns:
        list[SampleItem]: Selections with 1-based ranks.
    """
    population_size = len(transactions)
    n = min(sample_size, population_size)
    if n <= 0:
        return []

    interval = population_size // n
    start = rng.below(interval)
    return [
        mark_transaction(
            transactions[(start + k * interval) % population_size],
            "RESIDUAL",
            "SYSTEMATIC",
            rank=k + 1,
        )
        for k in range(n)
    ]


def monetary_unit_sample(
    transactions: list[Transaction],
    sample_size: int,
    rng: SeededRandom,
    risk_weighting: str = "disabled",
) -> list[SampleItem]:
    """Probability-proportional-to-size selection over monetary units.

    Zero amounts carry no monetary units and are never selected. Each of the
    ``sample_size`` intervals contributes one random monetary unit; an item
    hit more than once is only taken the first time, so the achieved sample
    may be smaller than requested. When the request covers every non-zero
    item, all of them are returned in shuffled order.

    Args:
        transactions (list[Transaction]): Residual population.
        sample_size (int): Requested number of intervals.
        rng (SeededRandom): Run generator.
        risk_weighting (str): Weighting mode applied to amounts.

    Returns:
        list[SampleItem]: Distinct selections ranked by interval.
    """
    candidates = [t for t in transactions if t.amount_abs > 0]
    if sample_size <= 0 or not candidates:
        return []

    if sample_size >= len(candidates):
        return [
            mark_transaction(t, "RESIDUAL", "MUS", rank=k + 1)
            for k, t in enumerate(rng.shuffled(candidates))
        ]

    cumulative = list(
        accumulate(
            risk_weighted_amount(t.amount, t.risk_score, risk_weighting)
            for t in candidates
        )
    )
    total_weight = cumulative[-1]
    if total_weight <= 0:
        return []

    interval = total_weight / sample_size
    selected: list[SampleItem] = []
    seen: set[int] = set()
    for k in range(sample_size):
        target = rng.random() * interval + k * interval
        index = bisect.bisect_left(cumulative, target)
        if index >= len(candidates) or index in seen:
            continue
        seen.add(index)
        selected.append(
            mark_transaction(candidates[index], "RESIDUAL", "MUS", rank=k + 1)
        )

    if len(selected) < sample_size:
        log.info(
            "mus_interval_collisions",
            requested=sample_size,
            selected=len(selected),
        )
    return selected


def stratified_sample(
    transactions: list[Transaction],
    sample_size: int,
    rng: SeededRandom,
    strata_bounds: list[float] | None,
    min_per_stratum: int,
) -> tuple[list[SampleItem], list[Stratum] | None]:
    """Allocate across amount strata and draw SRS inside each stratum.

    Without bounds this is plain SRS over the whole population and no strata
    detail is returned.

    Returns:
        tuple[list[SampleItem], list[Stratum] | None]: Selections and the
        allocated strata.
    """
    if not strata_bounds:
        return simple_random_sample(transactions, sample_size, rng), None

    strata = allocate_sample(
        build_strata(transactions, strata_bounds, min_per_stratum),
        sample_size,
    )

    sample: list[SampleItem] = []
    for stratum in strata:
        if stratum.allocated_sample_size <= 0 or not stratum.transactions:
            continue
        drawn = simple_random_sample(
            stratum.transactions, stratum.allocated_sample_size, rng
        )
        sample.extend(
            item.model_copy(
                update={
                    "stratum_index": stratum.index,
                    "selection_method": "STRATIFIED",
                }
            )
            for item in drawn
        )
    return sample, strata


SelectionFn = Callable[
    [list[Transaction], int, SeededRandom, SamplingParameters],
    tuple[list[SampleItem], list[Stratum] | None],
]

SELECTORS: dict[str, SelectionFn] = {
    "SRS": lambda txns, n, rng, params: (
        simple_random_sample(txns, n, rng),
        None,
    ),
    "SYSTEMATIC": lambda txns, n, rng, params: (
        systematic_sample(txns, n, rng),
        None,
    ),
    "MUS": lambda txns, n, rng, params: (
        monetary_unit_sample(txns, n, rng, params.risk_weighting),
        None,
    ),
    "STRATIFIED": lambda txns, n, rng, params: stratified_sample(
        txns, n, rng, params.strata_bounds, params.min_per_stratum
    ),
}


def select_residual_sample(
    transactions: list[Transaction],
    sample_size: int,
    params: SamplingParameters,
    rng: SeededRandom,
) -> tuple[list[SampleItem], list[Stratum] | None]:
    """Run the strategy registered for ``params.method``.

    Raises:
        UnsupportedSamplingMethodError: If the method has no strategy.
    """
    selector = SELECTORS.get(params.method)
    if selector is None:
        raise UnsupportedSamplingMethodError(
            f"Unsupported sampling method: {params.method}"
        )
    return selector(transactions, sample_size, rng, params)
