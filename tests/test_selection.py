"""Tests for the residual selection strategies."""

from __future__ import annotations

import pytest

from audit_sampling.models import SamplingParameters, Transaction
from audit_sampling.rng import SeededRandom
from audit_sampling.selection import (
    UnsupportedSamplingMethodError,
    mark_transaction,
    monetary_unit_sample,
    select_residual_sample,
    simple_random_sample,
    stratified_sample,
    systematic_sample,
)
from conftest import make_transaction


def _ids(items) -> list[str]:
    return [i.transaction_id for i in items]


def test_mark_transaction_copies_fields() -> None:
    txn = make_transaction("x", -42.0, 0.3)
    item = mark_transaction(txn, "RESIDUAL", "SRS", rank=3)

    assert item.transaction_id == "x"
    assert item.amount == -42.0
    assert item.risk_score == 0.3
    assert item.sample_type == "RESIDUAL"
    assert item.selection_method == "SRS"
    assert item.rank == 3
    assert item.stratum_index is None


def test_srs_draws_distinct_items(
    standard_population: list[Transaction],
) -> None:
    sample = simple_random_sample(standard_population, 20, SeededRandom(7))

    assert len(sample) == 20
    assert len(set(_ids(sample))) == 20
    assert all(i.selection_method == "SRS" for i in sample)


def test_srs_is_seed_dependent(
    standard_population: list[Transaction],
) -> None:
    first = simple_random_sample(standard_population, 20, SeededRandom(7))
    again = simple_random_sample(standard_population, 20, SeededRandom(7))
    other = simple_random_sample(standard_population, 20, SeededRandom(8))

    assert _ids(first) == _ids(again)
    assert _ids(first) != _ids(other)


def test_srs_takes_whole_population_when_oversized(
    standard_population: list[Transaction],
) -> None:
    sample = simple_random_sample(standard_population, 500, SeededRandom(1))
    assert sorted(_ids(sample)) == sorted(_ids(standard_population))


def test_srs_empty_inputs() -> None:
    assert simple_random_sample([], 5, SeededRandom(1)) == []
    assert simple_random_sample(
        [make_transaction("a", 1.0)], 0, SeededRandom(1)
    ) == []


def test_systematic_uses_fixed_interval(
    standard_population: list[Transaction],
) -> None:
    sample = systematic_sample(standard_population, 10, SeededRandom(99))
    positions = [
        int(i.transaction_id[1:]) - 1 for i in sample
    ]

    assert len(sample) == 10
    assert [i.rank for i in sample] == list(range(1, 11))
    assert 0 <= positions[0] < 10
    assert all(b - a == 10 for a, b in zip(positions, positions[1:]))


def test_systematic_caps_at_population_size(
    standard_population: list[Transaction],
) -> None:
    sample = systematic_sample(standard_population, 150, SeededRandom(3))
    assert _ids(sample) == _ids(standard_population)


def test_mus_skips_zero_amounts() -> None:
    population = [
        make_transaction("zero", 0.0),
        make_transaction("a", 100.0),
        make_transaction("b", 300.0),
    ]
    sample = monetary_unit_sample(population, 10, SeededRandom(5))
    assert sorted(_ids(sample)) == ["a", "b"]


def test_mus_selects_distinct_items(
    standard_population: list[Transaction],
) -> None:
    sample = monetary_unit_sample(standard_population, 50, SeededRandom(11))
    ids = _ids(sample)

    assert 0 < len(ids) <= 50
    assert len(set(ids)) == len(ids)
    assert all(i.sample_type == "RESIDUAL" for i in sample)
    ranks = [i.rank for i in sample]
    assert ranks == sorted(ranks)


def test_mus_always_selects_items_larger_than_interval() -> None:
    """An item spanning whole intervals is hit regardless of the seed."""
    population = [make_transaction(f"s{i}", 100.0) for i in range(10)]
    population.append(make_transaction("big", 10000.0))

    for seed in range(1, 20):
        sample = monetary_unit_sample(population, 5, SeededRandom(seed))
        assert "big" in _ids(sample)


def test_mus_risk_weighting_favours_risky_items() -> None:
    population = [
        make_transaction("safe", 100.0, 0.0),
        make_transaction("risky", 100.0, 1.0),
    ]
    hits = {"safe": 0, "risky": 0}
    for seed in range(1, 201):
        for item in monetary_unit_sample(
            population, 1, SeededRandom(seed), risk_weighting="high"
        ):
            hits[item.transaction_id] += 1

    assert hits["risky"] > hits["safe"]


def test_stratified_tags_items_with_their_stratum(
    standard_population: list[Transaction],
) -> None:
    sample, strata = stratified_sample(
        standard_population, 40, SeededRandom(21), [25000, 50000, 75000], 2
    )

    assert strata is not None
    assert len(sample) == sum(s.allocated_sample_size for s in strata) == 40
    assert len(set(_ids(sample))) == 40
    for item in sample:
        stratum = strata[item.stratum_index]
        assert item.selection_method == "STRATIFIED"
        assert item.amount_abs >= stratum.lower_bound
        if stratum.upper_bound is not None:
            assert item.amount_abs < stratum.upper_bound


def test_stratified_never_exceeds_requested_size() -> None:
    """Per-stratum minimums are trimmed when they add up to more than n."""
    population = [
        make_transaction(f"s{k}-{i}", 100.0 * k + 50.0)
        for k in range(20)
        for i in range(2)
    ]
    bounds = [100.0 * k for k in range(1, 20)]

    sample, strata = stratified_sample(
        population, 32, SeededRandom(4), bounds, 2
    )

    assert len(sample) == 32
    assert sum(s.allocated_sample_size for s in strata) == 32
    assert len(set(_ids(sample))) == 32


def test_stratified_without_bounds_is_plain_srs(
    standard_population: list[Transaction],
) -> None:
    sample, strata = stratified_sample(
        standard_population, 10, SeededRandom(21), None, 2
    )
    expected = simple_random_sample(standard_population, 10, SeededRandom(21))

    assert strata is None
    assert _ids(sample) == _ids(expected)


def test_select_residual_sample_dispatches(
    standard_population: list[Transaction],
    default_params: SamplingParameters,
) -> None:
    params = default_params.model_copy(update={"method": "SYSTEMATIC"})
    sample, strata = select_residual_sample(
        standard_population, 10, params, SeededRandom(1)
    )
    assert strata is None
    assert {i.selection_method for i in sample} == {"SYSTEMATIC"}


def test_unsupported_method_raises(
    standard_population: list[Transaction],
    default_params: SamplingParameters,
) -> None:
    params = default_params.model_copy(update={"method": "CLUSTER"})
    with pytest.raises(UnsupportedSamplingMethodError, match="CLUSTER"):
        select_residual_sample(
            standard_population, 10, params, SeededRandom(1)
        )
