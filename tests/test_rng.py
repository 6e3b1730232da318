"""Tests for the deterministic random stream."""

from __future__ import annotations

from audit_sampling.rng import SeededRandom


def test_same_seed_same_sequence() -> None:
    rng1 = SeededRandom(42)
    rng2 = SeededRandom(42)
    assert [rng1.random() for _ in range(10)] == [
        rng2.random() for _ in range(10)
    ]


def test_different_seeds_diverge() -> None:
    rng1 = SeededRandom(42)
    rng2 = SeededRandom(43)
    assert [rng1.random() for _ in range(3)] != [
        rng2.random() for _ in range(3)
    ]


def test_values_in_unit_interval() -> None:
    rng = SeededRandom(7)
    assert all(0.0 <= rng.random() < 1.0 for _ in range(1000))


def test_below_stays_in_range() -> None:
    rng = SeededRandom(99)
    draws = [rng.below(5) for _ in range(500)]
    assert set(draws) == {0, 1, 2, 3, 4}
    assert rng.below(0) == 0


def test_shuffled_is_permutation_and_leaves_input() -> None:
    """Shuffling returns a reordered copy."""
    items = list(range(50))
    result = SeededRandom(5).shuffled(items)
    assert sorted(result) == items
    assert items == list(range(50))
    assert result != items
    assert result == SeededRandom(5).shuffled(items)
