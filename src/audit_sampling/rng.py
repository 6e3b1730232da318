"""Deterministic pseudo-random stream for reproducible selections."""

from __future__ import annotations

import random
from typing import Sequence, TypeVar

T = TypeVar("T")


class SeededRandom:
    """Seeded generator producing floats in [0, 1).

    Backed by ``random.Random``. Only ``random()`` is consumed because it is
    the one method whose output CPython keeps stable for a given seed; integer
    draws and shuffles are derived from it here.
    """

    def __init__(self, seed: int) -> None:
        self.seed = seed
        self._rng = random.Random(seed)

    def random(self) -> float:
        return self._rng.random()

    def below(self, upper: int) -> int:
        """Return an integer in ``[0, upper)``."""
        if upper <= 0:
            return 0
        return min(int(self.random() * upper), upper - 1)

    def shuffled(self, items: Sequence[T]) -> list[T]:
        """Return a Fisher-Yates shuffled copy of ``items``."""
        result = list(items)
        for i in range(len(result) - 1, 0, -1):
            j = self.below(i + 1)
            result[i], result[j] = result[j], result[i]
        return result
