from __future__ import annotations

import random
from typing import Iterable, Sequence, TypeVar

T = TypeVar("T")


class RNG:
    """Thin wrapper around random.Random for deterministic runs."""

    def __init__(self, seed: int) -> None:
        self.seed = seed
        self._random = random.Random(seed)

    def random(self) -> float:
        return self._random.random()

    def randint(self, low: int, high: int) -> int:
        """Inclusive on both ends."""
        return self._random.randint(low, high)

    def randrange(self, low: int, high: int) -> int:
        """Excludes ``high``."""
        return self._random.randrange(low, high)

    def choice(self, items: Sequence[T]) -> T:
        return self._random.choice(list(items))

    def shuffled(self, items: Iterable[T]) -> list[T]:
        copy = list(items)
        self._random.shuffle(copy)
        return copy

    def sample(self, population: Iterable[T], k: int) -> list[T]:
        population_list = list(population)
        return self._random.sample(population_list, k)

    def ip_address(self) -> str:
        return ".".join(str(self._random.randrange(0, 256)) for _ in range(4))
