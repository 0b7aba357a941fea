"""Randomness helpers for queue shuffling and requeue placement.

Every random decision the engine makes goes through a ``RandomSource`` so a
test (or a replay) can swap in a deterministic one.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import Protocol, TypeVar

from gauntlet.core.errors import EmptyInputError

T = TypeVar("T")


class RandomSource(Protocol):
    """Uniform random integer in an inclusive range."""

    def integer(self, low: int, high: int) -> int: ...


class SystemRandomSource:
    """``RandomSource`` backed by :class:`random.Random`."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def integer(self, low: int, high: int) -> int:
        if low > high:
            raise ValueError(f"Empty range [{low}, {high}]")
        return self._rng.randint(low, high)


def get_random_source(seed: int | None = None) -> RandomSource:
    """Create the default random source, seeded from settings if configured."""
    if seed is None:
        from gauntlet.core.settings import get_settings

        seed = get_settings().random_seed
    return SystemRandomSource(seed)


def shuffle(sequence: Sequence[T], rng: RandomSource | None = None) -> list[T]:
    """Return a uniformly shuffled copy of ``sequence`` (Fisher-Yates)."""
    rng = rng or SystemRandomSource()
    result = list(sequence)
    for i in range(len(result) - 1, 0, -1):
        j = rng.integer(0, i)
        result[i], result[j] = result[j], result[i]
    return result


def pick_one(sequence: Sequence[T], rng: RandomSource | None = None) -> T:
    """Pick a single element uniformly at random.

    Raises:
        EmptyInputError: If ``sequence`` is empty
    """
    if not sequence:
        raise EmptyInputError()
    rng = rng or SystemRandomSource()
    return sequence[rng.integer(0, len(sequence) - 1)]
