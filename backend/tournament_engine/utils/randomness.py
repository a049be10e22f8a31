"""
Injectable random sources.

Every stochastic step takes an explicit random.Random instance; nothing
touches the module-level generator. The shuffle is exposed one step at a
time so that a batch shuffle and a one-at-a-time reveal consume the
generator identically.
"""

import random
from typing import List, Optional, Sequence, TypeVar, Union

T = TypeVar("T")

RandomSource = Union[random.Random, int, None]


def make_rng(source: RandomSource = None) -> random.Random:
    """Accept a Random, an integer seed, or None (fresh, independent instance)."""
    if isinstance(source, random.Random):
        return source
    return random.Random(source)


def fisher_yates_step(pool: List[T], index: int, rng: random.Random) -> T:
    """Pick pool[index] for position `index` by swapping in a random remaining item."""
    j = rng.randrange(index, len(pool))
    pool[index], pool[j] = pool[j], pool[index]
    return pool[index]


def fisher_yates(items: Sequence[T], rng: random.Random) -> List[T]:
    pool = list(items)
    for i in range(len(pool)):
        fisher_yates_step(pool, i, rng)
    return pool


def maybe_shuffle(items: Sequence[T], rng: Optional[random.Random]) -> List[T]:
    if rng is None:
        return list(items)
    return fisher_yates(items, rng)
