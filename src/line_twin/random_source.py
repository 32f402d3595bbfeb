"""Injectable random sources for the estimator and the digital twin."""

import random
from typing import Iterable, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class RandomSource(Protocol):
    """Anything that yields uniform floats in [0, 1)."""

    def next_f64(self) -> float:
        ...


class SeededRandomSource:
    """RandomSource backed by a private ``random.Random`` instance.

    Two sources built with the same seed produce the same sequence, so a
    seeded run reproduces its report or trajectory exactly.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = random.Random(seed)

    def next_f64(self) -> float:
        return self._rng.random()


class SequenceRandomSource:
    """Replays a fixed list of values, cycling when exhausted.

    Useful for pinning down exact samples: 0.5 gives zero jitter in the
    twin, and 0.0 gives u = 1 (z = 0) in the Box-Muller draw.
    """

    def __init__(self, values: Iterable[float]):
        self._values: List[float] = list(values)
        if not self._values:
            raise ValueError("SequenceRandomSource needs at least one value")
        for v in self._values:
            if not 0.0 <= v < 1.0:
                raise ValueError(f"Random values must be in [0, 1), got {v}")
        self._index = 0

    def next_f64(self) -> float:
        value = self._values[self._index % len(self._values)]
        self._index += 1
        return value


def default_source(rng: Optional[RandomSource] = None) -> RandomSource:
    """Return ``rng`` or a fresh unseeded source."""
    return rng if rng is not None else SeededRandomSource()
