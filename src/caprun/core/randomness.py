from __future__ import annotations

import hashlib
import time
from typing import Any, Sequence

from caprun.contracts import RandomSource

_MODULUS = 2**32
_MULTIPLIER = 1664525
_INCREMENT = 1013904223


def normalize_seed(seed: int) -> int:
    return (int(seed) % _MODULUS) or 1


class LcgRandomSource(RandomSource):
    """Run-owned 32-bit linear congruential stream.

    Every call to ``rand`` advances the state exactly once, so two sources built
    from the same seed replay the same sequence as long as they are consumed in
    the same order.
    """

    def __init__(self, seed: int) -> None:
        self._seed = int(seed)
        self._state = normalize_seed(seed)
        self._draws = 0

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def draws(self) -> int:
        return self._draws

    def rand(self) -> float:
        self._state = (self._state * _MULTIPLIER + _INCREMENT) % _MODULUS
        self._draws += 1
        return self._state / _MODULUS

    def choice(self, items: Sequence[Any]) -> Any:
        if not items:
            raise ValueError("choice items must not be empty")
        return items[int(self.rand() * len(items))]

    def spawn(self, substream_id: str) -> RandomSource:
        digest = hashlib.sha256(f"{self._seed}:{substream_id}".encode("ascii", "ignore")).hexdigest()
        return LcgRandomSource(seed=int(digest[:8], 16))


def wall_clock_seed() -> int:
    return int(time.time() * 1000)
