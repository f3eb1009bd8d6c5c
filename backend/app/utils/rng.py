from __future__ import annotations

import random
from typing import Optional, Protocol


class RandomSource(Protocol):
    """Anything yielding uniform floats in [0, 1); ``random.Random`` qualifies."""

    def random(self) -> float: ...


def uniform(rng: RandomSource, low: float, high: float) -> float:
    """One draw from U(low, high) consuming exactly one ``rng.random()``."""
    return low + rng.random() * (high - low)


def vehicle_rng(seed: Optional[int], vehicle_id: str) -> random.Random:
    """Independent stream per vehicle; seeded streams replay identically."""
    if seed is None:
        return random.Random()
    return random.Random(f"{seed}:{vehicle_id}")
