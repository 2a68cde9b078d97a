"""Sources of randomness injected into rules, networks and populations."""

from __future__ import annotations

import math
from collections.abc import Sequence
from random import Random
from typing import Protocol

from .errors import ConstraintViolationError


class EntropyService(Protocol):
    """Random draws required by mutation rules and selection."""

    def uniform(self, low: float, high: float) -> float: ...

    def integer(self, low: int, high: int) -> int: ...

    def chance(self, probability: float) -> bool: ...

    def count(self, probability: float) -> int: ...

    def signed(self, amount: float) -> float: ...

    def weighted(self, weights: Sequence[float]) -> int: ...


class RandomEntropy:
    """EntropyService backed by :class:`random.Random`.

    Seeding the generator makes every draw, and therefore every mutation and
    selection, reproducible across runs.
    """

    def __init__(self, seed: int | None = None, *, rng: Random | None = None) -> None:
        self._rng = rng if rng is not None else Random(seed)

    @property
    def rng(self) -> Random:
        return self._rng

    def random(self) -> float:
        """Return a float in ``[0, 1)``."""
        return self._rng.random()

    def uniform(self, low: float, high: float) -> float:
        """Return a float in ``[low, high)``."""
        if high < low:
            msg = f"Invalid range [{low}, {high})."
            raise ConstraintViolationError(msg)
        return low + self._rng.random() * (high - low)

    def integer(self, low: int, high: int) -> int:
        """Return an integer in ``[low, high)``."""
        if high <= low:
            msg = f"Empty integer range [{low}, {high})."
            raise ConstraintViolationError(msg)
        return self._rng.randrange(low, high)

    def chance(self, probability: float) -> bool:
        """Bernoulli draw succeeding with ``probability``."""
        return self._rng.random() < probability

    def count(self, probability: float) -> int:
        """Geometric draw: how many consecutive events of ``probability`` occur."""
        if probability <= 0.0:
            return 0
        if probability >= 1.0:
            msg = f"Event count probability must be below 1, got {probability}."
            raise ConstraintViolationError(msg)
        sample = 1.0 - self._rng.random()
        return int(math.log(sample) / math.log(probability))

    def signed(self, amount: float) -> float:
        """Return a float in ``[-amount, amount)``."""
        return self.uniform(-amount, amount)

    def weighted(self, weights: Sequence[float]) -> int:
        """Pick an index with probability proportional to its weight."""
        if not weights:
            msg = "Cannot choose from an empty set of weights."
            raise ConstraintViolationError(msg)
        total = 0.0
        for weight in weights:
            if weight < 0.0 or not math.isfinite(weight):
                msg = f"Weights must be finite and non-negative, got {weight!r}."
                raise ConstraintViolationError(msg)
            total += weight
        if total <= 0.0:
            msg = "At least one weight must be positive."
            raise ConstraintViolationError(msg)

        threshold = self._rng.random() * total
        for index, weight in enumerate(weights):
            if threshold < weight:
                return index
            threshold -= weight
        # Rounding can leave a sliver past the final bucket.
        return max(index for index, weight in enumerate(weights) if weight > 0.0)


__all__ = ["EntropyService", "RandomEntropy"]
