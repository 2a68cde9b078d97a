"""Fitness-weighted parent selection for generational replacement."""

from __future__ import annotations

from collections.abc import Sequence

from .entropy import EntropyService
from .errors import ConstraintViolationError


def selection_weights(scores: Sequence[float], equality: float) -> list[float]:
    """Map scores to selection weights in ``[equality, 1]``.

    Each score is min-max normalised and blended as
    ``normalised * (1 - equality) + equality``. When every score is equal the
    normalised value is taken as 1, so all weights are 1.
    """
    if not 0.0 < equality <= 1.0:
        msg = "equality must be in (0, 1]."
        raise ConstraintViolationError(msg)
    if not scores:
        return []

    low = min(scores)
    high = max(scores)
    spread = high - low
    weights: list[float] = []
    for score in scores:
        normalised = (score - low) / spread if spread > 0.0 else 1.0
        weights.append(normalised * (1.0 - equality) + equality)
    return weights


def draw_parents(
    weights: Sequence[float],
    count: int,
    entropy: EntropyService,
) -> list[int]:
    """Draw ``count`` parent indices with replacement."""
    if count < 0:
        msg = "count must be >= 0."
        raise ConstraintViolationError(msg)
    if count and not weights:
        msg = "Cannot draw parents from an empty generation."
        raise ConstraintViolationError(msg)
    return [entropy.weighted(weights) for _ in range(count)]


__all__ = ["draw_parents", "selection_weights"]
