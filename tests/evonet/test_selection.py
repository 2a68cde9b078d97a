from __future__ import annotations

from collections import Counter
from random import Random

import pytest
from evonet.entropy import RandomEntropy
from evonet.errors import ConstraintViolationError
from evonet.selection import draw_parents, selection_weights


class _ScriptedRandom(Random):
    """Random whose ``random()`` replays a fixed script."""

    script: list[float]

    def random(self) -> float:
        return self.script.pop(0)


def _scripted(*values: float) -> _ScriptedRandom:
    rng = _ScriptedRandom()
    rng.script = list(values)
    return rng


def test_full_equality_gives_uniform_weights() -> None:
    assert selection_weights([1.0, 5.0, -3.0, 2.0], equality=1.0) == [1.0] * 4


def test_equal_scores_give_unit_weights() -> None:
    assert selection_weights([2.5, 2.5, 2.5], equality=0.05) == [1.0, 1.0, 1.0]


def test_weights_blend_normalised_score_with_equality() -> None:
    weights = selection_weights([0.0, 1.0, 3.0], equality=0.25)

    assert weights == pytest.approx([0.25, 0.5, 1.0])


def test_invalid_equality_is_rejected() -> None:
    with pytest.raises(ConstraintViolationError):
        selection_weights([1.0], equality=0.0)
    with pytest.raises(ConstraintViolationError):
        selection_weights([1.0], equality=1.5)


def test_uniform_weights_select_each_individual_equally() -> None:
    entropy = RandomEntropy(rng=_scripted(0.1, 0.3, 0.6, 0.9))
    weights = selection_weights([3.0, 0.0, 7.0, 1.0], equality=1.0)

    assert draw_parents(weights, 4, entropy) == [0, 1, 2, 3]


def test_low_equality_selection_is_proportional_to_score() -> None:
    weights = selection_weights([0.0, 1.0, 3.0], equality=1e-9)
    draws = draw_parents(weights, 20_000, RandomEntropy(seed=123))
    counts = Counter(draws)

    assert counts[0] / 20_000 == pytest.approx(0.0, abs=1e-3)
    assert counts[1] / 20_000 == pytest.approx(0.25, abs=0.02)
    assert counts[2] / 20_000 == pytest.approx(0.75, abs=0.02)


def test_draw_parents_validates_arguments() -> None:
    entropy = RandomEntropy(seed=0)
    assert draw_parents([1.0], 0, entropy) == []
    with pytest.raises(ConstraintViolationError):
        draw_parents([], 2, entropy)
    with pytest.raises(ConstraintViolationError):
        draw_parents([1.0], -1, entropy)
