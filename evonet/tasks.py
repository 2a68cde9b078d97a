"""Logic-gate environments that score a population through its hooks."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace

from .config import EvolutionConfig
from .errors import ConstraintViolationError
from .population import Population

GATES: dict[str, Callable[[int, int], int]] = {
    "and": lambda a, b: a & b,
    "or": lambda a, b: a | b,
    "xor": lambda a, b: a ^ b,
    "nand": lambda a, b: 1 - (a & b),
    "nor": lambda a, b: 1 - (a | b),
    "xnor": lambda a, b: 1 - (a ^ b),
}

Case = tuple[tuple[float, float], float]


def truth_table(name: str) -> tuple[Case, ...]:
    """Return the four ``((a, b), expected)`` cases of a two-input gate."""
    try:
        gate = GATES[name]
    except KeyError as error:
        msg = f"Unknown logic gate {name!r}; expected one of {sorted(GATES)}."
        raise ConstraintViolationError(msg) from error
    return tuple(
        ((float(a), float(b)), float(gate(a, b))) for a in (0, 1) for b in (0, 1)
    )


@dataclass(slots=True)
class LogicGateTask:
    """Presents a gate's truth table to every network in turn.

    The task is the population's environment: its :meth:`reward` and
    :meth:`update` are installed as the network hooks by :meth:`configure`.
    Reward is ``1 - |output - expected|`` and a case counts as solved when the
    first output lands on the expected side of 0.5.
    """

    name: str
    cases: tuple[Case, ...] = field(init=False)
    _expected: float = field(default=0.0, init=False, repr=False)
    _hits: dict[int, int] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self.name = self.name.lower()
        self.cases = truth_table(self.name)

    def configure(self, config: EvolutionConfig) -> EvolutionConfig:
        """Return ``config`` wired to this task with two inputs and one output."""
        network = config.network
        if not network.dynamic and (network.layers[0], network.layers[-1]) != (2, 1):
            msg = (
                "Static logic-gate networks need 2 inputs and 1 output, "
                f"got layers {list(network.layers)}."
            )
            raise ConstraintViolationError(msg)
        return replace(
            config,
            network=replace(
                network,
                inputs=2,
                outputs=1,
                reward=self.reward,
                update=self.update,
            ),
        )

    def reward(self, index: int, outputs: Sequence[float]) -> float:
        return 1.0 - abs(outputs[0] - self._expected)

    def update(self, index: int, outputs: Sequence[float]) -> None:
        if (outputs[0] >= 0.5) == (self._expected >= 0.5):
            self._hits[index] = self._hits.get(index, 0) + 1

    def evaluate(self, population: Population) -> list[float]:
        """Run every case through the population once.

        Returns:
            Fraction of cases solved by each network, in index order.
        """
        self._hits = {}
        for inputs, expected in self.cases:
            self._expected = expected
            population.input(lambda index, values=inputs: values)
        total = len(self.cases)
        return [
            self._hits.get(network.index, 0) / total for network in population.networks
        ]


__all__ = ["GATES", "LogicGateTask", "truth_table"]
