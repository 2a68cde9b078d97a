"""Neuron and synapse primitives owned by a :class:`~evonet.network.Network`."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from .activations import ActivationFunction
from .config import ValueRange

SynapseKey = tuple[int, int]


class Synapse:
    """Weighted edge from a neuron at depth ``d`` to one at depth ``d + 1``.

    Endpoints are referenced by neuron identifier; the owning network keeps
    the synapse table keyed by ``(source_id, destination_id)``.
    """

    __slots__ = ("id", "source_id", "destination_id", "_weight", "_range")

    def __init__(
        self,
        identifier: int,
        source_id: int,
        destination_id: int,
        weight: float,
        weight_range: ValueRange,
    ) -> None:
        self.id = identifier
        self.source_id = source_id
        self.destination_id = destination_id
        self._range = weight_range
        self._weight = weight_range.clamp(weight)

    def __repr__(self) -> str:
        return (
            f"Synapse(id={self.id}, {self.source_id}->{self.destination_id}, "
            f"weight={self._weight:.4f})"
        )

    @property
    def key(self) -> SynapseKey:
        return (self.source_id, self.destination_id)

    @property
    def weight(self) -> float:
        return self._weight

    @weight.setter
    def weight(self, value: float) -> None:
        self._weight = self._range.clamp(value)


class Neuron:
    """Node identified by ``(depth, position)`` inside one network.

    The evaluation closure is rebuilt whenever the incoming synapse set or
    the bias changes. Synapse weights are read live, so weight changes need
    no recompilation.
    """

    __slots__ = (
        "id",
        "depth",
        "position",
        "value",
        "incoming",
        "outgoing",
        "input_paths",
        "output_reachable",
        "_bias",
        "_bias_range",
        "_activation",
        "_terms",
        "_holds_input",
        "_evaluate",
    )

    def __init__(
        self,
        identifier: int,
        depth: int,
        position: int,
        bias: float,
        bias_range: ValueRange,
        activation: ActivationFunction,
    ) -> None:
        self.id = identifier
        self.depth = depth
        self.position = position
        self.value = 0.0
        self.incoming: dict[int, Synapse] = {}
        self.outgoing: dict[int, Synapse] = {}
        self.input_paths: frozenset[int] = frozenset()
        self.output_reachable = False
        self._bias_range = bias_range
        self._bias = bias_range.clamp(bias)
        self._activation = activation
        self._terms: tuple[tuple[Neuron, Synapse], ...] = ()
        self._holds_input = depth == 0
        self._evaluate: Callable[[], float] = self._compile()

    def __repr__(self) -> str:
        return (
            f"Neuron(id={self.id}, depth={self.depth}, position={self.position}, "
            f"bias={self._bias:.4f}, value={self.value:.4f})"
        )

    @property
    def coordinates(self) -> tuple[int, int]:
        return (self.depth, self.position)

    @property
    def bias(self) -> float:
        return self._bias

    @bias.setter
    def bias(self, value: float) -> None:
        self._bias = self._bias_range.clamp(value)
        self._evaluate = self._compile()

    def rebind(
        self,
        terms: Iterable[tuple[Neuron, Synapse]],
        *,
        holds_input: bool,
    ) -> None:
        """Recompile evaluation against a new set of ``(source, synapse)`` terms."""
        self._terms = tuple(terms)
        self._holds_input = holds_input
        self._evaluate = self._compile()

    def update(self) -> float:
        """Recompute and store the neuron value."""
        self.value = self._evaluate()
        return self.value

    def detach(self) -> None:
        """Drop every cross-reference held by this neuron."""
        self.incoming.clear()
        self.outgoing.clear()
        self._terms = ()
        self.input_paths = frozenset()
        self.output_reachable = False
        self._evaluate = self._compile()

    def _compile(self) -> Callable[[], float]:
        if self._holds_input:
            return lambda: self.value

        activation = self._activation
        bias = self._bias
        terms = self._terms
        if not terms:
            return lambda: activation(bias)

        def evaluate() -> float:
            total = 0.0
            for source, synapse in terms:
                total += source.value * synapse.weight
            return activation(total + bias)

        return evaluate


__all__ = ["Neuron", "Synapse", "SynapseKey"]
