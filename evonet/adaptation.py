"""Local hill climbing run when a network's reward starts to fall."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .neurons import SynapseKey

if TYPE_CHECKING:
    from .network import Network


@dataclass(slots=True)
class RewardTrend:
    """Tracks the run of reward deltas sharing one sign.

    ``observe`` reports a flip when a negative delta follows a run of
    non-negative ones.
    """

    history: list[float] = field(default_factory=list)

    def observe(self, delta: float) -> bool:
        rising = delta >= 0.0
        if self.history and (self.history[-1] >= 0.0) == rising:
            self.history.append(delta)
            return False
        flipped = bool(self.history) and not rising
        self.history = [delta]
        return flipped

    def clear(self) -> None:
        self.history.clear()


@dataclass(frozen=True, slots=True)
class ParameterSnapshot:
    """Biases, weights and values of every neuron and synapse in a network."""

    biases: dict[int, float]
    weights: dict[SynapseKey, float]
    values: dict[int, float]

    @classmethod
    def capture(cls, network: Network) -> ParameterSnapshot:
        biases: dict[int, float] = {}
        values: dict[int, float] = {}
        for neuron in network.neurons():
            biases[neuron.id] = neuron.bias
            values[neuron.id] = neuron.value
        weights = {synapse.key: synapse.weight for synapse in network.synapses()}
        return cls(biases=biases, weights=weights, values=values)

    def restore(self, network: Network) -> None:
        for neuron in network.neurons():
            if neuron.bias != self.biases[neuron.id]:
                neuron.bias = self.biases[neuron.id]
            neuron.value = self.values[neuron.id]
        for synapse in network.synapses():
            synapse.weight = self.weights[synapse.key]


def perturb(network: Network) -> None:
    """Apply one round of adaptive bias and weight changes."""
    rules = network.rules
    for neuron in network.neurons():
        change = rules.run("mutate.adapt.neuron")
        if change:
            neuron.bias += change
        for _, synapse in sorted(neuron.incoming.items()):
            change = rules.run("mutate.adapt.synapse")
            if change:
                synapse.weight += change


def adapt(network: Network, changed: Iterable[int], *, baseline: float) -> list[float]:
    """Search nearby parameters for outputs rewarded above ``baseline``.

    Each trial starts from the parameters the network had on entry. The best
    improving trial is committed; when no trial improves, the network is left
    exactly as it was found. Trials only re-evaluate the neurons depending on
    ``changed``, so a committed trial is followed by a full refresh.

    Returns:
        The outputs of the committed parameters.
    """
    positions = frozenset(changed)
    original = ParameterSnapshot.capture(network)
    outputs = network.output
    best: ParameterSnapshot | None = None
    best_reward = baseline

    for _ in range(network.rules.get("mutate.adapt.iterations")):
        perturb(network)
        trial = network.propagate(positions)
        reward = network.reward(trial)
        if reward > baseline and (best is None or reward >= best_reward):
            best = ParameterSnapshot.capture(network)
            best_reward = reward
            outputs = trial
        original.restore(network)

    if best is not None:
        best.restore(network)
        outputs = network.refresh()
    return outputs


__all__ = ["ParameterSnapshot", "RewardTrend", "adapt", "perturb"]
