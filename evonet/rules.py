"""Configuration lookups and the procedural rules that roll mutations."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .config import ChangeRule, EvolutionConfig
from .entropy import EntropyService, RandomEntropy
from .errors import NotFoundError


@dataclass(frozen=True, slots=True)
class Mutations:
    """Outcome of one mutation roll.

    ``add`` and ``remove`` are event counts (0/1 for synapses) and ``change``
    is the delta to apply, 0.0 when no change was rolled.
    """

    add: int = 0
    change: float = 0.0
    remove: int = 0


class MutationRules:
    """Resolves configuration paths and runs mutation rules against entropy."""

    def __init__(
        self,
        config: EvolutionConfig,
        entropy: EntropyService | None = None,
    ) -> None:
        self._config = config
        self._entropy = entropy if entropy is not None else RandomEntropy(config.seed)
        self._adapt_neuron = config.adapt.neuron or config.neuron.change
        self._adapt_synapse = config.adapt.synapse or config.synapse.change
        self._values = self._build_values()
        self._rules: dict[str, Callable[[], Any]] = {
            "neuron.bias.range": self._draw_bias,
            "synapse.weight.range": self._draw_weight,
            "network.layers.mutate": self._roll_layers,
            "neuron.mutate": self._roll_neuron,
            "synapse.mutate": self._roll_synapse,
            "mutate.adapt.neuron": lambda: self._roll_change(self._adapt_neuron),
            "mutate.adapt.synapse": lambda: self._roll_change(self._adapt_synapse),
        }

    @property
    def config(self) -> EvolutionConfig:
        return self._config

    @property
    def entropy(self) -> EntropyService:
        return self._entropy

    def get(self, path: str) -> Any:
        """Return the post-processed configuration value at ``path``."""
        try:
            return self._values[path]
        except KeyError as error:
            msg = f"Unknown configuration path: {path!r}"
            raise NotFoundError(msg) from error

    def run(self, path: str) -> Any:
        """Run the procedural rule registered at ``path``."""
        rule = self._rules.get(path)
        if rule is None:
            msg = f"No rule registered at configuration path: {path!r}"
            raise NotFoundError(msg)
        return rule()

    def _draw_bias(self) -> float:
        bias = self._config.neuron.bias
        return self._entropy.uniform(bias.min, bias.max)

    def _draw_weight(self) -> float:
        weight = self._config.synapse.weight
        return self._entropy.uniform(weight.min, weight.max)

    def _roll_change(self, rule: ChangeRule) -> float:
        if self._entropy.chance(rule.chance):
            return self._entropy.signed(rule.amount)
        return 0.0

    def _roll_layers(self) -> Mutations:
        network = self._config.network
        return Mutations(
            add=self._entropy.count(network.layer_add),
            remove=self._entropy.count(network.layer_remove),
        )

    def _roll_neuron(self) -> Mutations:
        neuron = self._config.neuron
        return Mutations(
            add=self._entropy.count(neuron.add),
            change=self._roll_change(neuron.change),
            remove=self._entropy.count(neuron.remove),
        )

    def _roll_synapse(self) -> Mutations:
        synapse = self._config.synapse
        return Mutations(
            add=int(self._entropy.chance(synapse.add)),
            change=self._roll_change(synapse.change),
            remove=int(self._entropy.chance(synapse.remove)),
        )

    def _build_values(self) -> dict[str, Any]:
        config = self._config
        network = config.network
        neuron = config.neuron
        synapse = config.synapse
        adapt = config.adapt
        adapt_neuron = self._adapt_neuron
        adapt_synapse = self._adapt_synapse
        return {
            "population.size": config.population.size,
            "population.equality": config.population.equality,
            "network.dynamic": network.dynamic,
            "network.inputs": network.input_size,
            "network.outputs": network.output_size,
            "network.layers": list(network.layers),
            "network.layers.mutate.add.chance": network.layer_add,
            "network.layers.mutate.remove.chance": network.layer_remove,
            "network.reward.function": network.reward,
            "network.update.function": network.update,
            "neuron.bias.range": neuron.bias,
            "neuron.bias.range.min": neuron.bias.min,
            "neuron.bias.range.max": neuron.bias.max,
            "neuron.activation.function": neuron.activation_function,
            "neuron.mutate.add.chance": neuron.add,
            "neuron.mutate.change.chance": neuron.change.chance,
            "neuron.mutate.change.by": neuron.change.amount,
            "neuron.mutate.remove.chance": neuron.remove,
            "synapse.weight.range": synapse.weight,
            "synapse.weight.range.min": synapse.weight.min,
            "synapse.weight.range.max": synapse.weight.max,
            "synapse.mutate.add.chance": synapse.add,
            "synapse.mutate.change.chance": synapse.change.chance,
            "synapse.mutate.change.by": synapse.change.amount,
            "synapse.mutate.remove.chance": synapse.remove,
            "mutate.adapt": adapt.enabled,
            "mutate.adapt.iterations": adapt.iterations,
            "mutate.adapt.neuron.change.chance": adapt_neuron.chance,
            "mutate.adapt.neuron.change.by": adapt_neuron.amount,
            "mutate.adapt.synapse.change.chance": adapt_synapse.chance,
            "mutate.adapt.synapse.change.by": adapt_synapse.amount,
            "seed": config.seed,
        }


__all__ = ["Mutations", "MutationRules"]
