"""Configuration tree and YAML loading for evolution runs."""

from __future__ import annotations

import math
import statistics
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .activations import ActivationFunction, ActivationSpec, resolve_activation
from .errors import ConstraintViolationError

RewardFunction = Callable[[int, Sequence[float]], float | None]
UpdateFunction = Callable[[int, Sequence[float]], None]


def mean_reward(index: int, outputs: Sequence[float]) -> float:
    """Default reward: the mean of the network outputs."""
    return statistics.fmean(outputs) if outputs else 0.0


def ignore_update(index: int, outputs: Sequence[float]) -> None:
    """Default update hook: outputs go nowhere."""


def _check_probability(label: str, value: float, *, upper_open: bool = False) -> None:
    if upper_open:
        if not 0.0 <= value < 1.0:
            msg = f"{label} must be in [0, 1)."
            raise ConstraintViolationError(msg)
    elif not 0.0 <= value <= 1.0:
        msg = f"{label} must be in [0, 1]."
        raise ConstraintViolationError(msg)


@dataclass(frozen=True, slots=True)
class ValueRange:
    """Closed interval every bias or weight is clamped into."""

    min: float
    max: float

    def __post_init__(self) -> None:
        for label, value in (("min", self.min), ("max", self.max)):
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                msg = f"Range {label} must be a finite number, got {value!r}."
                raise ConstraintViolationError(msg)
        if self.min > self.max:
            msg = f"Range min {self.min} exceeds max {self.max}."
            raise ConstraintViolationError(msg)
        object.__setattr__(self, "min", float(self.min))
        object.__setattr__(self, "max", float(self.max))

    def clamp(self, value: float) -> float:
        """Clamp ``value`` into the range, rejecting NaN and non-numbers."""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            msg = f"Expected a number, got {value!r}."
            raise ConstraintViolationError(msg)
        if math.isnan(value):
            msg = "NaN cannot be assigned to a clamped parameter."
            raise ConstraintViolationError(msg)
        return min(max(float(value), self.min), self.max)


@dataclass(frozen=True, slots=True)
class ChangeRule:
    """Chance of perturbing a value and the largest perturbation size."""

    chance: float
    amount: float

    def __post_init__(self) -> None:
        _check_probability("change chance", self.chance)
        if not math.isfinite(self.amount) or self.amount < 0.0:
            msg = "change amount must be finite and >= 0."
            raise ConstraintViolationError(msg)


@dataclass(frozen=True, slots=True)
class PopulationConfig:
    """Population size and selection pressure."""

    size: int = 100
    equality: float = 0.05

    def __post_init__(self) -> None:
        if self.size <= 0:
            msg = "population size must be positive."
            raise ConstraintViolationError(msg)
        if not 0.0 < self.equality <= 1.0:
            msg = "equality must be in (0, 1]."
            raise ConstraintViolationError(msg)


@dataclass(frozen=True, slots=True)
class NetworkConfig:
    """Topology mode, layer sizes and the reward/update hooks."""

    dynamic: bool = False
    inputs: int = 1
    outputs: int = 1
    layers: tuple[int, ...] = (1, 2, 1)
    layer_add: float = 0.02
    layer_remove: float = 0.01
    reward: RewardFunction = mean_reward
    update: UpdateFunction = ignore_update

    def __post_init__(self) -> None:
        if self.inputs <= 0 or self.outputs <= 0:
            msg = "inputs and outputs must be positive."
            raise ConstraintViolationError(msg)
        layers = tuple(int(height) for height in self.layers)
        if len(layers) < 2 or any(height <= 0 for height in layers):
            msg = "layers must list at least two positive layer sizes."
            raise ConstraintViolationError(msg)
        object.__setattr__(self, "layers", layers)
        _check_probability("layer add chance", self.layer_add, upper_open=True)
        _check_probability("layer remove chance", self.layer_remove, upper_open=True)
        if not callable(self.reward) or not callable(self.update):
            msg = "reward and update must be callables."
            raise ConstraintViolationError(msg)

    @property
    def input_size(self) -> int:
        return self.inputs if self.dynamic else self.layers[0]

    @property
    def output_size(self) -> int:
        return self.outputs if self.dynamic else self.layers[-1]


@dataclass(frozen=True, slots=True)
class NeuronConfig:
    """Bias range, activation and structural/bias mutation chances."""

    activation: ActivationSpec = "sigmoid"
    bias: ValueRange = ValueRange(-2.0, 2.0)
    add: float = 0.08
    change: ChangeRule = ChangeRule(0.30, 0.5)
    remove: float = 0.06
    activation_function: ActivationFunction = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "activation_function", resolve_activation(self.activation)
        )
        _check_probability("neuron add chance", self.add, upper_open=True)
        _check_probability("neuron remove chance", self.remove, upper_open=True)


@dataclass(frozen=True, slots=True)
class SynapseConfig:
    """Weight range and synapse mutation chances."""

    weight: ValueRange = ValueRange(-1.0, 1.0)
    add: float = 0.25
    change: ChangeRule = ChangeRule(0.30, 0.2)
    remove: float = 0.15

    def __post_init__(self) -> None:
        _check_probability("synapse add chance", self.add)
        _check_probability("synapse remove chance", self.remove)


@dataclass(frozen=True, slots=True)
class AdaptConfig:
    """Intra-generation hill climbing settings.

    ``neuron`` and ``synapse`` override the change rules used while adapting;
    when unset the structural mutation change rules apply.
    """

    enabled: bool = False
    iterations: int = 10
    neuron: ChangeRule | None = None
    synapse: ChangeRule | None = None

    def __post_init__(self) -> None:
        if self.iterations <= 0:
            msg = "adapt iterations must be positive."
            raise ConstraintViolationError(msg)


@dataclass(frozen=True, slots=True)
class EvolutionConfig:
    population: PopulationConfig = PopulationConfig()
    network: NetworkConfig = NetworkConfig()
    neuron: NeuronConfig = NeuronConfig()
    synapse: SynapseConfig = SynapseConfig()
    adapt: AdaptConfig = AdaptConfig()
    seed: int | None = None


def _load_yaml(path: Path) -> Mapping[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, Mapping):
        msg = f"Expected mapping in YAML file: {path}"
        raise ConstraintViolationError(msg)
    return data


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, Mapping):
        msg = f"Expected mapping for '{key}'."
        raise ConstraintViolationError(msg)
    return value


def _percent(value: Any) -> float:
    return float(value) / 100.0


def _range(data: Mapping[str, Any], default: ValueRange) -> ValueRange:
    return ValueRange(
        min=float(data.get("min", default.min)),
        max=float(data.get("max", default.max)),
    )


def _change(data: Mapping[str, Any], default: ChangeRule) -> ChangeRule:
    return ChangeRule(
        chance=(
            _percent(data["chance"]) if "chance" in data else default.chance
        ),
        amount=float(data.get("amount", default.amount)),
    )


def _override(data: Mapping[str, Any], fallback: ChangeRule) -> ChangeRule | None:
    return _change(data, fallback) if data else None


def evolution_config_from_mapping(data: Mapping[str, Any]) -> EvolutionConfig:
    """Build a config from a mapping whose chances are given in percent."""
    defaults = EvolutionConfig()

    population = _section(data, "population")
    network = _section(data, "network")
    network_mutate = _section(network, "mutate")
    neuron = _section(data, "neuron")
    neuron_mutate = _section(neuron, "mutate")
    synapse = _section(data, "synapse")
    synapse_mutate = _section(synapse, "mutate")
    adapt = _section(data, "adapt")

    def percent_or(section: Mapping[str, Any], key: str, fallback: float) -> float:
        return _percent(section[key]) if key in section else fallback

    return EvolutionConfig(
        population=PopulationConfig(
            size=int(population.get("size", defaults.population.size)),
            equality=percent_or(population, "equality", defaults.population.equality),
        ),
        network=NetworkConfig(
            dynamic=bool(network.get("dynamic", defaults.network.dynamic)),
            inputs=int(network.get("inputs", defaults.network.inputs)),
            outputs=int(network.get("outputs", defaults.network.outputs)),
            layers=tuple(network.get("layers", defaults.network.layers)),
            layer_add=percent_or(network_mutate, "add", defaults.network.layer_add),
            layer_remove=percent_or(
                network_mutate, "remove", defaults.network.layer_remove
            ),
        ),
        neuron=NeuronConfig(
            activation=neuron.get("activation", defaults.neuron.activation),
            bias=_range(_section(neuron, "bias"), defaults.neuron.bias),
            add=percent_or(neuron_mutate, "add", defaults.neuron.add),
            change=_change(_section(neuron_mutate, "change"), defaults.neuron.change),
            remove=percent_or(neuron_mutate, "remove", defaults.neuron.remove),
        ),
        synapse=SynapseConfig(
            weight=_range(_section(synapse, "weight"), defaults.synapse.weight),
            add=percent_or(synapse_mutate, "add", defaults.synapse.add),
            change=_change(
                _section(synapse_mutate, "change"), defaults.synapse.change
            ),
            remove=percent_or(synapse_mutate, "remove", defaults.synapse.remove),
        ),
        adapt=AdaptConfig(
            enabled=bool(adapt.get("enabled", defaults.adapt.enabled)),
            iterations=int(adapt.get("iterations", defaults.adapt.iterations)),
            neuron=_override(_section(adapt, "neuron"), defaults.neuron.change),
            synapse=_override(_section(adapt, "synapse"), defaults.synapse.change),
        ),
        seed=(int(data["seed"]) if data.get("seed") is not None else None),
    )


def load_evolution_config(path: Path) -> EvolutionConfig:
    """Load an :class:`EvolutionConfig` from a YAML file."""
    return evolution_config_from_mapping(_load_yaml(Path(path)))


__all__ = [
    "AdaptConfig",
    "ChangeRule",
    "EvolutionConfig",
    "NetworkConfig",
    "NeuronConfig",
    "PopulationConfig",
    "RewardFunction",
    "SynapseConfig",
    "UpdateFunction",
    "ValueRange",
    "evolution_config_from_mapping",
    "ignore_update",
    "load_evolution_config",
    "mean_reward",
]
