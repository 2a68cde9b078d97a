"""Layered, topologically mutable network with incremental evaluation."""

from __future__ import annotations

import math
from collections import deque
from collections.abc import Iterable, Iterator, Sequence

from .adaptation import RewardTrend, adapt
from .errors import (
    ConstraintViolationError,
    InvalidStateError,
    InvalidTopologyError,
    NotFoundError,
    PreconditionFailedError,
)
from .identity import IdentityRegistry
from .neurons import Neuron, Synapse, SynapseKey
from .rules import MutationRules

Coordinates = tuple[int, int]

INPUT_HISTORY = 32
REWARD_HISTORY = 1024


class Network:
    """One individual: an ordered stack of layers of neurons.

    Depth 0 is the input layer and the last depth is the output layer.
    Neurons live in an arena keyed by identifier; ``_layers[depth][position]``
    holds the identifier at each coordinate and synapses are stored in a
    table keyed by ``(source_id, destination_id)``.
    """

    def __init__(
        self,
        rules: MutationRules,
        registry: IdentityRegistry,
        index: int = 0,
        reference: Network | None = None,
    ) -> None:
        self._rules = rules
        self._registry = registry
        self._id = registry.allocate("network")
        self._destroyed = False
        self._index = index
        self._alive = True
        self._score = 0.0
        self._rewards: deque[float] = deque(maxlen=REWARD_HISTORY)
        self._input_history: deque[frozenset[int]] = deque(maxlen=INPUT_HISTORY)
        self._trend = RewardTrend()
        self._layers: list[list[int]] = []
        self._neurons: dict[int, Neuron] = {}
        self._synapses: dict[SynapseKey, Synapse] = {}
        self._update_map: dict[int, set[int]] = {}
        self._map_dirty = True
        self.reset(reference)

    def __repr__(self) -> str:
        if self._destroyed:
            return "Network(destroyed)"
        return (
            f"Network(id={self._id}, index={self._index}, heights={self.heights}, "
            f"synapses={len(self._synapses)}, score={self._score:.3f})"
        )

    # -- identity and status -------------------------------------------------

    @property
    def id(self) -> int:
        self._ensure_exists()
        return self._id

    @property
    def index(self) -> int:
        return self._index

    @property
    def rules(self) -> MutationRules:
        return self._rules

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def alive(self) -> bool:
        self._ensure_exists()
        return self._alive

    @alive.setter
    def alive(self, value: bool) -> None:
        self._ensure_exists()
        if not isinstance(value, bool):
            msg = f"alive must be a boolean, got {value!r}."
            raise ConstraintViolationError(msg)
        self._alive = value

    @property
    def dead(self) -> bool:
        return not self.alive

    @dead.setter
    def dead(self, value: bool) -> None:
        if not isinstance(value, bool):
            msg = f"dead must be a boolean, got {value!r}."
            raise ConstraintViolationError(msg)
        self.alive = not value

    @property
    def score(self) -> float:
        self._ensure_exists()
        return self._score

    @property
    def rewards(self) -> tuple[float, ...]:
        """Rewards received so far, newest first."""
        self._ensure_exists()
        return tuple(self._rewards)

    @property
    def input_history(self) -> tuple[frozenset[int], ...]:
        """Changed input positions of recent presentations, oldest first."""
        return tuple(self._input_history)

    @property
    def dynamic(self) -> bool:
        return bool(self._rules.get("network.dynamic"))

    # -- shape ---------------------------------------------------------------

    @property
    def depth(self) -> int:
        self._ensure_exists()
        return len(self._layers)

    @property
    def heights(self) -> list[int]:
        self._ensure_exists()
        return [len(layer) for layer in self._layers]

    @property
    def height(self) -> int:
        return max(self.heights)

    def neuron(self, depth: int, position: int) -> Neuron:
        """Return the neuron at ``(depth, position)``."""
        self._ensure_exists()
        self._check_depth(depth)
        layer = self._layers[depth]
        if (
            isinstance(position, bool)
            or not isinstance(position, int)
            or not 0 <= position < len(layer)
        ):
            msg = f"No neuron at position {position!r} of depth {depth}."
            raise InvalidTopologyError(msg)
        return self._neurons[layer[position]]

    def neurons(self) -> Iterator[Neuron]:
        """Iterate over neurons in ascending ``(depth, position)`` order."""
        self._ensure_exists()
        for layer in self._layers:
            for neuron_id in layer:
                yield self._neurons[neuron_id]

    def layer(self, depth: int) -> tuple[Neuron, ...]:
        self._ensure_exists()
        self._check_depth(depth)
        return tuple(self._neurons[neuron_id] for neuron_id in self._layers[depth])

    def synapse(self, source: Coordinates, destination: Coordinates) -> Synapse:
        """Return the synapse between two coordinates."""
        start = self.neuron(*source)
        end = self.neuron(*destination)
        synapse = self._synapses.get((start.id, end.id))
        if synapse is None:
            msg = f"No synapse from {source} to {destination}."
            raise NotFoundError(msg)
        return synapse

    def synapses(self) -> Iterator[Synapse]:
        """Iterate over synapses ordered by source then destination coordinates."""
        self._ensure_exists()

        def order(synapse: Synapse) -> tuple[Coordinates, Coordinates]:
            return (
                self._neurons[synapse.source_id].coordinates,
                self._neurons[synapse.destination_id].coordinates,
            )

        return iter(sorted(self._synapses.values(), key=order))

    def endpoints(self, synapse: Synapse) -> tuple[Neuron, Neuron]:
        """Return the ``(source, destination)`` neurons of a synapse."""
        self._ensure_exists()
        try:
            return (
                self._neurons[synapse.source_id],
                self._neurons[synapse.destination_id],
            )
        except KeyError as error:
            msg = f"Synapse {synapse.id} does not belong to network {self._id}."
            raise NotFoundError(msg) from error

    # -- synapse operations --------------------------------------------------

    def connect(
        self,
        depth: int,
        position: int,
        target: int,
        weight: float,
    ) -> Synapse:
        """Connect ``(depth, position)`` to ``(depth + 1, target)``."""
        source = self.neuron(depth, position)
        if depth == len(self._layers) - 1:
            msg = "Cannot connect an output neuron forward."
            raise InvalidTopologyError(msg)
        next_layer = self._layers[depth + 1]
        if isinstance(target, bool) or not isinstance(target, int) or not (
            0 <= target < len(next_layer)
        ):
            msg = f"No neuron at position {target!r} of depth {depth + 1}."
            raise InvalidTopologyError(msg)
        destination = self._neurons[next_layer[target]]
        if (source.id, destination.id) in self._synapses:
            msg = f"Synapse {source.coordinates} -> {destination.coordinates} exists."
            raise InvalidTopologyError(msg)
        synapse = self._link(source, destination, weight)
        self._rebind(destination)
        self._map_dirty = True
        return synapse

    def disconnect(self, depth: int, position: int, target: int) -> None:
        """Remove the synapse ``(depth, position) -> (depth + 1, target)``."""
        source = self.neuron(depth, position)
        if depth == len(self._layers) - 1:
            msg = "Output neurons have no outgoing synapses."
            raise InvalidTopologyError(msg)
        destination = self.neuron(depth + 1, target)
        synapse = self._synapses.get((source.id, destination.id))
        if synapse is None:
            msg = f"No synapse {source.coordinates} -> {destination.coordinates}."
            raise NotFoundError(msg)
        self._drop_synapse(synapse)
        self._rebind(source)
        self._map_dirty = True

    # -- layer and neuron operations -----------------------------------------

    def add_layer(self) -> None:
        """Append a layer after the current output layer.

        The new layer copies the old output height, starts with zero bias and
        is fed one-to-one with weight 1, so the old output layer becomes the
        last hidden layer.
        """
        self._ensure_dynamic("add a layer")
        depth = len(self._layers)
        previous = self._layers[-1]
        self._layers.append([])
        for position in range(len(previous)):
            neuron = self._construct_neuron(depth, position, 0.0)
            self._layers[depth].append(neuron.id)
        for position, neuron_id in enumerate(previous):
            source = self._neurons[neuron_id]
            destination = self._neurons[self._layers[depth][position]]
            self._link(source, destination, 1.0)
            self._rebind(destination)
        self._map_dirty = True

    def remove_layer(self, depth: int) -> None:
        """Delete a hidden layer and shift deeper layers down by one.

        Every synapse incident on the removed layer is dropped; the layers on
        either side are left unconnected to each other.
        """
        self._ensure_dynamic("remove a layer")
        self._check_hidden_depth(depth, "remove layer")
        for neuron_id in list(self._layers[depth]):
            self._destroy_neuron(self._neurons[neuron_id])
        del self._layers[depth]
        for shifted in range(depth, len(self._layers)):
            for neuron_id in self._layers[shifted]:
                self._neurons[neuron_id].depth = shifted
        self._map_dirty = True

    def add_neuron(self, depth: int) -> Neuron:
        """Append a neuron with a random bias to a hidden layer."""
        self._ensure_dynamic("add a neuron")
        self._check_hidden_depth(depth, "add neuron")
        layer = self._layers[depth]
        bias = self._rules.run("neuron.bias.range")
        neuron = self._construct_neuron(depth, len(layer), bias)
        layer.append(neuron.id)
        self._map_dirty = True
        return neuron

    def remove_neuron(self, depth: int, position: int) -> None:
        """Delete a hidden neuron and shift later positions down by one."""
        self._ensure_dynamic("remove a neuron")
        self._check_hidden_depth(depth, "remove neuron")
        neuron = self.neuron(depth, position)
        layer = self._layers[depth]
        if len(layer) == 1:
            msg = f"Cannot remove the last neuron of depth {depth}."
            raise InvalidTopologyError(msg)
        self._destroy_neuron(neuron)
        del layer[position]
        for shifted, neuron_id in enumerate(layer):
            self._neurons[neuron_id].position = shifted
        self._map_dirty = True

    # -- evaluation ----------------------------------------------------------

    def calculate_update_map(self) -> dict[int, tuple[Coordinates, ...]]:
        """Rebuild the input position -> dependent neuron map."""
        self._ensure_exists()
        last = len(self._layers) - 1
        for depth in range(last, -1, -1):
            for neuron_id in self._layers[depth]:
                neuron = self._neurons[neuron_id]
                neuron.output_reachable = depth == last or any(
                    self._neurons[target].output_reachable
                    for target in neuron.outgoing
                )

        update_map: dict[int, set[int]] = {}
        for depth, layer in enumerate(self._layers):
            for neuron_id in layer:
                neuron = self._neurons[neuron_id]
                if depth == 0:
                    neuron.input_paths = frozenset((neuron.position,))
                else:
                    paths: set[int] = set()
                    for source_id in neuron.incoming:
                        paths |= self._neurons[source_id].input_paths
                    neuron.input_paths = frozenset(paths)
                if not neuron.output_reachable:
                    continue
                for position in neuron.input_paths:
                    update_map.setdefault(position, set()).add(neuron_id)

        self._update_map = update_map
        self._map_dirty = False
        return self.update_map

    @property
    def update_map(self) -> dict[int, tuple[Coordinates, ...]]:
        """Current update map as sorted neuron coordinates per input position."""
        self._ensure_exists()
        return {
            position: tuple(
                sorted(self._neurons[neuron_id].coordinates for neuron_id in group)
            )
            for position, group in sorted(self._update_map.items())
        }

    def refresh(self) -> list[float]:
        """Evaluate every neuron in ascending depth order."""
        self._ensure_exists()
        for layer in self._layers:
            for neuron_id in layer:
                self._neurons[neuron_id].update()
        return self._outputs()

    def propagate(self, positions: Iterable[int]) -> list[float]:
        """Re-evaluate only the neurons depending on the given input positions."""
        self._ensure_exists()
        pending: set[int] = set()
        for position in positions:
            pending |= self._update_map.get(position, set())
        ordered = sorted(
            (self._neurons[neuron_id] for neuron_id in pending),
            key=lambda neuron: neuron.coordinates,
        )
        for neuron in ordered:
            neuron.update()
        return self._outputs()

    @property
    def output(self) -> list[float]:
        self._ensure_exists()
        if not self._alive:
            msg = f"Network {self._id} is dead."
            raise InvalidStateError(msg)
        return self._outputs()

    def input(self, values: Sequence[float]) -> list[float]:
        """Present one input vector and run the reward/update flow.

        Returns:
            The outputs handed to the update callback, which are the
            adapted outputs when local adaptation kicked in.
        """
        self._ensure_exists()
        if not self._alive:
            msg = f"Cannot input into dead network {self._id}."
            raise InvalidStateError(msg)
        inputs = self._layers[0]
        if len(values) != len(inputs):
            msg = f"Expected {len(inputs)} inputs but received {len(values)}."
            raise ConstraintViolationError(msg)
        self._ensure_current()

        changed: set[int] = set()
        for position, value in enumerate(values):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                msg = f"Input {position} must be a number, got {value!r}."
                raise ConstraintViolationError(msg)
            neuron = self._neurons[inputs[position]]
            if value != neuron.value:
                changed.add(position)
            neuron.value = float(value)
        positions = frozenset(changed)
        self._input_history.append(positions)

        self.propagate(positions)
        outputs = self._apply_reward(self._outputs(), positions)
        update = self._rules.get("network.update.function")
        update(self._index, list(outputs))
        return outputs

    def reward(self, outputs: Sequence[float] | None = None) -> float:
        """Evaluate the configured reward for ``outputs`` without scoring it."""
        self._ensure_exists()
        values = list(outputs) if outputs is not None else self.output
        reward = self._rules.get("network.reward.function")(self._index, values)
        if reward is None:
            return 0.0
        if isinstance(reward, bool) or not isinstance(reward, (int, float)):
            msg = f"Reward function returned {reward!r}, expected a number."
            raise ConstraintViolationError(msg)
        if not math.isfinite(reward):
            msg = f"Reward function returned {reward!r}, expected a finite number."
            raise ConstraintViolationError(msg)
        return float(reward)

    # -- evolution -----------------------------------------------------------

    def evolve(self) -> None:
        """Apply one generation of structural and parameter mutation."""
        self._ensure_exists()
        entropy = self._rules.entropy
        dynamic = self.dynamic
        if dynamic:
            layers = self._rules.run("network.layers.mutate")
            for _ in range(min(layers.remove, len(self._layers) - 2)):
                self.remove_layer(entropy.integer(1, len(self._layers) - 1))
            for _ in range(layers.add):
                self.add_layer()

        for depth in range(len(self._layers)):
            layer = self._layers[depth]
            if dynamic and 0 < depth < len(self._layers) - 1:
                counts = self._rules.run("neuron.mutate")
                for _ in range(min(counts.remove, len(layer) - 1)):
                    self.remove_neuron(depth, entropy.integer(0, len(layer)))
                for _ in range(counts.add):
                    self.add_neuron(depth)

            for neuron_id in list(layer):
                neuron = self._neurons[neuron_id]
                change = self._rules.run("neuron.mutate").change
                if change:
                    neuron.bias += change
                if depth == 0:
                    continue
                for source_id in self._layers[depth - 1]:
                    self._mutate_synapse(self._neurons[source_id], neuron)
                self._rebind(neuron)

        self._map_dirty = True
        self._ensure_current()

    def _mutate_synapse(self, source: Neuron, destination: Neuron) -> None:
        mutation = self._rules.run("synapse.mutate")
        existing = self._synapses.get((source.id, destination.id))
        if existing is not None:
            if mutation.remove:
                self._drop_synapse(existing, rebind=False)
            elif mutation.change:
                existing.weight += mutation.change
        elif mutation.add:
            self._link(source, destination, self._rules.run("synapse.weight.range"))

    # -- lifecycle -----------------------------------------------------------

    def reset(self, reference: Network | None = None) -> None:
        """Rebuild the network empty, or as a structural clone of ``reference``."""
        self._ensure_exists()
        if reference is not None and not isinstance(reference, Network):
            msg = f"Reference must be a Network, got {type(reference).__name__}."
            raise ConstraintViolationError(msg)
        if reference is not None:
            reference._ensure_exists()

        self._score = 0.0
        self._rewards.clear()
        self._input_history.clear()
        self._trend.clear()
        self._clear_topology()

        if reference is not None:
            self._clone_topology(reference)
        else:
            heights = (
                [self._rules.get("network.inputs"), self._rules.get("network.outputs")]
                if self.dynamic
                else self._rules.get("network.layers")
            )
            for depth, height in enumerate(heights):
                self._layers.append([])
                for position in range(height):
                    neuron = self._construct_neuron(depth, position, 0.0)
                    self._layers[depth].append(neuron.id)

        self._map_dirty = True
        self._ensure_current()

    def destroy(self) -> None:
        """Release every identifier and drop all cross-references."""
        self._ensure_exists()
        self._clear_topology()
        self._update_map = {}
        self._rewards.clear()
        self._input_history.clear()
        self._registry.release("network", self._id)
        self._destroyed = True

    # -- internals -----------------------------------------------------------

    def _outputs(self) -> list[float]:
        return [self._neurons[neuron_id].value for neuron_id in self._layers[-1]]

    def _apply_reward(
        self,
        outputs: list[float],
        changed: frozenset[int],
    ) -> list[float]:
        reward = self.reward(outputs)
        if self._rules.get("mutate.adapt"):
            previous = self._rewards[0] if self._rewards else 0.0
            if self._trend.observe(reward - previous):
                outputs = adapt(self, changed, baseline=reward)
                reward = self.reward(outputs)
        self._score += reward
        self._rewards.appendleft(reward)
        return outputs

    def _ensure_current(self) -> None:
        if self._map_dirty:
            self.calculate_update_map()
            self.refresh()

    def _ensure_exists(self) -> None:
        if self._destroyed:
            msg = "Network has been destroyed."
            raise InvalidStateError(msg)

    def _ensure_dynamic(self, action: str) -> None:
        self._ensure_exists()
        if not self.dynamic:
            msg = f"Cannot {action}: network is not dynamic."
            raise PreconditionFailedError(msg)

    def _check_depth(self, depth: int) -> None:
        if (
            isinstance(depth, bool)
            or not isinstance(depth, int)
            or not 0 <= depth < len(self._layers)
        ):
            msg = f"No layer at depth {depth!r}."
            raise InvalidTopologyError(msg)

    def _check_hidden_depth(self, depth: int, action: str) -> None:
        self._check_depth(depth)
        if depth == 0:
            msg = f"Cannot {action} at the input layer."
            raise InvalidTopologyError(msg)
        if depth == len(self._layers) - 1:
            msg = f"Cannot {action} at the output layer."
            raise InvalidTopologyError(msg)

    def _construct_neuron(self, depth: int, position: int, bias: float) -> Neuron:
        neuron = Neuron(
            identifier=self._registry.allocate("neuron"),
            depth=depth,
            position=position,
            bias=bias,
            bias_range=self._rules.get("neuron.bias.range"),
            activation=self._rules.get("neuron.activation.function"),
        )
        self._neurons[neuron.id] = neuron
        return neuron

    def _destroy_neuron(self, neuron: Neuron) -> None:
        for synapse in list(neuron.incoming.values()):
            self._drop_synapse(synapse)
        for synapse in list(neuron.outgoing.values()):
            self._drop_synapse(synapse)
        self._registry.release("neuron", neuron.id)
        neuron.detach()
        del self._neurons[neuron.id]

    def _link(self, source: Neuron, destination: Neuron, weight: float) -> Synapse:
        synapse = Synapse(
            identifier=self._registry.allocate("synapse"),
            source_id=source.id,
            destination_id=destination.id,
            weight=weight,
            weight_range=self._rules.get("synapse.weight.range"),
        )
        self._synapses[synapse.key] = synapse
        source.outgoing[destination.id] = synapse
        destination.incoming[source.id] = synapse
        return synapse

    def _drop_synapse(self, synapse: Synapse, *, rebind: bool = True) -> None:
        source = self._neurons[synapse.source_id]
        destination = self._neurons[synapse.destination_id]
        del self._synapses[synapse.key]
        del source.outgoing[destination.id]
        del destination.incoming[source.id]
        self._registry.release("synapse", synapse.id)
        if rebind:
            self._rebind(destination)

    def _rebind(self, neuron: Neuron) -> None:
        terms = sorted(
            (
                (self._neurons[source_id], synapse)
                for source_id, synapse in neuron.incoming.items()
            ),
            key=lambda term: term[0].position,
        )
        neuron.rebind(terms, holds_input=neuron.depth == 0)

    def _clear_topology(self) -> None:
        for synapse in list(self._synapses.values()):
            self._registry.release("synapse", synapse.id)
        self._synapses.clear()
        for neuron in self._neurons.values():
            self._registry.release("neuron", neuron.id)
            neuron.detach()
        self._neurons.clear()
        self._layers = []
        self._update_map = {}

    def _clone_topology(self, reference: Network) -> None:
        mapping: dict[int, Neuron] = {}
        for depth, layer in enumerate(reference._layers):
            self._layers.append([])
            for position, neuron_id in enumerate(layer):
                original = reference._neurons[neuron_id]
                neuron = self._construct_neuron(depth, position, original.bias)
                self._layers[depth].append(neuron.id)
                mapping[neuron_id] = neuron
        for synapse in reference._synapses.values():
            self._link(
                mapping[synapse.source_id],
                mapping[synapse.destination_id],
                synapse.weight,
            )
        for neuron in mapping.values():
            self._rebind(neuron)


__all__ = ["Coordinates", "Network"]
