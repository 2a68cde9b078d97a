from __future__ import annotations

import math

import pytest
from evonet.config import (
    AdaptConfig,
    ChangeRule,
    EvolutionConfig,
    NetworkConfig,
    NeuronConfig,
    SynapseConfig,
)
from evonet.errors import (
    ConstraintViolationError,
    InvalidStateError,
    InvalidTopologyError,
    NotFoundError,
    PreconditionFailedError,
)
from evonet.identity import IdentityRegistry
from evonet.network import Network
from evonet.rules import MutationRules


def _frozen(activation: str = "sigmoid", **network: object) -> EvolutionConfig:
    """Config whose mutation rolls never fire."""
    return EvolutionConfig(
        network=NetworkConfig(layer_add=0.0, layer_remove=0.0, **network),
        neuron=NeuronConfig(
            activation=activation,
            add=0.0,
            change=ChangeRule(0.0, 0.0),
            remove=0.0,
        ),
        synapse=SynapseConfig(add=0.0, change=ChangeRule(0.0, 0.0), remove=0.0),
        seed=0,
    )


def _lively(
    seed: int = 11, adapt: AdaptConfig | None = None, **network: object
) -> EvolutionConfig:
    settings = {"dynamic": True, "inputs": 3, "outputs": 2}
    settings.update(network)
    return EvolutionConfig(
        network=NetworkConfig(layer_add=0.5, layer_remove=0.2, **settings),
        neuron=NeuronConfig(add=0.5, change=ChangeRule(0.5, 0.5), remove=0.3),
        synapse=SynapseConfig(add=0.6, change=ChangeRule(0.3, 0.2), remove=0.2),
        adapt=adapt if adapt is not None else AdaptConfig(),
        seed=seed,
    )


def _network(config: EvolutionConfig, index: int = 0) -> tuple[Network, IdentityRegistry]:
    registry = IdentityRegistry()
    return Network(MutationRules(config), registry, index=index), registry


def _edges(network: Network) -> list[tuple[tuple[int, int], tuple[int, int]]]:
    edges = []
    for synapse in network.synapses():
        source, destination = network.endpoints(synapse)
        edges.append((source.coordinates, destination.coordinates))
    return edges


def _expected_update_map(network: Network) -> dict[int, tuple[tuple[int, int], ...]]:
    edges = _edges(network)
    last = network.depth - 1
    reachable = {(last, position) for position in range(network.heights[last])}
    for depth in range(last - 1, -1, -1):
        for position in range(network.heights[depth]):
            node = (depth, position)
            if any(src == node and dst in reachable for src, dst in edges):
                reachable.add(node)

    paths: dict[tuple[int, int], set[int]] = {
        (0, position): {position} for position in range(network.heights[0])
    }
    for depth in range(1, network.depth):
        for position in range(network.heights[depth]):
            node = (depth, position)
            paths[node] = set()
            for src, dst in edges:
                if dst == node:
                    paths[node] |= paths[src]

    expected: dict[int, tuple[tuple[int, int], ...]] = {}
    for position in range(network.heights[0]):
        group = sorted(node for node in reachable if position in paths[node])
        if group:
            expected[position] = tuple(group)
    return expected


def test_unconnected_network_outputs_sigmoid_of_zero_bias() -> None:
    network, _ = _network(_frozen(layers=(2, 2, 1)))

    assert network.output == [0.5]
    assert network.input([0.7, -1.0]) == [0.5]
    assert network.heights == [2, 2, 1]
    assert network.height == 2
    assert network.depth == 3


def test_connect_with_linear_activation_propagates_input() -> None:
    network, _ = _network(_frozen("linear", layers=(1, 1)))

    network.connect(0, 0, 0, 1.0)
    network.input([1.0])

    assert network.neuron(1, 0).value == 1.0
    assert network.synapse((0, 0), (1, 0)).weight == 1.0


def test_disconnect_restores_bias_only_evaluation() -> None:
    network, _ = _network(_frozen("linear", layers=(1, 1)))
    network.connect(0, 0, 0, 0.5)
    assert network.input([1.0]) == [0.5]

    network.disconnect(0, 0, 0)

    assert network.input([1.0]) == [0.0]
    with pytest.raises(NotFoundError):
        network.synapse((0, 0), (1, 0))


def test_connect_rejects_invalid_topology() -> None:
    network, _ = _network(_frozen(layers=(2, 2, 1)))
    network.connect(0, 0, 1, 0.3)

    with pytest.raises(InvalidTopologyError):
        network.connect(0, 0, 1, 0.1)
    with pytest.raises(InvalidTopologyError):
        network.connect(2, 0, 0, 0.1)
    with pytest.raises(InvalidTopologyError):
        network.connect(0, 0, 5, 0.1)
    with pytest.raises(InvalidTopologyError):
        network.neuron(3, 0)
    with pytest.raises(NotFoundError):
        network.disconnect(0, 1, 0)


def test_parameters_are_clamped_to_configured_ranges() -> None:
    network, _ = _network(_frozen(layers=(1, 1)))
    synapse = network.connect(0, 0, 0, 7.5)
    neuron = network.neuron(1, 0)

    assert synapse.weight == 1.0
    synapse.weight = -3.0
    assert synapse.weight == -1.0
    neuron.bias = 100.0
    assert neuron.bias == 2.0
    neuron.bias = -math.inf
    assert neuron.bias == -2.0
    with pytest.raises(ConstraintViolationError):
        neuron.bias = math.nan
    with pytest.raises(ConstraintViolationError):
        synapse.weight = "heavy"  # type: ignore[assignment]


def test_remove_layer_shifts_deeper_layers_and_update_map() -> None:
    network, registry = _network(_frozen("linear", dynamic=True, inputs=2, outputs=1))
    network.add_layer()
    network.add_layer()
    network.add_neuron(1)
    network.add_neuron(2)
    network.connect(0, 0, 0, 1.0)
    network.connect(0, 1, 1, 1.0)
    network.connect(1, 1, 1, 1.0)
    network.connect(2, 1, 0, 1.0)
    assert network.heights == [2, 2, 2, 1]

    network.remove_layer(2)

    assert network.heights == [2, 2, 1]
    assert network.neuron(2, 0).depth == 2
    assert _edges(network) == [((0, 0), (1, 0)), ((0, 1), (1, 1))]
    assert network.calculate_update_map() == {}
    assert registry.live("neuron") == 5
    assert registry.live("synapse") == 2

    network.connect(1, 0, 0, 1.0)

    assert network.calculate_update_map() == {0: ((0, 0), (1, 0), (2, 0))}


def test_add_layer_feeds_new_output_one_to_one() -> None:
    network, _ = _network(_frozen("linear", dynamic=True, inputs=1, outputs=2))
    network.connect(0, 0, 0, 0.5)
    network.connect(0, 0, 1, -0.25)

    network.add_layer()

    assert network.heights == [1, 2, 2]
    assert network.synapse((1, 0), (2, 0)).weight == 1.0
    assert network.synapse((1, 1), (2, 1)).weight == 1.0
    assert network.neuron(2, 1).bias == 0.0
    assert network.input([1.0]) == [0.5, -0.25]


def test_remove_neuron_shifts_positions() -> None:
    network, registry = _network(_frozen(dynamic=True, inputs=2, outputs=1))
    network.add_layer()
    network.add_neuron(1)
    network.add_neuron(1)
    before = [neuron.id for neuron in network.layer(1)]

    network.remove_neuron(1, 0)

    after = network.layer(1)
    assert [neuron.id for neuron in after] == before[1:]
    assert [neuron.position for neuron in after] == [0, 1]
    assert not registry.exists("neuron", before[0])


def test_neuron_operations_refuse_boundaries_and_last_neuron() -> None:
    network, _ = _network(_frozen(dynamic=True, inputs=2, outputs=1))
    network.add_layer()

    with pytest.raises(InvalidTopologyError):
        network.add_neuron(0)
    with pytest.raises(InvalidTopologyError):
        network.remove_neuron(2, 0)
    with pytest.raises(InvalidTopologyError):
        network.remove_neuron(1, 0)
    with pytest.raises(InvalidTopologyError):
        network.remove_layer(0)


def test_structural_operations_require_dynamic_network() -> None:
    network, _ = _network(_frozen(layers=(2, 2, 1)))

    with pytest.raises(PreconditionFailedError):
        network.add_layer()
    with pytest.raises(PreconditionFailedError):
        network.remove_layer(1)
    with pytest.raises(PreconditionFailedError):
        network.add_neuron(1)
    with pytest.raises(PreconditionFailedError):
        network.remove_neuron(1, 0)


def test_update_map_matches_reachability_after_mutation() -> None:
    network, _ = _network(_lively())
    for _ in range(8):
        network.evolve()
        first = network.calculate_update_map()
        second = network.calculate_update_map()

        assert first == second
        assert first == _expected_update_map(network)


@pytest.mark.parametrize("adaptive", [False, True])
def test_incremental_evaluation_matches_full_refresh(adaptive: bool) -> None:
    network, _ = _network(_lively(seed=5, adapt=AdaptConfig(enabled=adaptive)))
    vectors = [[0.1, 0.2, 0.3], [0.1, 0.9, 0.3], [-1.0, 0.9, 0.3], [0.0, 0.0, 0.0]]
    for _ in range(6):
        network.evolve()
        for values in vectors:
            incremental = network.input(values)
            assert incremental == network.refresh()


def test_synapses_only_join_adjacent_layers() -> None:
    network, registry = _network(_lively(seed=23))
    for _ in range(10):
        network.evolve()
        coordinates = [neuron.coordinates for neuron in network.neurons()]
        assert len(coordinates) == len(set(coordinates))
        edges = _edges(network)
        assert len(edges) == len(set(edges))
        assert all(dst[0] == src[0] + 1 for src, dst in edges)
        assert registry.live("neuron") == sum(network.heights)
        assert registry.live("synapse") == len(edges)


def test_static_evolve_keeps_layer_sizes() -> None:
    config = _lively(dynamic=False, layers=(2, 3, 1))
    network, _ = _network(config)
    for _ in range(5):
        network.evolve()
        assert network.heights == [2, 3, 1]


def test_clone_copies_structure_and_parameters() -> None:
    config = _lively(seed=3)
    rules = MutationRules(config)
    registry = IdentityRegistry()
    parent = Network(rules, registry, index=0)
    for _ in range(4):
        parent.evolve()
    parent.input([0.5, 0.5, 0.5])

    child = Network(rules, registry, index=1, reference=parent)

    assert child.id != parent.id
    assert child.heights == parent.heights
    assert _edges(child) == _edges(parent)
    assert [n.bias for n in child.neurons()] == [n.bias for n in parent.neurons()]
    assert [s.weight for s in child.synapses()] == [s.weight for s in parent.synapses()]
    assert child.score == 0.0
    assert child.input([0.2, 0.4, 0.6]) == pytest.approx(parent.input([0.2, 0.4, 0.6]))


def test_reward_and_update_flow() -> None:
    received: list[tuple[int, list[float]]] = []

    def reward(index: int, outputs: list[float]) -> float:
        return outputs[0] * 2.0

    def update(index: int, outputs: list[float]) -> None:
        received.append((index, list(outputs)))

    config = _frozen("linear", layers=(1, 1), reward=reward, update=update)
    network, _ = _network(config, index=3)
    network.connect(0, 0, 0, 1.0)

    network.input([1.0])
    network.input([0.5])

    assert received == [(3, [1.0]), (3, [0.5])]
    assert network.rewards == (1.0, 2.0)
    assert network.score == 3.0


def test_reward_function_results_are_validated() -> None:
    network, _ = _network(_frozen(layers=(1, 1), reward=lambda index, outputs: None))
    network.input([1.0])
    assert network.score == 0.0

    network, _ = _network(_frozen(layers=(1, 1), reward=lambda index, outputs: "x"))
    with pytest.raises(ConstraintViolationError):
        network.input([1.0])


@pytest.mark.parametrize("bad", [math.inf, -math.inf, math.nan])
def test_non_finite_rewards_are_rejected(bad: float) -> None:
    network, _ = _network(_frozen(layers=(1, 1), reward=lambda index, outputs: bad))

    with pytest.raises(ConstraintViolationError):
        network.input([1.0])
    assert network.score == 0.0
    assert network.rewards == ()


def test_input_validation_and_dead_networks() -> None:
    network, _ = _network(_frozen(layers=(2, 1)))

    with pytest.raises(ConstraintViolationError):
        network.input([1.0])
    with pytest.raises(ConstraintViolationError):
        network.input([1.0, "on"])  # type: ignore[list-item]

    network.alive = False
    assert network.dead
    with pytest.raises(InvalidStateError):
        network.input([1.0, 0.0])
    with pytest.raises(InvalidStateError):
        network.output


def test_destroy_releases_identifiers() -> None:
    network, registry = _network(_lively(seed=9))
    for _ in range(3):
        network.evolve()
    assert registry.live("neuron") > 0

    network.destroy()

    assert registry.live("network") == 0
    assert registry.live("neuron") == 0
    assert registry.live("synapse") == 0
    assert network.destroyed
    with pytest.raises(InvalidStateError):
        network.input([0.0, 0.0, 0.0])


def test_reset_clears_score_and_topology() -> None:
    network, _ = _network(_lively(seed=2))
    for _ in range(3):
        network.evolve()
    network.input([1.0, 1.0, 1.0])

    network.reset()

    assert network.heights == [3, 2]
    assert network.score == 0.0
    assert network.rewards == ()
    assert list(network.synapses()) == []
