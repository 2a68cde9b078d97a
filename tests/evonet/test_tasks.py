from __future__ import annotations

import pytest
from evonet.config import (
    ChangeRule,
    EvolutionConfig,
    NetworkConfig,
    NeuronConfig,
    PopulationConfig,
    SynapseConfig,
)
from evonet.errors import ConstraintViolationError
from evonet.population import Population
from evonet.tasks import LogicGateTask, truth_table


def _inert_config(size: int = 3) -> EvolutionConfig:
    return EvolutionConfig(
        population=PopulationConfig(size=size),
        network=NetworkConfig(layers=(2, 2, 1)),
        neuron=NeuronConfig(add=0.0, change=ChangeRule(0.0, 0.0), remove=0.0),
        synapse=SynapseConfig(add=0.0, change=ChangeRule(0.0, 0.0), remove=0.0),
        seed=0,
    )


def test_truth_tables() -> None:
    assert truth_table("xor") == (
        ((0.0, 0.0), 0.0),
        ((0.0, 1.0), 1.0),
        ((1.0, 0.0), 1.0),
        ((1.0, 1.0), 0.0),
    )
    assert [expected for _, expected in truth_table("nand")] == [1.0, 1.0, 1.0, 0.0]
    with pytest.raises(ConstraintViolationError):
        truth_table("implies")


def test_configure_wires_hooks_and_checks_shape() -> None:
    task = LogicGateTask("XOR")

    with pytest.raises(ConstraintViolationError):
        task.configure(EvolutionConfig())

    wired = task.configure(
        EvolutionConfig(network=NetworkConfig(dynamic=True, inputs=5, outputs=3))
    )
    assert task.name == "xor"
    assert wired.network.input_size == 2
    assert wired.network.output_size == 1
    assert wired.network.reward == task.reward
    assert wired.network.update == task.update


def test_evaluate_scores_constant_networks() -> None:
    task = LogicGateTask("and")
    population = Population(task.configure(_inert_config()))
    population.start()

    accuracy = task.evaluate(population)

    assert accuracy == [0.25, 0.25, 0.25]
    assert [network.score for network in population.networks] == [2.0, 2.0, 2.0]
    assert all(len(network.rewards) == 4 for network in population.networks)
