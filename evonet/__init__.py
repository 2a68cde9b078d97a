"""Evolving layered neural networks with a genetic algorithm."""

from __future__ import annotations

from .activations import (
    DEFAULT_ACTIVATIONS,
    PARAMETRIC_ACTIVATIONS,
    resolve_activation,
)
from .adaptation import ParameterSnapshot, RewardTrend, adapt
from .config import (
    AdaptConfig,
    ChangeRule,
    EvolutionConfig,
    NetworkConfig,
    NeuronConfig,
    PopulationConfig,
    SynapseConfig,
    ValueRange,
    evolution_config_from_mapping,
    load_evolution_config,
)
from .entropy import EntropyService, RandomEntropy
from .errors import (
    ConstraintViolationError,
    EvonetError,
    InvalidStateError,
    InvalidTopologyError,
    NotFoundError,
    PreconditionFailedError,
)
from .identity import IdentityRegistry
from .metrics import GenerationRow, MetricsWriter
from .network import Network
from .neurons import Neuron, Synapse
from .population import Population, PopulationStatistics, PopulationStatus
from .reporters import EventLogger
from .rules import MutationRules, Mutations
from .selection import draw_parents, selection_weights
from .tasks import GATES, LogicGateTask, truth_table
from .training import RunSummary, run_evolution

__all__ = [
    "DEFAULT_ACTIVATIONS",
    "PARAMETRIC_ACTIVATIONS",
    "resolve_activation",
    "ParameterSnapshot",
    "RewardTrend",
    "adapt",
    "AdaptConfig",
    "ChangeRule",
    "EvolutionConfig",
    "NetworkConfig",
    "NeuronConfig",
    "PopulationConfig",
    "SynapseConfig",
    "ValueRange",
    "evolution_config_from_mapping",
    "load_evolution_config",
    "EntropyService",
    "RandomEntropy",
    "EvonetError",
    "InvalidStateError",
    "InvalidTopologyError",
    "ConstraintViolationError",
    "NotFoundError",
    "PreconditionFailedError",
    "IdentityRegistry",
    "GenerationRow",
    "MetricsWriter",
    "Network",
    "Neuron",
    "Synapse",
    "Population",
    "PopulationStatistics",
    "PopulationStatus",
    "EventLogger",
    "MutationRules",
    "Mutations",
    "draw_parents",
    "selection_weights",
    "GATES",
    "LogicGateTask",
    "truth_table",
    "RunSummary",
    "run_evolution",
]
