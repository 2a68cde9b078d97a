"""Generational run loop driving a population against a logic-gate task."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from statistics import fmean
from time import perf_counter
from typing import Any

import yaml

from .config import EvolutionConfig
from .metrics import GenerationRow, MetricsWriter
from .network import Network
from .population import Population
from .reporters import EventLogger
from .tasks import LogicGateTask


@dataclass(frozen=True, slots=True)
class RunArtifacts:
    """Resolved file locations used for an evolution run."""

    root: Path
    metrics: Path
    events: Path
    champion: Path
    config: Path


@dataclass(frozen=True, slots=True)
class RunSummary:
    """Outcome of :func:`run_evolution`."""

    artifacts: RunArtifacts
    generations: int
    best_score: float
    best_accuracy: float
    solved: bool


def _allocate_run_dir(output_root: Path) -> Path:
    output_root.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    candidate = output_root / timestamp
    suffix = 1
    while candidate.exists():
        candidate = output_root / f"{timestamp}_{suffix:02d}"
        suffix += 1
    candidate.mkdir(parents=True, exist_ok=False)
    return candidate


def _build_artifacts(run_dir: Path) -> RunArtifacts:
    return RunArtifacts(
        root=run_dir,
        metrics=run_dir / "metrics.csv",
        events=run_dir / "events.log",
        champion=run_dir / "champion.yml",
        config=run_dir / "config.yml",
    )


def _config_snapshot(config: EvolutionConfig, task: LogicGateTask) -> dict[str, Any]:
    snapshot: dict[str, Any] = {"task": task.name, "seed": config.seed}
    snapshot["population"] = asdict(config.population)
    network = config.network
    snapshot["network"] = {
        "dynamic": network.dynamic,
        "inputs": network.input_size,
        "outputs": network.output_size,
        "layers": list(network.layers),
        "layer_add": network.layer_add,
        "layer_remove": network.layer_remove,
    }
    neuron = config.neuron
    snapshot["neuron"] = {
        "activation": (
            neuron.activation if isinstance(neuron.activation, str) else "custom"
        ),
        "bias": asdict(neuron.bias),
        "add": neuron.add,
        "change": asdict(neuron.change),
        "remove": neuron.remove,
    }
    snapshot["synapse"] = asdict(config.synapse)
    snapshot["adapt"] = asdict(config.adapt)
    return snapshot


def network_snapshot(network: Network) -> dict[str, Any]:
    """Describe a network's topology and parameters as plain data."""
    synapses: list[dict[str, Any]] = []
    for synapse in network.synapses():
        source, destination = network.endpoints(synapse)
        synapses.append(
            {
                "source": list(source.coordinates),
                "destination": list(destination.coordinates),
                "weight": synapse.weight,
            }
        )
    return {
        "heights": network.heights,
        "score": network.score,
        "biases": [
            [neuron.bias for neuron in network.layer(depth)]
            for depth in range(network.depth)
        ],
        "synapses": synapses,
    }


def _write_yaml(path: Path, payload: dict[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(payload, handle, sort_keys=True)


def run_evolution(
    config: EvolutionConfig,
    task: LogicGateTask,
    *,
    generations: int,
    output_dir: Path,
    target_accuracy: float = 1.0,
) -> RunSummary:
    """Evolve a population against ``task`` until solved or out of generations.

    Writes ``metrics.csv``, ``events.log``, ``config.yml`` and
    ``champion.yml`` into a fresh timestamped directory under ``output_dir``.
    """
    if generations <= 0:
        msg = "generations must be positive."
        raise ValueError(msg)

    artifacts = _build_artifacts(_allocate_run_dir(Path(output_dir)))
    wired = task.configure(config)
    _write_yaml(artifacts.config, _config_snapshot(wired, task))
    print(f"[evolve] run directory: {artifacts.root}")

    best_score = float("-inf")
    best_accuracy = 0.0
    champion: dict[str, Any] | None = None
    completed = 0

    with MetricsWriter(artifacts.metrics) as metrics_writer, EventLogger(
        artifacts.events
    ) as logger:
        logger.log("run", task=task.name, generations=generations)
        population = Population(wired, events=logger)
        population.start()
        try:
            for generation in range(generations):
                start_time = perf_counter()
                accuracy = task.evaluate(population)
                eval_time = perf_counter() - start_time

                networks = population.networks
                scores = [network.score for network in networks]
                leader = max(range(len(networks)), key=scores.__getitem__)
                completed = generation + 1

                if scores[leader] > best_score or champion is None:
                    best_score = scores[leader]
                    champion = network_snapshot(networks[leader])
                    champion["generation"] = generation
                    champion["accuracy"] = accuracy[leader]
                best_accuracy = max(best_accuracy, max(accuracy))

                metrics_writer.append(
                    GenerationRow(
                        generation=generation,
                        population_size=len(networks),
                        alive=population.alive,
                        best_score=scores[leader],
                        mean_score=fmean(scores),
                        worst_score=min(scores),
                        accuracy=max(accuracy),
                        mean_neurons=fmean(sum(n.heights) for n in networks),
                        mean_synapses=fmean(
                            sum(1 for _ in n.synapses()) for n in networks
                        ),
                        eval_time_s=eval_time,
                    )
                )
                print(
                    f"[evolve] generation {generation}: best score "
                    f"{scores[leader]:.3f} accuracy {max(accuracy):.2f}"
                )

                if max(accuracy) >= target_accuracy:
                    logger.log("solved", generation=generation)
                    break
                if generation + 1 < generations:
                    population.evolve()
        finally:
            if champion is not None:
                _write_yaml(artifacts.champion, champion)
            population.stop(safe_mode=True)

    return RunSummary(
        artifacts=artifacts,
        generations=completed,
        best_score=best_score,
        best_accuracy=best_accuracy,
        solved=best_accuracy >= target_accuracy,
    )


__all__ = ["RunArtifacts", "RunSummary", "network_snapshot", "run_evolution"]
