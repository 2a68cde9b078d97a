"""Command-line interface for evolving networks against logic gates."""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from .config import EvolutionConfig, load_evolution_config
from .errors import EvonetError
from .tasks import GATES, LogicGateTask
from .training import run_evolution


def _load_config(args: argparse.Namespace) -> EvolutionConfig:
    config = (
        load_evolution_config(Path(args.config)) if args.config else EvolutionConfig()
    )
    if args.seed is not None:
        config = replace(config, seed=args.seed)
    return config


def _cmd_evolve(args: argparse.Namespace) -> int:
    try:
        config = _load_config(args)
        task = LogicGateTask(args.task)
        wired = task.configure(config)
    except EvonetError as error:
        print(f"[evolve] invalid configuration: {error}", file=sys.stderr)
        return 1

    if args.dry_run:
        network = wired.network
        print("[evolve] configuration validated")
        print(f"  task: {task.name}")
        print(f"  population_size: {wired.population.size}")
        print(f"  dynamic: {network.dynamic}")
        print(f"  layers: {list(network.layers) if not network.dynamic else 'dynamic'}")
        print(f"  adapt: {wired.adapt.enabled}")
        print(f"  seed: {wired.seed}")
        return 0

    summary = run_evolution(
        config,
        task,
        generations=args.generations,
        output_dir=Path(args.output),
        target_accuracy=args.target_accuracy,
    )
    status = "solved" if summary.solved else "not solved"
    print(
        f"[evolve] {task.name} {status} after {summary.generations} generations "
        f"(best score {summary.best_score:.3f}, accuracy {summary.best_accuracy:.2f})"
    )
    return 0


def _cmd_gates(args: argparse.Namespace) -> int:
    names = [args.name] if args.name else sorted(GATES)
    for name in names:
        if name not in GATES:
            print(f"Unknown gate: {name}", file=sys.stderr)
            return 1
        print(f"[gates] {name}")
        for (a, b), expected in LogicGateTask(name).cases:
            print(f"  {a:.0f} {b:.0f} -> {expected:.0f}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="evonet",
        description="Evolve layered networks with a genetic algorithm",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    evolve = subparsers.add_parser(
        "evolve",
        help="Evolve a population against a logic gate",
    )
    evolve.add_argument(
        "--config",
        default=None,
        help="Path to evolution configuration YAML (defaults when omitted)",
    )
    evolve.add_argument(
        "--task",
        default="xor",
        choices=sorted(GATES),
        help="Logic gate to learn",
    )
    evolve.add_argument(
        "--generations",
        type=int,
        default=100,
        help="Maximum number of generations",
    )
    evolve.add_argument(
        "--target-accuracy",
        type=float,
        default=1.0,
        help="Stop once the best network solves this fraction of cases",
    )
    evolve.add_argument(
        "--output",
        default="runs",
        help="Directory receiving timestamped run folders",
    )
    evolve.add_argument("--seed", type=int, default=None, help="Override the RNG seed")
    evolve.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration without evolving",
    )
    evolve.set_defaults(func=_cmd_evolve)

    gates = subparsers.add_parser("gates", help="Print logic gate truth tables")
    gates.add_argument("name", nargs="?", default=None, help="Single gate to print")
    gates.set_defaults(func=_cmd_gates)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    result = args.func(args)
    return int(result)


if __name__ == "__main__":  # pragma: no cover - entry point
    raise SystemExit(main())
