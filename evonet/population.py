"""Population lifecycle and generational replacement."""

from __future__ import annotations

import statistics
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from .config import EvolutionConfig
from .entropy import EntropyService
from .errors import InvalidStateError, NotFoundError
from .identity import IdentityRegistry
from .network import Network
from .reporters import EventLogger
from .rules import MutationRules
from .selection import draw_parents, selection_weights

InputGenerator = Callable[[int], Sequence[float]]


class PopulationStatus(str, Enum):
    STOPPED = "stopped"
    IDLE = "idle"
    RUNNING = "running"


@dataclass(frozen=True, slots=True)
class PopulationStatistics:
    """Snapshot of population counters and the score extremes seen so far."""

    generation: int
    population: int
    alive: int
    dead: int
    best: float | None
    worst: float | None


class Population:
    """Owns a generation of networks and drives it through its lifecycle.

    Every transition takes a ``safe_mode`` flag; in safe mode a transition
    that is invalid for the current status returns ``False`` instead of
    raising :class:`InvalidStateError`.
    """

    def __init__(
        self,
        config: EvolutionConfig,
        *,
        entropy: EntropyService | None = None,
        registry: IdentityRegistry | None = None,
        events: EventLogger | None = None,
    ) -> None:
        self._rules = MutationRules(config, entropy)
        self._registry = registry if registry is not None else IdentityRegistry()
        self._events = events
        self._status = PopulationStatus.STOPPED
        self._networks: list[Network] = []
        self._generation = 0
        self._best: float | None = None
        self._worst: float | None = None

    def __len__(self) -> int:
        return len(self._networks)

    @property
    def rules(self) -> MutationRules:
        return self._rules

    @property
    def registry(self) -> IdentityRegistry:
        return self._registry

    @property
    def status(self) -> PopulationStatus:
        return self._status

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def size(self) -> int:
        return int(self._rules.get("population.size"))

    @property
    def networks(self) -> tuple[Network, ...]:
        """Current generation in index order."""
        return tuple(self._networks)

    @property
    def alive(self) -> int:
        return sum(1 for network in self._networks if network.alive)

    @property
    def dead(self) -> int:
        return len(self._networks) - self.alive

    @property
    def statistics(self) -> PopulationStatistics:
        best, worst = self._best, self._worst
        scores = [network.score for network in self._networks]
        if scores:
            best = max(scores) if best is None else max(best, *scores)
            worst = min(scores) if worst is None else min(worst, *scores)
        return PopulationStatistics(
            generation=self._generation,
            population=len(self._networks),
            alive=self.alive,
            dead=self.dead,
            best=best,
            worst=worst,
        )

    def network(self, index: int) -> Network:
        try:
            return self._networks[index]
        except (IndexError, TypeError) as error:
            msg = f"No network at index {index!r}."
            raise NotFoundError(msg) from error

    # -- transitions ---------------------------------------------------------

    def start(self, safe_mode: bool = False) -> bool:
        """Create ``size`` fresh networks, mutate each once and start running."""
        if not self._check(PopulationStatus.STOPPED, "start", safe_mode=safe_mode):
            return False
        self._destroy_networks()
        self._generation = 0
        self._best = None
        self._worst = None
        for index in range(self.size):
            network = Network(self._rules, self._registry, index=index)
            network.evolve()
            self._networks.append(network)
        self._status = PopulationStatus.RUNNING
        self._log("start", size=len(self._networks))
        return True

    def pause(self, safe_mode: bool = False) -> bool:
        if not self._check(PopulationStatus.RUNNING, "pause", safe_mode=safe_mode):
            return False
        self._status = PopulationStatus.IDLE
        self._log("pause", generation=self._generation)
        return True

    def resume(self, safe_mode: bool = False) -> bool:
        if not self._check(PopulationStatus.IDLE, "resume", safe_mode=safe_mode):
            return False
        self._status = PopulationStatus.RUNNING
        self._log("resume", generation=self._generation)
        return True

    def restart(self, safe_mode: bool = False) -> bool:
        """Stop an idle population and start it again from scratch."""
        if not self._check(PopulationStatus.IDLE, "restart", safe_mode=safe_mode):
            return False
        self._stop()
        return self.start(safe_mode=safe_mode)

    def stop(self, safe_mode: bool = False) -> bool:
        """Destroy every network and return to the stopped state."""
        if not self._check(
            (PopulationStatus.IDLE, PopulationStatus.RUNNING),
            "stop",
            safe_mode=safe_mode,
        ):
            return False
        self._stop()
        return True

    def evolve(self, safe_mode: bool = False) -> bool:
        """Replace the current generation with mutated, score-selected clones."""
        if not self._check(PopulationStatus.RUNNING, "evolve", safe_mode=safe_mode):
            return False
        self._status = PopulationStatus.IDLE

        scores = [network.score for network in self._networks]
        self._record(scores)
        weights = selection_weights(scores, self._rules.get("population.equality"))
        parents = draw_parents(weights, self.size, self._rules.entropy)

        offspring: list[Network] = []
        try:
            for index, parent in enumerate(parents):
                child = Network(
                    self._rules,
                    self._registry,
                    index=index,
                    reference=self._networks[parent],
                )
                offspring.append(child)
                child.evolve()
        except Exception:
            for child in offspring:
                child.destroy()
            self._status = PopulationStatus.RUNNING
            raise

        self._destroy_networks()
        self._networks = offspring
        self._generation += 1
        self._status = PopulationStatus.RUNNING
        self._log(
            "generation",
            generation=self._generation,
            best=max(scores),
            mean=statistics.fmean(scores),
            worst=min(scores),
        )
        return True

    # -- per-generation operations --------------------------------------------

    def input(self, generator: InputGenerator) -> int:
        """Feed every alive network the inputs produced for its index.

        Returns:
            Number of networks still alive afterwards.
        """
        if self._status is not PopulationStatus.RUNNING:
            msg = f"Cannot input while population is {self._status.value}."
            raise InvalidStateError(msg)
        for network in self._networks:
            if network.alive:
                network.input(generator(network.index))
        return self.alive

    def kill(self, index: int) -> None:
        self.network(index).alive = False

    def kill_all(self) -> None:
        for network in self._networks:
            network.alive = False

    # -- internals -----------------------------------------------------------

    def _check(
        self,
        allowed: PopulationStatus | tuple[PopulationStatus, ...],
        action: str,
        *,
        safe_mode: bool,
    ) -> bool:
        states = allowed if isinstance(allowed, tuple) else (allowed,)
        if self._status in states:
            return True
        if safe_mode:
            return False
        msg = f"Cannot {action} while population is {self._status.value}."
        raise InvalidStateError(msg)

    def _stop(self) -> None:
        self._destroy_networks()
        self._status = PopulationStatus.STOPPED
        self._log("stop", generation=self._generation)

    def _destroy_networks(self) -> None:
        for network in self._networks:
            network.destroy()
        self._networks = []

    def _record(self, scores: Sequence[float]) -> None:
        if not scores:
            return
        high, low = max(scores), min(scores)
        self._best = high if self._best is None else max(self._best, high)
        self._worst = low if self._worst is None else min(self._worst, low)

    def _log(self, event: str, **fields: object) -> None:
        if self._events is not None:
            self._events.log(event, **fields)


__all__ = [
    "InputGenerator",
    "Population",
    "PopulationStatistics",
    "PopulationStatus",
]
