"""Per-generation CSV metrics for evolution runs."""

from __future__ import annotations

import csv
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import IO, Any


@dataclass(frozen=True, slots=True)
class GenerationRow:
    """Aggregate statistics recorded after each generation is scored."""

    generation: int
    population_size: int
    alive: int
    best_score: float
    mean_score: float
    worst_score: float
    accuracy: float
    mean_neurons: float
    mean_synapses: float
    eval_time_s: float


class MetricsWriter:
    """CSV writer that appends one row per generation.

    The header is written only when the file is created, so resuming into an
    existing file keeps a single header.
    """

    _fieldnames = [item.name for item in fields(GenerationRow)]

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        exists = self._path.exists() and self._path.stat().st_size > 0
        self._handle: IO[str] = self._path.open(
            "a" if exists else "w", encoding="utf-8", newline=""
        )
        self._writer = csv.DictWriter(self._handle, fieldnames=self._fieldnames)
        if not exists:
            self._writer.writeheader()
            self._handle.flush()

    def __enter__(self) -> MetricsWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.close()

    def append(self, row: GenerationRow) -> None:
        """Append a row and flush to disk."""
        self._writer.writerow(asdict(row))
        self._handle.flush()

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()

    @property
    def path(self) -> Path:
        return self._path


__all__ = ["GenerationRow", "MetricsWriter"]
