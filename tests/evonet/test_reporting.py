from __future__ import annotations

import csv
from datetime import datetime
from pathlib import Path

from evonet.metrics import GenerationRow, MetricsWriter
from evonet.reporters import EventLogger


def _row(generation: int) -> GenerationRow:
    return GenerationRow(
        generation=generation,
        population_size=10,
        alive=9,
        best_score=3.5,
        mean_score=1.25,
        worst_score=-0.5,
        accuracy=0.75,
        mean_neurons=4.0,
        mean_synapses=6.5,
        eval_time_s=0.01,
    )


def test_event_logger_writes_timestamped_fields(tmp_path: Path) -> None:
    path = tmp_path / "logs" / "events.log"
    with EventLogger(path) as logger:
        logger.log("generation", generation=2, best=0.123456789)
        logger.log("stop")
    assert logger.closed

    lines = path.read_text(encoding="utf-8").splitlines()
    timestamp, event, *fields = lines[0].split(" ")
    assert datetime.fromisoformat(timestamp).tzinfo is not None
    assert event == "generation"
    assert fields == ["generation=2", "best=0.123457"]
    assert lines[1].endswith(" stop")


def test_metrics_writer_keeps_single_header(tmp_path: Path) -> None:
    path = tmp_path / "metrics.csv"
    with MetricsWriter(path) as writer:
        writer.append(_row(0))
    with MetricsWriter(path) as writer:
        writer.append(_row(1))

    with path.open(encoding="utf-8", newline="") as handle:
        rows = list(csv.DictReader(handle))
    assert [row["generation"] for row in rows] == ["0", "1"]
    assert rows[1]["accuracy"] == "0.75"
