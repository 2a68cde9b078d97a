"""Append-only event log for long-running evolution sessions."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any


def _format_field(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.6g}"
    return str(value)


class EventLogger:
    """Text logger writing one ISO-timestamped event per line.

    Events render as ``<timestamp> <event> key=value ...`` with fields in
    keyword order.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self._path.open("a", encoding="utf-8")

    def __enter__(self) -> EventLogger:
        return self

    def __exit__(self, exc_type, exc, exc_tb) -> None:
        self.close()

    def log(self, event: str, **fields: Any) -> None:
        """Append a timestamped event line and flush it."""
        timestamp = datetime.now(timezone.utc).isoformat()
        parts = [timestamp, event]
        parts.extend(f"{key}={_format_field(value)}" for key, value in fields.items())
        self._handle.write(" ".join(parts) + "\n")
        self._handle.flush()

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()

    @property
    def closed(self) -> bool:
        return self._handle.closed

    @property
    def path(self) -> Path:
        return self._path


__all__ = ["EventLogger"]
