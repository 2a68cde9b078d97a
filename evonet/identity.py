"""Scoped unique-identifier allocation for networks, neurons and synapses."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from .errors import ConstraintViolationError, NotFoundError


@dataclass(slots=True)
class IdentityRegistry:
    """Allocates identifiers that never collide within a label.

    Each label keeps a monotonic counter, so released identifiers are never
    handed out again and allocation order is deterministic.
    """

    _next: dict[str, int] = field(default_factory=dict, init=False, repr=False)
    _live: dict[str, set[int]] = field(default_factory=dict, init=False, repr=False)

    def __contains__(self, key: object) -> bool:
        """Indicate whether a ``(label, identifier)`` pair is live."""
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        label, identifier = key
        return identifier in self._live.get(label, ())

    def allocate(self, label: str) -> int:
        """Return a fresh identifier within ``label``."""
        self._ensure_label(label)
        identifier = self._next.get(label, 0)
        self._next[label] = identifier + 1
        self._live.setdefault(label, set()).add(identifier)
        return identifier

    def exists(self, label: str, identifier: int) -> bool:
        """Return whether ``identifier`` is currently allocated in ``label``."""
        return identifier in self._live.get(label, ())

    def release(self, label: str, identifier: int) -> None:
        """Release a live identifier.

        Raises:
            NotFoundError: If the identifier is not live within ``label``.
        """
        live = self._live.get(label)
        if live is None or identifier not in live:
            msg = f"Identifier {identifier} is not allocated in scope {label!r}."
            raise NotFoundError(msg)
        live.remove(identifier)

    def live(self, label: str) -> int:
        """Return the number of live identifiers within ``label``."""
        return len(self._live.get(label, ()))

    def identifiers(self, label: str) -> Iterator[int]:
        """Iterate over live identifiers within ``label`` in ascending order."""
        return iter(sorted(self._live.get(label, ())))

    @staticmethod
    def _ensure_label(label: str) -> None:
        if not isinstance(label, str) or not label.strip():
            msg = "Identifier scope label must be a non-empty string."
            raise ConstraintViolationError(msg)


__all__ = ["IdentityRegistry"]
