"""Exception hierarchy shared by the graph engine and the population."""

from __future__ import annotations


class EvonetError(Exception):
    """Base class for every error raised by evonet."""


class InvalidStateError(EvonetError, RuntimeError):
    """Operation attempted in the wrong lifecycle state."""


class InvalidTopologyError(EvonetError, ValueError):
    """Malformed depth/position or duplicate neuron/synapse."""


class ConstraintViolationError(EvonetError, ValueError):
    """Value outside its configured range or of the wrong type."""


class NotFoundError(EvonetError, LookupError):
    """Reference to something that does not exist."""


class PreconditionFailedError(EvonetError, RuntimeError):
    """Dynamic-only operation attempted on a static network (or vice versa)."""


__all__ = [
    "ConstraintViolationError",
    "EvonetError",
    "InvalidStateError",
    "InvalidTopologyError",
    "NotFoundError",
    "PreconditionFailedError",
]
