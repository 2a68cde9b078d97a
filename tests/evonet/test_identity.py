from __future__ import annotations

import pytest
from evonet.errors import ConstraintViolationError, NotFoundError
from evonet.identity import IdentityRegistry


def test_allocation_is_monotonic_per_label() -> None:
    registry = IdentityRegistry()

    assert [registry.allocate("neuron") for _ in range(3)] == [0, 1, 2]
    assert registry.allocate("synapse") == 0
    assert registry.live("neuron") == 3
    assert ("neuron", 2) in registry
    assert ("synapse", 1) not in registry


def test_released_identifiers_are_not_reused() -> None:
    registry = IdentityRegistry()
    first = registry.allocate("network")
    registry.release("network", first)

    assert not registry.exists("network", first)
    assert registry.allocate("network") == first + 1
    assert list(registry.identifiers("network")) == [first + 1]


def test_release_unknown_identifier_raises() -> None:
    registry = IdentityRegistry()
    identifier = registry.allocate("neuron")
    registry.release("neuron", identifier)

    with pytest.raises(NotFoundError):
        registry.release("neuron", identifier)
    with pytest.raises(NotFoundError):
        registry.release("synapse", 0)


def test_label_must_be_non_empty() -> None:
    with pytest.raises(ConstraintViolationError):
        IdentityRegistry().allocate(" ")
