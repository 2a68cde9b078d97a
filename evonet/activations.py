"""Activation function catalogue used when compiling neuron evaluation."""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence

from .errors import ConstraintViolationError

ActivationFunction = Callable[[float], float]
ActivationSpec = str | Mapping[str, object] | ActivationFunction


def _sigmoid(x: float) -> float:
    if x >= 0:
        z = math.exp(-x)
        return 1.0 / (1.0 + z)
    z = math.exp(x)
    return z / (1.0 + z)


def _softplus(x: float) -> float:
    # log1p(exp(x)) overflows for large x; the tail is x itself.
    if x > 30.0:
        return x
    return math.log1p(math.exp(x))


def _selu(x: float) -> float:
    return 1.0507 * (1.67326 * math.expm1(x) if x < 0.0 else x)


DEFAULT_ACTIVATIONS: dict[str, ActivationFunction] = {
    "identity": lambda x: x,
    "binary step": lambda x: 1.0 if x >= 0.0 else 0.0,
    "sigmoid": _sigmoid,
    "tanh": math.tanh,
    "relu": lambda x: x if x > 0.0 else 0.0,
    "gelu": lambda x: 0.5 * x * (1.0 + math.erf(x / math.sqrt(2.0))),
    "softplus": _softplus,
    "selu": _selu,
    "leaky relu": lambda x: x if x > 0.0 else 0.01 * x,
    "silu": lambda x: x * _sigmoid(x),
    "gaussian": lambda x: math.exp(-(x**2)),
}

ALIASES: dict[str, str] = {
    "linear": "identity",
    "logistic": "sigmoid",
    "soft step": "sigmoid",
    "hyperbolic tangent": "tanh",
    "rectified linear unit": "relu",
    "gaussian error linear unit": "gelu",
    "scaled exponential linear unit": "selu",
    "leaky rectified linear unit": "leaky relu",
    "sigmoid linear unit": "silu",
    "sigmoid shrinkage": "silu",
    "sil": "silu",
    "swish": "silu",
    "swish-1": "silu",
    "soboleva modified hyperbolic tangent": "smht",
    "exponential linear unit": "elu",
    "parametric rectified linear unit": "prelu",
}


def _smht(a: float, b: float, c: float, d: float) -> ActivationFunction:
    def activation(x: float) -> float:
        return (math.exp(a * x) - math.exp(-b * x)) / (
            math.exp(c * x) + math.exp(-d * x)
        )

    return activation


def _elu(alpha: float) -> ActivationFunction:
    return lambda x: alpha * math.expm1(x) if x <= 0.0 else x


def _prelu(alpha: float) -> ActivationFunction:
    return lambda x: alpha * x if x < 0.0 else x


PARAMETRIC_ACTIVATIONS: dict[str, tuple[int, Callable[..., ActivationFunction]]] = {
    "smht": (4, _smht),
    "elu": (1, _elu),
    "prelu": (1, _prelu),
}


def _normalize_activation_name(name: str) -> str:
    key = name.strip().lower()
    return ALIASES.get(key, key)


def _coerce_parameters(name: str, raw: object) -> tuple[float, ...]:
    if raw is None:
        return ()
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        msg = f"Activation {name!r} parameters must be a list of numbers."
        raise ConstraintViolationError(msg)
    values: list[float] = []
    for item in raw:
        try:
            value = float(item)
        except (TypeError, ValueError) as error:
            msg = f"Activation {name!r} parameter {item!r} is not a number."
            raise ConstraintViolationError(msg) from error
        if not math.isfinite(value):
            msg = f"Activation {name!r} parameter {item!r} must be finite."
            raise ConstraintViolationError(msg)
        values.append(value)
    return tuple(values)


def resolve_activation(spec: ActivationSpec) -> ActivationFunction:
    """Resolve a configured activation into a callable.

    Accepts a catalogue name (``"sigmoid"``), a mapping for parametric
    functions (``{"function": "elu", "with": [1.0]}``) or any callable taking
    the pre-activation sum and returning the neuron value.
    """
    if callable(spec):
        return spec

    parameters: tuple[float, ...] = ()
    if isinstance(spec, Mapping):
        raw_name = spec.get("function")
        if not isinstance(raw_name, str):
            msg = "Activation mapping must name a 'function'."
            raise ConstraintViolationError(msg)
        parameters = _coerce_parameters(raw_name, spec.get("with"))
        name = _normalize_activation_name(raw_name)
    elif isinstance(spec, str):
        name = _normalize_activation_name(spec)
    else:
        msg = f"Unsupported activation specification: {spec!r}"
        raise ConstraintViolationError(msg)

    if name in PARAMETRIC_ACTIVATIONS:
        arity, factory = PARAMETRIC_ACTIVATIONS[name]
        if len(parameters) != arity:
            msg = (
                f"Activation {name!r} expects {arity} parameter(s), "
                f"got {len(parameters)}."
            )
            raise ConstraintViolationError(msg)
        return factory(*parameters)

    function = DEFAULT_ACTIVATIONS.get(name)
    if function is None:
        msg = f"Unknown activation function: {name!r}"
        raise ConstraintViolationError(msg)
    if parameters:
        msg = f"Activation {name!r} does not take parameters."
        raise ConstraintViolationError(msg)
    return function


__all__ = [
    "ALIASES",
    "ActivationFunction",
    "ActivationSpec",
    "DEFAULT_ACTIVATIONS",
    "PARAMETRIC_ACTIVATIONS",
    "resolve_activation",
]
