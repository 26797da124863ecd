"""Activation functions and their derivatives."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict

import numpy as np

from .errors import UnsupportedActivation
from .types import Array


class Activation(str, Enum):
    """Closed set of activation kinds supported by the network."""

    RELU = "relu"
    SIGMOID = "sigmoid"
    TANH = "tanh"
    SOFTPLUS = "softplus"
    SOFTMAX = "softmax"

    @classmethod
    def parse(cls, kind: "Activation | str") -> "Activation":
        """Return the enum member for ``kind`` (member or case-insensitive name)."""

        if isinstance(kind, cls):
            return kind
        if isinstance(kind, str):
            try:
                return cls(kind.strip().lower())
            except ValueError:
                pass
        raise UnsupportedActivation(f"Unsupported activation: {kind!r}")


def relu(z: Array) -> Array:
    """Return the ReLU activation."""

    return np.maximum(z, 0.0)


def relu_backward(dA: Array, z: Array) -> Array:
    return dA * (z > 0)


def sigmoid(z: Array) -> Array:
    # tanh form does not overflow for large |z|
    return 0.5 * (1.0 + np.tanh(0.5 * z))


def sigmoid_backward(dA: Array, z: Array) -> Array:
    s = sigmoid(z)
    return dA * s * (1.0 - s)


def tanh(z: Array) -> Array:
    return np.tanh(z)


def tanh_backward(dA: Array, z: Array) -> Array:
    return dA * (1.0 - np.tanh(z) ** 2)


def softplus(z: Array) -> Array:
    return np.logaddexp(0.0, z)


def softplus_backward(dA: Array, z: Array) -> Array:
    return dA * sigmoid(z)


def softmax(z: Array) -> Array:
    """Normalise every column of ``z`` into a probability distribution."""

    shifted = z - np.max(z, axis=0, keepdims=True)
    exp = np.exp(shifted)
    return exp / np.sum(exp, axis=0, keepdims=True)


def softmax_backward(dA: Array, z: Array) -> Array:
    """Contract ``dA`` with the per-column softmax Jacobian."""

    s = softmax(z)
    return s * (dA - np.sum(dA * s, axis=0, keepdims=True))


@dataclass(frozen=True)
class ActivationFns:
    forward: Callable[[Array], Array]
    backward: Callable[[Array, Array], Array]


_TABLE: Dict[Activation, ActivationFns] = {
    Activation.RELU: ActivationFns(relu, relu_backward),
    Activation.SIGMOID: ActivationFns(sigmoid, sigmoid_backward),
    Activation.TANH: ActivationFns(tanh, tanh_backward),
    Activation.SOFTPLUS: ActivationFns(softplus, softplus_backward),
    Activation.SOFTMAX: ActivationFns(softmax, softmax_backward),
}


def resolve(kind: Activation | str) -> ActivationFns:
    """Return the ``(forward, backward)`` pair registered for ``kind``."""

    member = Activation.parse(kind)
    try:
        return _TABLE[member]
    except KeyError as exc:  # pragma: no cover - table covers the enum
        raise UnsupportedActivation(f"Unsupported activation: {kind!r}") from exc


def forward(kind: Activation | str, z: Array) -> Array:
    return resolve(kind).forward(z)


def backward(kind: Activation | str, dA: Array, z: Array) -> Array:
    return resolve(kind).backward(dA, z)


__all__ = [
    "Activation",
    "ActivationFns",
    "backward",
    "forward",
    "relu",
    "relu_backward",
    "resolve",
    "sigmoid",
    "sigmoid_backward",
    "softmax",
    "softmax_backward",
    "softplus",
    "softplus_backward",
    "tanh",
    "tanh_backward",
]
