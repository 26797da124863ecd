"""Forward and backward propagation through the layer stack."""

from __future__ import annotations

import numpy as np

from . import activations
from .errors import ShapeMismatch, check_shape
from .model import Model
from .types import Array, ForwardCache, LayerGrads


def single_layer_forward(
    a_prev: Array, weights: Array, bias: Array, kind: activations.Activation
) -> tuple[Array, Array]:
    """Return ``(a, z)`` for one affine transform followed by ``kind``."""

    if weights.shape[1] != a_prev.shape[0]:
        raise ShapeMismatch(
            f"cannot multiply W{weights.shape} with input {a_prev.shape}"
        )
    z = weights @ a_prev + bias
    return activations.forward(kind, z), z


def forward(x: Array, model: Model) -> tuple[Array, ForwardCache]:
    """Evaluate every layer in order and cache ``a_prev``/``z`` per layer."""

    if x.ndim != 2:
        raise ShapeMismatch(f"inputs must be a 2-D (features x batch) matrix, got {x.shape}")
    if x.shape[0] != model.input_dim:
        raise ShapeMismatch(f"inputs have {x.shape[0]} features, model expects {model.input_dim}")

    cache = ForwardCache()
    a = x
    for layer, kind in zip(model.params, model.activations):
        a_prev = a
        a, z = single_layer_forward(a_prev, layer.weights, layer.bias, kind)
        cache.a_prev.append(a_prev)
        cache.z.append(z)
    return a, cache


def single_layer_backward(
    dZ: Array, weights: Array, a_prev: Array
) -> tuple[Array, Array, Array]:
    """Return ``(dA_prev, dW, db)`` given the pre-activation gradient."""

    m = a_prev.shape[1]
    d_weights = (1.0 / m) * (dZ @ a_prev.T)
    d_bias = (1.0 / m) * np.sum(dZ, axis=1, keepdims=True)
    dA_prev = weights.T @ dZ
    return dA_prev, d_weights, d_bias


def _check_cache(aL: Array, y: Array, cache: ForwardCache, model: Model) -> None:
    if aL.shape != y.shape:
        raise ShapeMismatch(f"predictions {aL.shape} and labels {y.shape} differ")
    if len(cache) != model.num_layers or len(cache.a_prev) != model.num_layers:
        raise ShapeMismatch(
            f"cache holds {len(cache)} layers, model has {model.num_layers}"
        )
    m = y.shape[1]
    for idx, layer in enumerate(model.params):
        size, fan_in = layer.weights.shape
        check_shape(f"cached z[{idx}]", cache.z[idx], (size, m))
        check_shape(f"cached a_prev[{idx}]", cache.a_prev[idx], (fan_in, m))
    check_shape("predictions", aL, cache.z[-1].shape)


def backward(aL: Array, y: Array, cache: ForwardCache, model: Model) -> None:
    """Populate ``model.grads`` for every layer from a softmax/cross-entropy output."""

    _check_cache(aL, y, cache, model)

    # softmax + cross-entropy: the output pre-activation gradient is aL - y
    dZ = aL - y
    for idx in reversed(range(model.num_layers)):
        layer = model.params[idx]
        if idx != model.num_layers - 1:
            dZ = activations.backward(model.activations[idx], dA, cache.z[idx])
        dA, d_weights, d_bias = single_layer_backward(dZ, layer.weights, cache.a_prev[idx])
        model.grads[idx] = LayerGrads(d_weights=d_weights, d_bias=d_bias)


def predict(x: Array, model: Model, *, probabilities: bool = False) -> Array:
    """Return the predicted class per column, or the output distribution."""

    aL, _ = forward(x, model)
    if probabilities:
        return aL
    return np.argmax(aL, axis=0)


__all__ = [
    "backward",
    "forward",
    "predict",
    "single_layer_backward",
    "single_layer_forward",
]
