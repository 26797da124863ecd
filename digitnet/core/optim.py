"""Plain gradient-descent update rule."""

from __future__ import annotations

from .errors import MissingGradient, check_shape
from .model import Model


def update(model: Model) -> None:
    """Apply ``param -= learning_rate * grad`` in place and consume the gradients."""

    for idx, grads in enumerate(model.grads):
        if grads is None:
            raise MissingGradient(f"no gradient computed for layer {idx}; run backward first")
        layer = model.params[idx]
        check_shape(f"dW{idx}", grads.d_weights, layer.weights.shape)
        check_shape(f"db{idx}", grads.d_bias, layer.bias.shape)

    lr = model.learning_rate
    for layer, grads in zip(model.params, model.grads):
        layer.weights -= lr * grads.d_weights
        layer.bias -= lr * grads.d_bias
    model.grads = [None] * model.num_layers


__all__ = ["update"]
