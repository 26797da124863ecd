"""Core numerical primitives for digitnet."""

from . import activations, errors, model, optim, propagation, types

__all__ = ["activations", "errors", "model", "optim", "propagation", "types"]
