"""Cross-entropy cost for the softmax output layer."""

from __future__ import annotations

import numpy as np

from ..core.errors import ShapeMismatch
from ..core.types import Array

EPS = 1e-12


def cross_entropy_cost(aL: Array, y: Array, *, eps: float = EPS) -> float:
    """Return ``-1/m * sum(y * log(aL))`` with ``aL`` clipped away from zero."""

    if aL.shape != y.shape:
        raise ShapeMismatch(f"predictions {aL.shape} and labels {y.shape} differ")
    m = y.shape[1]
    if m == 0:
        raise ShapeMismatch("cannot compute the cost of an empty batch")
    return float(-np.sum(y * np.log(np.clip(aL, eps, None))) / m)


__all__ = ["EPS", "cross_entropy_cost"]
