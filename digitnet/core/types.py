"""Core typing contracts for digitnet."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import numpy as np

Array = np.ndarray


@dataclass(frozen=True)
class Batch:
    """Column-aligned inputs (features x m) and one-hot targets (classes x m)."""

    inputs: Array
    targets: Array

    @property
    def size(self) -> int:
        return int(self.inputs.shape[1])


@dataclass
class LayerParams:
    """Weight matrix and bias column of a single layer."""

    weights: Array
    bias: Array


@dataclass
class LayerGrads:
    """Gradients matching the shapes of :class:`LayerParams`."""

    d_weights: Array
    d_bias: Array


@dataclass
class ForwardCache:
    """Intermediate values captured during the forward pass.

    ``a_prev[i]`` is the activation fed into layer ``i`` and ``z[i]`` is the
    pre-activation it produced.
    """

    a_prev: List[Array] = field(default_factory=list)
    z: List[Array] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.z)


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`digitnet.training.pipelines.run_pipeline`."""

    epochs: int
    final_cost: float
    metrics_path: str
    manifest_path: str
    model_path: str = ""
