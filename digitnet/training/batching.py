"""Batching policies deciding how an epoch is split into update steps."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Protocol

import numpy as np

from ..core.errors import ShapeMismatch
from ..core.types import Array, Batch


def _check_aligned(inputs: Array, labels: Array) -> None:
    if inputs.ndim != 2 or labels.ndim != 2:
        raise ShapeMismatch("inputs and labels must be 2-D (rows x examples) matrices")
    if inputs.shape[1] != labels.shape[1]:
        raise ShapeMismatch(
            f"{inputs.shape[1]} input columns but {labels.shape[1]} label columns"
        )


def shuffle_columns(
    inputs: Array, labels: Array, rng: np.random.Generator
) -> tuple[Array, Array]:
    """Apply one random column permutation to ``inputs`` and ``labels`` jointly."""

    _check_aligned(inputs, labels)
    order = rng.permutation(inputs.shape[1])
    return inputs[:, order], labels[:, order]


def partition(inputs: Array, labels: Array, size: int) -> List[Batch]:
    """Split columns into consecutive batches; a trailing remainder forms its own batch."""

    _check_aligned(inputs, labels)
    if size <= 0:
        raise ValueError("batch size must be positive")
    m = inputs.shape[1]
    return [
        Batch(inputs=inputs[:, start : start + size], targets=labels[:, start : start + size])
        for start in range(0, m, size)
    ]


class BatchingPolicy(Protocol):
    """Protocol implemented by batching policies."""

    report_every: int

    def batches(
        self, inputs: Array, labels: Array, rng: np.random.Generator
    ) -> Iterator[Batch]:
        """Yield the batches making up one epoch."""


@dataclass(frozen=True)
class MiniBatch:
    """Fixed-size mini-batches over a fresh column permutation per epoch."""

    size: int
    shuffle: bool = True
    report_every: int = 1

    def __post_init__(self) -> None:
        if self.size <= 0:
            raise ValueError("batch size must be positive")

    def batches(
        self, inputs: Array, labels: Array, rng: np.random.Generator
    ) -> Iterator[Batch]:
        if self.shuffle:
            inputs, labels = shuffle_columns(inputs, labels, rng)
        return iter(partition(inputs, labels, self.size))


@dataclass(frozen=True)
class FullBatch:
    """The whole dataset as a single unshuffled batch."""

    report_every: int = 100

    def batches(
        self, inputs: Array, labels: Array, rng: np.random.Generator
    ) -> Iterator[Batch]:
        _check_aligned(inputs, labels)
        yield Batch(inputs=inputs, targets=labels)


def make_policy(name: str, batch_size: int | None = None) -> BatchingPolicy:
    key = name.lower().replace("-", "_")
    if key in {"minibatch", "mini_batch"}:
        if batch_size is None:
            raise ValueError("the minibatch policy requires a batch_size")
        return MiniBatch(size=int(batch_size))
    if key in {"full", "full_batch", "fullbatch"}:
        return FullBatch()
    raise ValueError(f"Unknown batching policy: {name}")


__all__ = [
    "BatchingPolicy",
    "FullBatch",
    "MiniBatch",
    "make_policy",
    "partition",
    "shuffle_columns",
]
