"""Utility helpers for dataset providers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping

import numpy as np

from ..core.types import Batch


def one_hot(labels: np.ndarray, num_classes: int) -> np.ndarray:
    """Return a ``(num_classes, m)`` one-hot matrix for integer ``labels``."""

    labels = np.asarray(labels).astype(np.int64).reshape(-1)
    if labels.size and (labels.min() < 0 or labels.max() >= num_classes):
        raise ValueError(f"labels must lie in [0, {num_classes}), got {labels.min()}..{labels.max()}")
    out = np.zeros((num_classes, labels.size), dtype=np.float64)
    out[labels, np.arange(labels.size)] = 1.0
    return out


PIXEL_MAX = 255.0


def prepare_inputs(images: np.ndarray, *, scale: float | None = None) -> np.ndarray:
    """Flatten row-major examples and return them as ``(features, m)`` floats.

    Values are divided by ``scale``. When ``scale`` is omitted, integer arrays
    are treated as raw 0-255 pixels and float arrays as already normalised, so
    every split of one source is scaled the same way regardless of its content.
    """

    images = np.asarray(images)
    if scale is None:
        scale = PIXEL_MAX if np.issubdtype(images.dtype, np.integer) else 1.0
    if scale <= 0:
        raise ValueError("scale must be positive")
    images = images.astype(np.float64).reshape(images.shape[0], -1) / float(scale)
    return images.T.copy()


@dataclass(frozen=True)
class SplitIndices:
    """Column indices for train/validation partitions."""

    train: np.ndarray
    val: np.ndarray

    @property
    def sizes(self) -> Mapping[str, int]:
        return {"train": int(self.train.size), "val": int(self.val.size)}


def deterministic_split(n_samples: int, *, val_split: float = 0.1, seed: int = 0) -> SplitIndices:
    """Return seeded train/validation indices for ``n_samples`` columns."""

    if not 0 <= val_split < 1:
        raise ValueError("val_split must be in [0, 1)")
    rng = np.random.default_rng(seed)
    indices = rng.permutation(n_samples)
    val_size = int(round(n_samples * val_split))
    val_size = min(max(val_size, 1 if val_split > 0 else 0), n_samples - 1)
    if n_samples - val_size <= 0:
        raise ValueError("Not enough samples for the requested split")
    return SplitIndices(train=np.sort(indices[val_size:]), val=np.sort(indices[:val_size]))


def build_splits(
    inputs: np.ndarray,
    targets: np.ndarray,
    *,
    val_split: float,
    seed: int,
    test: Batch | None = None,
    max_items: int | None = None,
) -> Dict[str, Batch]:
    """Carve a validation split out of the training columns and cap split sizes."""

    indices = deterministic_split(inputs.shape[1], val_split=val_split, seed=seed)
    splits = {"train": Batch(inputs=inputs[:, indices.train], targets=targets[:, indices.train])}
    if indices.val.size:
        splits["val"] = Batch(inputs=inputs[:, indices.val], targets=targets[:, indices.val])
    if test is not None:
        splits["test"] = test
    if max_items is not None:
        splits = {
            name: Batch(inputs=batch.inputs[:, :max_items], targets=batch.targets[:, :max_items])
            for name, batch in splits.items()
        }
    return splits


__all__ = [
    "PIXEL_MAX",
    "SplitIndices",
    "build_splits",
    "deterministic_split",
    "one_hot",
    "prepare_inputs",
]
