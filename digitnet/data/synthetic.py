"""Deterministic digit-like fixture for offline runs and tests."""

from __future__ import annotations

import numpy as np

from ..core.types import Batch
from .registry import DatasetSpec, register_dataset
from .utils import build_splits, one_hot


def make_digits(
    n: int, *, input_dim: int = 784, num_classes: int = 10, noise: float = 0.1, seed: int = 0
) -> tuple[np.ndarray, np.ndarray]:
    """Return ``(inputs, labels)`` drawn around one fixed prototype per class.

    Inputs are ``(input_dim, n)`` in [0, 1]; labels are integer classes.
    """

    # prototypes depend only on the shape so every split shares them
    proto_rng = np.random.default_rng(input_dim * 1000 + num_classes)
    prototypes = (proto_rng.random((input_dim, num_classes)) > 0.7).astype(np.float64)

    rng = np.random.default_rng(seed)
    labels = np.arange(n) % num_classes
    rng.shuffle(labels)
    inputs = prototypes[:, labels] + noise * rng.standard_normal((input_dim, n))
    return np.clip(inputs, 0.0, 1.0), labels


@register_dataset("synthetic")
def build_synthetic(
    *,
    n_train: int = 200,
    n_test: int = 50,
    input_dim: int = 784,
    num_classes: int = 10,
    noise: float = 0.1,
    val_split: float = 0.1,
    seed: int = 0,
    max_items: int | None = None,
) -> DatasetSpec:
    train_x, train_y = make_digits(
        n_train, input_dim=input_dim, num_classes=num_classes, noise=noise, seed=seed
    )
    test_x, test_y = make_digits(
        n_test, input_dim=input_dim, num_classes=num_classes, noise=noise, seed=seed + 1
    )
    splits = build_splits(
        train_x,
        one_hot(train_y, num_classes),
        val_split=val_split,
        seed=seed,
        test=Batch(inputs=test_x, targets=one_hot(test_y, num_classes)),
        max_items=max_items,
    )
    provenance = {
        "type": "synthetic",
        "n_train": n_train,
        "n_test": n_test,
        "input_dim": input_dim,
        "noise": noise,
        "seed": seed,
    }
    return DatasetSpec(name="synthetic", splits=splits, num_classes=num_classes, provenance=provenance)
