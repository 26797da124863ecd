"""MNIST provider reading a local ``.npz`` archive."""

from __future__ import annotations

from pathlib import Path

import numpy as np

from ..core.types import Batch
from .registry import DatasetSpec, register_dataset, resolve_path
from .utils import build_splits, one_hot, prepare_inputs

NUM_CLASSES = 10

# Keras ships lower-case keys; older exports used upper-case feature keys.
_KEY_ALIASES = {
    "x_train": ("x_train", "X_train"),
    "y_train": ("y_train", "Y_train"),
    "x_test": ("x_test", "X_test"),
    "y_test": ("y_test", "Y_test"),
}


def _read(data, key: str) -> np.ndarray:
    for alias in _KEY_ALIASES[key]:
        if alias in data.files:
            return data[alias]
    raise KeyError(f"MNIST archive is missing {key!r} (looked for {_KEY_ALIASES[key]})")


def _labels(raw: np.ndarray) -> np.ndarray:
    raw = np.asarray(raw)
    if raw.ndim == 2 and raw.shape[1] == NUM_CLASSES:
        return np.argmax(raw, axis=1)
    return raw.reshape(-1).astype(np.int64)


def load_archive(path: str | Path) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Return ``(x_train, y_train, x_test, y_test)`` with column-major inputs."""

    with np.load(resolve_path(path)) as data:
        x_train = prepare_inputs(_read(data, "x_train"))
        y_train = _labels(_read(data, "y_train"))
        x_test = prepare_inputs(_read(data, "x_test"))
        y_test = _labels(_read(data, "y_test"))
    return x_train, y_train, x_test, y_test


@register_dataset("mnist")
def build_mnist(
    *,
    path: str | Path,
    val_split: float = 0.1,
    seed: int = 0,
    max_items: int | None = None,
) -> DatasetSpec:
    """Create a :class:`DatasetSpec` for an MNIST archive at ``path``."""

    x_train, y_train, x_test, y_test = load_archive(path)
    splits = build_splits(
        x_train,
        one_hot(y_train, NUM_CLASSES),
        val_split=val_split,
        seed=seed,
        test=Batch(inputs=x_test, targets=one_hot(y_test, NUM_CLASSES)),
        max_items=max_items,
    )
    provenance = {
        "type": "mnist",
        "path": str(path),
        "val_split": val_split,
        "seed": seed,
        "max_items": max_items,
    }
    return DatasetSpec(name="mnist", splits=splits, num_classes=NUM_CLASSES, provenance=provenance)
