"""CSV provider: pixel rows with a label column, or a features/labels file pair.

Two layouts are understood:

* ``rows`` (default): one example per row, labels in ``target_col`` or as
  one-hot rows of ``labels_path``.
* ``columns``: one example per column, as exported by matrix tooling; the
  features file is ``(features, m)`` and ``labels_path`` holds ``(classes, m)``
  one-hot columns.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd

from .registry import DatasetSpec, register_dataset, resolve_path
from .utils import build_splits, one_hot, prepare_inputs

LAYOUTS = ("rows", "columns")


def _load_rows(
    path: Path, target_col: str, labels_path: Path | None
) -> tuple[np.ndarray, np.ndarray]:
    df = pd.read_csv(path)
    if labels_path is not None:
        labels_df = pd.read_csv(labels_path)
        if len(labels_df) != len(df):
            raise ValueError(
                f"{path.name} has {len(df)} rows but {labels_path.name} has {len(labels_df)}"
            )
        y = labels_df.to_numpy(dtype=np.float64).argmax(axis=1)
    else:
        if target_col not in df.columns:
            raise KeyError(f"Target column {target_col!r} not found in CSV")
        y = df.pop(target_col).to_numpy().astype(np.int64)
    return df.to_numpy(), y


def _load_columns(path: Path, labels_path: Path | None) -> tuple[np.ndarray, np.ndarray]:
    if labels_path is None:
        raise ValueError("the 'columns' layout needs a labels_path with one-hot columns")
    features = pd.read_csv(path).to_numpy()
    labels = pd.read_csv(labels_path).to_numpy(dtype=np.float64)
    if features.shape[1] != labels.shape[1]:
        raise ValueError(
            f"{path.name} has {features.shape[1]} columns but {labels_path.name} has {labels.shape[1]}"
        )
    return features.T, labels.argmax(axis=0)


@register_dataset("csv")
def load_csv_digits(
    *,
    csv_path: str | Path,
    target_col: str = "label",
    labels_path: str | Path | None = None,
    layout: str = "rows",
    num_classes: int = 10,
    scale: float | None = None,
    val_split: float = 0.1,
    seed: int = 0,
    max_items: int | None = None,
) -> DatasetSpec:
    """Load a digit classification dataset from CSV.

    ``scale`` divides the pixel values; by default integer pixels are divided
    by 255 and float pixels are taken as already normalised.
    """

    if layout not in LAYOUTS:
        raise ValueError(f"Unknown CSV layout {layout!r}; expected one of {LAYOUTS}")
    path = resolve_path(csv_path)
    label_file = resolve_path(labels_path) if labels_path is not None else None
    if layout == "columns":
        X, y = _load_columns(path, label_file)
    else:
        X, y = _load_rows(path, target_col, label_file)
    splits = build_splits(
        prepare_inputs(X, scale=scale),
        one_hot(y, num_classes),
        val_split=val_split,
        seed=seed,
        max_items=max_items,
    )
    provenance = {
        "type": "csv",
        "path": str(path),
        "labels_path": str(label_file) if label_file else None,
        "layout": layout,
        "target_col": target_col,
        "val_split": val_split,
        "seed": seed,
    }
    return DatasetSpec(name="csv", splits=splits, num_classes=num_classes, provenance=provenance)
