"""Classification metrics over column-major prediction matrices."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping

import numpy as np

from ..core.errors import ShapeMismatch
from ..core.types import Array
from .losses import cross_entropy_cost


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: float


def default_metrics(*, num_classes: int | None = None) -> List[str]:
    metrics = ["loss", "accuracy"]
    if num_classes and num_classes <= 20:
        metrics.append("macro_f1")
    return metrics


def _labels(y: Array) -> Array:
    return np.argmax(y, axis=0) if y.ndim == 2 else y.reshape(-1).astype(int)


def accuracy(aL: Array, y: Array) -> float:
    """Fraction of columns whose predicted argmax matches the label argmax."""

    if aL.shape != y.shape:
        raise ShapeMismatch(f"predictions {aL.shape} and labels {y.shape} differ")
    if y.shape[1] == 0:
        return 0.0
    return float(np.mean(np.argmax(aL, axis=0) == np.argmax(y, axis=0)))


def confusion_matrix(aL: Array, y: Array, num_classes: int | None = None) -> Array:
    """Counts indexed ``[true_class, predicted_class]``."""

    num_classes = num_classes or aL.shape[0]
    pred_idx = np.argmax(aL, axis=0)
    targ_idx = _labels(y)
    if pred_idx.shape != targ_idx.shape:
        raise ShapeMismatch(f"{pred_idx.size} predictions for {targ_idx.size} labels")
    cm = np.zeros((num_classes, num_classes), dtype=np.int64)
    np.add.at(cm, (targ_idx, pred_idx), 1)
    return cm


def macro_f1(aL: Array, y: Array, num_classes: int | None = None) -> float:
    cm = confusion_matrix(aL, y, num_classes).astype(np.float64)
    tp = np.diag(cm)
    fp = cm.sum(axis=0) - tp
    fn = cm.sum(axis=1) - tp
    precision = tp / (tp + fp + 1e-9)
    recall = tp / (tp + fn + 1e-9)
    f1 = 2 * precision * recall / (precision + recall + 1e-9)
    return float(np.mean(f1))


def compute_metric(name: str, aL: Array, y: Array) -> MetricResult:
    key = name.lower()
    if key == "loss":
        value = cross_entropy_cost(aL, y)
    elif key == "accuracy":
        value = accuracy(aL, y)
    elif key == "macro_f1":
        value = macro_f1(aL, y)
    else:
        raise KeyError(f"Unknown metric: {name}")
    return MetricResult(name=key, value=value)


def compute_metrics(names: Iterable[str], aL: Array, y: Array) -> Mapping[str, float]:
    results: Dict[str, float] = {}
    for name in names:
        metric = compute_metric(name, aL, y)
        results[metric.name] = metric.value
    return results


__all__ = [
    "MetricResult",
    "accuracy",
    "compute_metrics",
    "confusion_matrix",
    "default_metrics",
    "macro_f1",
]
