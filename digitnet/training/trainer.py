"""Epoch/mini-batch training loop for the digit classifier."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Sequence

import numpy as np

from ..core.errors import ShapeMismatch
from ..core.model import Model
from ..core.optim import update
from ..core.propagation import backward, forward
from ..core.types import Array, Batch
from .batching import BatchingPolicy, MiniBatch
from .losses import cross_entropy_cost
from .metrics import accuracy, compute_metrics

logger = logging.getLogger(__name__)


class TrainerState(str, Enum):
    IDLE = "idle"
    EPOCH_START = "epoch_start"
    BATCH_START = "batch_start"
    FORWARD = "forward"
    LOSS = "loss"
    BACKWARD = "backward"
    UPDATE = "update"
    EPOCH_END = "epoch_end"
    DONE = "done"


@dataclass
class TrainingHistory:
    """Per-epoch metrics collected by :meth:`Trainer.run`."""

    epochs: List[Mapping[str, float]] = field(default_factory=list)
    steps: int = 0

    @property
    def costs(self) -> List[float]:
        return [float(record["loss"]) for record in self.epochs]

    @property
    def final_cost(self) -> float:
        return self.costs[-1] if self.epochs else float("nan")


class Trainer:
    """Drive forward, loss, backward and update over a batching policy."""

    def __init__(
        self,
        model: Model,
        policy: BatchingPolicy | None = None,
        callbacks: Sequence[object] | None = None,
        *,
        report_every: int | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.model = model
        self.policy = policy if policy is not None else MiniBatch(size=model.batch_size)
        self.callbacks = list(callbacks or [])
        self.report_every = max(1, int(report_every or self.policy.report_every))
        self.rng = rng if rng is not None else np.random.default_rng()
        self.state = TrainerState.IDLE
        self.steps = 0

    def step(self, batch: Batch) -> tuple[float, Array]:
        """Run one forward/loss/backward/update cycle and return ``(cost, aL)``."""

        self.state = TrainerState.FORWARD
        aL, cache = forward(batch.inputs, self.model)
        self.state = TrainerState.LOSS
        cost = cross_entropy_cost(aL, batch.targets)
        self.state = TrainerState.BACKWARD
        backward(aL, batch.targets, cache, self.model)
        self.state = TrainerState.UPDATE
        update(self.model)
        self._emit_step(self.steps, {"loss": cost, "batch_size": float(batch.size)})
        self.steps += 1
        return cost, aL

    def run(
        self,
        inputs: Array,
        labels: Array,
        epochs: int,
        *,
        val_data: Batch | None = None,
    ) -> TrainingHistory:
        if epochs < 0:
            raise ValueError("epochs must be non-negative")
        self._check_data(inputs, labels)
        if val_data is not None:
            self._check_data(val_data.inputs, val_data.targets)

        history = TrainingHistory()
        for epoch in range(epochs):
            self.state = TrainerState.EPOCH_START
            total_cost = 0.0
            num_batches = 0
            correct = 0.0
            seen = 0
            for batch in self.policy.batches(inputs, labels, self.rng):
                self.state = TrainerState.BATCH_START
                cost, aL = self.step(batch)
                total_cost += cost
                num_batches += 1
                correct += accuracy(aL, batch.targets) * batch.size
                seen += batch.size

            self.state = TrainerState.EPOCH_END
            metrics: Dict[str, float] = {
                "loss": total_cost / num_batches,
                "accuracy": correct / seen,
                "batches": float(num_batches),
            }
            if val_data is not None:
                val_metrics = self.evaluate(val_data.inputs, val_data.targets)
                metrics.update({f"val_{name}": value for name, value in val_metrics.items()})
            history.epochs.append(metrics)

            if epoch % self.report_every == 0:
                logger.info("Cost after epoch %d: %.6f", epoch, metrics["loss"])
                if val_data is not None:
                    logger.info("Validation accuracy after epoch %d: %.4f", epoch, metrics["val_accuracy"])
            self._emit_epoch(epoch, metrics)

        history.steps = self.steps
        self.state = TrainerState.DONE
        return history

    def evaluate(
        self, inputs: Array, labels: Array, metric_names: Sequence[str] = ("loss", "accuracy")
    ) -> Mapping[str, float]:
        self._check_data(inputs, labels)
        aL, _ = forward(inputs, self.model)
        return compute_metrics(metric_names, aL, labels)

    # ------------------------------------------------------------------
    # Internal helpers

    def _check_data(self, inputs: Array, labels: Array) -> None:
        if inputs.ndim != 2 or labels.ndim != 2:
            raise ShapeMismatch("inputs and labels must be 2-D (rows x examples) matrices")
        if inputs.shape[1] != labels.shape[1]:
            raise ShapeMismatch(
                f"{inputs.shape[1]} input columns but {labels.shape[1]} label columns"
            )
        if labels.shape[0] != self.model.num_classes:
            raise ShapeMismatch(
                f"labels have {labels.shape[0]} classes, model outputs {self.model.num_classes}"
            )
        if inputs.shape[1] == 0:
            raise ValueError("cannot train on an empty dataset")

    def _emit_step(self, step: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_step"):
                callback.on_step(step, metrics)  # type: ignore[attr-defined]

    def _emit_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)


__all__ = ["Trainer", "TrainerState", "TrainingHistory"]
