"""Training loop, loss, metrics and pipeline assembly."""

from .batching import FullBatch, MiniBatch, make_policy
from .losses import cross_entropy_cost
from .metrics import accuracy
from .trainer import Trainer, TrainerState, TrainingHistory

__all__ = [
    "FullBatch",
    "MiniBatch",
    "Trainer",
    "TrainerState",
    "TrainingHistory",
    "accuracy",
    "cross_entropy_cost",
    "make_policy",
]
