"""digitnet public API."""

from .core import activations  # noqa: F401
from .core.activations import Activation
from .core.errors import MissingGradient, ShapeMismatch, UnsupportedActivation
from .core.model import Model
from .core.optim import update
from .core.propagation import backward, forward, predict
from .core.types import Batch, ForwardCache, RunResult
from .persistence import load_model, save_model
from .training.batching import FullBatch, MiniBatch
from .training.losses import cross_entropy_cost
from .training.metrics import accuracy
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import Trainer

__all__ = [
    "Activation",
    "Batch",
    "ForwardCache",
    "FullBatch",
    "MiniBatch",
    "MissingGradient",
    "Model",
    "RunResult",
    "ShapeMismatch",
    "Trainer",
    "UnsupportedActivation",
    "accuracy",
    "activations",
    "backward",
    "cross_entropy_cost",
    "forward",
    "load_model",
    "load_preset",
    "predict",
    "presets",
    "run_pipeline",
    "save_model",
    "update",
]
