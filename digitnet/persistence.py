"""Save and restore trained models as compressed ``.npz`` archives."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import numpy as np

from .core.model import Model

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
_META_KEY = "__meta__"


def save_model(model: Model, path: str | Path) -> Path:
    """Write configuration and parameters of ``model`` to ``path``.

    Gradients are scratch state and are never written.
    """

    path = Path(path)
    if path.suffix != ".npz":
        path = path.with_suffix(".npz")
    path.parent.mkdir(parents=True, exist_ok=True)
    meta = dict(model.describe())
    meta["format_version"] = FORMAT_VERSION
    payload = {name: value for name, value in model.state_dict().items()}
    payload[_META_KEY] = np.array(json.dumps(meta))
    with path.open("wb") as handle:
        np.savez_compressed(handle, **payload)
    logger.info("Saved model with %d parameters to %s", model.parameter_count(), path)
    return path


def load_model(path: str | Path) -> Model:
    """Rebuild a :class:`Model` previously written by :func:`save_model`."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Model file not found: {path}")
    with np.load(path, allow_pickle=False) as data:
        if _META_KEY not in data.files:
            raise ValueError(f"{path} is not a digitnet model archive")
        meta = json.loads(str(data[_META_KEY]))
        state = {name: data[name] for name in data.files if name != _META_KEY}

    version = int(meta.get("format_version", 0))
    if version != FORMAT_VERSION:
        raise ValueError(f"Unsupported model format version {version} in {path}")

    model = Model(
        layer_sizes=meta["layer_sizes"],
        activations=meta["activations"],
        learning_rate=meta["learning_rate"],
        batch_size=meta["batch_size"],
        input_dim=meta["input_dim"],
        rng=np.random.default_rng(0),
    )
    model.load_state_dict(state)
    logger.info("Loaded model %s from %s", meta["layer_sizes"], path)
    return model


__all__ = ["FORMAT_VERSION", "load_model", "save_model"]
