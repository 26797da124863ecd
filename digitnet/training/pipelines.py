"""Pipeline assembly: config presets, dataset, model, trainer and artifacts."""

from __future__ import annotations

import json
import logging
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, Mapping

import numpy as np

from .. import data as datasets
from ..core.model import Model
from ..core.types import RunResult
from ..persistence import save_model
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from .batching import make_policy
from .metrics import default_metrics
from .trainer import Trainer, TrainingHistory

logger = logging.getLogger(__name__)

_PRESETS: Dict[str, Mapping[str, object]] = {
    "mnist-minibatch": {
        "data": {"name": "mnist", "options": {"path": "data/mnist.npz", "val_split": 0.1}},
        "model": {
            "layer_sizes": [128, 256, 10],
            "activations": ["relu", "relu", "softmax"],
        },
        "train": {
            "epochs": 32,
            "batching": "minibatch",
            "batch_size": 64,
            "lr": 0.05,
            "seed": 0,
            "run_dir": "runs/mnist-minibatch",
            "save_model": True,
            "enable_plots": False,
        },
    },
    "mnist-fullbatch": {
        "data": {
            "name": "mnist",
            "options": {"path": "data/mnist.npz", "val_split": 0.1, "max_items": 2000},
        },
        "model": {
            "layer_sizes": [64, 32, 10],
            "activations": ["relu", "relu", "softmax"],
        },
        "train": {
            "epochs": 1000,
            "batching": "full",
            "lr": 0.01,
            "seed": 0,
            "run_dir": "runs/mnist-fullbatch",
            "save_model": True,
            "enable_plots": False,
        },
    },
    "synthetic-smoke": {
        "data": {"name": "synthetic", "options": {"n_train": 120, "n_test": 30, "seed": 0}},
        "model": {
            "layer_sizes": [32, 10],
            "activations": ["relu", "softmax"],
        },
        "train": {
            "epochs": 5,
            "batching": "minibatch",
            "batch_size": 16,
            "lr": 0.1,
            "seed": 7,
            "run_dir": "runs/synthetic-smoke",
            "save_model": False,
            "enable_plots": False,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None

REQUIRED_SECTIONS = frozenset({"data", "model", "train"})


def read_config_file(path: str | Path) -> Mapping[str, object]:
    """Decode a JSON or YAML config file into a mapping."""

    path = Path(path)
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        import yaml

        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        presets: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = read_config_file(file)
                missing = REQUIRED_SECTIONS - set(data)
                if missing:
                    missing_str = ", ".join(sorted(missing))
                    raise KeyError(f"Preset {file.name} is missing required sections: {missing_str}")
                presets[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = presets
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    file_overrides = _file_presets()
    if name in file_overrides:
        return file_overrides[name]
    try:
        return deepcopy(_PRESETS[name])
    except KeyError as exc:
        raise KeyError(f"Unknown preset: {name}") from exc


def merge_config(base: dict, override: Mapping[str, object]) -> dict:
    """Recursively merge ``override`` into ``base`` and return ``base``."""

    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            base[key] = merge_config(dict(base[key]), value)
        else:
            base[key] = value
    return base


def build_model(
    model_cfg: Mapping[str, object],
    train_cfg: Mapping[str, object],
    input_dim: int,
    rng: np.random.Generator,
) -> Model:
    configured = model_cfg.get("input_dim")
    if configured is not None and int(configured) != input_dim:
        raise ValueError(f"Configured input_dim={configured} but dataset has {input_dim} features")
    return Model(
        layer_sizes=list(model_cfg["layer_sizes"]),  # type: ignore[arg-type]
        activations=list(model_cfg["activations"]),  # type: ignore[arg-type]
        learning_rate=float(train_cfg.get("lr", 0.05)),
        batch_size=int(train_cfg.get("batch_size", 64)),
        input_dim=input_dim,
        rng=rng,
    )


def _apply_train_overrides(model: Model, train_cfg: Mapping[str, object]) -> None:
    """Let the ``train`` section's ``lr``/``batch_size`` win over a loaded model's values."""

    lr = train_cfg.get("lr")
    batch_size = train_cfg.get("batch_size")
    if lr is not None and float(lr) != model.learning_rate:  # type: ignore[arg-type]
        logger.info("Overriding loaded learning rate %s -> %s", model.learning_rate, lr)
    if batch_size is not None and int(batch_size) != model.batch_size:  # type: ignore[arg-type]
        logger.info("Overriding loaded batch size %d -> %s", model.batch_size, batch_size)
    model.set_hyperparameters(
        learning_rate=None if lr is None else float(lr),  # type: ignore[arg-type]
        batch_size=None if batch_size is None else int(batch_size),  # type: ignore[arg-type]
    )


def train_from_config(
    config: Mapping[str, object], *, model: Model | None = None
) -> tuple[RunResult, Model, datasets.DatasetSpec]:
    """Train (or continue training) a model as described by ``config``."""

    missing = REQUIRED_SECTIONS - set(config)
    if missing:
        raise KeyError(f"Config is missing required sections: {', '.join(sorted(missing))}")
    data_cfg = dict(config["data"])  # type: ignore[arg-type]
    model_cfg = dict(config["model"])  # type: ignore[arg-type]
    train_cfg = dict(config["train"])  # type: ignore[arg-type]

    seed = int(train_cfg.get("seed", 0))
    rng = np.random.default_rng(seed)
    dataset = datasets.get_dataset(str(data_cfg["name"]), **dict(data_cfg.get("options", {})))
    train_split = dataset.split("train")
    val_split = dataset.splits.get("val")

    if model is None:
        model = build_model(model_cfg, train_cfg, dataset.input_dim, rng)
    else:
        if model.input_dim != dataset.input_dim:
            raise ValueError(
                f"Loaded model expects {model.input_dim} features, dataset has {dataset.input_dim}"
            )
        _apply_train_overrides(model, train_cfg)
    batching = str(train_cfg.get("batching", "minibatch"))
    policy = make_policy(batching, model.batch_size)
    epochs = int(train_cfg.get("epochs", 1))

    run_dir = _resolve_run_dir(train_cfg, dataset.name)
    run_dir.mkdir(parents=True, exist_ok=True)

    _log_startup_summary(
        dataset_name=dataset.name,
        sizes=dataset.sizes(),
        model=model,
        batching=batching,
        epochs=epochs,
    )

    train_jsonl = JsonlSink(run_dir / "metrics_train.jsonl", split="train", seed=seed)
    train_csv = CsvSink(run_dir / "metrics_train.csv", split="train")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))

    trainer = Trainer(
        model,
        policy,
        callbacks=[train_jsonl, train_csv, plots],
        report_every=train_cfg.get("report_every"),  # type: ignore[arg-type]
        rng=rng,
    )
    history = trainer.run(
        train_split.inputs, train_split.targets, epochs, val_data=val_split
    )
    plots.close()

    results = _final_metrics(trainer, dataset, history)
    (run_dir / "metrics_test.json").write_text(json.dumps(results, indent=2))

    model_path = ""
    save_target = train_cfg.get("save_model", False)
    if save_target:
        target = run_dir / "model.npz" if save_target is True else Path(str(save_target))
        model_path = str(save_model(model, target))

    manifest = write_manifest(
        run_dir / "manifest.json",
        config=json.loads(json.dumps(config)),
        dataset_provenance=dataset.provenance,
        model=model.describe(),
        results=results,
    )
    (run_dir / "config.json").write_text(json.dumps(config, indent=2))

    result = RunResult(
        epochs=epochs,
        final_cost=history.final_cost,
        metrics_path=str(train_jsonl.path),
        manifest_path=manifest,
        model_path=model_path,
    )
    return result, model, dataset


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    result, _, _ = train_from_config(config)
    return result


def _final_metrics(
    trainer: Trainer, dataset: datasets.DatasetSpec, history: TrainingHistory
) -> Dict[str, float]:
    results: Dict[str, float] = {}
    if history.epochs:
        results["train_loss"] = history.final_cost
    names = default_metrics(num_classes=dataset.num_classes)
    for split in ("val", "test"):
        batch = dataset.splits.get(split)
        if batch is None or batch.size == 0:
            continue
        for name, value in trainer.evaluate(batch.inputs, batch.targets, names).items():
            results[f"{split}_{name}"] = value
    if "test_accuracy" in results:
        logger.info("Test accuracy: %.4f", results["test_accuracy"])
    return results


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset


def _log_startup_summary(
    *,
    dataset_name: str,
    sizes: Mapping[str, int],
    model: Model,
    batching: str,
    epochs: int,
) -> None:
    logger.info("=== digitnet run ===")
    logger.info("Dataset       : %s %s", dataset_name, dict(sizes))
    logger.info("Layers        : %s -> %s", model.input_dim, list(model.layer_sizes))
    logger.info("Activations   : %s", [kind.value for kind in model.activations])
    logger.info("Batching      : %s (batch size %d)", batching, model.batch_size)
    logger.info("Learning rate : %s", model.learning_rate)
    logger.info("Epochs        : %d", epochs)
    logger.info("Parameters    : %d", model.parameter_count())


__all__ = [
    "build_model",
    "load_preset",
    "merge_config",
    "presets",
    "read_config_file",
    "run_pipeline",
    "train_from_config",
]
