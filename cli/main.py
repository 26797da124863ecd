"""Command line entry point for training and probing digitnet models."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Iterable, TextIO

from digitnet.core.model import Model
from digitnet.core.propagation import predict
from digitnet.core.types import Batch
from digitnet.persistence import load_model
from digitnet.training import pipelines

logger = logging.getLogger("cli")


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger from ``level`` or ``DIGITNET_LOG_LEVEL``."""

    level_name = (level or os.getenv("DIGITNET_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )


def _format_result(result) -> str:
    payload = {
        "epochs": result.epochs,
        "final_cost": result.final_cost,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
    }
    if result.model_path:
        payload["model"] = result.model_path
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="synthetic-smoke",
        help="Preset configuration to execute",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    parser.add_argument("--data-path", help="Path to the dataset file (mnist .npz or csv)")
    parser.add_argument("--epochs", type=int, help="Override the number of training epochs")
    parser.add_argument("--seed", type=int, help="Seed used for initialisation and shuffling")
    parser.add_argument("--run-dir", help="Directory receiving metrics and the manifest")
    parser.add_argument(
        "--enable-plots", action="store_true", help="Write a loss curve into the run directory"
    )
    parser.add_argument("--load-model", type=Path, help="Start from a saved model")
    parser.add_argument("--save-model", type=Path, help="Write the trained model to this path")
    parser.add_argument(
        "--interactive",
        action="store_true",
        help="After training, read test indices from stdin and print predictions",
    )
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (defaults to $DIGITNET_LOG_LEVEL or INFO)",
    )
    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace) -> dict:
    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = pipelines.read_config_file(args.config)
        if pipelines.REQUIRED_SECTIONS <= set(override.keys()):
            config = json.loads(json.dumps(override))
        else:
            config = pipelines.merge_config(config, override)

    train_cfg = config.setdefault("train", {})
    if args.epochs is not None:
        train_cfg["epochs"] = int(args.epochs)
    if args.seed is not None:
        train_cfg["seed"] = int(args.seed)
    if args.run_dir:
        train_cfg["run_dir"] = args.run_dir
    if args.enable_plots:
        train_cfg["enable_plots"] = True
    if args.save_model:
        train_cfg["save_model"] = str(args.save_model)
    if args.data_path:
        options = config.setdefault("data", {}).setdefault("options", {})
        key = "csv_path" if config["data"].get("name") == "csv" else "path"
        options[key] = args.data_path
    return config


def interactive_loop(
    model: Model,
    batch: Batch,
    stream: TextIO | None = None,
    out: TextIO | None = None,
) -> int:
    """Prompt for column indices of ``batch`` until ``-1`` or end of input.

    Returns the number of predictions printed.
    """

    stream = stream or sys.stdin
    out = out or sys.stdout
    answered = 0
    while True:
        print("Type your index:", file=out)
        line = stream.readline()
        if not line:
            break
        try:
            idx = int(line.strip())
        except ValueError:
            print(f"Not an index: {line.strip()!r}", file=out)
            continue
        if idx == -1:
            break
        if not 0 <= idx < batch.size:
            print(f"Index must be in [0, {batch.size})", file=out)
            continue
        column = batch.inputs[:, idx : idx + 1]
        predicted = int(predict(column, model)[0])
        actual = int(batch.targets[:, idx].argmax())
        print(f"Predicted value: {predicted}", file=out)
        print(f"Actual value: {actual}", file=out)
        answered += 1
    return answered


def main(argv: Iterable[str] | None = None, *, stdin: TextIO | None = None) -> None:
    args = parse_args(argv)
    configure_logging(args.log_level)

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    config = resolve_config(args)

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    model = load_model(args.load_model) if args.load_model else None
    result, model, dataset = pipelines.train_from_config(config, model=model)
    print(_format_result(result))

    if args.interactive:
        split = "test" if "test" in dataset.splits else "train"
        logger.info("Probing the %s split (%d examples)", split, dataset.split(split).size)
        interactive_loop(model, dataset.split(split), stream=stdin)


if __name__ == "__main__":
    main()
