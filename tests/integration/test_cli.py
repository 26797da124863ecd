import io
import json
import logging
from pathlib import Path

import pytest

from cli.main import configure_logging, main, parse_args, resolve_config

SMALL = ["--preset", "synthetic-smoke", "--epochs", "2", "--log-level", "WARNING"]


@pytest.fixture(autouse=True)
def _in_tmp(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    # configure_logging replaces the root handlers; keep them per test so no
    # handler outlives the captured stream it was bound to
    monkeypatch.setattr(logging.root, "handlers", list(logging.root.handlers))
    monkeypatch.setattr(logging.root, "level", logging.root.level)


def _result(capsys):
    out = capsys.readouterr().out.strip().splitlines()
    return json.loads(out[0]), out[1:]


def test_cli_trains_preset_and_writes_metrics(capsys):
    main(SMALL)
    result, _ = _result(capsys)
    assert result["epochs"] == 2
    metrics = Path("runs/synthetic-smoke/metrics_train.jsonl")
    assert metrics.exists()
    assert len(metrics.read_text().splitlines()) == 2
    assert Path(result["manifest"]).exists()


def test_cli_interactive_prompts_until_sentinel(capsys):
    stdin = io.StringIO("0\n1\nfoo\n999\n-1\n")
    main(SMALL + ["--interactive"], stdin=stdin)
    _, lines = _result(capsys)

    assert lines.count("Type your index:") == 5
    assert sum(line.startswith("Predicted value: ") for line in lines) == 2
    assert sum(line.startswith("Actual value: ") for line in lines) == 2
    assert "Not an index: 'foo'" in lines
    assert "Index must be in [0, 30)" in lines


def test_cli_interactive_stops_at_end_of_input(capsys):
    main(SMALL + ["--interactive"], stdin=io.StringIO("3\n"))
    _, lines = _result(capsys)
    assert lines.count("Type your index:") == 2
    assert sum(line.startswith("Predicted value: ") for line in lines) == 1


def test_cli_save_then_load_model(capsys):
    main(SMALL + ["--save-model", "models/net.npz"])
    saved, _ = _result(capsys)
    assert saved["model"] == str(Path("models/net.npz"))

    main(["--preset", "synthetic-smoke", "--epochs", "0", "--load-model", "models/net.npz",
          "--run-dir", "runs/reloaded", "--log-level", "WARNING"])
    reloaded, _ = _result(capsys)
    assert reloaded["epochs"] == 0
    test_metrics = json.loads(Path("runs/reloaded/metrics_test.json").read_text())
    assert "test_accuracy" in test_metrics


def test_cli_config_override_and_dump(tmp_path, capsys):
    override = tmp_path / "override.yaml"
    override.write_text("train:\n  batch_size: 8\n  lr: 0.05\n")
    main(SMALL + ["--config", str(override), "--dump-config", "resolved.json"])
    dumped = json.loads(Path("resolved.json").read_text())
    assert dumped["train"]["batch_size"] == 8
    assert dumped["train"]["epochs"] == 2
    assert dumped["model"]["activations"][-1] == "softmax"


def test_resolve_config_routes_data_path():
    args = parse_args(["--preset", "mnist-minibatch", "--data-path", "/tmp/m.npz", "--seed", "5"])
    config = resolve_config(args)
    assert config["data"]["options"]["path"] == "/tmp/m.npz"
    assert config["train"]["seed"] == 5


def test_cli_list_presets(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--list-presets"])
    assert exc.value.code == 0
    names = capsys.readouterr().out.split()
    assert "synthetic-smoke" in names
    assert "synthetic-fullbatch" in names


def test_configure_logging_reads_environment(monkeypatch):
    monkeypatch.setenv("DIGITNET_LOG_LEVEL", "debug")
    configure_logging()
    assert logging.root.level == logging.DEBUG
    configure_logging("error")
    assert logging.root.level == logging.ERROR
    assert len(logging.root.handlers) == 1
