"""Headless-safe plotting adapters."""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple


class PlotAdapter:
    """Collect epoch losses and optionally emit a matplotlib loss curve."""

    def __init__(self, run_dir: str | Path, enable_plots: bool = False):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self._history: List[Tuple[int, float, float | None]] = []
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    def on_epoch(self, epoch: int, metrics):
        if not self.enable_plots:
            return
        val_loss = metrics.get("val_loss")
        self._history.append(
            (epoch, float(metrics.get("loss", 0.0)), None if val_loss is None else float(val_loss))
        )

    def close(self) -> Path | None:
        if not self.enable_plots or not self._history:
            return None
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # imported lazily for headless safety

        epochs, losses, val_losses = zip(*self._history)
        fig, ax = plt.subplots()
        ax.plot(epochs, losses, label="train loss")
        if all(v is not None for v in val_losses):
            ax.plot(epochs, val_losses, label="val loss")
        ax.set_xlabel("Epoch")
        ax.set_ylabel("Cross-Entropy Loss")
        ax.set_title("Training Curve")
        ax.legend()
        plot_path = self.run_dir / "loss.png"
        fig.savefig(plot_path)
        plt.close(fig)
        return plot_path

    __call__ = on_epoch
