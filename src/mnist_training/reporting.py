"""End-of-run reporting: rich summary table, confusion heatmap, accuracy curve."""

from __future__ import annotations

from pathlib import Path

import matplotlib
import matplotlib.pyplot as plt
import numpy as np
from loguru import logger
from rich import box
from rich.console import Console
from rich.table import Table

from mnist_training.evaluation.confusion import ConfusionMatrix
from mnist_training.types import StepReport


class StepHistory:
    """``on_step`` callback that keeps running accuracy and loss per step."""

    def __init__(self) -> None:
        self.steps: list[int] = []
        self.accuracy: list[float] = []
        self.loss: list[float | None] = []

    def __call__(self, report: StepReport) -> None:
        self.steps.append(len(self.steps))
        self.accuracy.append(report.accuracy)
        self.loss.append(report.loss)

    def save_plot(self, output_dir: Path) -> Path:
        """Plot accuracy (and loss, when the trainer reports it) against step."""
        matplotlib.use("Agg")
        output_dir.mkdir(parents=True, exist_ok=True)

        fig, ax = plt.subplots(figsize=(10, 6))
        ax.plot(self.steps, self.accuracy, label="Running accuracy")
        ax.set_xlabel("Step")
        ax.set_ylabel("Accuracy")
        ax.grid(True, linestyle="--", alpha=0.7)
        if any(v is not None for v in self.loss):
            loss_ax = ax.twinx()
            loss_ax.plot(
                self.steps,
                [np.nan if v is None else v for v in self.loss],
                color="tab:orange",
                alpha=0.6,
                label="Loss",
            )
            loss_ax.set_ylabel("Loss")
        ax.set_title("Training Progress")
        fig.tight_layout()
        save_path = output_dir / "training_history.png"
        fig.savefig(save_path, dpi=150)
        plt.close(fig)

        logger.info(f"Training history plot saved to {save_path}")
        return save_path


def print_summary(matrix: ConfusionMatrix, console: Console | None = None) -> Table:
    """Print per-class sample counts and accuracy as a rich table."""
    console = console or Console()
    counts = matrix.counts
    per_class = matrix.per_class_accuracy()

    table = Table(
        title=f"Per-class Accuracy (overall {matrix.accuracy():.4f})",
        header_style="bold magenta",
        box=box.SQUARE,
        show_lines=True,
    )
    table.add_column("Class", justify="right", style="cyan")
    table.add_column("Samples", justify="right")
    table.add_column("Correct", justify="right", style="green")
    table.add_column("Accuracy", justify="right", style="yellow")

    for c in range(matrix.num_classes):
        acc = per_class[c]
        table.add_row(
            str(c),
            str(sum(counts[c])),
            str(counts[c][c]),
            "-" if acc is None else f"{acc * 100:.1f}%",
        )

    console.print(table)
    return table


def save_confusion_matrix_plot(matrix: ConfusionMatrix, output_dir: Path) -> Path:
    """Render the confusion matrix as a heatmap PNG and return its path."""
    matplotlib.use("Agg")
    output_dir.mkdir(parents=True, exist_ok=True)

    cm_np = np.asarray(matrix.counts)
    n = cm_np.shape[0]
    fig_size = max(6, n * 0.6)
    fig, ax = plt.subplots(figsize=(fig_size, fig_size * 0.85))
    im = ax.imshow(cm_np, interpolation="nearest", cmap="Blues")
    fig.colorbar(im, ax=ax)

    ax.set_title(f"Confusion Matrix ({matrix.total} samples)")
    ax.set_xlabel("Predicted")
    ax.set_ylabel("True")
    tick_marks = list(range(n))
    ax.set_xticks(tick_marks)
    ax.set_yticks(tick_marks)

    fig.tight_layout()
    save_path = output_dir / "confusion_matrix.png"
    fig.savefig(save_path, dpi=150)
    plt.close(fig)

    logger.info(f"Confusion matrix saved to {save_path}")
    return save_path
