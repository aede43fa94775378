"""Tests for end-of-run reporting helpers."""

from pathlib import Path

from rich.console import Console

from mnist_training.evaluation.confusion import ConfusionMatrix
from mnist_training.reporting import StepHistory, print_summary, save_confusion_matrix_plot
from mnist_training.types import StepReport


def _matrix() -> ConfusionMatrix:
    cm = ConfusionMatrix(num_classes=3)
    cm.add_samples([0, 0, 1, 1], [0, 1, 1, 1])
    return cm


class TestPrintSummary:
    def test_table_rows_per_class(self) -> None:
        console = Console(record=True, width=120)
        table = print_summary(_matrix(), console=console)
        assert table.row_count == 3
        text = console.export_text()
        assert "0.7500" in text
        assert "66.7%" in text
        assert "-" in text


class TestConfusionMatrixPlot:
    def test_png_written(self, tmp_path: Path) -> None:
        path = save_confusion_matrix_plot(_matrix(), tmp_path / "plots")
        assert path == tmp_path / "plots" / "confusion_matrix.png"
        assert path.stat().st_size > 0


class TestStepHistory:
    def test_collects_reports(self) -> None:
        history = StepHistory()
        history(StepReport(0, 0, 4, True, 0.5, 1.2))
        history(StepReport(0, 1, 4, False, 0.25, None))
        assert history.steps == [0, 1]
        assert history.accuracy == [0.5, 0.25]
        assert history.loss == [1.2, None]

    def test_plot_written(self, tmp_path: Path) -> None:
        history = StepHistory()
        for step in range(3):
            history(StepReport(0, step, 1, True, 1.0, 0.1 * step))
        assert history.save_plot(tmp_path).is_file()
