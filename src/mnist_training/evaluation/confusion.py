"""Incrementally updated confusion matrix with a bounded correctness history."""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence

import torch
from torchmetrics.classification import MulticlassConfusionMatrix

from mnist_training.data.buffers import SharedBuffer
from mnist_training.errors import LengthMismatch, ShapeMismatch


class ConfusionMatrix:
    """Running true-vs-predicted counts for ``num_classes`` classes.

    Counts live in a torchmetrics ``MulticlassConfusionMatrix`` (rows are true
    classes, columns predicted classes). Alongside the counts a ring buffer
    records whether each sample was classified correctly; ``capacity=None``
    keeps the full history, which grows with training length.

    Args:
        num_classes: Number of target classes.
        capacity: Maximum history length, or ``None`` for unbounded.
    """

    def __init__(self, num_classes: int, capacity: int | None = None) -> None:
        if num_classes < 2:
            raise ValueError(f"num_classes must be >= 2, got {num_classes}")
        self.num_classes = num_classes
        self._cm = MulticlassConfusionMatrix(num_classes=num_classes)
        self._total = 0
        self._history: deque[bool] = deque(maxlen=self._check_capacity(capacity))

    @staticmethod
    def _check_capacity(capacity: int | None) -> int | None:
        if capacity is not None and capacity < 0:
            raise ValueError(f"capacity must be >= 0 or None, got {capacity}")
        return capacity

    @property
    def capacity(self) -> int | None:
        return self._history.maxlen

    def set_capacity(self, capacity: int | None) -> None:
        """Bound the history length. Shrinking keeps the most recent entries."""
        self._history = deque(self._history, maxlen=self._check_capacity(capacity))

    def predictions_from(self, output: torch.Tensor | SharedBuffer) -> list[int]:
        """Arg-max class per row of a ``[rows, num_classes]`` score tensor.

        Ties resolve to the lowest class index.
        """
        if isinstance(output, SharedBuffer):
            with output.read() as scores:
                return self._argmax(scores)
        return self._argmax(output)

    def _argmax(self, scores: torch.Tensor) -> list[int]:
        if scores.dim() != 2 or scores.shape[1] != self.num_classes:
            raise ShapeMismatch(
                f"Expected scores of shape [rows, {self.num_classes}], "
                f"got {list(scores.shape)}"
            )
        # torch.argmax returns the first maximal index
        return scores.detach().cpu().argmax(dim=1).tolist()

    def add_samples(self, predictions: Sequence[int], true_labels: Sequence[int]) -> None:
        """Record one prediction/label pair per sample.

        Raises:
            LengthMismatch: The two sequences differ in length.
            ValueError: A class index is outside ``[0, num_classes)``.
        """
        if len(predictions) != len(true_labels):
            raise LengthMismatch(
                f"{len(predictions)} predictions for {len(true_labels)} labels"
            )
        if not predictions:
            return
        for value in (*predictions, *true_labels):
            if not 0 <= value < self.num_classes:
                raise ValueError(f"Class {value} outside [0, {self.num_classes})")

        self._cm.update(
            torch.as_tensor(predictions, dtype=torch.long),
            torch.as_tensor(true_labels, dtype=torch.long),
        )
        self._total += len(predictions)
        self._history.extend(p == t for p, t in zip(predictions, true_labels))

    def _matrix(self) -> torch.Tensor:
        if self._total == 0:
            return torch.zeros(self.num_classes, self.num_classes, dtype=torch.long)
        return self._cm.compute().long()

    @property
    def counts(self) -> list[list[int]]:
        """``counts[true][predicted]`` as nested lists."""
        return self._matrix().tolist()

    @property
    def total(self) -> int:
        return self._total

    @property
    def samples(self) -> list[bool]:
        """Per-sample correctness, oldest first."""
        return list(self._history)

    history = samples

    def accuracy(self) -> float:
        """Fraction of all samples seen whose prediction matched; 0.0 when empty."""
        if self._total == 0:
            return 0.0
        return float(self._matrix().trace().item()) / self._total

    def per_class_accuracy(self) -> list[float | None]:
        """Recall per true class; ``None`` for classes never seen."""
        matrix = self._matrix()
        result: list[float | None] = []
        for c in range(self.num_classes):
            seen = int(matrix[c].sum().item())
            result.append(int(matrix[c, c].item()) / seen if seen else None)
        return result

    def reset(self) -> None:
        """Drop all counts and history; capacity is kept."""
        self._cm.reset()
        self._total = 0
        self._history.clear()
