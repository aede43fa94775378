"""Unit tests for ConfusionMatrix."""

import pytest
import torch

from mnist_training.data.buffers import SharedBuffer
from mnist_training.errors import LengthMismatch, ShapeMismatch
from mnist_training.evaluation.confusion import ConfusionMatrix


class TestAddSamples:
    def test_accuracy_and_counts(self) -> None:
        cm = ConfusionMatrix(num_classes=3)
        cm.add_samples([0, 1, 1], [0, 1, 0])
        assert cm.accuracy() == pytest.approx(2 / 3)
        # counts[true][predicted]: true 0 was predicted as 1 once
        assert cm.counts[0][1] == 1
        assert cm.counts[0][0] == 1
        assert cm.counts[1][1] == 1
        assert cm.counts[1][0] == 0

    def test_sum_of_counts_equals_total(self) -> None:
        cm = ConfusionMatrix(num_classes=4)
        cm.add_samples([0, 1, 2, 3], [3, 2, 1, 0])
        cm.add_samples([1, 1], [1, 2])
        assert sum(map(sum, cm.counts)) == cm.total == 6

    def test_length_mismatch(self) -> None:
        cm = ConfusionMatrix(num_classes=3)
        with pytest.raises(LengthMismatch, match="2 predictions for 3 labels"):
            cm.add_samples([0, 1], [0, 1, 2])
        assert cm.total == 0

    def test_class_out_of_range(self) -> None:
        cm = ConfusionMatrix(num_classes=3)
        with pytest.raises(ValueError, match="outside"):
            cm.add_samples([3], [0])

    def test_empty_update_is_noop(self) -> None:
        cm = ConfusionMatrix(num_classes=3)
        cm.add_samples([], [])
        assert cm.total == 0
        assert cm.samples == []

    def test_history_records_correctness_in_order(self) -> None:
        cm = ConfusionMatrix(num_classes=3)
        cm.add_samples([0, 2, 1], [0, 1, 1])
        assert cm.samples == [True, False, True]
        assert cm.history == cm.samples


class TestAccuracy:
    def test_empty_matrix_is_zero(self) -> None:
        assert ConfusionMatrix(num_classes=10).accuracy() == 0.0

    def test_idempotent(self) -> None:
        cm = ConfusionMatrix(num_classes=3)
        cm.add_samples([0, 1, 2, 2], [0, 1, 1, 2])
        assert cm.accuracy() == cm.accuracy() == 0.75

    def test_accumulates_across_calls(self) -> None:
        cm = ConfusionMatrix(num_classes=2)
        cm.add_samples([0], [0])
        cm.add_samples([1], [0])
        assert cm.accuracy() == 0.5

    def test_per_class_accuracy(self) -> None:
        cm = ConfusionMatrix(num_classes=3)
        cm.add_samples([0, 0, 1], [0, 1, 1])
        assert cm.per_class_accuracy() == [1.0, 0.5, None]

    def test_reset(self) -> None:
        cm = ConfusionMatrix(num_classes=2, capacity=5)
        cm.add_samples([0, 1], [0, 0])
        cm.reset()
        assert cm.total == 0
        assert cm.accuracy() == 0.0
        assert cm.samples == []
        assert cm.capacity == 5


class TestCapacity:
    def test_bounded_history_keeps_most_recent(self) -> None:
        cm = ConfusionMatrix(num_classes=2)
        cm.set_capacity(2)
        cm.add_samples([0], [0])  # True
        cm.add_samples([1], [0])  # False
        cm.add_samples([1], [1])  # True
        cm.add_samples([0], [1])  # False
        assert len(cm.samples) == 2
        assert cm.samples == [True, False]
        # counts are not bounded by the history capacity
        assert cm.total == 4

    def test_unbounded_by_default(self) -> None:
        cm = ConfusionMatrix(num_classes=2)
        cm.add_samples([0] * 50, [0] * 50)
        assert cm.capacity is None
        assert len(cm.samples) == 50

    def test_shrinking_keeps_latest(self) -> None:
        cm = ConfusionMatrix(num_classes=2)
        cm.add_samples([0, 0, 1], [0, 1, 1])
        cm.set_capacity(1)
        assert cm.samples == [True]

    def test_unset_capacity(self) -> None:
        cm = ConfusionMatrix(num_classes=2, capacity=1)
        cm.set_capacity(None)
        cm.add_samples([0, 0], [0, 0])
        assert len(cm.samples) == 2

    def test_negative_capacity_rejected(self) -> None:
        with pytest.raises(ValueError):
            ConfusionMatrix(num_classes=2, capacity=-1)


class TestPredictionsFrom:
    def test_argmax_per_row(self) -> None:
        cm = ConfusionMatrix(num_classes=3)
        scores = torch.tensor([[0.1, 0.7, 0.2], [0.9, 0.05, 0.05], [0.0, 0.1, 0.3]])
        assert cm.predictions_from(scores) == [1, 0, 2]

    def test_ties_break_to_lowest_index(self) -> None:
        cm = ConfusionMatrix(num_classes=4)
        scores = torch.tensor([[0.2, 0.4, 0.4, 0.0], [1.0, 1.0, 1.0, 1.0]])
        assert cm.predictions_from(scores) == [1, 0]

    def test_accepts_shared_buffer(self) -> None:
        cm = ConfusionMatrix(num_classes=2)
        buffer = SharedBuffer.from_tensor(torch.tensor([[-1.0, -0.1]]))
        assert cm.predictions_from(buffer) == [1]
        assert buffer.lock.readers == 0

    @pytest.mark.parametrize("shape", [(2, 4), (3,), (1, 2, 3)])
    def test_wrong_shape(self, shape: tuple[int, ...]) -> None:
        cm = ConfusionMatrix(num_classes=3)
        with pytest.raises(ShapeMismatch):
            cm.predictions_from(torch.zeros(shape))
