"""Training loop: decode, assemble, train, score, report, one step at a time."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import closing

from loguru import logger

from mnist_training.config import TrainingConfig
from mnist_training.data.assembler import BatchAssembler
from mnist_training.data.buffers import SharedBuffer
from mnist_training.data.decoder import RecordDecoder
from mnist_training.errors import ConfigurationError, HarnessError, ShapeMismatch
from mnist_training.evaluation.confusion import ConfusionMatrix
from mnist_training.trainer.base import Trainer
from mnist_training.types import Record, StepReport, TrainingSummary


class TrainingLoop:
    """Drive ``floor(dataset_size / batch_size)`` steps per epoch.

    The loop owns the input buffer ``[batch_size, *sample_shape]`` and the
    label buffer ``[batch_size, 1]``. A step writes both under their write
    locks, hands them to the trainer, checks the output shape and feeds the
    arg-max predictions to the confusion matrix under the output's read
    lock. Only one step is in flight at a time.

    A short final batch (the record file ended before ``dataset_size`` rows)
    is handled by ``config.data.short_batch``:

    - ``skip``: the step is not run and the epoch ends.
    - ``pad``: rows past the written count get zero inputs and ``PAD_LABEL``
      targets, the trainer sees the full buffer and only the written rows
      are scored.
    - ``shrink``: the trainer sees views of the written rows only.

    Any ``HarnessError`` aborts the run after being annotated with the epoch
    and step it happened in.

    Args:
        config: Validated run configuration.
        trainer: Object implementing ``train_step``.
        decoder: Restartable record source, iterated once per epoch.
        matrix: Confusion matrix to update; built from config if omitted.
        on_step: Optional callback receiving each ``StepReport``.
    """

    def __init__(
        self,
        config: TrainingConfig,
        trainer: Trainer,
        decoder: RecordDecoder,
        matrix: ConfusionMatrix | None = None,
        on_step: Callable[[StepReport], None] | None = None,
    ) -> None:
        self.config = config
        self.trainer = trainer
        self.decoder = decoder
        if matrix is None:
            matrix = ConfusionMatrix(config.num_classes, capacity=config.history_capacity)
        self.matrix = matrix
        self.on_step = on_step

        data = config.data
        self.batch_size = data.batch_size
        self.inputs = SharedBuffer((data.batch_size, *data.sample_shape), name="input")
        self.labels = SharedBuffer((data.batch_size, 1), name="label")
        self.assembler = BatchAssembler(self.inputs, self.labels, normalize=data.normalize)

        self._dataset_size: int | None = data.dataset_size
        self.steps_run = 0

    @property
    def dataset_size(self) -> int:
        """Configured dataset size, or the record count of the decoder's file."""
        if self._dataset_size is None:
            self._dataset_size = self.decoder.count()
            logger.info(f"Counted {self._dataset_size} records in {self.decoder.path}")
        return self._dataset_size

    @property
    def total_steps(self) -> int:
        """Steps per epoch."""
        return self.dataset_size // self.batch_size

    def run(self) -> TrainingSummary:
        """Run every epoch to completion and return the final statistics.

        Raises:
            ConfigurationError: The dataset is smaller than one batch.
            HarnessError: Any decode, buffer, length or shape failure.
        """
        total_steps = self.total_steps
        if total_steps == 0:
            raise ConfigurationError(
                f"batch_size={self.batch_size} exceeds dataset_size={self.dataset_size}"
            )
        logger.info(
            f"Training {self.config.epochs} epoch(s) x {total_steps} steps, "
            f"batch_size={self.batch_size}"
        )

        for epoch in range(self.config.epochs):
            # Steps can end before the last row; close each pass explicitly.
            with closing(iter(self.decoder)) as records:
                for step in range(total_steps):
                    try:
                        report = self.run_step(records, epoch, step)
                    except HarnessError as exc:
                        exc.annotate(epoch=epoch, step=step)
                        logger.error(f"Aborting training: {exc}")
                        raise
                    if report is None:
                        break

        summary = TrainingSummary(
            epochs=self.config.epochs,
            steps_run=self.steps_run,
            samples_seen=self.matrix.total,
            accuracy=self.matrix.accuracy(),
        )
        logger.info(
            f"Training complete: {summary.steps_run} steps, "
            f"{summary.samples_seen} samples, accuracy {summary.accuracy:.4f}"
        )
        return summary

    def run_step(
        self, records: Iterator[Record], epoch: int = 0, step: int = 0
    ) -> StepReport | None:
        """Run one step; ``None`` means the epoch ended before a full batch."""
        fill = self.assembler.fill(records, self.batch_size)
        written = fill.samples_written
        inputs, labels = self.inputs, self.labels

        if written < self.batch_size:
            policy = self.config.data.short_batch
            if written == 0 or policy == "skip":
                logger.warning(
                    f"Epoch {epoch} ended after {step} steps: short batch of "
                    f"{written}/{self.batch_size} samples skipped"
                )
                return None
            logger.warning(
                f"Short batch of {written}/{self.batch_size} samples at step {step} "
                f"({policy})"
            )
            if policy == "pad":
                self.assembler.zero_tail(written)
            else:
                inputs, labels = self.inputs.narrow(written), self.labels.narrow(written)

        output = self.trainer.train_step(inputs, labels)
        self._check_output(output, inputs.rows)

        predictions = self.matrix.predictions_from(output)[:written]
        self.matrix.add_samples(predictions, fill.labels)
        self.steps_run += 1

        report = StepReport(
            epoch=epoch,
            step=step,
            samples=written,
            last_correct=predictions[-1] == fill.labels[-1],
            accuracy=self.matrix.accuracy(),
            loss=getattr(self.trainer, "last_loss", None),
        )
        logger.info(
            f"[{epoch}:{step}] Last sample: {report.last_correct} | "
            f"Accuracy {report.accuracy:.4f}"
        )
        if self.on_step is not None:
            self.on_step(report)
        return report

    def _check_output(self, output: SharedBuffer, rows: int) -> None:
        expected = (rows, self.config.num_classes)
        if output.shape != expected:
            raise ShapeMismatch(
                f"Trainer output shape {list(output.shape)}, expected {list(expected)}"
            )
