"""Value types shared across mnist_training modules."""

from typing import NamedTuple


class Record(NamedTuple):
    """One decoded dataset row.

    label: Integer class label in 0..255.
    pixels: Pixel intensities in 0..255, exactly ``feature_count`` long.
    """

    label: int
    pixels: tuple[int, ...]


class FillResult(NamedTuple):
    """Outcome of one ``BatchAssembler.fill`` call.

    ``samples_written`` below the requested batch size means the record
    sequence ran out (end of epoch), not an error.
    """

    samples_written: int
    labels: list[int]


class StepReport(NamedTuple):
    """Progress emitted after every training step."""

    epoch: int
    step: int
    samples: int
    last_correct: bool
    accuracy: float
    loss: float | None = None


class TrainingSummary(NamedTuple):
    """Final state returned by ``TrainingLoop.run``."""

    epochs: int
    steps_run: int
    samples_seen: int
    accuracy: float
