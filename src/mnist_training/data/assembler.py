"""Minibatch assembly into pre-allocated, lock-guarded buffers."""

from __future__ import annotations

import itertools
from collections.abc import Iterator, Sequence

import torch
from loguru import logger

from mnist_training.data.buffers import SharedBuffer
from mnist_training.errors import BufferOverflow
from mnist_training.types import FillResult, Record

PIXEL_SCALE = 1.0 / 255.0
# Label written into padded rows; the loss ignores targets equal to it.
PAD_LABEL = -100


def write_batch_sample(
    tensor: torch.Tensor,
    values: Sequence[int] | Sequence[float],
    batch_n: int,
    scale: float = 1.0,
) -> None:
    """Copy one sample into row ``batch_n`` of ``tensor``.

    ``values`` is the flattened sample; it is reshaped to the row shape
    (row-major), so a 784-long vector fills a ``[1, 28, 28]`` row.

    Raises:
        BufferOverflow: ``batch_n`` is past the last row, or ``values`` does
            not have exactly one row's worth of elements.
    """
    rows = tensor.shape[0]
    if not 0 <= batch_n < rows:
        raise BufferOverflow(
            f"Row {batch_n} is outside a buffer of {rows} rows", batch_index=batch_n
        )
    row = tensor[batch_n]
    if len(values) != row.numel():
        raise BufferOverflow(
            f"Sample has {len(values)} values, buffer row holds {row.numel()}",
            batch_index=batch_n,
        )
    sample = torch.as_tensor(values, dtype=row.dtype).view(row.shape)
    if scale != 1.0:
        sample = sample * scale
    row.copy_(sample)


class BatchAssembler:
    """Fill an input buffer and a label buffer from a stream of ``Record``s.

    Input rows receive the pixel vector (scaled to 0..1 when ``normalize``
    is set); label rows receive the class index as a single value. Both
    buffers are write-locked for the whole fill and released before
    ``fill`` returns.

    Args:
        inputs: Buffer of shape ``[batch_size, *sample_shape]``.
        labels: Buffer of shape ``[batch_size, 1]``.
        normalize: Scale intensities by 1/255.
    """

    def __init__(
        self, inputs: SharedBuffer, labels: SharedBuffer, normalize: bool = True
    ) -> None:
        self.inputs = inputs
        self.labels = labels
        self.scale = PIXEL_SCALE if normalize else 1.0

    def fill(self, records: Iterator[Record], batch_size: int) -> FillResult:
        """Pull up to ``batch_size`` records and write them at rows 0..n-1.

        Returns the number of samples written and their labels. A count below
        ``batch_size`` means the iterator is exhausted; rows at and past that
        count still hold data from an earlier batch (see ``zero_tail``).
        """
        targets: list[int] = []
        with self.inputs.write() as inp, self.labels.write() as lab:
            for batch_n, record in enumerate(itertools.islice(records, batch_size)):
                write_batch_sample(inp, record.pixels, batch_n, scale=self.scale)
                write_batch_sample(lab, (record.label,), batch_n)
                targets.append(record.label)
        if len(targets) < batch_size:
            logger.debug(f"Short fill: {len(targets)}/{batch_size} samples")
        return FillResult(samples_written=len(targets), labels=targets)

    def zero_tail(self, samples_written: int) -> None:
        """Pad every row from ``samples_written`` on.

        Input rows are zeroed and label rows set to ``PAD_LABEL``, so a
        trainer that honours it takes no gradient from the padding.
        """
        with self.inputs.write() as inp, self.labels.write() as lab:
            inp[samples_written:].zero_()
            lab[samples_written:].fill_(PAD_LABEL)
