"""Data pipeline for mnist_training."""

from mnist_training.data.assembler import PAD_LABEL, BatchAssembler, write_batch_sample
from mnist_training.data.buffers import ReadWriteLock, SharedBuffer
from mnist_training.data.decoder import (
    RecordDecoder,
    count_records,
    decode_row,
    encode_record,
    write_records,
)

__all__ = [
    "PAD_LABEL",
    "BatchAssembler",
    "ReadWriteLock",
    "RecordDecoder",
    "SharedBuffer",
    "count_records",
    "decode_row",
    "encode_record",
    "write_batch_sample",
    "write_records",
]
