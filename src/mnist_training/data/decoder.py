"""CSV record decoding for MNIST-style datasets.

Each row is ``label,p0,p1,...,pN`` with integer intensities in 0..255 and no
header. ``RecordDecoder`` is a lazy, restartable sequence: every call to
``iter()`` reopens the file and walks it once, so a new epoch is simply a new
iteration. Running off the end of the file is the ordinary
``StopIteration`` of the iterator; malformed rows raise ``DecodeError``.
"""

from __future__ import annotations

import csv
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path

from loguru import logger

from mnist_training.errors import DecodeError
from mnist_training.types import Record

FEATURE_COUNT = 784
MAX_INTENSITY = 255


def _parse_int(value: str, row_index: int | None, field_index: int) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        raise DecodeError(
            f"Non-numeric field {value!r}",
            row_index=row_index,
            field_index=field_index,
        ) from None
    if not 0 <= parsed <= MAX_INTENSITY:
        raise DecodeError(
            f"Value {parsed} outside 0..{MAX_INTENSITY}",
            row_index=row_index,
            field_index=field_index,
        )
    return parsed


def decode_row(
    fields: Sequence[str],
    feature_count: int = FEATURE_COUNT,
    row_index: int | None = None,
    num_classes: int | None = None,
) -> Record:
    """Decode one row of text fields into a ``Record``.

    Args:
        fields: Label followed by ``feature_count`` pixel values.
        feature_count: Expected number of pixel values.
        row_index: Zero-based row number, only used for error context.
        num_classes: When given, labels must lie in ``[0, num_classes)``.

    Raises:
        DecodeError: Wrong field count, non-numeric field, value outside
            0..255 or label outside the class range.
    """
    if len(fields) != feature_count + 1:
        raise DecodeError(
            f"Expected {feature_count + 1} fields (label + {feature_count} pixels), "
            f"got {len(fields)}",
            row_index=row_index,
        )
    label = _parse_int(fields[0], row_index, 0)
    if num_classes is not None and label >= num_classes:
        raise DecodeError(
            f"Label {label} outside [0, {num_classes})",
            row_index=row_index,
            field_index=0,
        )
    pixels = tuple(
        _parse_int(value, row_index, i) for i, value in enumerate(fields[1:], start=1)
    )
    return Record(label=label, pixels=pixels)


def encode_record(record: Record) -> list[str]:
    """Inverse of ``decode_row``: label followed by pixel values as strings."""
    return [str(record.label), *(str(p) for p in record.pixels)]


def write_records(path: Path, records: Iterable[Record], delimiter: str = ",") -> int:
    """Write records as delimited rows. Returns the number of rows written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    written = 0
    with open(path, "w", newline="") as f:
        writer = csv.writer(f, delimiter=delimiter)
        for record in records:
            writer.writerow(encode_record(record))
            written += 1
    logger.debug(f"Wrote {written} records to {path}")
    return written


def _rows(f: Iterable[str], delimiter: str = ",") -> Iterator[tuple[int, list[str]]]:
    """Yield ``(row_index, fields)`` for every row of ``f`` that is not blank.

    A row whose fields are all empty or whitespace (``""``, ``",,,,"``) is
    blank. Row indices count blank rows too, so they match the file.
    """
    for row_index, fields in enumerate(csv.reader(f, delimiter=delimiter)):
        if not fields or all(not field.strip() for field in fields):
            continue
        yield row_index, fields


def count_records(path: Path, delimiter: str = ",") -> int:
    """Count the rows ``RecordDecoder`` would decode, without decoding them."""
    with open(path, newline="") as f:
        return sum(1 for _ in _rows(f, delimiter))


class RecordDecoder:
    """Lazy, restartable sequence of ``Record``s read from a delimited file.

    Args:
        path: CSV file with one record per row, no header.
        feature_count: Pixel values per row.
        num_classes: Optional label range check.
        delimiter: Field separator.
    """

    def __init__(
        self,
        path: Path | str,
        feature_count: int = FEATURE_COUNT,
        num_classes: int | None = None,
        delimiter: str = ",",
    ) -> None:
        self.path = Path(path)
        self.feature_count = feature_count
        self.num_classes = num_classes
        self.delimiter = delimiter

    def __iter__(self) -> Iterator[Record]:
        logger.debug(f"Opening {self.path} for a new pass")
        with open(self.path, newline="") as f:
            for row_index, fields in _rows(f, self.delimiter):
                yield decode_row(
                    fields,
                    feature_count=self.feature_count,
                    row_index=row_index,
                    num_classes=self.num_classes,
                )

    def count(self) -> int:
        """Number of records in the file (non-blank rows)."""
        return count_records(self.path, self.delimiter)
