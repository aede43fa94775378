"""Shared pytest fixtures for mnist_training tests."""

from pathlib import Path

import pytest

from mnist_training.data.decoder import write_records
from mnist_training.types import Record

FEATURES = 16  # 4x4 "images" keep the tests fast


def make_records(count: int, features: int = FEATURES, num_classes: int = 3) -> list[Record]:
    """Deterministic records: label cycles over classes, pixels encode the row."""
    return [
        Record(
            label=i % num_classes,
            pixels=tuple((i * 7 + j) % 256 for j in range(features)),
        )
        for i in range(count)
    ]


@pytest.fixture()
def tiny_csv(tmp_path: Path) -> Path:
    """10-row dataset of 4x4 images, 3 classes, no header."""
    path = tmp_path / "tiny.csv"
    write_records(path, make_records(10))
    return path


@pytest.fixture()
def mnist_csv(tmp_path: Path) -> Path:
    """12-row dataset in the real 784-pixel MNIST row format, 10 classes."""
    path = tmp_path / "mnist_train.csv"
    write_records(path, make_records(12, features=784, num_classes=10))
    return path


@pytest.fixture()
def record_factory():  # noqa: ANN201
    """Expose ``make_records`` to tests that need records in memory."""
    return make_records
