#!/usr/bin/env python3
"""Write a synthetic MNIST-format CSV for smoke-testing the training loop.

Each class lights up its own horizontal band of the image, so even the
linear network should reach high accuracy within one epoch.

Usage::

    python scripts/make_synthetic_dataset.py --out assets/synthetic.csv --rows 600
    mnist-train data.data_path=assets/synthetic.csv data.batch_size=10
"""

from __future__ import annotations

import argparse
import random
import sys
from pathlib import Path

from loguru import logger

# Add project root to path so we can import mnist_training
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from mnist_training.data.decoder import write_records  # noqa: E402
from mnist_training.types import Record  # noqa: E402

SIDE = 28


def _make_record(label: int, num_classes: int, rng: random.Random) -> Record:
    band = SIDE // num_classes
    pixels = []
    for y in range(SIDE):
        lit = label * band <= y < (label + 1) * band
        for _ in range(SIDE):
            base = 200 if lit else 20
            pixels.append(max(0, min(255, base + rng.randint(-20, 20))))
    return Record(label=label, pixels=tuple(pixels))


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a synthetic MNIST CSV")
    parser.add_argument("--out", type=Path, default=Path("assets/synthetic.csv"))
    parser.add_argument("--rows", type=int, default=600)
    parser.add_argument("--num-classes", type=int, default=10)
    parser.add_argument("--seed", type=int, default=0)
    args = parser.parse_args()

    rng = random.Random(args.seed)
    records = (
        _make_record(rng.randrange(args.num_classes), args.num_classes, rng)
        for _ in range(args.rows)
    )
    written = write_records(args.out, records)
    logger.info(f"Wrote {written} synthetic records to {args.out}")


if __name__ == "__main__":
    main()
