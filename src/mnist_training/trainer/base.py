"""The trainer capability consumed by the training loop."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from mnist_training.data.buffers import SharedBuffer


@runtime_checkable
class Trainer(Protocol):
    """Performs one optimization step per minibatch.

    ``train_step`` only reads ``inputs`` and ``labels`` and must return a
    new buffer of shape ``[inputs.rows, num_classes]`` holding per-class
    scores. It may be slow and may run on another device; the loop treats
    it as a blocking call.
    """

    def train_step(self, inputs: SharedBuffer, labels: SharedBuffer) -> SharedBuffer: ...
