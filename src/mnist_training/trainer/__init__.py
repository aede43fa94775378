"""Trainer capability and its PyTorch implementation."""

from mnist_training.trainer.base import Trainer
from mnist_training.trainer.torch_trainer import TorchTrainer, resolve_device

__all__ = ["TorchTrainer", "Trainer", "resolve_device"]
