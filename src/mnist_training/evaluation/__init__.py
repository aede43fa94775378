"""Online evaluation for mnist_training."""

from mnist_training.evaluation.confusion import ConfusionMatrix

__all__ = ["ConfusionMatrix"]
