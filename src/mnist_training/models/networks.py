"""Reference networks: linear, multi-layer perceptron and small convnet.

All three take ``[B, *sample_shape]`` float input and return raw class
scores of shape ``[B, num_classes]``; the trainer applies ``log_softmax``.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import torch
from torch import nn

from mnist_training.errors import ConfigurationError
from mnist_training.utils.hydra import register


@register(group="network", name="linear")
class LinearNetwork(nn.Module):
    """Single fully connected layer over the flattened sample."""

    def __init__(self, num_classes: int = 10, sample_shape: Sequence[int] = (1, 28, 28)) -> None:
        super().__init__()
        self.linear = nn.Linear(math.prod(sample_shape), num_classes)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.linear(x.flatten(1))


@register(group="network", name="mlp")
class MLPNetwork(nn.Module):
    """Linear(2 * features) -> Sigmoid -> Linear(num_classes)."""

    def __init__(
        self,
        num_classes: int = 10,
        sample_shape: Sequence[int] = (1, 28, 28),
        hidden_size: int | None = None,
    ) -> None:
        super().__init__()
        features = math.prod(sample_shape)
        hidden = hidden_size or 2 * features
        self.layers = nn.Sequential(
            nn.Linear(features, hidden),
            nn.Sigmoid(),
            nn.Linear(hidden, num_classes),
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.layers(x.flatten(1))


@register(group="network", name="conv")
class ConvNetwork(nn.Module):
    """Conv(20, 5x5) -> MaxPool(2) -> Linear(500) -> Sigmoid -> Linear(num_classes).

    Needs a ``(channels, height, width)`` sample shape with both spatial
    sides of at least 6 pixels.
    """

    def __init__(
        self,
        num_classes: int = 10,
        sample_shape: Sequence[int] = (1, 28, 28),
        num_filters: int = 20,
        kernel_size: int = 5,
        hidden_size: int = 500,
    ) -> None:
        super().__init__()
        if len(sample_shape) != 3:
            raise ConfigurationError(
                f"conv network needs a (channels, height, width) sample_shape, "
                f"got {tuple(sample_shape)}"
            )
        channels, height, width = sample_shape
        pooled_h = (height - kernel_size + 1) // 2
        pooled_w = (width - kernel_size + 1) // 2
        if pooled_h < 1 or pooled_w < 1:
            raise ConfigurationError(
                f"sample_shape {tuple(sample_shape)} too small for a "
                f"{kernel_size}x{kernel_size} convolution and 2x2 pooling"
            )
        self.features = nn.Sequential(
            nn.Conv2d(channels, num_filters, kernel_size=kernel_size, stride=1),
            nn.MaxPool2d(kernel_size=2, stride=2),
        )
        self.classifier = nn.Sequential(
            nn.Linear(num_filters * pooled_h * pooled_w, hidden_size),
            nn.Sigmoid(),
            nn.Linear(hidden_size, num_classes),
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.classifier(self.features(x).flatten(1))
