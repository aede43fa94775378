"""PyTorch implementation of the trainer capability."""

from __future__ import annotations

import torch
import torch.nn.functional as F
from loguru import logger
from torch import nn

from mnist_training.config import TrainingConfig
from mnist_training.data.assembler import PAD_LABEL
from mnist_training.data.buffers import SharedBuffer
from mnist_training.models import build_model


def resolve_device(device: str) -> torch.device:
    """Map ``"auto"`` to CUDA when available, otherwise pass the name through."""
    if device == "auto":
        return torch.device("cuda" if torch.cuda.is_available() else "cpu")
    return torch.device(device)


class TorchTrainer:
    """SGD with momentum on negative log-likelihood over ``log_softmax`` scores.

    Each ``train_step`` reads the input and label buffers under their read
    locks, copies them to the training device, takes one optimizer step and
    returns the batch's log-probabilities in a freshly allocated CPU buffer.
    Rows labelled ``PAD_LABEL`` contribute nothing to the loss.

    Args:
        model: Network mapping ``[B, *sample_shape]`` to ``[B, num_classes]``.
        learning_rate: SGD base learning rate.
        momentum: SGD momentum.
        device: ``"cpu"``, ``"cuda"``, ``"cuda:N"`` or ``"auto"``.
    """

    def __init__(
        self,
        model: nn.Module,
        learning_rate: float = 0.001,
        momentum: float = 0.0,
        device: str = "cpu",
    ) -> None:
        self.device = resolve_device(device)
        self.model = model.to(self.device)
        self.optimizer = torch.optim.SGD(
            self.model.parameters(), lr=learning_rate, momentum=momentum
        )
        self.last_loss: float | None = None
        self.steps = 0
        logger.info(
            f"TorchTrainer: {type(model).__name__} on {self.device} "
            f"(lr={learning_rate}, momentum={momentum})"
        )

    @classmethod
    def from_config(cls, config: TrainingConfig) -> TorchTrainer:
        model = build_model(
            config.network,
            num_classes=config.num_classes,
            sample_shape=config.data.sample_shape,
        )
        return cls(
            model,
            learning_rate=config.trainer.learning_rate,
            momentum=config.trainer.momentum,
            device=config.trainer.device,
        )

    def train_step(self, inputs: SharedBuffer, labels: SharedBuffer) -> SharedBuffer:
        with inputs.read() as x, labels.read() as y:
            x = x.to(self.device, copy=True)
            targets = y.reshape(-1).to(self.device, dtype=torch.long)

        self.model.train()
        self.optimizer.zero_grad()
        log_probs = F.log_softmax(self.model(x), dim=1)
        loss = F.nll_loss(log_probs, targets, ignore_index=PAD_LABEL)
        loss.backward()
        self.optimizer.step()

        self.last_loss = loss.item()
        self.steps += 1

        scores = log_probs.detach().cpu()
        output = SharedBuffer(scores.shape, dtype=scores.dtype, name="output")
        with output.write() as out:
            out.copy_(scores)
        return output
