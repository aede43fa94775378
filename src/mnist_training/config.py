"""Pydantic frozen configuration models for mnist_training."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, model_validator

from mnist_training.errors import ConfigurationError

NetworkName = Literal["linear", "mlp", "conv"]
ShortBatchPolicy = Literal["skip", "pad", "shrink"]


class DataConfig(BaseModel, frozen=True):
    """Dataset decoding and batch buffer layout.

    ``sample_shape`` is the per-sample tensor shape handed to the network;
    its element count must equal ``feature_count``. ``dataset_size`` of
    ``None`` means "count the rows of ``data_path``".

    ``short_batch="pad"`` fills the rows past a short batch with zero inputs
    and ``PAD_LABEL`` targets. ``TorchTrainer`` leaves those rows out of the
    loss and the confusion matrix only scores the written rows. A custom
    trainer that ignores ``PAD_LABEL`` trains on them.
    """

    data_path: str
    batch_size: int = Field(default=1, gt=0)
    feature_count: int = Field(default=784, gt=0)
    sample_shape: tuple[int, ...] = (1, 28, 28)
    dataset_size: int | None = Field(default=None, gt=0)
    normalize: bool = True
    short_batch: ShortBatchPolicy = "skip"
    delimiter: str = Field(default=",", min_length=1, max_length=1)

    @model_validator(mode="after")
    def _sample_shape_matches_feature_count(self) -> DataConfig:
        if not self.sample_shape or any(d <= 0 for d in self.sample_shape):
            raise ValueError(
                f"sample_shape must be non-empty and positive, got {self.sample_shape}"
            )
        if math.prod(self.sample_shape) != self.feature_count:
            raise ValueError(
                f"sample_shape {self.sample_shape} holds "
                f"{math.prod(self.sample_shape)} values, "
                f"expected feature_count={self.feature_count}"
            )
        return self


class TrainerConfig(BaseModel, frozen=True):
    """Optimizer settings for ``TorchTrainer``."""

    learning_rate: float = Field(default=0.001, gt=0)
    momentum: float = Field(default=0.0, ge=0, lt=1)
    device: str = "cpu"


class TrainingConfig(BaseModel, frozen=True):
    """Top-level run configuration.

    All fields are validated at construction time. Frozen — no mutation after creation.
    """

    data: DataConfig
    trainer: TrainerConfig = TrainerConfig()
    network: NetworkName = "linear"
    num_classes: int = Field(default=10, gt=1)
    epochs: int = Field(default=1, gt=0)
    history_capacity: int | None = Field(default=1000, ge=0)
    seed: int = 42
    log_level: str = "INFO"
    output_dir: str | None = None


def load_config(values: Mapping[str, Any]) -> TrainingConfig:
    """Validate a plain mapping (e.g. a resolved Hydra config) into a TrainingConfig.

    Raises:
        ConfigurationError: If any field is missing or invalid.
    """
    try:
        return TrainingConfig.model_validate(dict(values))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from exc
