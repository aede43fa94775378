"""Network architectures selectable by name (``linear``, ``mlp``, ``conv``)."""

from collections.abc import Sequence

from torch import nn

from mnist_training.errors import ConfigurationError
from mnist_training.models.networks import ConvNetwork, LinearNetwork, MLPNetwork
from mnist_training.utils.hydra import registered


def build_model(
    name: str, num_classes: int = 10, sample_shape: Sequence[int] = (1, 28, 28)
) -> nn.Module:
    """Instantiate a registered network by name.

    Raises:
        ConfigurationError: Unknown network name.
    """
    networks = registered("network")
    if name not in networks:
        raise ConfigurationError(
            f"Unknown network {name!r}. Try one of {sorted(networks)}"
        )
    return networks[name](num_classes=num_classes, sample_shape=tuple(sample_shape))


__all__ = ["ConvNetwork", "LinearNetwork", "MLPNetwork", "build_model"]
