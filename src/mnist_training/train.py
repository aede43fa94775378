"""Training entrypoint for mnist_training.

Usage:
    mnist-train                                     # defaults (linear, batch 1)
    mnist-train network=conv                        # override network
    mnist-train data.batch_size=32                  # override batch size
    mnist-train trainer.learning_rate=0.01 trainer.momentum=0.9
    mnist-train data.data_path=assets/mnist_test.csv output_dir=outputs
"""

import sys
from pathlib import Path
from typing import Any

import hydra
import lightning as L
from hydra.errors import InstantiationException
from loguru import logger
from omegaconf import DictConfig, OmegaConf

# Import models to trigger @register decorators BEFORE Hydra parses config
import mnist_training.models  # noqa: F401
from mnist_training.config import load_config
from mnist_training.data.decoder import RecordDecoder
from mnist_training.errors import ConfigurationError, HarnessError
from mnist_training.loop import TrainingLoop
from mnist_training.reporting import StepHistory, print_summary, save_confusion_matrix_plot
from mnist_training.trainer.torch_trainer import TorchTrainer
from mnist_training.utils.hydra import registered

SUCCESS = 0
RUNTIME_ERROR = 1
CONFIG_ERROR = 2


def _network_name(target: str) -> str:
    for name, cls in registered("network").items():
        if f"{cls.__module__}.{cls.__name__}" == target:
            return name
    raise ConfigurationError(f"No registered network for _target_ {target!r}")


def run(cfg: DictConfig) -> int:
    """Run training for a composed config and return the process exit code."""
    logger.remove()
    logger.add(sys.stderr, level=cfg.get("log_level", "INFO"))

    logger.info(f"Configuration:\n{OmegaConf.to_yaml(cfg)}")

    values: dict[str, Any] = OmegaConf.to_container(cfg, resolve=True)  # type: ignore[assignment]
    network_cfg = values.pop("network")

    try:
        values["network"] = _network_name(network_cfg["_target_"])
        config = load_config(values)
        data_path = Path(config.data.data_path)
        if not data_path.is_file():
            raise ConfigurationError(f"Dataset file not found: {data_path}")

        L.seed_everything(config.seed)

        try:
            model = hydra.utils.instantiate(
                network_cfg,
                num_classes=config.num_classes,
                sample_shape=list(config.data.sample_shape),
            )
        except InstantiationException as exc:
            raise ConfigurationError(f"Cannot build network {config.network!r}: {exc}") from exc

        trainer = TorchTrainer(
            model,
            learning_rate=config.trainer.learning_rate,
            momentum=config.trainer.momentum,
            device=config.trainer.device,
        )
        decoder = RecordDecoder(
            data_path,
            feature_count=config.data.feature_count,
            num_classes=config.num_classes,
            delimiter=config.data.delimiter,
        )
        history = StepHistory()
        loop = TrainingLoop(config, trainer, decoder, on_step=history)
        loop.run()
    except ConfigurationError as exc:
        logger.error(f"Configuration error: {exc}")
        return CONFIG_ERROR
    except HarnessError as exc:
        logger.error(f"Training failed: {type(exc).__name__}: {exc}")
        return RUNTIME_ERROR

    print_summary(loop.matrix)
    if config.output_dir:
        output_dir = Path(config.output_dir)
        save_confusion_matrix_plot(loop.matrix, output_dir)
        history.save_plot(output_dir)
    return SUCCESS


@hydra.main(version_base=None, config_path="conf", config_name="train_mnist")
def main(cfg: DictConfig) -> None:
    """Run training with the given Hydra config."""
    code = run(cfg)
    if code != SUCCESS:
        sys.exit(code)


if __name__ == "__main__":
    main()
