"""Hydra ConfigStore registration utilities."""

from __future__ import annotations

from typing import Any

from hydra.core.config_store import ConfigStore
from loguru import logger

# group -> name -> registered class, mirroring what was stored in the ConfigStore
REGISTRY: dict[str, dict[str, type[Any]]] = {}


def register(
    cls: type[Any] | None = None,
    *,
    group: str | None = None,
    name: str | None = None,
    **kwargs: Any,
) -> type[Any] | Any:
    """Decorator to register a class with Hydra's ConfigStore.

    Stores a node ``{"_target_": "<module>.<Class>", **kwargs}`` under
    ``group/name`` so the class can be selected from the command line
    (``network=conv``) and built with ``hydra.utils.instantiate``. The class
    is also recorded in :data:`REGISTRY` for lookups outside Hydra.

    If *group* is not provided, it is inferred from the module path by taking
    the second-to-last element (``mnist_training.models.networks`` -> ``models``).

    Arguments:
        cls: The class to register.
        group: The ConfigStore group. If ``None``, inference is attempted.
        name: The name for the config. Defaults to class name.
        **kwargs: Default values for the configuration node.
    """

    def _process_class(target_cls: type[Any]) -> type[Any]:
        target_path = f"{target_cls.__module__}.{target_cls.__name__}"
        config_name = name or target_cls.__name__
        config_group = group or target_cls.__module__.split(".")[-2]

        logger.debug(
            f"Registering {target_cls.__name__} as '{config_name}' "
            f"in group '{config_group}'"
        )
        node = {"_target_": target_path}
        node.update(kwargs)
        ConfigStore.instance().store(group=config_group, name=config_name, node=node)
        REGISTRY.setdefault(config_group, {})[config_name] = target_cls

        return target_cls

    if cls is None:
        return _process_class
    return _process_class(cls)


def registered(group: str) -> dict[str, type[Any]]:
    """Classes registered under *group*, keyed by config name."""
    return dict(REGISTRY.get(group, {}))
