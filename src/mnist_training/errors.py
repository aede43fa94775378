"""Error taxonomy for mnist_training.

Every error here is unrecoverable at the point it is raised: it signals bad
input data or a configuration defect, never a transient condition. Errors
carry optional location context (epoch, step, batch/row/field index) that is
rendered into the message so the failure can be diagnosed from the log line
alone.
"""

from __future__ import annotations

_CONTEXT_KEYS = ("epoch", "step", "batch_index", "row_index", "field_index")


class HarnessError(Exception):
    """Base class for all training-harness errors."""

    def __init__(self, message: str, **context: int | None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, int] = {}
        self.annotate(**context)

    def annotate(self, **context: int | None) -> HarnessError:
        """Attach location context without overwriting what is already set."""
        for key, value in context.items():
            if key not in _CONTEXT_KEYS:
                raise TypeError(f"Unknown error context key: {key!r}")
            if value is not None and key not in self.context:
                self.context[key] = value
        return self

    def __getattr__(self, name: str) -> int | None:
        if name in _CONTEXT_KEYS:
            return self.__dict__.get("context", {}).get(name)
        raise AttributeError(name)

    def __str__(self) -> str:
        if not self.context:
            return self.message
        where = ", ".join(
            f"{key}={self.context[key]}" for key in _CONTEXT_KEYS if key in self.context
        )
        return f"{self.message} ({where})"


class DecodeError(HarnessError):
    """A dataset row is malformed (field count, non-numeric or out-of-range value)."""


class BufferOverflow(HarnessError):
    """A batch write would land outside the bounds of its buffer."""


class LengthMismatch(HarnessError):
    """Predictions and true labels have different lengths."""


class ShapeMismatch(HarnessError):
    """A trainer output violates the ``[rows, num_classes]`` contract."""


class ConfigurationError(HarnessError):
    """Invalid configuration, detected before the training loop starts."""
