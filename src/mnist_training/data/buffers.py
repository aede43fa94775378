"""Lock-guarded tensors shared between the batch writer and the trainer.

A ``SharedBuffer`` has exactly one writer phase at a time (the assembler
while filling, or the trainer while producing output) and any number of
concurrent readers once no writer holds it. Access goes through the
``read()`` / ``write()`` context managers, which release the lock as soon
as the ``with`` block exits.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

import torch
from loguru import logger


class ReadWriteLock:
    """Writer-preferring reader/writer lock.

    New readers wait while a writer is queued so that a steady stream of
    readers cannot starve the writer. Not reentrant.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read without matching acquire_read")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write without matching acquire_write")
            self._writer = False
            self._cond.notify_all()

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def write_locked(self) -> bool:
        return self._writer

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked_scope(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class SharedBuffer:
    """A ``torch.Tensor`` of shape ``[rows, *sample_shape]`` behind a ``ReadWriteLock``.

    Args:
        shape: Full tensor shape; the first dimension is the row (sample) count.
        dtype: Element type (float32 by default, matching the network input).
        name: Label used in log messages.
        device: Where the tensor lives.
        tensor: Existing tensor to wrap instead of allocating one.
        lock: Lock to share with another buffer over the same storage.
    """

    def __init__(
        self,
        shape: Sequence[int],
        dtype: torch.dtype = torch.float32,
        name: str = "buffer",
        device: torch.device | str = "cpu",
        *,
        tensor: torch.Tensor | None = None,
        lock: ReadWriteLock | None = None,
    ) -> None:
        self.name = name
        if tensor is None:
            tensor = torch.zeros(tuple(shape), dtype=dtype, device=device)
        self._tensor = tensor
        self._lock = lock if lock is not None else ReadWriteLock()

    @classmethod
    def from_tensor(
        cls, tensor: torch.Tensor, name: str = "buffer", lock: ReadWriteLock | None = None
    ) -> SharedBuffer:
        """Wrap an existing tensor without copying it."""
        return cls(tensor.shape, tensor.dtype, name=name, tensor=tensor, lock=lock)

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(self._tensor.shape)

    @property
    def rows(self) -> int:
        return int(self._tensor.shape[0])

    @property
    def lock(self) -> ReadWriteLock:
        return self._lock

    @contextmanager
    def read(self) -> Iterator[torch.Tensor]:
        """Shared access to the tensor. Callers must not mutate it."""
        with self._lock.read_locked():
            yield self._tensor

    @contextmanager
    def write(self) -> Iterator[torch.Tensor]:
        """Exclusive access to the tensor."""
        with self._lock.write_locked_scope():
            logger.trace(f"{self.name}: write lock acquired")
            yield self._tensor
        logger.trace(f"{self.name}: write lock released")

    def narrow(self, rows: int) -> SharedBuffer:
        """View of the first ``rows`` rows, sharing storage and lock with this buffer."""
        if not 0 < rows <= self.rows:
            raise ValueError(f"Cannot narrow {self.name} of {self.rows} rows to {rows}")
        return SharedBuffer.from_tensor(
            self._tensor[:rows], name=f"{self.name}[:{rows}]", lock=self._lock
        )

    def __repr__(self) -> str:
        return f"SharedBuffer(name={self.name!r}, shape={self.shape})"
