"""Tests for the reader/writer lock and SharedBuffer."""

import threading
import time

import pytest
import torch

from mnist_training.data.buffers import ReadWriteLock, SharedBuffer


class TestReadWriteLock:
    def test_multiple_readers(self) -> None:
        lock = ReadWriteLock()
        lock.acquire_read()
        lock.acquire_read()
        assert lock.readers == 2
        lock.release_read()
        lock.release_read()
        assert lock.readers == 0

    def test_writer_waits_for_readers(self) -> None:
        lock = ReadWriteLock()
        lock.acquire_read()
        acquired = threading.Event()

        def writer() -> None:
            lock.acquire_write()
            acquired.set()
            lock.release_write()

        thread = threading.Thread(target=writer)
        thread.start()
        assert not acquired.wait(0.1)
        lock.release_read()
        assert acquired.wait(2.0)
        thread.join()

    def test_reader_waits_for_writer(self) -> None:
        lock = ReadWriteLock()
        lock.acquire_write()
        acquired = threading.Event()

        def reader() -> None:
            with lock.read_locked():
                acquired.set()

        thread = threading.Thread(target=reader)
        thread.start()
        assert not acquired.wait(0.1)
        lock.release_write()
        assert acquired.wait(2.0)
        thread.join()

    def test_writers_are_exclusive(self) -> None:
        lock = ReadWriteLock()
        active = 0
        max_active = 0
        guard = threading.Lock()

        def writer() -> None:
            nonlocal active, max_active
            with lock.write_locked_scope():
                with guard:
                    active += 1
                    max_active = max(max_active, active)
                time.sleep(0.01)
                with guard:
                    active -= 1

        threads = [threading.Thread(target=writer) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert max_active == 1

    def test_unbalanced_release_raises(self) -> None:
        lock = ReadWriteLock()
        with pytest.raises(RuntimeError):
            lock.release_read()
        with pytest.raises(RuntimeError):
            lock.release_write()


class TestSharedBuffer:
    def test_allocates_zeroed_tensor(self) -> None:
        buffer = SharedBuffer((4, 1, 2, 2), name="input")
        assert buffer.shape == (4, 1, 2, 2)
        assert buffer.rows == 4
        with buffer.read() as t:
            assert t.dtype == torch.float32
            assert torch.count_nonzero(t) == 0

    def test_write_then_read(self) -> None:
        buffer = SharedBuffer((2, 3))
        with buffer.write() as t:
            t[1] = torch.tensor([1.0, 2.0, 3.0])
        with buffer.read() as t:
            assert t[1].tolist() == [1.0, 2.0, 3.0]

    def test_lock_released_after_scope(self) -> None:
        buffer = SharedBuffer((2, 3))
        with buffer.write():
            assert buffer.lock.write_locked
        assert not buffer.lock.write_locked
        with buffer.read():
            assert buffer.lock.readers == 1
        assert buffer.lock.readers == 0

    def test_lock_released_on_exception(self) -> None:
        buffer = SharedBuffer((2, 3))
        with pytest.raises(ValueError):
            with buffer.write():
                raise ValueError("boom")
        assert not buffer.lock.write_locked

    def test_narrow_shares_storage_and_lock(self) -> None:
        buffer = SharedBuffer((4, 2))
        view = buffer.narrow(2)
        assert view.shape == (2, 2)
        assert view.lock is buffer.lock
        with view.write() as t:
            t.fill_(5.0)
        with buffer.read() as t:
            assert t[:2].sum().item() == 20.0
            assert t[2:].sum().item() == 0.0

    @pytest.mark.parametrize("rows", [0, 5])
    def test_narrow_out_of_range(self, rows: int) -> None:
        with pytest.raises(ValueError):
            SharedBuffer((4, 2)).narrow(rows)

    def test_from_tensor_wraps_without_copy(self) -> None:
        tensor = torch.ones(3, 2)
        buffer = SharedBuffer.from_tensor(tensor, name="output")
        with buffer.read() as t:
            assert t is tensor
