import os

import pytest

from mmdb_cli.exceptions import LockError
from mmdb_cli.storage.lock import CacheLock


def test_lock_is_exclusive(tmp_path):
    path = tmp_path / "root" / ".lock"

    with CacheLock(path) as held:
        assert held.locked
        with pytest.raises(LockError, match="Timed out"):
            CacheLock(path, timeout=0.3).acquire()

    assert not held.locked
    with CacheLock(path, timeout=0.3):
        pass


async def test_async_lock_waits_for_release(tmp_path):
    path = tmp_path / ".lock"
    first = CacheLock(path)
    first.acquire()
    first.release()

    async with CacheLock(path, timeout=0.5) as second:
        assert second.locked
        assert path.read_text() != ""


def test_release_without_acquire_is_harmless(tmp_path):
    CacheLock(tmp_path / ".lock").release()


def test_failed_pid_write_releases_the_lock(tmp_path, monkeypatch):
    path = tmp_path / ".lock"

    def fail_truncate(fd, length):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(os, "ftruncate", fail_truncate)
    lock = CacheLock(path, timeout=0.3)
    with pytest.raises(LockError, match="Cannot write lock file"):
        lock.acquire()
    assert not lock.locked

    monkeypatch.undo()
    with CacheLock(path, timeout=0.3) as again:
        assert again.locked
