"""
Advisory file lock scoped to a cache root.

Uses fcntl on Unix and msvcrt on Windows.
"""

import asyncio
import logging
import os
import platform
import time
from pathlib import Path

from mmdb_cli.exceptions import LockError

if platform.system() == "Windows":
    import msvcrt

    fcntl = None
else:
    import fcntl

    msvcrt = None

log = logging.getLogger(__name__)


class CacheLock:
    """
    Serializes acquisitions that share a cache root across processes.

    Usable as a synchronous or asynchronous context manager. The async form
    polls without blocking the event loop.
    """

    POLL_INTERVAL = 0.25

    def __init__(self, lock_path: Path, timeout: float = 60.0):
        self.lock_path = lock_path
        self.timeout = timeout
        self._fd: int | None = None

    @property
    def locked(self) -> bool:
        return self._fd is not None

    def _try_acquire(self) -> bool:
        """Makes one non-blocking attempt to take the lock."""
        try:
            fd = os.open(self.lock_path, os.O_CREAT | os.O_RDWR, 0o644)
        except OSError as e:
            raise LockError(f"Cannot open lock file '{self.lock_path}': {e}") from e
        try:
            if msvcrt is not None:
                msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
            else:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            os.close(fd)
            return False

        try:
            os.ftruncate(fd, 0)
            os.write(fd, str(os.getpid()).encode("ascii"))
        except OSError as e:
            self._unlock(fd)
            raise LockError(f"Cannot write lock file '{self.lock_path}': {e}") from e
        self._fd = fd
        return True

    def _prepare(self) -> None:
        try:
            self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LockError(f"Cannot create lock directory: {e}") from e

    def _timed_out(self) -> LockError:
        return LockError(
            f"Timed out after {self.timeout:.0f}s waiting for cache lock "
            f"'{self.lock_path}'. Another mmdb-cli process may be running."
        )

    def acquire(self) -> None:
        """Blocks until the lock is held or the timeout expires."""
        self._prepare()
        deadline = time.monotonic() + self.timeout
        while not self._try_acquire():
            if time.monotonic() >= deadline:
                raise self._timed_out()
            time.sleep(self.POLL_INTERVAL)
        log.debug(f"Acquired cache lock {self.lock_path}")

    async def acquire_async(self) -> None:
        """Like `acquire`, but yields to the event loop while waiting."""
        self._prepare()
        deadline = time.monotonic() + self.timeout
        while not self._try_acquire():
            if time.monotonic() >= deadline:
                raise self._timed_out()
            await asyncio.sleep(self.POLL_INTERVAL)
        log.debug(f"Acquired cache lock {self.lock_path}")

    def _unlock(self, fd: int) -> None:
        try:
            if msvcrt is not None:
                os.lseek(fd, 0, os.SEEK_SET)
                msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
            else:
                fcntl.flock(fd, fcntl.LOCK_UN)
        except OSError as e:
            log.debug(f"Failed to unlock {self.lock_path}: {e}")
        finally:
            os.close(fd)

    def release(self) -> None:
        """Releases the lock if held."""
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        self._unlock(fd)
        log.debug(f"Released cache lock {self.lock_path}")

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False

    async def __aenter__(self):
        await self.acquire_async()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
