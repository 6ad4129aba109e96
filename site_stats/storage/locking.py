"""
Locks guarding the stats documents.

A single lock covers the counters, the visitor ledger and the online map, so
a whole load-modify-save sequence over the three documents is one unit.
"""

import fcntl
import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path
from threading import Lock
from typing import Optional

from ..errors import StorageBusyError, StorageError

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.01


class ThreadStatsLock:
    """In-process lock with a bounded wait."""

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout
        self._lock = Lock()

    def acquire(self, timeout: Optional[float] = None) -> None:
        """Take the lock, waiting at most timeout seconds (the default timeout if None)."""
        wait = self.timeout if timeout is None else timeout
        if not self._lock.acquire(timeout=wait):
            raise StorageBusyError(f"Stats lock busy after {wait}s")

    def release(self) -> None:
        self._lock.release()

    @contextmanager
    def hold(self, timeout: Optional[float] = None):
        """Hold the lock for a with block, using a per-call timeout."""
        self.acquire(timeout)
        try:
            yield self
        finally:
            self.release()

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False


class FileStatsLock(ThreadStatsLock):
    """Thread lock plus an advisory flock on a lock file.

    The flock serialises other processes (and other service instances in
    this process) that point at the same data directory.
    """

    def __init__(self, lock_file: Path, timeout: float = 5.0):
        super().__init__(timeout)
        self.lock_file = lock_file
        self._fd: Optional[int] = None

    def acquire(self, timeout: Optional[float] = None) -> None:
        wait = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + wait
        super().acquire(wait)
        try:
            self._fd = self._acquire_file_lock(deadline, wait)
        except BaseException:
            self._lock.release()
            raise

    def release(self) -> None:
        try:
            if self._fd is not None:
                fcntl.flock(self._fd, fcntl.LOCK_UN)
                os.close(self._fd)
                self._fd = None
        finally:
            self._lock.release()

    def _acquire_file_lock(self, deadline: float, wait: float) -> int:
        try:
            self.lock_file.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.lock_file, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as e:
            raise StorageError(f"Cannot open lock file {self.lock_file}: {e}") from e

        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                return fd
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    os.close(fd)
                    logger.error(f"Timed out waiting for {self.lock_file}")
                    raise StorageBusyError(f"Stats lock busy after {wait}s")
                time.sleep(_POLL_INTERVAL)
            except OSError as e:
                os.close(fd)
                raise StorageError(f"Cannot lock {self.lock_file}: {e}") from e
