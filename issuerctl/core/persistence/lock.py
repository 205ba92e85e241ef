"""
Home lock — one mutating invocation per installation home.

An exclusive, non-blocking ``flock`` on <home>/.state/issuerctl.lock.
The kernel drops the lock when the holder exits, so a crashed run
never leaves a stale lock behind.
"""

from __future__ import annotations

import fcntl
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class LockError(Exception):
    """Raised when another invocation already holds the home lock."""


class HomeLock:
    """Context manager holding an exclusive lock on a lock file.

    Usage::

        with HomeLock(home.lock_file):
            ...  # mutate the home
    """

    def __init__(self, path: Path):
        self._path = path
        self._fd: int | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self._path, os.O_RDWR | os.O_CREAT, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            raise LockError(
                f"Another issuerctl invocation is running against this home "
                f"(lock held on {self._path})"
            ) from None

        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        self._fd = fd
        logger.debug("Acquired home lock %s", self._path)

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None
            logger.debug("Released home lock %s", self._path)

    def __enter__(self) -> HomeLock:
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()
