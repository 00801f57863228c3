"""Repository-wide advisory lock.

Every read-modify-write of the index and every HEAD update runs inside
``RepositoryLock.hold()``. The lock is an ``fcntl.flock`` on ``.groot/lock``,
so it coordinates independent processes as well as threads holding separate
file descriptors. Acquisition polls with ``LOCK_NB`` and gives up with
``LockedError`` after the timeout instead of blocking forever.
"""
import contextlib
import fcntl
import logging
import time
from pathlib import Path
from typing import Generator

from .errors import LockedError, StorageError

logger = logging.getLogger(__name__)


class RepositoryLock:
    def __init__(self, lock_file: Path, timeout: float = 10.0, poll_interval: float = 0.05):
        self.lock_file = Path(lock_file)
        self.timeout = timeout
        self.poll_interval = poll_interval

    def _acquire(self, fileno: int):
        start_time = time.monotonic()
        while True:
            try:
                fcntl.flock(fileno, fcntl.LOCK_EX | fcntl.LOCK_NB)
                return
            except BlockingIOError:
                elapsed = time.monotonic() - start_time
                if elapsed >= self.timeout:
                    raise LockedError(
                        f'repository is locked ({self.lock_file}); gave up after {self.timeout:g}s'
                    ) from None
                time.sleep(self.poll_interval)

    @contextlib.contextmanager
    def hold(self) -> Generator[None, None, None]:
        try:
            lock_f = open(self.lock_file, 'a+')
        except OSError as exc:
            raise StorageError(f'cannot open lock file {self.lock_file}: {exc}') from exc
        with lock_f:
            self._acquire(lock_f.fileno())
            logger.debug('acquired repository lock %s', self.lock_file)
            try:
                yield
            finally:
                fcntl.flock(lock_f.fileno(), fcntl.LOCK_UN)
                logger.debug('released repository lock %s', self.lock_file)
