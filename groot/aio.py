"""Awaitable, timeout-bound wrappers around :class:`groot.repo.Repository`.

Each call runs the synchronous operation on a worker thread, so an event
loop never blocks on repository I/O. ``timeout_seconds`` bounds the wait;
when it elapses ``asyncio.TimeoutError`` is raised. The worker may still
finish in the background, which is safe: a commit only becomes reachable
once HEAD is atomically rewritten. When an abandoned call does finish, an
``info`` record names the operation and its outcome, so a caller that
retried a timed-out ``commit`` can tell whether the first attempt landed.
"""
import asyncio
import functools
import logging
import threading
from typing import List, Optional

from .config import RepositoryConfig
from .repo import AddResult, CommitResult, InitResult, LogEntry, Repository, ShowResult, Status

logger = logging.getLogger(__name__)


class _Abandonable:
    """Wraps a blocking call and reports its outcome if the awaiter gave up."""

    def __init__(self, func, name: str):
        self.func = func
        self.name = name
        self._lock = threading.Lock()
        self._abandoned = False
        self._outcome: Optional[str] = None

    def __call__(self):
        outcome = 'failed'
        try:
            result = self.func()
            outcome = 'completed'
            return result
        finally:
            with self._lock:
                self._outcome = outcome
                late = self._abandoned
            if late:
                self._report(outcome)

    def abandon(self):
        with self._lock:
            self._abandoned = True
            outcome = self._outcome
        # the worker may have finished while the timeout was being delivered
        if outcome is not None:
            self._report(outcome)

    def _report(self, outcome: str):
        logger.info('abandoned %s %s after its caller timed out', self.name, outcome)


class AsyncRepository:
    def __init__(
        self,
        path: str = '.',
        config: Optional[RepositoryConfig] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.repo = Repository(path, config=config)
        self.timeout_seconds = timeout_seconds

    async def _run(self, func, *args, timeout_seconds: Optional[float] = None, **kwargs):
        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        name = getattr(func, '__name__', repr(func))
        call = _Abandonable(functools.partial(func, *args, **kwargs), name)
        try:
            return await asyncio.wait_for(asyncio.to_thread(call), timeout)
        except asyncio.TimeoutError:
            logger.warning('%s timed out after %ss', name, timeout)
            call.abandon()
            raise

    async def init(self, timeout_seconds: Optional[float] = None) -> InitResult:
        return await self._run(self.repo.init, timeout_seconds=timeout_seconds)

    async def add(self, path: str, timeout_seconds: Optional[float] = None) -> AddResult:
        return await self._run(self.repo.add, path, timeout_seconds=timeout_seconds)

    async def commit(
        self, message: str, timestamp: Optional[str] = None, timeout_seconds: Optional[float] = None
    ) -> CommitResult:
        return await self._run(self.repo.commit, message, timestamp=timestamp, timeout_seconds=timeout_seconds)

    async def log(self, start: Optional[str] = None, timeout_seconds: Optional[float] = None) -> List[LogEntry]:
        """Collect the full history; use ``Repository.log`` for lazy iteration."""
        return await self._run(lambda: list(self.repo.log(start)), timeout_seconds=timeout_seconds)

    async def show(self, digest: str, timeout_seconds: Optional[float] = None) -> ShowResult:
        return await self._run(self.repo.show, digest, timeout_seconds=timeout_seconds)

    async def status(self, timeout_seconds: Optional[float] = None) -> Status:
        return await self._run(self.repo.status, timeout_seconds=timeout_seconds)
