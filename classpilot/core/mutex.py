"""
Non-blocking mutex for the monitor loop and the join action.

Acquisition never waits: a contended ``try_acquire`` returns ``None`` so the
caller can drop the work instead of queuing behind the holder.
"""
from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

log = logging.getLogger(__name__)


class MutexToken:
    """Proof of ownership handed out by a successful ``try_acquire``."""
    __slots__ = ("owner",)

    def __init__(self, owner: "NonBlockingMutex"):
        self.owner = owner


class NonBlockingMutex:
    def __init__(self, name: str = "mutex"):
        self.name = name
        self._token: Optional[MutexToken] = None

    @property
    def locked(self) -> bool:
        return self._token is not None

    def try_acquire(self) -> Optional[MutexToken]:
        # Single event-loop thread: check-and-set has no await in between.
        if self._token is not None:
            return None
        self._token = MutexToken(self)
        return self._token

    def release(self, token: MutexToken) -> None:
        if token is not self._token:
            raise RuntimeError(f"{self.name}: release with a token that does not hold the lock")
        self._token = None

    @contextmanager
    def hold(self) -> Iterator[Optional[MutexToken]]:
        """Scoped acquisition. Yields ``None`` when the mutex is already held."""
        token = self.try_acquire()
        try:
            yield token
        finally:
            if token is not None:
                self.release(token)
