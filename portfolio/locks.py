"""
Per-key mutation locks.

Screen edits rewrite a project's whole screens list, so at most one of them
may be in flight per project. The in-process provider covers a single worker;
the Redis provider covers several workers sharing one store.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import ContextManager, Dict, Iterator, Protocol

import redis
from redis import exceptions as redis_exceptions

from portfolio.errors import ConflictError


class LockProvider(Protocol):
    def hold(self, key: str) -> ContextManager[None]:
        ...


@dataclass
class InMemoryLockProvider:
    """One ``threading.Lock`` per key, created on first use."""

    timeout: float = 10.0
    _locks: Dict[str, threading.Lock] = field(default_factory=dict)
    _guard: threading.Lock = field(default_factory=threading.Lock)

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self._lock_for(key)
        if not lock.acquire(timeout=self.timeout):
            raise ConflictError("Another change to this project is in progress")
        try:
            yield
        finally:
            lock.release()


@dataclass
class RedisLockProvider:
    """Redis-backed locks shared by every process using the same Redis."""

    url: str
    prefix: str = "portfolio:lock:"
    timeout: float = 30.0
    blocking_timeout: float = 10.0

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self.client.lock(
            f"{self.prefix}{key}",
            timeout=self.timeout,
            blocking_timeout=self.blocking_timeout,
        )
        if not lock.acquire():
            raise ConflictError("Another change to this project is in progress")
        try:
            yield
        finally:
            try:
                lock.release()
            except redis_exceptions.LockError:
                # Lock expired while held; the write already completed.
                pass
