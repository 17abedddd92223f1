"""
L4 Execution — Per-package locks.

At most one operation runs against a given package name at a time.
Locks are created lazily in a map guarded by its own mutex and are
acquired with a bounded wait. They are re-entrant so a thread that
already holds a package (for instance while installing its
dependencies) can take it again without deadlocking itself.

Process-scoped only; nothing is persisted.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from src.core.services.pkg_install.errors import LockTimeout

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 30.0


class PackageLockManager:
    """Registry of per-package locks."""

    def __init__(self, timeout: float = DEFAULT_LOCK_TIMEOUT):
        self.timeout = timeout
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def _get_or_create(self, name: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = threading.RLock()
                self._locks[name] = lock
            return lock

    def acquire(self, name: str, timeout: float | None = None) -> None:
        """Take the lock for ``name`` or raise ``LockTimeout``."""
        wait = self.timeout if timeout is None else timeout
        lock = self._get_or_create(name)
        if not lock.acquire(timeout=wait):
            logger.warning("Timed out after %.0fs waiting for lock on %s", wait, name)
            raise LockTimeout(name, wait)
        logger.debug("Lock acquired: %s", name)

    def release(self, name: str) -> None:
        """Release the lock for ``name``. Unknown names are ignored."""
        with self._guard:
            lock = self._locks.get(name)
        if lock is None:
            return
        try:
            lock.release()
        except RuntimeError:
            logger.warning("Release of lock %s not held by this thread", name)
            return
        logger.debug("Lock released: %s", name)

    @contextmanager
    def hold(self, name: str, timeout: float | None = None) -> Iterator[None]:
        """Context manager that holds the lock for ``name``."""
        self.acquire(name, timeout)
        try:
            yield
        finally:
            self.release(name)

    def known(self) -> list[str]:
        """Names that have had a lock created, sorted."""
        with self._guard:
            return sorted(self._locks)
