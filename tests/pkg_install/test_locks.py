"""
Tests for per-package locks.
"""

import threading
import time

import pytest

from src.core.services.pkg_install.errors import LockTimeout
from src.core.services.pkg_install.execution.locks import PackageLockManager


def _hold_in_thread(locks: PackageLockManager, name: str, release: threading.Event) -> threading.Event:
    """Grab ``name`` from another thread until ``release`` is set."""
    acquired = threading.Event()

    def worker():
        with locks.hold(name):
            acquired.set()
            release.wait(5)

    threading.Thread(target=worker, daemon=True).start()
    assert acquired.wait(5)
    return acquired


class TestLocks:
    def test_acquire_release(self, locks: PackageLockManager):
        locks.acquire("node")
        locks.release("node")
        assert locks.known() == ["node"]

    def test_timeout_raises(self, locks: PackageLockManager):
        release = threading.Event()
        _hold_in_thread(locks, "node", release)
        try:
            with pytest.raises(LockTimeout) as exc:
                locks.acquire("node", timeout=0.05)
            assert exc.value.package == "node"
            assert "another operation may be in progress" in str(exc.value)
        finally:
            release.set()

    def test_distinct_names_do_not_contend(self, locks: PackageLockManager):
        release = threading.Event()
        _hold_in_thread(locks, "node", release)
        try:
            with locks.hold("php", timeout=0.05):
                pass
        finally:
            release.set()

    def test_reentrant_in_same_thread(self, locks: PackageLockManager):
        with locks.hold("node"):
            with locks.hold("node", timeout=0.05):
                pass

    def test_release_unknown_is_ignored(self, locks: PackageLockManager):
        locks.release("never-locked")

    def test_release_not_held_is_ignored(self, locks: PackageLockManager):
        locks.acquire("node")
        locks.release("node")
        locks.release("node")

    def test_hold_releases_on_error(self, locks: PackageLockManager):
        with pytest.raises(RuntimeError):
            with locks.hold("node"):
                raise RuntimeError("boom")

        got = threading.Event()

        def other():
            with locks.hold("node", timeout=1):
                got.set()

        t = threading.Thread(target=other)
        t.start()
        t.join(5)
        assert got.is_set()

    def test_same_name_serialized(self, locks: PackageLockManager):
        active = 0
        peak = 0
        counter = threading.Lock()

        def worker():
            nonlocal active, peak
            with locks.hold("node"):
                with counter:
                    active += 1
                    peak = max(peak, active)
                time.sleep(0.01)
                with counter:
                    active -= 1

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(10)
        assert peak == 1
