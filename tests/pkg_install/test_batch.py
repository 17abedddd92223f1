"""
Tests for the batch drivers and the batch summary.
"""

import threading
import time

import pytest

from src.core.models.package import PackageResult, RemovalResult
from src.core.observability import logging_config
from src.core.persistence.audit import AuditWriter
from src.core.services.pkg_install.data.catalog import PackageRegistry
from src.core.services.pkg_install.domain.summary import BatchSummary
from src.core.services.pkg_install.errors import InstallationFailure, ValidationError
from src.core.services.pkg_install.execution.locks import PackageLockManager
from src.core.services.pkg_install.orchestration.batch import (
    execute_parallel,
    execute_sequential,
    install_operation,
    remove_operation,
    run_batch,
)
from src.core.services.pkg_install.orchestration.manager import InstallManager
from src.core.services.pkg_install.orchestration.removal import REASON_CRITICAL, REASON_UNKNOWN
from tests.pkg_install.fakes import FakeDetector, FakeScripts, FakeSystemInstaller, make_pkg


def _ok(name: str) -> PackageResult:
    return PackageResult.success(name, "done")


class TestSummary:
    def test_counts_and_rate(self):
        summary = BatchSummary(
            operation="install",
            results=[
                PackageResult.success("node", category="development"),
                PackageResult.skip("docker", "already installed", category="devops"),
                PackageResult.failure("php", "script failed", category="development"),
                PackageResult.success("nginx", category="web"),
            ],
        )
        assert summary.total == 4
        assert summary.successful == ["nginx", "node"]
        assert summary.skipped == ["docker"]
        assert summary.failed == ["php"]
        assert summary.success_rate == 75.0
        assert summary.status == "partial"
        assert summary.retry_command == "run install php"

    def test_sorted_by_status_then_name(self):
        summary = BatchSummary(results=[
            PackageResult.failure("docker", "boom", category="devops"),
            PackageResult.success("pm2", category="devops"),
            PackageResult.skip("java", "already installed", category="development"),
            PackageResult.success("java-tools"),
            PackageResult.success("docker-compose", category="devops"),
        ])
        assert [r.name for r in summary.results] == [
            "docker-compose", "java-tools", "pm2", "java", "docker",
        ]

    def test_empty(self):
        summary = BatchSummary()
        assert summary.success_rate == 0.0
        assert summary.status == "ok"
        assert summary.retry_command == ""

    def test_all_failed(self):
        summary = BatchSummary(operation="remove", results=[PackageResult.failure("a", "x")])
        assert summary.status == "failed"
        assert summary.errors == {"a": "x"}
        assert summary.retry_command == "run remove a"

    def test_to_dict(self):
        data = BatchSummary(operation_id="op-1", results=[_ok("a")]).to_dict()
        assert data["operation_id"] == "op-1"
        assert data["success_rate"] == 100.0
        assert data["results"][0]["name"] == "a"


class TestDrivers:
    def test_sequential_in_order(self, locks):
        seen = []

        def op(name):
            seen.append(name)
            return _ok(name)

        results = execute_sequential(["c", "a", "b"], op, locks)
        assert seen == ["c", "a", "b"]
        assert [r.name for r in results] == ["c", "a", "b"]

    def test_failure_does_not_stop_siblings(self, locks):
        def op(name):
            if name == "bad":
                return PackageResult.failure(name, "boom")
            return _ok(name)

        for driver in (execute_sequential, execute_parallel):
            results = driver(["one", "bad", "two"], op, locks)
            assert sorted(r.name for r in results) == ["bad", "one", "two"]
            assert [r.name for r in results if r.failed] == ["bad"]

    def test_unexpected_exception_becomes_failure(self, locks):
        def op(name):
            raise RuntimeError("kaput")

        [result] = execute_sequential(["x"], op, locks)
        assert result.failed
        assert "kaput" in result.error
        with locks.hold("x", timeout=0.05):
            pass

    def test_parallel_runs_concurrently(self, locks):
        barrier = threading.Barrier(3, timeout=5)

        def op(name):
            barrier.wait()
            return _ok(name)

        results = execute_parallel(["a", "b", "c"], op, locks)
        assert all(r.ok for r in results)

    def test_parallel_empty(self, locks):
        assert execute_parallel([], _ok, locks) == []

    def test_lock_timeout_reported(self):
        locks = PackageLockManager(timeout=0.05)
        held, release = threading.Event(), threading.Event()

        def holder():
            with locks.hold("node"):
                held.set()
                release.wait(5)

        t = threading.Thread(target=holder, daemon=True)
        t.start()
        held.wait(5)
        try:
            [result] = execute_sequential(["node"], _ok, locks)
        finally:
            release.set()
            t.join(5)

        assert result.failed
        assert result.error.startswith("failed to acquire lock")

    def test_same_name_never_overlaps(self, locks):
        active = 0
        peak = 0
        counter = threading.Lock()

        def op(name):
            nonlocal active, peak
            with counter:
                active += 1
                peak = max(peak, active)
            time.sleep(0.02)
            with counter:
                active -= 1
            return _ok(name)

        results = execute_parallel(["node", "node", "node"], op, locks)
        assert len(results) == 3
        assert peak == 1


class TestDependencyWaves:
    def test_prerequisite_finishes_before_dependent_starts(self, locks):
        events = []
        guard = threading.Lock()

        def op(name):
            with guard:
                events.append(f"start:{name}")
            time.sleep(0.05)
            with guard:
                events.append(f"end:{name}")
            return _ok(name)

        results = execute_parallel(["pm2", "node", "nginx"], op, locks, {"pm2": {"node"}})

        assert sorted(r.name for r in results) == ["nginx", "node", "pm2"]
        assert events.index("end:node") < events.index("start:pm2")

    def test_unsatisfiable_prerequisites_still_run(self, locks):
        results = execute_parallel(["a", "b"], _ok, locks, {"a": {"b"}, "b": {"a"}})
        assert sorted(r.name for r in results) == ["a", "b"]

    def test_slow_dependency_in_same_batch(self, settings, rollback_manager):
        # node's script outlasts the lock wait; pm2 must not queue on node's lock
        locks = PackageLockManager(timeout=0.3)
        detector = FakeDetector()
        scripts = FakeScripts(detector, delays={"node": 1.0})
        registry = PackageRegistry([make_pkg("node"), make_pkg("pm2", ("node",))]).view()
        manager = InstallManager(
            registry, settings,
            locks=locks, rollback=rollback_manager, detector=detector,
            script_runner=scripts,
            system_installer=FakeSystemInstaller(detector),
        )
        names = ["node", "pm2"]

        summary = run_batch(
            names, install_operation(manager), locks,
            prerequisites=manager.batch_prerequisites(names),
        )

        assert summary.failed == []
        assert summary.successful == ["node", "pm2"]
        assert scripts.names == ["node", "pm2"]


class TestOperations:
    @pytest.fixture
    def manager(self, settings, locks, rollback_manager):
        detector = FakeDetector(installed={"docker"})
        registry = PackageRegistry([
            make_pkg("node", category="development"),
            make_pkg("docker", category="devops"),
            make_pkg("php", category="development"),
        ]).view()
        return InstallManager(
            registry, settings,
            locks=locks, rollback=rollback_manager, detector=detector,
            script_runner=FakeScripts(detector, failing={"php"}),
            system_installer=FakeSystemInstaller(detector),
        )

    def test_install_operation(self, manager, locks):
        summary = run_batch(
            ["node", "docker", "php"], install_operation(manager), locks, parallel=False,
        )
        assert summary.successful == ["node"]
        assert summary.skipped == ["docker"]
        assert summary.failed == ["php"]
        assert summary.retry_command == "run install php"

        by_name = {r.name: r for r in summary.results}
        assert by_name["php"].metadata["error_type"] == InstallationFailure.__name__
        assert by_name["docker"].message == "already installed"
        assert by_name["node"].category == "development"

    def test_install_operation_parallel(self, manager, locks):
        summary = run_batch(["node", "docker", "php"], install_operation(manager), locks)
        assert sorted(summary.successful + summary.skipped + summary.failed) == ["docker", "node", "php"]
        assert summary.failed == ["php"]

    def test_install_validation_error_captured(self, manager, locks):
        [result] = execute_sequential(["ghost"], install_operation(manager), locks)
        assert result.failed
        assert result.metadata["error_type"] == ValidationError.__name__

    def test_remove_operation_mapping(self, catalog, locks):
        class Engine:
            registry = catalog.view()

            def safe_remove(self, name, force=False, dry_run=False):
                if name == "nginx":
                    return RemovalResult(package_name=name, success=True, dry_run=dry_run)
                if name == "ghost":
                    return RemovalResult(package_name=name, reason=REASON_UNKNOWN,
                                         warning="No installation found for 'ghost'")
                return RemovalResult(package_name=name, reason=REASON_CRITICAL,
                                     warning="critical")

        op = remove_operation(Engine(), dry_run=True)
        results = {r.name: r for r in execute_sequential(["nginx", "ghost", "sudo"], op, locks)}

        assert results["nginx"].ok
        assert results["nginx"].message == "would remove"
        assert results["nginx"].category == "web"
        assert results["ghost"].skipped
        assert results["sudo"].failed
        assert results["sudo"].error == "critical"


class TestAudit:
    def test_batch_writes_audit_entry(self, tmp_path, locks):
        audit = AuditWriter(tmp_path / "audit.ndjson")

        def op(name):
            if name == "b":
                return PackageResult.failure(name, "boom")
            return _ok(name)

        summary = run_batch(["a", "b"], op, locks, operation_name="remove", audit=audit)

        [entry] = audit.read_all()
        assert entry.operation_id == summary.operation_id
        assert entry.operation_id.startswith("op-")
        assert entry.operation_type == "remove"
        assert entry.packages == ["a", "b"]
        assert entry.status == "partial"
        assert (entry.total, entry.succeeded, entry.failed) == (2, 1, 1)
        assert entry.errors == ["b: boom"]
        assert entry.context == {"parallel": True}

    def test_single_name_runs_sequentially(self, tmp_path, locks):
        audit = AuditWriter(tmp_path / "audit.ndjson")
        run_batch(["a"], _ok, locks, audit=audit)
        assert audit.read_all()[0].context == {"parallel": False}


class TestLogContext:
    @pytest.mark.parametrize("parallel", [True, False])
    def test_operations_run_inside_package_context(self, locks, parallel):
        seen: dict[str, str] = {}

        def op(name):
            seen[name] = logging_config._context.get()
            return _ok(name)

        run_batch(["node", "nginx"], op, locks, operation_name="remove", parallel=parallel)

        assert seen == {"node": "remove node", "nginx": "remove nginx"}
        assert logging_config._context.get() == ""
