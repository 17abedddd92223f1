"""
L5 Orchestration — Parallel and sequential batch drivers.

A driver fans a list of package names out to a per-package operation
and collects one ``PackageResult`` per name. Each task holds that
package's lock for the whole operation; failures never stop siblings.
The parallel driver uses one worker per name and starts a name only
after the batch entries it depends on have finished.

``install_operation`` and ``remove_operation`` adapt the orchestrator
and the removal engine to the ``name → PackageResult`` shape, turning
exceptions into failed results.
"""

from __future__ import annotations

import concurrent.futures
import logging
import time
from collections.abc import Callable, Iterable, Mapping

from src.core.models.package import InstallOutcome, PackageResult
from src.core.observability.logging_config import package_context
from src.core.persistence.audit import AuditEntry, AuditWriter, generate_operation_id
from src.core.services.pkg_install.domain.summary import BatchSummary
from src.core.services.pkg_install.errors import LockTimeout, PackageError
from src.core.services.pkg_install.execution.locks import PackageLockManager
from src.core.services.pkg_install.orchestration.manager import InstallManager
from src.core.services.pkg_install.orchestration.removal import (
    REASON_UNKNOWN,
    RemovalEngine,
)

logger = logging.getLogger(__name__)

Operation = Callable[[str], PackageResult]


# ── Per-package operations ──────────────────────────────────────


def install_operation(
    manager: InstallManager,
    version: str = "",
    extra_args: list[str] | None = None,
    clean: bool = False,
) -> Operation:
    """Wrap ``InstallManager.install`` as a batch operation."""

    def _install(name: str) -> PackageResult:
        category = manager.registry.category_of(name)
        start = time.monotonic()
        try:
            outcome = manager.install(name, version=version, extra_args=extra_args, clean=clean)
        except PackageError as e:
            return PackageResult.failure(
                name, str(e), category=category,
                duration_ms=int((time.monotonic() - start) * 1000),
                metadata={"error_type": type(e).__name__},
            )
        elapsed = int((time.monotonic() - start) * 1000)
        if outcome is InstallOutcome.ALREADY_SATISFIED:
            return PackageResult.skip(
                name, "already installed", category=category, duration_ms=elapsed,
                metadata={"outcome": outcome.value},
            )
        return PackageResult.success(
            name, "installed", category=category, duration_ms=elapsed,
            metadata={"outcome": outcome.value},
        )

    return _install


def remove_operation(
    engine: RemovalEngine,
    force: bool = False,
    dry_run: bool = False,
) -> Operation:
    """Wrap ``RemovalEngine.safe_remove`` as a batch operation."""

    def _remove(name: str) -> PackageResult:
        category = engine.registry.category_of(name)
        start = time.monotonic()
        try:
            result = engine.safe_remove(name, force=force, dry_run=dry_run)
        except PackageError as e:
            return PackageResult.failure(name, str(e), category=category)
        elapsed = int((time.monotonic() - start) * 1000)
        meta = result.to_dict()

        if result.success:
            message = "would remove" if dry_run else "removed"
            return PackageResult.success(
                name, message, category=category, duration_ms=elapsed, metadata=meta,
            )
        if result.reason == REASON_UNKNOWN:
            return PackageResult.skip(
                name, result.warning, category=category, duration_ms=elapsed, metadata=meta,
            )
        return PackageResult.failure(
            name, result.error or result.warning, category=category,
            duration_ms=elapsed, metadata=meta,
        )

    return _remove


# ── Drivers ─────────────────────────────────────────────────────


def _locked(locks: PackageLockManager, operation: Operation, name: str) -> PackageResult:
    try:
        locks.acquire(name)
    except LockTimeout as e:
        logger.warning("✗ %s failed to acquire lock: %s", name, e)
        return PackageResult.failure(name, f"failed to acquire lock: {e}")
    try:
        return operation(name)
    except Exception as e:
        logger.exception("Unexpected error while processing %s", name)
        return PackageResult.failure(name, f"unexpected error: {e}")
    finally:
        locks.release(name)


def execute_parallel(
    names: list[str],
    operation: Operation,
    locks: PackageLockManager,
    prerequisites: Mapping[str, Iterable[str]] | None = None,
) -> list[PackageResult]:
    """Run ``operation`` for every name concurrently, one worker each.

    ``prerequisites`` maps a name to other batch names that must finish
    first (see ``InstallManager.batch_prerequisites``). Names run in
    waves: each wave holds every name whose prerequisites have finished,
    whatever their outcome. Without prerequisites there is one wave.

    Results are returned in completion order.
    """
    if not names:
        return []

    batch = set(names)
    waits = {n: (set((prerequisites or {}).get(n, ())) & batch) - {n} for n in batch}
    pending = list(names)
    finished: set[str] = set()
    results: list[PackageResult] = []

    with concurrent.futures.ThreadPoolExecutor(max_workers=len(names)) as pool:
        while pending:
            wave = [n for n in pending if waits[n] <= finished]
            if not wave:
                # Unsatisfiable prerequisites: run the rest together
                wave = pending
            pending = [n for n in pending if n not in wave]
            if pending:
                logger.debug("Wave %s; waiting: %s", ", ".join(wave), ", ".join(pending))

            futures = {pool.submit(_locked, locks, operation, n): n for n in wave}
            for future in concurrent.futures.as_completed(futures):
                result = future.result()
                _log_result(result)
                results.append(result)
                finished.add(futures[future])
    return results


def execute_sequential(
    names: list[str],
    operation: Operation,
    locks: PackageLockManager,
) -> list[PackageResult]:
    """Run ``operation`` for every name in order."""
    results: list[PackageResult] = []
    for i, name in enumerate(names, start=1):
        logger.info("[%d/%d] %s", i, len(names), name)
        result = _locked(locks, operation, name)
        _log_result(result)
        results.append(result)
    return results


def _log_result(result: PackageResult) -> None:
    if result.failed:
        logger.info("✗ %s: %s", result.name, result.error)
    else:
        logger.info("✓ %s: %s", result.name, result.message or result.status)


def run_batch(
    names: list[str],
    operation: Operation,
    locks: PackageLockManager,
    *,
    operation_name: str = "install",
    parallel: bool = True,
    prerequisites: Mapping[str, Iterable[str]] | None = None,
    audit: AuditWriter | None = None,
) -> BatchSummary:
    """Drive a batch and summarise it, appending one audit entry.

    ``prerequisites`` only shapes the parallel driver; a sequential run
    follows the order of ``names``. Log records from each operation are
    tagged with the operation name and package.
    """
    op_id = generate_operation_id()
    start = time.monotonic()

    def _tagged(name: str) -> PackageResult:
        with package_context(name, operation_name):
            return operation(name)

    concurrent_run = parallel and len(names) > 1
    if concurrent_run:
        results = execute_parallel(names, _tagged, locks, prerequisites)
    else:
        results = execute_sequential(names, _tagged, locks)

    summary = BatchSummary(
        operation=operation_name,
        operation_id=op_id,
        results=results,
        duration_ms=int((time.monotonic() - start) * 1000),
    )

    if audit is not None:
        audit.write(AuditEntry(
            operation_id=op_id,
            operation_type=operation_name,
            packages=list(names),
            status=summary.status,
            total=summary.total,
            succeeded=len(summary.successful),
            skipped=len(summary.skipped),
            failed=len(summary.failed),
            duration_ms=summary.duration_ms,
            errors=[f"{n}: {e}" for n, e in summary.errors.items()],
            context={"parallel": concurrent_run},
        ))

    return summary
