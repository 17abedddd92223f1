"""
L5 Orchestration — Installation orchestrator.

One install, end to end:

    validate → lock → checkpoint → dependencies → already satisfied?
    → resolve version conflict → run script → commit (or roll back)

Every failure after the checkpoint replays the package's rollback point
before the error propagates. Dependencies are installed sequentially,
each under its own package lock.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from src.core.models.package import InstallOutcome, PackageDescriptor
from src.core.models.settings import Settings
from src.core.services.pkg_install.data.catalog import RegistryView
from src.core.services.pkg_install.detection.install_state import InstallStateDetector
from src.core.services.pkg_install.detection.install_type import InstallTypeDetector
from src.core.services.pkg_install.detection.tool_version import (
    FLOATING_VERSIONS,
    has_version_probe,
)
from src.core.services.pkg_install.domain.dag import (
    DependencyGraph,
    split_dependencies,
    validate_registry,
)
from src.core.services.pkg_install.domain.validation import (
    validate_package_name,
    validate_version,
)
from src.core.services.pkg_install.errors import (
    DependencyFailure,
    InstallationFailure,
    PackageError,
    SystemPackageProtected,
    ValidationError,
)
from src.core.services.pkg_install.execution.apt_install import install_system_packages
from src.core.services.pkg_install.execution.locks import PackageLockManager
from src.core.services.pkg_install.execution.rollback import RollbackManager, RollbackPoint
from src.core.services.pkg_install.execution.script_runner import (
    run_install_script,
    script_arguments,
)
from src.core.services.pkg_install.execution.subprocess_runner import _is_root
from src.core.services.pkg_install.orchestration.removal import RemovalEngine

logger = logging.getLogger(__name__)

ScriptRunner = Callable[..., None]
SystemInstaller = Callable[[list[str]], dict[str, Any]]


class InstallManager:
    """Installs catalog packages with dependency resolution and rollback.

    Collaborators default to the real host implementations; tests pass
    fakes for the detector, script runner and system installer.
    """

    def __init__(
        self,
        registry: RegistryView,
        settings: Settings | None = None,
        *,
        locks: PackageLockManager | None = None,
        rollback: RollbackManager | None = None,
        detector: InstallStateDetector | None = None,
        removal: RemovalEngine | None = None,
        script_runner: ScriptRunner = run_install_script,
        system_installer: SystemInstaller = install_system_packages,
    ):
        self.registry = registry
        self.settings = settings or Settings()
        self.locks = locks or PackageLockManager(self.settings.lock_timeout)
        self.rollback = rollback or RollbackManager(self.settings.rollback_path)
        self.detector = detector or InstallStateDetector()
        self.removal = removal or RemovalEngine(registry, InstallTypeDetector())
        self._run_script = script_runner
        self._install_system = system_installer

    @property
    def install_root(self) -> Path:
        return self.settings.install_root

    # ── Queries ──

    def get(self, name: str) -> PackageDescriptor:
        """Catalog entry for ``name``.

        Raises:
            ValidationError: If the name is invalid or unknown.
        """
        validate_package_name(name)
        pkg = self.registry.get(name)
        if pkg is None:
            raise ValidationError(f"package '{name}' not found", name)
        return pkg

    def installation_order(self, names: list[str]) -> list[str]:
        return DependencyGraph.from_registry(self.registry).installation_order(names)

    def batch_prerequisites(self, names: list[str]) -> dict[str, set[str]]:
        """Batch names each package must wait for when run in parallel."""
        return DependencyGraph.from_registry(self.registry).batch_prerequisites(names)

    def status(self, name: str) -> dict[str, Any]:
        """Installed state, version, service state and missing system deps.

        ``service_active`` is None when the package has no service or
        liveness cannot be checked on this host.
        """
        pkg = self.get(name)
        installed = self.detector.is_installed(pkg)
        unit, active = self.detector.service_status(pkg)
        _, system_deps = split_dependencies(self.registry, pkg.dependencies)
        return {
            "name": pkg.name,
            "category": pkg.category,
            "installed": installed,
            "version": self.detector.system_version(name) if installed else "",
            "default_version": pkg.default_version,
            "service": unit,
            "service_active": active,
            "missing_system_deps": self.detector.missing_system_deps(system_deps),
        }

    # ── Install ──

    def install(
        self,
        name: str,
        version: str = "",
        extra_args: list[str] | None = None,
        clean: bool = False,
    ) -> InstallOutcome:
        """Install one package and its dependencies.

        Returns:
            ``INSTALLED``, or ``ALREADY_SATISFIED`` when nothing was done.

        Raises:
            ValidationError: Bad name or version; nothing was touched.
            CircularDependency: The catalog has a cycle.
            LockTimeout: Another operation holds the package.
            DependencyFailure: A dependency could not be installed.
            InstallationFailure: The script failed, or a conflicting
                version could not be removed.
        """
        pkg = self.get(name)
        validate_version(pkg, version)
        validate_registry(self.registry)

        with self.locks.hold(name):
            return self._install_locked(pkg, version, extra_args, clean)

    def _install_locked(
        self,
        pkg: PackageDescriptor,
        version: str,
        extra_args: list[str] | None,
        clean: bool,
    ) -> InstallOutcome:
        logger.info("Installing %s (%s)", pkg.name, pkg.description)
        try:
            point = self.rollback.create_rollback_point(pkg.name, "install")
        except OSError as e:
            raise InstallationFailure(
                f"failed to create rollback point for {pkg.name}: {e}", pkg.name,
            ) from e

        try:
            self._install_dependencies(pkg, point)

            if self.detector.is_installed(pkg):
                if not clean and self._version_satisfied(pkg, version):
                    logger.info("%s is already installed", pkg.name)
                    self._commit(point)
                    return InstallOutcome.ALREADY_SATISFIED
                self._remove_existing(pkg, version)

            args = script_arguments(pkg, version, extra_args)
            self._run_script(pkg, self.install_root, args, timeout=self.settings.script_timeout)
        except PackageError as e:
            logger.warning("Installation of %s failed, rolling back: %s", pkg.name, e)
            self.rollback.execute_rollback(point)
            raise

        self._commit(point)
        logger.info("%s installed", pkg.name)
        return InstallOutcome.INSTALLED

    def _install_dependencies(self, pkg: PackageDescriptor, point: RollbackPoint) -> None:
        catalog_deps, system_deps = split_dependencies(self.registry, pkg.dependencies)

        for dep_name in catalog_deps:
            dep = self.registry.get(dep_name)
            if dep is None or self.detector.is_installed(dep):
                continue
            logger.info("Required package %s is not installed", dep_name)
            try:
                with self.locks.hold(dep_name):
                    # Someone else may have installed it while we waited
                    if self.detector.is_installed(dep):
                        continue
                    self._install_locked(dep, "", None, False)
            except PackageError as e:
                raise DependencyFailure(
                    f"failed to install required package {dep_name}: {e}", pkg.name,
                ) from e

        missing = self.detector.missing_system_deps(system_deps)
        if not missing:
            return

        result = self._install_system(missing)
        if not result.get("ok"):
            raise DependencyFailure(
                f"failed to install system dependencies {', '.join(missing)}: "
                f"{result.get('error', 'unknown error')}",
                pkg.name,
            )
        prefix = "" if _is_root() else "sudo "
        point.add_command(f"{prefix}apt-get remove -y {' '.join(missing)}")

    def _version_satisfied(self, pkg: PackageDescriptor, version: str) -> bool:
        if not version or version in FLOATING_VERSIONS or not has_version_probe(pkg.name):
            return True
        return self.detector.system_version(pkg.name) == version

    def _remove_existing(self, pkg: PackageDescriptor, version: str) -> None:
        current = self.detector.system_version(pkg.name)
        if pkg.name == "python":
            raise SystemPackageProtected(
                f"python {current or 'unknown'} is installed and is used by the system; "
                f"remove it manually before installing python {version}",
                pkg.name,
            )

        logger.warning(
            "%s %s is installed, removing it before installing %s",
            pkg.name, current or "(unknown version)", version or "the default version",
        )
        result = self.removal.safe_remove(pkg.name, force=True, dry_run=False)
        if not result.success:
            raise InstallationFailure(
                f"failed to remove existing {pkg.name}: "
                f"{result.error or result.warning or 'unknown error'}",
                pkg.name,
            )

    def _commit(self, point: RollbackPoint) -> None:
        try:
            self.rollback.cleanup_rollback_point(point.id)
        except (KeyError, OSError) as e:
            logger.warning("Could not remove rollback point %s: %s", point.id, e)
