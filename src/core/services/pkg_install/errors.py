"""
Package operation errors.

Every failure an install can raise derives from ``PackageError`` so the
batch drivers can turn any of them into a failed ``PackageResult``.
"""

from __future__ import annotations


class PackageError(Exception):
    """Base class for package operation failures."""

    def __init__(self, message: str, package: str = ""):
        super().__init__(message)
        self.package = package


class ValidationError(PackageError):
    """Bad name, version, or script path. Raised before any mutation."""


class CircularDependency(PackageError):
    """The dependency graph contains a cycle."""

    def __init__(self, cycle: list[str]):
        super().__init__(f"circular dependency detected: {' -> '.join(cycle)}")
        self.cycle = cycle


class DependencyFailure(PackageError):
    """A dependency of the package could not be installed."""


class LockTimeout(PackageError):
    """Another operation on the same package held the lock too long."""

    def __init__(self, package: str, timeout: float):
        super().__init__(
            f"timeout waiting for lock on package {package} "
            f"(another operation may be in progress)",
            package,
        )
        self.timeout = timeout


class InstallationFailure(PackageError):
    """The install script failed, timed out, or could not be run."""


class SystemPackageProtected(InstallationFailure):
    """A conflicting version belongs to the OS and must be removed by hand."""
