"""
L3 Detection — Is a catalog package installed, and at what version.

A package is installed when every detection command resolves on PATH
(and it has at least one). Packages backed by an OS service must also
have that service active; php is the exception, where a stopped FPM
service is tolerated as long as the ``php`` CLI resolves. On hosts
without systemd the command check alone decides.
"""

from __future__ import annotations

import logging

from src.core.models.package import PackageDescriptor
from src.core.services.pkg_install.data.service_units import service_unit
from src.core.services.pkg_install.detection.service_status import is_service_active
from src.core.services.pkg_install.detection.system_deps import (
    command_exists,
    missing_system_deps,
)
from src.core.services.pkg_install.detection.tool_version import get_system_version

logger = logging.getLogger(__name__)


class InstallStateDetector:
    """Read-only view of what is on the host."""

    def is_installed(self, pkg: PackageDescriptor) -> bool:
        if not pkg.detection_commands:
            return False
        for cmd in pkg.detection_commands:
            if not command_exists(cmd):
                logger.debug("%s: %s not on PATH", pkg.name, cmd)
                return False

        unit, active = self.service_status(pkg)
        if not unit or active is None or active:
            return True
        if pkg.name == "php" and command_exists("php"):
            logger.debug("php: %s inactive, CLI present", unit)
            return True
        logger.debug("%s: service %s not active", pkg.name, unit)
        return False

    def service_status(self, pkg: PackageDescriptor) -> tuple[str, bool | None]:
        """The package's systemd unit and whether it is active.

        Returns ``("", None)`` for packages without a service.
        """
        unit = service_unit(pkg.name, pkg.default_version)
        if unit is None:
            return "", None
        return unit, is_service_active(unit)

    def system_version(self, name: str) -> str:
        return get_system_version(name)

    def missing_system_deps(self, deps: list[str]) -> list[str]:
        return missing_system_deps(deps)
