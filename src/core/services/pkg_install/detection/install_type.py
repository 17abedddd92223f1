"""
L3 Detection — How a package was installed.

Five strategies are tried in a fixed order and the first that matches
wins: APT, manual copy under ``/usr/local``, language version manager,
per-user directories under ``$HOME``, OS alternatives registry.

Each strategy also reports *what* it found (physical APT packages,
matched paths, version-manager uninstall commands). The removal engine
builds its plan from these findings, so a dry run and a real run see
exactly the same targets.

Removal also asks for leftover paths: config, data and cache
directories that outlive the package itself.

Roots are injectable so tests can point them at temporary directories.
"""

from __future__ import annotations

import glob
import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from src.core.models.package import InstallationType
from src.core.services.pkg_install.data.apt_packages import apt_patterns
from src.core.services.pkg_install.data.removal_cleanup import leftover_patterns
from src.core.services.pkg_install.data.version_managers import VERSION_MANAGERS
from src.core.services.pkg_install.detection.tool_version import get_system_version

logger = logging.getLogger(__name__)

DEFAULT_LOCAL_PREFIX = Path("/usr/local")

# Subdirectories searched during detection vs. cleaned during removal
_MANUAL_DETECT_DIRS = ("bin", "lib", "include")
_MANUAL_REMOVE_DIRS = ("bin", "lib", "include", "share", "etc")


@dataclass
class VersionManagerInstall:
    """A package found under a version manager's tree."""

    manager: str
    paths: list[str] = field(default_factory=list)
    commands: list[str] = field(default_factory=list)


def _glob_all(patterns: list[str]) -> list[str]:
    found: list[str] = []
    for pattern in patterns:
        for match in sorted(glob.glob(pattern)):
            if match not in found:
                found.append(match)
    return found


def _probe(cmd: list[str]) -> subprocess.CompletedProcess | None:
    try:
        return subprocess.run(cmd, capture_output=True, text=True, timeout=15)
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.debug("Probe %s failed: %s", cmd[0], e)
        return None


def parse_dpkg_list(output: str) -> list[str]:
    """Names of installed (``ii``) packages in ``dpkg -l`` output."""
    names: list[str] = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) >= 2 and parts[0] == "ii":
            name = parts[1].split(":", 1)[0]
            if name not in names:
                names.append(name)
    return names


class InstallTypeDetector:
    """Figures out how a package landed on the host."""

    def __init__(
        self,
        home: Path | None = None,
        local_prefix: Path = DEFAULT_LOCAL_PREFIX,
        system_root: Path = Path("/"),
    ):
        self.home = home if home is not None else Path.home()
        self.local_prefix = local_prefix
        self.system_root = system_root

    # ── APT ──

    def apt_packages(self, name: str, apt_name: str) -> list[str]:
        """Physical APT packages installed for ``name``.

        ``dpkg -l`` with every pattern first; ``apt-cache policy`` on the
        base name as a fallback.
        """
        r = _probe(["dpkg", "-l", *apt_patterns(name, apt_name)])
        if r is not None:
            found = parse_dpkg_list(r.stdout)
            if found:
                return found

        r = _probe(["apt-cache", "policy", apt_name])
        if r is not None and r.returncode == 0:
            for line in r.stdout.splitlines():
                line = line.strip()
                if line.startswith("Installed:") and "(none)" not in line:
                    return [apt_name]
        return []

    # ── Manual (/usr/local) ──

    def manual_paths(self, name: str, *, for_removal: bool = False) -> list[str]:
        dirs = _MANUAL_REMOVE_DIRS if for_removal else _MANUAL_DETECT_DIRS
        patterns = [str(self.local_prefix / d / f"{name}*") for d in dirs]
        return _glob_all(patterns)

    # ── Version managers ──

    def version_manager_install(self, name: str) -> VersionManagerInstall | None:
        """First version manager with at least one version of ``name``."""
        for manager, info in sorted(VERSION_MANAGERS.items()):
            if name not in info["packages"]:
                continue
            versions = _glob_all([str(self.home / info["versions_dir"] / "*")])
            if not versions:
                continue

            found = VersionManagerInstall(manager=manager, paths=list(versions))
            current = get_system_version(name)
            if current:
                found.commands.append(info["uninstall"].format(version=current))
            found.paths.append(str(self.home / info["home"]))
            return found
        return None

    # ── User directories ──

    def user_paths(self, name: str, *, for_removal: bool = False) -> list[str]:
        h = self.home
        if for_removal:
            patterns = [
                h / ".local" / "bin" / f"{name}*",
                h / ".local" / "lib" / f"{name}*",
                h / ".config" / f"{name}*",
                h / f".{name}*",
                h / ".cache" / f"{name}*",
            ]
        else:
            patterns = [
                h / ".local" / "bin" / name,
                h / ".local" / "lib" / f"{name}*",
                h / ".config" / f"{name}*",
                h / f".{name}",
                h / ".cache" / f"{name}*",
            ]
        return _glob_all([str(p) for p in patterns])

    # ── Alternatives ──

    def has_alternatives(self, name: str) -> bool:
        for flag in ("--list", "--display"):
            r = _probe(["update-alternatives", flag, name])
            if r is not None and r.returncode == 0:
                return True
        return False

    # ── Leftovers ──

    def leftover_paths(self, name: str) -> list[str]:
        """Existing config, data and cache paths left behind by ``name``."""
        patterns = []
        for pattern in leftover_patterns(name):
            if pattern.startswith("~/"):
                patterns.append(str(self.home / pattern[2:]))
            else:
                patterns.append(str(self.system_root / pattern.lstrip("/")))
        return _glob_all(patterns)

    # ── Dispatch ──

    def detect(self, name: str, apt_name: str = "") -> InstallationType:
        """First matching installation type, or ``UNKNOWN``."""
        if self.apt_packages(name, apt_name or name):
            return InstallationType.APT
        if self.manual_paths(name):
            return InstallationType.MANUAL
        if self.version_manager_install(name) is not None:
            return InstallationType.VERSION_MANAGER
        if self.user_paths(name):
            return InstallationType.USER
        if self.has_alternatives(name):
            return InstallationType.ALTERNATIVES
        return InstallationType.UNKNOWN
