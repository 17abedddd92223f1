"""
Host fakes for the package installation engine.

A detector driven by an in-memory "installed" set, a script runner that
records calls, a system installer that records the apt batch, and a
command runner that records argv lists.
"""

from __future__ import annotations

import threading
import time
from pathlib import Path

from src.core.models.package import PackageDescriptor
from src.core.services.pkg_install.errors import InstallationFailure


def make_pkg(name: str, deps: tuple[str, ...] = (), **kwargs) -> PackageDescriptor:
    """A catalog entry with sensible defaults for tests."""
    kwargs.setdefault("script_path", f"scripts/packages/{name}.sh")
    kwargs.setdefault("detection_commands", (name,))
    return PackageDescriptor(name=name, dependencies=deps, **kwargs)


class FakeDetector:
    """In-memory install state."""

    def __init__(self, installed=(), versions=None, present_system=(), services=None):
        self.installed: set[str] = set(installed)
        self.versions: dict[str, str] = dict(versions or {})
        self.present_system: set[str] = set(present_system)
        self.services: dict[str, tuple[str, bool | None]] = dict(services or {})
        self._lock = threading.Lock()

    def is_installed(self, pkg: PackageDescriptor) -> bool:
        with self._lock:
            return pkg.name in self.installed

    def service_status(self, pkg: PackageDescriptor) -> tuple[str, bool | None]:
        return self.services.get(pkg.name, ("", None))

    def system_version(self, name: str) -> str:
        return self.versions.get(name, "")

    def missing_system_deps(self, deps: list[str]) -> list[str]:
        return [d for d in deps if d not in self.present_system]


class FakeScripts:
    """Records install script runs; marks packages installed on success.

    ``delays`` keeps a package's script busy for that many seconds.
    """

    def __init__(self, detector: FakeDetector, failing=(), delays=None):
        self.detector = detector
        self.failing: set[str] = set(failing)
        self.delays: dict[str, float] = dict(delays or {})
        self.calls: list[tuple[str, list[str]]] = []
        self._lock = threading.Lock()

    def __call__(self, pkg: PackageDescriptor, install_root: Path, args: list[str], *, timeout=None) -> None:
        with self._lock:
            self.calls.append((pkg.name, list(args)))
        time.sleep(self.delays.get(pkg.name, 0))
        if pkg.name in self.failing:
            raise InstallationFailure(f"installation script failed for {pkg.name}", pkg.name)
        with self.detector._lock:
            self.detector.installed.add(pkg.name)
            self.detector.versions.pop(pkg.name, None)

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.calls]


class FakeSystemInstaller:
    """Records apt batches; marks the packages present."""

    def __init__(self, detector: FakeDetector, ok: bool = True):
        self.detector = detector
        self.ok = ok
        self.batches: list[list[str]] = []

    def __call__(self, packages: list[str]) -> dict:
        self.batches.append(list(packages))
        if not self.ok:
            return {"ok": False, "error": "Command failed (exit 100)"}
        self.detector.present_system.update(packages)
        return {"ok": True}


class RecordingRunner:
    """Command runner that records argv lists and options.

    Succeeds unless an argument equals ``fail_on``.
    """

    def __init__(self, fail_on: str | None = None):
        self.commands: list[list[str]] = []
        self.options: list[dict] = []
        self.fail_on = fail_on

    def __call__(self, argv: list[str], **kwargs) -> dict:
        self.commands.append(list(argv))
        self.options.append(kwargs)
        if self.fail_on and self.fail_on in argv:
            return {"ok": False, "error": "Command failed (exit 1)"}
        return {"ok": True}
