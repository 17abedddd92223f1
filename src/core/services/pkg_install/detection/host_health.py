"""
L3 Detection — Host readiness for package installs.

Read-only probes: /etc/os-release, machine architecture, apt, passwordless
sudo, free disk and memory, outbound network, and the basic download
tools the install scripts rely on.

Each check returns ``{"ok": True, "detail": ...}`` or
``{"ok": False, "error": ...}``.
"""

from __future__ import annotations

import logging
import os
import platform
import shutil
import subprocess
from collections.abc import Callable
from pathlib import Path

from src.core.services.pkg_install.detection.system_deps import command_exists

logger = logging.getLogger(__name__)

SUPPORTED_DISTROS = ("ubuntu", "debian")
SUPPORTED_ARCHES = ("x86_64", "amd64")
BASIC_TOOLS = ("curl", "wget", "git")
MIN_DISK_FREE_MB = 1024
MIN_MEMORY_AVAILABLE_MB = 256
NETWORK_TARGET = "8.8.8.8"


def _fail(error: str) -> dict:
    return {"ok": False, "error": error}


def _pass(detail: str) -> dict:
    return {"ok": True, "detail": detail}


# ── OS & platform ──────────────────────────────────────────


def _read_os_release(path: Path = Path("/etc/os-release")) -> dict[str, str]:
    fields: dict[str, str] = {}
    try:
        with open(path, encoding="utf-8") as f:
            for line in f:
                key, sep, value = line.strip().partition("=")
                if sep:
                    fields[key] = value.strip('"')
    except (FileNotFoundError, OSError):
        pass
    return fields


def check_operating_system(os_release: Path = Path("/etc/os-release")) -> dict:
    fields = _read_os_release(os_release)
    if not fields:
        return _fail("cannot read /etc/os-release")
    family = " ".join([fields.get("ID", ""), fields.get("ID_LIKE", "")]).lower()
    if not any(d in family.split() for d in SUPPORTED_DISTROS):
        return _fail(f"not Ubuntu/Debian ({fields.get('PRETTY_NAME', fields.get('ID', 'unknown'))})")
    return _pass(fields.get("PRETTY_NAME", fields.get("ID", "")))


def check_architecture() -> dict:
    arch = platform.machine()
    if arch.lower() not in SUPPORTED_ARCHES:
        return _fail(f"unsupported architecture: {arch or 'unknown'} (only x86_64/amd64)")
    return _pass(arch)


def check_package_manager() -> dict:
    for pm in ("apt", "apt-get"):
        if command_exists(pm):
            return _pass(pm)
    return _fail("apt package manager not found")


def check_sudo_access() -> dict:
    if os.geteuid() == 0:
        return _pass("running as root")
    if not command_exists("sudo"):
        return _fail("sudo command not found")
    try:
        r = subprocess.run(["sudo", "-n", "true"], capture_output=True, timeout=5)
    except subprocess.TimeoutExpired:
        return _fail("sudo check timed out")
    if r.returncode != 0:
        return _fail("passwordless sudo not available")
    return _pass("passwordless sudo")


# ── Resources ──────────────────────────────────────────────


def _read_available_ram_mb() -> int:
    """Read available RAM in MB from /proc/meminfo."""
    try:
        with open("/proc/meminfo") as f:
            for line in f:
                if line.startswith("MemAvailable:"):
                    return int(line.split()[1]) // 1024
    except (FileNotFoundError, ValueError):
        pass
    return 0


def check_disk_space(path: str = "/") -> dict:
    try:
        free_mb = shutil.disk_usage(path).free // (1024 * 1024)
    except OSError as e:
        return _fail(f"cannot read disk usage of {path}: {e}")
    if free_mb < MIN_DISK_FREE_MB:
        return _fail(f"only {free_mb} MB free on {path} (need {MIN_DISK_FREE_MB} MB)")
    return _pass(f"{free_mb} MB free on {path}")


def check_memory() -> dict:
    available = _read_available_ram_mb()
    if available == 0:
        return _fail("cannot read /proc/meminfo")
    if available < MIN_MEMORY_AVAILABLE_MB:
        return _fail(f"only {available} MB available (need {MIN_MEMORY_AVAILABLE_MB} MB)")
    return _pass(f"{available} MB available")


# ── Connectivity & tools ───────────────────────────────────


def check_network(target: str = NETWORK_TARGET) -> dict:
    try:
        r = subprocess.run(
            ["ping", "-c", "1", "-W", "5", target],
            capture_output=True, timeout=10,
        )
    except FileNotFoundError:
        return _fail("ping not available")
    except subprocess.TimeoutExpired:
        return _fail(f"no reply from {target}")
    if r.returncode != 0:
        return _fail("no network connectivity")
    return _pass(f"{target} reachable")


def check_basic_tools() -> dict:
    missing = [t for t in BASIC_TOOLS if not command_exists(t)]
    if missing:
        return _fail(f"missing basic dependencies: {', '.join(missing)}")
    return _pass(", ".join(BASIC_TOOLS))


HEALTH_CHECKS: list[tuple[str, Callable[[], dict]]] = [
    ("Operating System", check_operating_system),
    ("Architecture", check_architecture),
    ("Package Manager", check_package_manager),
    ("Sudo Access", check_sudo_access),
    ("Disk Space", check_disk_space),
    ("Memory", check_memory),
    ("Network", check_network),
    ("System Dependencies", check_basic_tools),
]


def run_health_checks() -> list[dict]:
    """Run every host check in order.

    Returns::

        [{"name": "Architecture", "ok": True, "detail": "x86_64"},
         {"name": "Network", "ok": False, "error": "no network connectivity"},
         ...]
    """
    results = []
    for name, check in HEALTH_CHECKS:
        result = check()
        if not result["ok"]:
            logger.info("Health check %s failed: %s", name, result["error"])
        results.append({"name": name, **result})
    return results
