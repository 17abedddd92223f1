"""
L0 Data — Packages the removal engine refuses to touch without --force.

Matching is exact or by prefix, so ``python3-apt`` is protected by the
``python3`` entry.
"""

from __future__ import annotations

CRITICAL_PACKAGES: dict[str, str] = {
    "systemd": "System service manager - critical for system operation",
    "ubuntu-desktop": "Ubuntu desktop environment - critical for GUI",
    "glibc": "GNU C Library - critical for system operation",
    "sudo": "Superuser privileges - critical for system administration",
    "bash": "Bourne Again Shell - critical for system operation",
    "coreutils": "Core utilities - critical for system operation",
    "netplan": "Network configuration - critical for networking",
    "gnome": "GNOME desktop environment - critical for GUI",
    "xorg": "X Window System - critical for GUI",
    "python3": "System Python - critical for Ubuntu system tools",
    "nodejs": "System Node.js - critical for system tools",
    "php": "System PHP - critical for system tools",
    "apt": "Package manager - critical for system operation",
    "dpkg": "Package manager - critical for system operation",
    "systemctl": "System control - critical for system operation",
    "init": "System initialization - critical for system operation",
    "login": "User login - critical for system operation",
    "passwd": "Password management - critical for system operation",
    "useradd": "User management - critical for system operation",
    "groupadd": "Group management - critical for system operation",
}


def critical_reason(name: str) -> str | None:
    """Return why ``name`` is protected, or None if it is not."""
    if name in CRITICAL_PACKAGES:
        return CRITICAL_PACKAGES[name]
    for critical in sorted(CRITICAL_PACKAGES):
        if name.startswith(critical):
            return CRITICAL_PACKAGES[critical]
    return None
