"""
L0 Data — OS services backing catalog packages.
"""

from __future__ import annotations

# OS services that must be running for a package to count as installed
SERVICE_UNITS: dict[str, str] = {
    "nginx": "nginx",
    "postgres": "postgresql",
    "docker": "docker",
}


def service_unit(name: str, default_version: str = "") -> str | None:
    """systemd unit backing a package, if it has one."""
    if name == "php":
        return f"php{default_version}-fpm" if default_version else "php-fpm"
    return SERVICE_UNITS.get(name)
