"""
L0 Data — APT package patterns per catalog package.

One catalog package can land as several physical APT packages
(``docker-ce`` plus its CLI and plugins, ``postgresql-17`` plus
``postgresql-client-17``). Removal purges everything these patterns
match in ``dpkg -l``. The base name and ``<base>-*`` are always tried.
"""

from __future__ import annotations

APT_EXTRA_PATTERNS: dict[str, tuple[str, ...]] = {
    "docker": (
        "docker-ce", "docker-ce-cli", "containerd.io",
        "docker-buildx-plugin", "docker-compose-plugin",
    ),
    "nginx": ("nginx-*",),
    "php": ("php*-fpm", "php*-cli", "php*-common"),
    "java": ("openjdk-*-jdk", "openjdk-*-jre"),
    "node": ("npm",),
}


def apt_patterns(name: str, apt_name: str) -> list[str]:
    """dpkg patterns for a package, de-duplicated, in a stable order."""
    patterns = [apt_name, f"{apt_name}-*", *APT_EXTRA_PATTERNS.get(name, ())]
    return list(dict.fromkeys(patterns))
