"""
L0 Data — Full-cleanup tables for package removal.

A removal stops the package's services before touching it, and deletes
the configuration, data and cache directories its packages leave behind.
Leftover paths starting with ``~/`` live under the user's home; the rest
are system paths. Globs are allowed.
"""

from __future__ import annotations

# systemd units stopped and disabled before removal
PRE_STOP_SERVICES: dict[str, tuple[str, ...]] = {
    "docker": ("docker", "docker.socket"),
    "nginx": ("nginx",),
    "postgres": ("postgresql",),
    "php": ("php*-fpm",),
    "essentials": ("redis-server",),
}

# Paths deleted after the package itself is gone
LEFTOVER_PATHS: dict[str, tuple[str, ...]] = {
    "node": (
        "/usr/local/lib/node_modules",
        "~/.npm",
        "~/.npm-global",
        "~/.node-gyp",
        "~/.node_repl_history",
    ),
    "docker": (
        "/var/lib/docker",
        "/var/lib/containerd",
        "/etc/docker",
        "/etc/apt/sources.list.d/docker.list",
        "/etc/apt/keyrings/docker.gpg",
    ),
    "nginx": (
        "/etc/nginx",
        "/var/log/nginx",
        "/var/lib/nginx",
        "/usr/share/nginx",
    ),
    "postgres": (
        "/etc/postgresql",
        "/var/lib/postgresql",
        "/var/log/postgresql",
    ),
    "php": (
        "/etc/php",
        "/var/lib/php",
        "/var/log/php*",
    ),
    "java": (
        "/usr/lib/jvm",
        "/usr/share/java",
    ),
    "pm2": ("~/.pm2",),
    "essentials": (
        "/etc/redis",
        "/var/lib/redis",
        "/var/log/redis",
    ),
}


def pre_stop_services(name: str) -> tuple[str, ...]:
    return PRE_STOP_SERVICES.get(name, ())


def leftover_patterns(name: str) -> tuple[str, ...]:
    return LEFTOVER_PATHS.get(name, ())
