"""
L3 Detection — Installed version probes.

Read-only probes: run a package's version command and reduce the
output to the granularity the catalog uses for that package
(``3.10`` for python, ``18`` for node). A missing binary yields
``""``, never an error.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess

logger = logging.getLogger(__name__)

# package → (command, number of version components kept)
VERSION_COMMANDS: dict[str, tuple[list[str], int]] = {
    "python":   (["python3", "--version"], 2),   # Python 3.10.12
    "node":     (["node", "--version"],    1),   # v18.19.0
    "php":      (["php", "-v"],            2),   # PHP 8.3.6 (cli) ...
    "java":     (["java", "-version"],     1),   # openjdk version "17.0.2" (stderr)
    "postgres": (["psql", "--version"],    1),   # psql (PostgreSQL) 17.2
    "pm2":      (["pm2", "--version"],     3),   # 5.4.0
    "docker":   (["docker", "--version"],  3),   # Docker version 26.1.3, build ...
}

# Requested versions that name a release channel rather than a number
FLOATING_VERSIONS: frozenset[str] = frozenset({"latest", "stable", "mainline"})

_VERSION_TOKEN = re.compile(r"\d+(?:\.\d+)*")


def parse_version(output: str, components: int) -> str:
    """Reduce raw version output to ``components`` dotted parts.

    Uses the first numeric token; falls back to the first output line
    when there is none.
    """
    match = _VERSION_TOKEN.search(output)
    if not match:
        lines = output.strip().splitlines()
        return lines[0].strip() if lines else ""
    return ".".join(match.group(0).split(".")[:components])


def get_system_version(name: str) -> str:
    """Version of ``name`` currently on the host, or ``""``.

    Output on stdout and stderr is merged because some runtimes
    (java) print their version to stderr.
    """
    entry = VERSION_COMMANDS.get(name)
    if entry is None:
        return ""

    cmd, components = entry
    if not shutil.which(cmd[0]):
        return ""

    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=10,
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.debug("Version probe for %s failed: %s", name, e)
        return ""

    if result.returncode != 0:
        return ""
    return parse_version(result.stdout or "", components)


def has_version_probe(name: str) -> bool:
    return name in VERSION_COMMANDS
