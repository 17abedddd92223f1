"""
L3 Detection — System dependency checking.

A bare dependency such as ``curl`` or ``build-essential`` counts as
present when it resolves on PATH or dpkg reports it installed.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Iterable

logger = logging.getLogger(__name__)


def command_exists(name: str) -> bool:
    return shutil.which(name) is not None


def _is_pkg_installed(pkg: str) -> bool:
    """Check a single package with ``dpkg-query -W -f='${Status}'``."""
    try:
        r = subprocess.run(
            ["dpkg-query", "-W", "-f=${Status}", pkg],
            capture_output=True, text=True, timeout=10,
        )
    except FileNotFoundError:
        logger.debug("dpkg-query not found (checking %s)", pkg)
        return False
    except subprocess.TimeoutExpired:
        logger.warning("Timeout checking package %s", pkg)
        return False
    return "install ok installed" in r.stdout


def missing_system_deps(deps: Iterable[str]) -> list[str]:
    """Return the deps that are neither on PATH nor dpkg-installed."""
    return [d for d in deps if not command_exists(d) and not _is_pkg_installed(d)]
