"""
L3 Detection — OS service liveness.

Read-only probes: init system detection and ``systemctl is-active``.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


def _detect_init_system() -> str:
    """Detect the init system (systemd, openrc, initd, or unknown)."""
    if Path("/run/systemd/system").exists():
        return "systemd"
    if shutil.which("rc-service"):
        return "openrc"
    if Path("/etc/init.d").exists():
        return "initd"
    return "unknown"


def is_service_active(unit: str) -> bool | None:
    """Whether a systemd unit reports ``active``.

    Returns:
        True/False on a systemd host, None when liveness cannot be
        checked (no systemd, or systemctl missing).
    """
    if _detect_init_system() != "systemd":
        return None

    try:
        r = subprocess.run(
            ["systemctl", "is-active", unit],
            capture_output=True, text=True, timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.debug("systemctl probe for %s failed: %s", unit, e)
        return None

    return r.stdout.strip() == "active"
