"""
L4 Execution — Batch install of bare system dependencies through APT.
"""

from __future__ import annotations

import logging
from typing import Any

from src.core.services.pkg_install.execution.subprocess_runner import (
    NONINTERACTIVE_ENV,
    run_command,
)

logger = logging.getLogger(__name__)


def install_system_packages(packages: list[str], *, timeout: float | None = 1800) -> dict[str, Any]:
    """Refresh the index, then install ``packages`` in one apt call.

    Returns:
        The runner's result dict for the first failing step, or the
        install step's result.
    """
    if not packages:
        return {"ok": True, "stdout": "", "elapsed_ms": 0}

    logger.info("Installing system dependencies: %s", ", ".join(packages))

    update = run_command(
        ["apt-get", "update", "-qq"],
        needs_sudo=True, timeout=timeout, env_overrides=NONINTERACTIVE_ENV, stream=True,
    )
    if not update["ok"]:
        logger.warning("apt-get update failed: %s", update.get("error"))
        return update

    return run_command(
        ["apt-get", "install", "-y", "-qq", "--no-install-recommends", *packages],
        needs_sudo=True, timeout=timeout, env_overrides=NONINTERACTIVE_ENV, stream=True,
    )
