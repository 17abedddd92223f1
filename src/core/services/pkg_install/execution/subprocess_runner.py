"""
L4 Execution — Core subprocess runner.

The SINGLE PLACE where ``subprocess.run`` is called for mutating
package operations. Privilege escalation, environment, timeouts and
error capture are centralised here.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from typing import Any

logger = logging.getLogger(__name__)

# Keeps apt, needrestart and apt-listchanges from prompting
NONINTERACTIVE_ENV: dict[str, str] = {
    "DEBIAN_FRONTEND": "noninteractive",
    "NEEDRESTART_MODE": "a",
    "APT_LISTCHANGES_FRONTEND": "none",
}


def _is_root() -> bool:
    return os.geteuid() == 0


def run_command(
    cmd: list[str],
    *,
    needs_sudo: bool = False,
    timeout: float | None = 120,
    env_overrides: dict[str, str] | None = None,
    cwd: str | None = None,
    stream: bool = False,
) -> dict[str, Any]:
    """Run a command and report the outcome as a dict.

    When ``needs_sudo`` is set and the process is not root, the command
    is prefixed with ``sudo`` and the terminal handles any password
    prompt.

    Args:
        cmd: Command list for ``subprocess.run()``.
        needs_sudo: Whether the command requires root.
        timeout: Seconds before the child is killed. None waits forever.
        env_overrides: Extra env vars merged over the current environment.
        cwd: Working directory for the command.
        stream: Send the child's output straight to the terminal instead
            of capturing it.

    Returns:
        ``{"ok": True, "stdout": "...", "elapsed_ms": N}`` on success,
        ``{"ok": False, "error": "...", ...}`` on failure.
    """
    # ── Sudo handling ──
    if needs_sudo and not _is_root():
        cmd = ["sudo"] + cmd

    # ── Environment ──
    env = os.environ.copy()
    if env_overrides:
        for key, value in env_overrides.items():
            env[key] = os.path.expandvars(value)

    # ── Execute ──
    logger.debug("Running: %s", " ".join(cmd))
    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            capture_output=not stream,
            text=True,
            timeout=timeout,
            env=env,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired:
        return {"ok": False, "error": f"Command timed out ({timeout}s)", "timed_out": True}
    except FileNotFoundError:
        return {"ok": False, "error": f"Command not found: {cmd[0]}"}
    except OSError as e:
        logger.exception("Subprocess error: %s", cmd)
        return {"ok": False, "error": str(e)}

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = result.stdout[-2000:] if result.stdout else ""
    stderr = result.stderr[-2000:] if result.stderr else ""

    if result.returncode == 0:
        return {"ok": True, "stdout": stdout, "elapsed_ms": elapsed_ms}

    return {
        "ok": False,
        "error": f"Command failed (exit {result.returncode})",
        "returncode": result.returncode,
        "stderr": stderr,
        "stdout": stdout,
        "elapsed_ms": elapsed_ms,
    }
