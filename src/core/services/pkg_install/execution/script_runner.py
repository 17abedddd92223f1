"""
L4 Execution — Install script execution.

Resolves a catalog script under the install root, makes it executable
and runs it with a non-interactive environment, output streamed to the
terminal.
"""

from __future__ import annotations

import logging
from pathlib import Path

from src.core.models.package import PackageDescriptor
from src.core.services.pkg_install.domain.validation import resolve_under
from src.core.services.pkg_install.errors import InstallationFailure
from src.core.services.pkg_install.execution.subprocess_runner import (
    NONINTERACTIVE_ENV,
    run_command,
)

logger = logging.getLogger(__name__)


def script_arguments(pkg: PackageDescriptor, version: str = "", extra_args: list[str] | None = None) -> list[str]:
    """Arguments passed to a package's install script."""
    args: list[str] = []
    if version and pkg.version_support:
        args += ["--version", version]
    if extra_args:
        args += list(extra_args)
    return args


def run_install_script(
    pkg: PackageDescriptor,
    install_root: Path,
    args: list[str],
    *,
    timeout: float | None = None,
) -> None:
    """Run the package's install script.

    Raises:
        ValidationError: If the script path escapes the install root.
        InstallationFailure: If the script is missing, cannot be made
            executable, exits non-zero or times out.
    """
    script = resolve_under(install_root, pkg.script_path)
    if not script.is_file():
        raise InstallationFailure(f"installation script not found: {script}", pkg.name)

    try:
        script.chmod(0o755)
    except OSError as e:
        raise InstallationFailure(f"failed to make script executable {script}: {e}", pkg.name) from e

    logger.info("Executing installation script: %s %s", script, " ".join(args))
    result = run_command(
        [str(script), *args],
        timeout=timeout,
        env_overrides=NONINTERACTIVE_ENV,
        cwd=str(install_root),
        stream=True,
    )
    if not result["ok"]:
        raise InstallationFailure(
            f"installation script failed for {pkg.name}: {result.get('error', 'unknown error')}",
            pkg.name,
        )
