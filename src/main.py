"""
run — package installation orchestrator, CLI entrypoint.

Usage:
    python -m src.main --help
    python -m src.main install node pm2
    python -m src.main remove nginx --dry-run
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from src.core.observability.logging_config import daily_log_file, setup_logging

from src import __version__


@click.group()
@click.version_option(version=__version__, prog_name="run")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to config.yml (default: $RUN_CONFIG or ~/.run/config.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """run — install and remove developer packages safely."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("RUN_LOG_LEVEL", "WARNING")

    log_file = os.environ.get("RUN_LOG_FILE")
    if not log_file and os.environ.get("RUN_LOG_DIR"):
        log_file = daily_log_file(os.environ["RUN_LOG_DIR"])

    setup_logging(
        level=level,
        log_file=log_file,
        log_file_level=os.environ.get("RUN_LOG_FILE_LEVEL"),
    )


# ── Register commands from src/ui/cli/ ────────────────────────────

from src.ui.cli.packages import check, deps, install, list_packages, order, remove
from src.ui.cli.rollback import rollback

cli.add_command(install)
cli.add_command(remove)
cli.add_command(check)
cli.add_command(list_packages)
cli.add_command(deps)
cli.add_command(order)
cli.add_command(rollback)


if __name__ == "__main__":
    cli()
