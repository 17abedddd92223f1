"""
CLI commands for rollback point housekeeping.
"""

from __future__ import annotations

import json
import sys
from datetime import datetime

import click

from src.core.services.pkg_install import RollbackManager


def _manager(ctx: click.Context) -> tuple[RollbackManager, float]:
    from src.core.config.loader import ConfigError, load_settings

    try:
        settings = load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)
    return RollbackManager(settings.rollback_path), settings.rollback_max_age_hours


@click.group()
def rollback() -> None:
    """Rollback points — list, cleanup."""


@rollback.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_points(ctx: click.Context, as_json: bool) -> None:
    """List rollback points left behind by failed operations."""
    manager, _ = _manager(ctx)
    points = manager.list_rollback_points()

    if as_json:
        click.echo(json.dumps([p.to_dict() for p in points], indent=2))
        return

    if not points:
        click.secho("✅ No rollback points", fg="green")
        return

    click.secho(f"⏪ Rollback points ({len(points)}):", fg="cyan", bold=True)
    for p in points:
        when = datetime.fromtimestamp(p.timestamp).strftime("%Y-%m-%d %H:%M:%S")
        click.echo(f"   {p.id:<40} {when}  {len(p.commands)} command(s)")


@rollback.command()
@click.option("--max-age", "max_age", type=float, default=None,
              help="Age in hours (default: from config).")
@click.pass_context
def cleanup(ctx: click.Context, max_age: float | None) -> None:
    """Delete rollback points older than --max-age hours."""
    manager, default_age = _manager(ctx)
    hours = default_age if max_age is None else max_age
    removed = manager.cleanup_old_rollback_points(hours * 3600)
    if removed:
        click.secho(f"🧹 Removed {len(removed)} rollback point(s)", fg="green")
        for point_id in removed:
            click.echo(f"   • {point_id}")
    else:
        click.echo("Nothing to clean up")
