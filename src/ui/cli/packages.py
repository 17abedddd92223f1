"""
CLI commands for package installation and removal.

Thin wrappers over ``src.core.services.pkg_install``.
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass

import click

from src.core.models.settings import Settings
from src.core.persistence.audit import AuditWriter
from src.core.services.pkg_install import (
    BatchSummary,
    InstallManager,
    PackageError,
    PackageLockManager,
    RegistryView,
    RemovalEngine,
    default_registry,
    dependency_tree,
    install_operation,
    remove_operation,
    run_batch,
    run_health_checks,
    sanitize_package_list,
    validate_version,
)


@dataclass
class _Services:
    registry: RegistryView
    settings: Settings
    locks: PackageLockManager
    manager: InstallManager
    removal: RemovalEngine
    audit: AuditWriter


def _services(ctx: click.Context) -> _Services:
    """Build the service graph once per invocation."""
    cached = ctx.obj.get("services")
    if cached is not None:
        return cached

    from src.core.config.loader import ConfigError, load_settings

    try:
        settings = load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    registry = default_registry().view()
    locks = PackageLockManager(settings.lock_timeout)
    removal = RemovalEngine(registry)
    manager = InstallManager(registry, settings, locks=locks, removal=removal)
    services = _Services(
        registry=registry,
        settings=settings,
        locks=locks,
        manager=manager,
        removal=removal,
        audit=AuditWriter(settings.audit_path),
    )
    ctx.obj["services"] = services
    return services


def _fail(message: str) -> None:
    click.secho(f"❌ {message}", fg="red")
    sys.exit(1)


def _resolve_names(
    svc: _Services,
    names: tuple[str, ...],
    select_all: bool,
    allow_reserved: bool = False,
) -> list[str]:
    if select_all:
        return svc.registry.names()
    if not names:
        _fail("No packages specified. Pass package names or --all.")
    try:
        return sanitize_package_list(names, allow_reserved=allow_reserved)
    except PackageError as e:
        _fail(str(e))
    return []  # unreachable


def _print_summary(summary: BatchSummary, verb: str) -> None:
    click.echo()
    click.secho("=" * 50, fg="cyan")
    click.secho(f"{summary.operation.upper()} SUMMARY", fg="cyan", bold=True)
    click.secho("=" * 50, fg="cyan")

    if summary.successful:
        click.secho(
            f"✓ Successfully {verb} ({len(summary.successful)}): {', '.join(summary.successful)}",
            fg="green",
        )
    if summary.skipped:
        label = "already installed" if summary.operation == "install" else "nothing to remove"
        click.secho(
            f"⊘ Skipped - {label} ({len(summary.skipped)}): {', '.join(summary.skipped)}",
            fg="yellow",
        )
    if summary.failed:
        click.secho(
            f"✗ Failed ({len(summary.failed)}): {', '.join(summary.failed)}",
            fg="red",
        )
        click.echo("\nFailed packages details:")
        for name, error in summary.errors.items():
            click.echo(f"  • {name}: {error}")

    if summary.total:
        ok = summary.total - len(summary.failed)
        click.echo(f"\nTotal: {summary.total} packages processed")
        click.echo(f"Success rate: {summary.success_rate:.1f}% ({ok}/{summary.total})")
    if summary.retry_command:
        click.echo(f"\nTo retry failed packages: {summary.retry_command}")


# ── Install ─────────────────────────────────────────────────────


@click.command()
@click.argument("names", nargs=-1)
@click.option("--version", "-V", "version", default="", help="Version to install (if supported).")
@click.option("--all", "select_all", is_flag=True, help="Install every catalog package.")
@click.option("--clean", is_flag=True, help="Remove an existing installation first.")
@click.option("--dry-run", is_flag=True, help="Show the installation order only.")
@click.option("--arg", "extra_args", multiple=True, help="Extra argument for the install script.")
@click.option("--parallel/--sequential", default=True, help="Run packages concurrently (default).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    names: tuple[str, ...],
    version: str,
    select_all: bool,
    clean: bool,
    dry_run: bool,
    extra_args: tuple[str, ...],
    parallel: bool,
    as_json: bool,
) -> None:
    """Install packages and their dependencies.

    Examples:

        run install node pm2

        run install python --version 3.11

        run install --all --sequential
    """
    svc = _services(ctx)
    requested = _resolve_names(svc, names, select_all)

    unknown = [n for n in requested if n not in svc.registry]
    if unknown:
        _fail(
            f"Unknown package(s): {', '.join(unknown)}. "
            f"Available: {', '.join(svc.registry.names())}"
        )

    try:
        for name in requested:
            validate_version(svc.registry.get(name), version)
        order = svc.manager.installation_order(requested)
    except PackageError as e:
        _fail(str(e))

    if dry_run:
        if as_json:
            click.echo(json.dumps({"requested": requested, "order": order}, indent=2))
            return
        click.secho("📋 Installation order (dry run):", fg="cyan", bold=True)
        for i, name in enumerate(order, start=1):
            marker = "" if name in requested else "  (dependency)"
            click.echo(f"   {i}. {name}{marker}")
        return

    quiet = ctx.obj.get("quiet", False) or as_json
    if not quiet:
        for name in requested:
            related = [s for s in svc.registry.suggest_related(name) if s not in requested]
            if related:
                click.secho(f"💡 {name} works well with: {', '.join(related)}", fg="cyan")

    # Sequential runs follow dependency order; parallel runs wait in waves
    ordered = [n for n in order if n in requested]
    summary = run_batch(
        ordered,
        install_operation(svc.manager, version=version, extra_args=list(extra_args), clean=clean),
        svc.locks,
        operation_name="install",
        parallel=parallel,
        prerequisites=svc.manager.batch_prerequisites(ordered),
        audit=svc.audit,
    )

    if as_json:
        click.echo(json.dumps(summary.to_dict(), indent=2))
    else:
        _print_summary(summary, "installed")

    if summary.failed:
        sys.exit(1)


# ── Remove ──────────────────────────────────────────────────────


@click.command()
@click.argument("names", nargs=-1)
@click.option("--all", "select_all", is_flag=True, help="Remove every catalog package.")
@click.option("--force", is_flag=True, help="Allow removal of critical packages, skip warnings.")
@click.option("--dry-run", is_flag=True, help="Show what would be removed.")
@click.option("--parallel/--sequential", default=True, help="Run packages concurrently (default).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def remove(
    ctx: click.Context,
    names: tuple[str, ...],
    select_all: bool,
    force: bool,
    dry_run: bool,
    parallel: bool,
    as_json: bool,
) -> None:
    """Safely remove packages, whatever way they were installed."""
    svc = _services(ctx)
    requested = _resolve_names(svc, names, select_all, allow_reserved=True)

    summary = run_batch(
        requested,
        remove_operation(svc.removal, force=force, dry_run=dry_run),
        svc.locks,
        operation_name="remove",
        parallel=parallel,
        audit=None if dry_run else svc.audit,
    )

    if as_json:
        click.echo(json.dumps(summary.to_dict(), indent=2))
    else:
        if dry_run:
            click.secho("🔍 Dry run, nothing was changed", fg="cyan", bold=True)
        for result in summary.results:
            meta = result.metadata
            if meta.get("removed_paths"):
                label = "Would remove" if dry_run else "Removed"
                click.secho(
                    f"   {result.name} ({meta.get('installation_type')}) {label}:",
                    fg="white", bold=True,
                )
                for path in meta["removed_paths"]:
                    click.echo(f"     • {path}")
            if meta.get("warning"):
                click.secho(f"   ⚠️  {result.name}: {meta['warning']}", fg="yellow")
        _print_summary(summary, "would remove" if dry_run else "removed")

    if summary.failed:
        sys.exit(1)


# ── Observe ─────────────────────────────────────────────────────


@click.command()
@click.argument("names", nargs=-1)
@click.option("--all", "select_all", is_flag=True, help="Check every catalog package.")
@click.option("--system", "-s", "system_health", is_flag=True,
              help="Check host readiness instead of packages.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(
    ctx: click.Context,
    names: tuple[str, ...],
    select_all: bool,
    system_health: bool,
    as_json: bool,
) -> None:
    """Show installed state, version and service state of packages."""
    if system_health:
        _check_system(as_json)
        return

    svc = _services(ctx)
    requested = _resolve_names(svc, names, select_all or not names)

    rows = []
    for name in requested:
        try:
            rows.append(svc.manager.status(name))
        except PackageError as e:
            rows.append({"name": name, "installed": False, "error": str(e)})

    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return

    click.echo(f"Checking {len(rows)} package(s)...\n")
    for row in rows:
        _print_status(row)

    missing = [row["name"] for row in rows if not row["installed"]]
    click.echo()
    click.secho("📊 Check Summary", fg="cyan", bold=True)
    click.secho("=" * 16, fg="cyan")
    click.echo(f"✅ Installed: {len(rows) - len(missing)}")
    click.echo(f"❌ Failed: {len(missing)}")
    click.echo(f"📦 Total: {len(rows)}")
    if missing:
        click.secho(f"\n💡 To install failed packages: run install {' '.join(missing)}", fg="yellow")


def _print_status(row: dict) -> None:
    name = row["name"]
    if row.get("error"):
        click.secho(f"📦 {name}: ❌ {row['error']}", fg="red")
        return
    if not row["installed"]:
        click.echo(f"📦 {name}: ❌ Not installed")
    else:
        click.secho(f"📦 {name}: ✅ Installed (version: {row.get('version') or 'unknown'})", fg="green")

    if row.get("service"):
        state = {True: "active", False: "inactive", None: "unknown"}[row.get("service_active")]
        click.echo(f"   service {row['service']}: {state}")
    if row.get("missing_system_deps"):
        click.secho(
            f"   ⚠️  missing system dependencies: {', '.join(row['missing_system_deps'])}",
            fg="yellow",
        )


def _check_system(as_json: bool) -> None:
    results = run_health_checks()
    failed = [r["name"] for r in results if not r["ok"]]

    if as_json:
        click.echo(json.dumps(results, indent=2))
    else:
        click.secho("🔍 System Health Check", fg="cyan", bold=True)
        click.secho("=" * 22, fg="cyan")
        for r in results:
            if r["ok"]:
                click.echo(f"• {r['name']}: ✅ {r['detail']}")
            else:
                click.secho(f"• {r['name']}: ❌ {r['error']}", fg="red")
        click.echo()
        if failed:
            click.secho(f"⚠️  {len(failed)} check(s) failed: {', '.join(failed)}", fg="yellow")
        else:
            click.secho("✅ All system health checks passed", fg="green")

    if failed:
        sys.exit(1)


@click.command("list")
@click.option("--category", default=None, help="Only show one category.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_packages(ctx: click.Context, category: str | None, as_json: bool) -> None:
    """List catalog packages by category."""
    registry = default_registry().view()
    grouped = registry.by_category()
    if category:
        grouped = {k: v for k, v in grouped.items() if k == category}

    if as_json:
        click.echo(json.dumps(
            {cat: [p.model_dump(mode="json") for p in pkgs] for cat, pkgs in grouped.items()},
            indent=2,
        ))
        return

    if not grouped:
        click.secho(f"⚠️  No packages in category '{category}'", fg="yellow")
        return

    for cat, pkgs in grouped.items():
        click.secho(f"\n{cat.upper()}", fg="cyan", bold=True)
        for pkg in pkgs:
            versions = f"  [{', '.join(pkg.supported_versions)}]" if pkg.supported_versions else ""
            click.echo(f"   {pkg.name:<12} {pkg.description}{versions}")
    click.echo()


@click.command()
@click.argument("name")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def deps(name: str, as_json: bool) -> None:
    """Show the dependency tree of a package."""
    registry = default_registry().view()
    try:
        tree = dependency_tree(registry, name.strip().lower())
    except PackageError as e:
        _fail(str(e))

    if as_json:
        click.echo(json.dumps(tree, indent=2))
        return

    click.secho(f"🌳 {tree['name']} — {tree['description']}", fg="cyan", bold=True)
    _print_tree(tree["dependencies"], "   ")


def _print_tree(nodes: list[dict], indent: str) -> None:
    for node in nodes:
        kind = "📦" if node["type"] == "package" else "🔧"
        click.echo(f"{indent}{kind} {node['name']} ({node['type']})")
        if node.get("dependencies"):
            _print_tree(node["dependencies"], indent + "   ")


@click.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def order(ctx: click.Context, names: tuple[str, ...], as_json: bool) -> None:
    """Show the installation order for packages."""
    svc = _services(ctx)
    try:
        result = svc.manager.installation_order(sanitize_package_list(names))
    except PackageError as e:
        _fail(str(e))

    if as_json:
        click.echo(json.dumps(result))
        return
    click.echo(" → ".join(result))
