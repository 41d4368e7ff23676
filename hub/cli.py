"""Hub CLI — serve the catalog and inspect it from the command line."""

from __future__ import annotations

import json
import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from hub import __version__
from hub.config import HubConfig, load_config
from hub.registry.errors import HubError

console = Console()

KIND_CHOICE = click.Choice(["templates", "apps"])


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/] {escape(message)}")
    sys.exit(1)


def _open_catalog(config: HubConfig):
    from hub.registry.catalog import CatalogService

    catalog = CatalogService(
        config.templates_dir, config.apps_dir, cache_ttl=config.cache_ttl
    )
    try:
        catalog.initialize()
    except HubError as e:
        _fail(str(e))
    return catalog


def _kind(name: str):
    from hub.registry.models import RecordKind

    return RecordKind.TEMPLATE if name == "templates" else RecordKind.APP


def _metadata_table(title: str, items) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Category", style="magenta")
    table.add_column("Version", justify="right", style="green")
    table.add_column("Description")

    for m in sorted(items, key=lambda m: m.id):
        table.add_row(m.id, m.name, m.category, m.version, m.description[:60])
    return table


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_file", type=click.Path(dir_okay=False), default=None,
              help="YAML configuration file")
@click.option("--templates", "templates_dir", default=None, help="Templates directory")
@click.option("--apps", "apps_dir", default=None, help="Apps directory")
@click.option("--cache-ttl", "cache_ttl_minutes", type=int, default=None,
              help="Cache TTL in minutes")
@click.option("--log-level", default=None,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
@click.pass_context
def main(ctx, config_file, templates_dir, apps_dir, cache_ttl_minutes, log_level):
    """Hub — central registry for templates and apps.

    Loads Docker Compose templates and NAS apps from directories of JSON
    files and serves them over a REST API.
    """
    try:
        config = load_config(
            config_file,
            templates_dir=templates_dir,
            apps_dir=apps_dir,
            cache_ttl_minutes=cache_ttl_minutes,
            log_level=log_level,
        )
    except HubError as e:
        _fail(str(e))
    _configure_logging(config.log_level)
    ctx.obj = config


# ── Serve ────────────────────────────────────────────────────────────


@main.command()
@click.option("--host", default=None, help="Interface to bind")
@click.option("--port", "-p", type=int, default=None, help="Server port")
@click.pass_obj
def serve(config: HubConfig, host: str | None, port: int | None):
    """Start the HTTP API."""
    import uvicorn

    from web.backend.app.main import create_app

    config = config.with_overrides({"host": host, "port": port})

    console.print("\n[bold blue]Hub[/] — Starting")
    console.print(f"   Port:          {config.port}")
    console.print(f"   Templates:     {config.templates_dir}")
    console.print(f"   Apps:          {config.apps_dir}")
    console.print(f"   Cache TTL:     {config.cache_ttl_minutes} minutes\n")

    catalog = _open_catalog(config)
    app = create_app(catalog)

    console.print(f"[green]Hub listening on[/] http://localhost:{config.port}")
    console.print(f"   API:    http://localhost:{config.port}/api/v1")
    console.print(f"   Health: http://localhost:{config.port}/health\n")

    # uvicorn handles SIGINT/SIGTERM and lets in-flight requests finish.
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
        timeout_graceful_shutdown=10,
    )
    console.print("[green]Hub stopped gracefully[/]")


# ── Catalog ──────────────────────────────────────────────────────────


@main.command(name="list")
@click.argument("kind", type=KIND_CHOICE)
@click.pass_obj
def list_records(config: HubConfig, kind: str):
    """List all templates or apps."""
    catalog = _open_catalog(config)
    items = catalog.list_metadata(_kind(kind))

    if not items:
        console.print(f"[yellow]No {kind} found.[/]")
        return

    console.print(_metadata_table(f"{kind.capitalize()} ({len(items)})", items))


@main.command()
@click.argument("kind", type=KIND_CHOICE)
@click.argument("record_id")
@click.pass_obj
def show(config: HubConfig, kind: str, record_id: str):
    """Show a single template or app as JSON."""
    catalog = _open_catalog(config)
    try:
        record = catalog.get(_kind(kind), record_id)
    except HubError as e:
        _fail(str(e))
    console.print_json(json.dumps(record.to_dict()))


@main.command()
@click.argument("kind", type=KIND_CHOICE)
@click.argument("query")
@click.pass_obj
def search(config: HubConfig, kind: str, query: str):
    """Search names, descriptions, and categories (case-insensitive)."""
    if not query:
        _fail("search query must not be empty")

    catalog = _open_catalog(config)
    items = catalog.search(_kind(kind), query)

    if not items:
        console.print(f"[yellow]No {kind} match '{escape(query)}'.[/]")
        return

    console.print(_metadata_table(f"Search results for '{escape(query)}' ({len(items)})", items))


@main.command()
@click.argument("kind", type=KIND_CHOICE)
@click.pass_obj
def categories(config: HubConfig, kind: str):
    """List the distinct categories of templates or apps."""
    catalog = _open_catalog(config)
    for category in catalog.list_categories(_kind(kind)):
        console.print(f"  {escape(category) if category else '[dim](none)[/]'}")


@main.command()
@click.pass_obj
def validate(config: HubConfig):
    """Scan both directories and report files that would be skipped."""
    from hub.registry.loader import load_records
    from hub.registry.models import RecordKind

    console.print("\n[bold blue]Hub[/] — Validating catalog\n")

    failed = False
    roots = [
        (RecordKind.TEMPLATE, config.templates_dir, True),
        (RecordKind.APP, config.apps_dir, False),
    ]
    for kind, root, required in roots:
        try:
            result = load_records(root, kind, required=required)
        except HubError as e:
            console.print(f"  [red]x[/] {escape(str(e))}")
            failed = True
            continue

        if result.root_missing:
            console.print(f"  [yellow]![/] {kind.plural}: directory {root} not found")
            continue

        console.print(f"  [green]v[/] {kind.plural}: {len(result.records)} loaded")
        for skipped in result.skipped:
            console.print(f"  [red]x[/] {escape(str(skipped.path))}: {escape(skipped.reason)}")
            failed = True

    if failed:
        console.print("\n[red]FAIL[/]")
        sys.exit(1)
    console.print("\n[green]Valid![/]")


if __name__ == "__main__":
    main()
