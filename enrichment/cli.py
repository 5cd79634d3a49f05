"""Enrichment CLI - inspect mappings, preview and run syncs."""

import asyncio
import logging
import uuid

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import settings

app = typer.Typer(
    name="enrichment",
    help="Column-mapping sync engine for partner, staff and product data",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _parse_id(value: str, label: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        console.print(f"[red]Invalid {label}: {value}[/red]")
        raise typer.Exit(1)


@app.command("init-db")
def init_db():
    """Create all tables in the configured database."""
    from .database import create_all

    asyncio.run(create_all())
    console.print(f"[green]Tables created in {settings.database_url}[/green]")


@app.command("sources")
def list_sources():
    """List configured sources and their tab mappings."""
    from .database import async_session_factory
    from .services import mapping_svc

    async def _load():
        async with async_session_factory() as db:
            sources = await mapping_svc.list_sources(db)
            return [(s, await mapping_svc.list_tabs(db, s.id)) for s in sources]

    rows = asyncio.run(_load())
    if not rows:
        console.print("[yellow]No sources configured.[/yellow]")
        return

    table = Table(title="Data Sources")
    table.add_column("Source", style="cyan")
    table.add_column("Type")
    table.add_column("Tab")
    table.add_column("Entity")
    table.add_column("Status")
    table.add_column("Columns", justify="right")
    table.add_column("ID", style="dim")

    for source, tabs in rows:
        if not tabs:
            table.add_row(source.name, source.type, "-", "-", "-", "0", str(source.id))
        for tab in tabs:
            key = next((c.source_column for c in tab.columns if c.is_key), None)
            table.add_row(
                source.name,
                source.type,
                tab.tab_name,
                tab.primary_entity,
                tab.status if key else f"{tab.status} [red](no key)[/red]",
                str(len(tab.columns)),
                str(tab.id),
            )
    console.print(table)


@app.command("preview")
def preview(
    source_id: str = typer.Argument(..., help="Source ID"),
    tab: list[str] = typer.Option(None, "--tab", "-t", help="Tab mapping ID (repeatable)"),
    limit: int = typer.Option(None, "--limit", "-n", min=1, help="Max rows per tab"),
):
    """Dry-run a source: show what a sync would create, update or skip."""
    from .connectors import build_default_registry
    from .database import async_session_factory
    from .services.mapping_svc import SourceNotFound
    from .sync.preview import preview_source

    sid = _parse_id(source_id, "source id")
    tab_ids = [_parse_id(t, "tab id") for t in tab] if tab else None

    async def _run():
        async with async_session_factory() as db:
            return await preview_source(
                db, sid, build_default_registry(settings),
                tab_ids=tab_ids, row_limit=limit, triggered_by="cli",
            )

    try:
        results = asyncio.run(_run())
    except SourceNotFound as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    for result in results:
        if result.error:
            console.print(Panel(f"[red]{result.error}[/red]", title=result.tab_name))
            continue

        stats = result.stats
        table = Table(
            title=f"{result.tab_name}: {stats.rows_created} create, "
                  f"{stats.rows_updated} update, {stats.rows_skipped} skip"
        )
        table.add_column("Key", style="cyan")
        table.add_column("Change")
        table.add_column("Fields")
        for change in result.changes:
            if change.type == "update":
                detail = ", ".join(
                    f"{k}: {change.existing.get(k)!r} -> {v!r}" for k, v in change.fields.items()
                    if change.existing.get(k) != v
                )
            elif change.type == "create":
                detail = ", ".join(f"{k}={v!r}" for k, v in change.fields.items())
            else:
                detail = f"[dim]{change.skip_reason}[/dim]"
            table.add_row(change.key_value or "-", change.type, detail)
        console.print(table)

        for issue in stats.errors:
            where = f"row {issue.row}" if issue.row else "tab"
            col = f" [{issue.column}]" if issue.column else ""
            console.print(f"  [yellow]{where}{col}:[/yellow] {issue.message}")


def _print_report(report) -> None:
    table = Table(title=f"{report.entity_type} {report.entity_id}")
    table.add_column("Source", style="cyan")
    table.add_column("Tab")
    table.add_column("Result")
    table.add_column("Fields / Error")
    for src in report.sources:
        if src.success:
            table.add_row(src.source_name, src.tab_name, "[green]ok[/green]", ", ".join(src.fields_updated) or "-")
        else:
            table.add_row(src.source_name, src.tab_name, f"[red]{src.error_kind}[/red]", src.error or "")
    console.print(table)
    colour = "green" if report.synced else "red"
    console.print(f"[{colour}]{report.message}[/{colour}]")
    if report.fields_updated:
        console.print(f"Changed: {', '.join(report.fields_updated)}")


@app.command("sync")
def sync_entity(
    entity_type: str = typer.Argument(..., help="partners, staff or products"),
    entity_id: str = typer.Argument(..., help="Entity ID"),
):
    """Sync one entity instance from every active tab mapping."""
    from .connectors import build_default_registry
    from .database import async_session_factory
    from .services.entity_svc import EntityNotFound, UnknownEntityType
    from .sync.errors import PersistenceError
    from .sync.executor import SyncExecutor

    eid = _parse_id(entity_id, "entity id")

    async def _run():
        async with async_session_factory() as db:
            executor = SyncExecutor(db, build_default_registry(settings))
            return await executor.sync_entity(entity_type, eid, triggered_by="cli")

    try:
        report = asyncio.run(_run())
    except (UnknownEntityType, EntityNotFound, PersistenceError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    _print_report(report)
    if not report.synced:
        raise typer.Exit(1)


@app.command("sync-all")
def sync_all_entities(
    entity_type: str = typer.Argument(..., help="partners, staff or products"),
    concurrency: int = typer.Option(4, "--concurrency", "-c", min=1, help="Entities synced at once"),
):
    """Sync every instance of an entity type (for scheduled runs)."""
    from .connectors import build_default_registry
    from .database import async_session_factory
    from .services.entity_svc import UnknownEntityType
    from .sync.cache import TTLCache
    from .sync.executor import sync_all

    async def _run():
        return await sync_all(
            async_session_factory,
            build_default_registry(settings),
            entity_type,
            concurrency=concurrency,
            cache=TTLCache(settings.preview_cache_ttl_seconds),
            triggered_by="cli:sync-all",
        )

    try:
        reports = asyncio.run(_run())
    except UnknownEntityType as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Sync {entity_type}")
    table.add_column("ID", style="dim")
    table.add_column("Result")
    table.add_column("Changed", justify="right")
    for report in reports:
        colour = "green" if report.synced else "red"
        table.add_row(str(report.entity_id), f"[{colour}]{report.message}[/{colour}]", str(len(report.fields_updated)))
    console.print(table)

    synced = sum(1 for r in reports if r.synced)
    console.print(f"{synced}/{len(reports)} synced")


@app.command("detect-header")
def detect_header(tab_id: str = typer.Argument(..., help="Tab mapping ID")):
    """Detect and pin the header row of a tab."""
    from .connectors import build_default_registry
    from .database import async_session_factory
    from .services import mapping_svc
    from .sync.errors import SyncError

    tid = _parse_id(tab_id, "tab id")

    async def _run():
        async with async_session_factory() as db:
            return await mapping_svc.confirm_header(db, build_default_registry(settings), tid)

    try:
        tab = asyncio.run(_run())
    except SyncError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)
    if tab is None:
        console.print("[red]Tab mapping not found[/red]")
        raise typer.Exit(1)
    console.print(f"[green]{tab.tab_name}: header row {tab.header_row} (0-based) confirmed[/green]")


@app.command("serve")
def serve(
    port: int = typer.Option(8030, "--port", "-p", help="Port to run on"),
    host: str = typer.Option("127.0.0.1", "--host", help="Host to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Launch the enrichment JSON API."""
    import uvicorn

    console.print(f"[bold cyan]Starting enrichment API at http://{host}:{port}[/bold cyan]")
    uvicorn.run("enrichment.app:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
