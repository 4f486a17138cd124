"""Supported app version commands."""

import typer
from rich.table import Table

from src.health.core.errors import HealthError
from src.health.core.services.version import VersionResolver
from src.health.core.storage import Storage

from .utils import console, run_with_storage

versions_app = typer.Typer(help="Manage supported app versions")


async def _load(storage: Storage) -> VersionResolver:
    resolver = VersionResolver(storage)
    await resolver.load()
    return resolver


@versions_app.command("list")
def list_versions() -> None:
    """List supported versions, newest first."""
    resolver = run_with_storage(_load)
    if not resolver.versions:
        console.print("[yellow]No supported versions configured[/yellow]")
        return

    table = Table(title="Supported app versions")
    table.add_column("#", style="dim")
    table.add_column("Version", style="green")
    for position, version in enumerate(resolver.versions, start=1):
        table.add_row(str(position), version)
    console.print(table)


@versions_app.command("add")
def add_version(
    version: str = typer.Argument(..., help="Version as major.minor or major.minor.patch"),
) -> None:
    """Add a supported version; x.y.0 is stored as x.y."""

    async def _create(storage: Storage) -> str:
        return await VersionResolver(storage).create_version(version)

    created = run_with_storage(_create)
    console.print(f"[green]✅ Added version {created}[/green]")


@versions_app.command("resolve")
def resolve_version(
    requested: str | None = typer.Argument(None, help="Client version; latest if omitted"),
) -> None:
    """Show which supported version serves a client version."""
    resolver = run_with_storage(_load)
    try:
        resolved = resolver.resolve(requested)
    except HealthError as e:
        console.print(f"[red]❌ {e.message}[/red]")
        raise typer.Exit(code=1) from e
    console.print(f"{requested or 'latest'} -> [green]{resolved}[/green]")
