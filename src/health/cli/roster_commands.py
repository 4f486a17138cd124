"""Roster inspection commands."""

import typer

from src.health.core.services.roster import RosterIndex
from src.health.core.storage import Storage

from .utils import console, run_with_storage

roster_app = typer.Typer(help="Inspect the phone roster")


@roster_app.command("lookup")
def lookup(phone: str = typer.Argument(..., help="Phone number as sent in tokens")) -> None:
    """Resolve a phone number to its institutional id."""

    async def _lookup(storage: Storage) -> tuple[str | None, int]:
        roster = RosterIndex(storage)
        size = await roster.reload()
        return roster.find_uin_by_phone(phone), size

    uin, size = run_with_storage(_lookup)
    if uin is None:
        console.print(f"[yellow]{phone} is not in the roster ({size} entries)[/yellow]")
        raise typer.Exit(code=1)
    console.print(f"{phone} -> [green]{uin}[/green]")
