import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer
from rich.console import Console

from src.health.core.errors import HealthError
from src.health.core.storage import Storage, create_storage
from src.health.runtime.context import get_config

T = TypeVar("T")

console = Console()


def open_storage() -> Storage:
    """Open the storage backend named in the configuration."""
    try:
        return create_storage(get_config().app.storage)
    except Exception as e:
        console.print(f"[red]❌ Failed to open storage: {e}[/red]")
        raise typer.Exit(code=1) from e


def run_with_storage(action: Callable[[Storage], Awaitable[T]]) -> T:
    """Run ``action`` against a fresh storage, turning domain errors into exit code 1."""
    storage = open_storage()
    try:
        return asyncio.run(action(storage))
    except HealthError as e:
        console.print(f"[red]❌ {e.message}[/red]")
        raise typer.Exit(code=1) from e
    finally:
        storage.close()
