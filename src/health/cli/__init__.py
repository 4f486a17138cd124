"""Operator CLI for the health service."""

import typer

from .roster_commands import roster_app
from .utils import console
from .version_commands import versions_app

app = typer.Typer(
    help="🩺 Health Building Block CLI - serve the API and inspect auth data",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(versions_app, name="versions")
app.add_typer(roster_app, name="roster")


@app.command()
def serve(
    host: str | None = typer.Option(None, help="Host to bind (defaults to app.host)"),
    port: int | None = typer.Option(None, help="Port to bind (defaults to app.port)"),
    reload: bool = typer.Option(False, help="Enable auto-reload on code changes"),
    log_level: str = typer.Option("info", help="Uvicorn log level"),
) -> None:
    """🚀 Start the HTTP API with uvicorn."""
    import uvicorn

    from src.health.runtime.context import get_config

    config = get_config()
    host = host or config.app.host
    port = port or config.app.port
    console.print(f"[blue]Server will be available at:[/blue] http://{host}:{port}")
    uvicorn.run(
        "src.health.api.http.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
        access_log=False,
    )


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
