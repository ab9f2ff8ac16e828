"""Server and database CLI commands."""

import typer
from rich.console import Console
from rich.panel import Panel

from src.app.runtime.context import get_config

console = Console()


def serve(
    host: str | None = typer.Option(
        None, help="Host to bind the server to (defaults to config app.host)"
    ),
    port: int | None = typer.Option(
        None, help="Port to bind the server to (defaults to config app.port)"
    ),
    reload: bool = typer.Option(False, help="Enable auto-reload on code changes"),
    log_level: str = typer.Option(
        "info", help="Log level (debug, info, warning, error, critical)"
    ),
) -> None:
    """
    🚀 Start the User API server.

    Access logging is left to the application's request middleware.
    """
    import uvicorn

    config = get_config()
    host = host or config.app.host
    port = port or config.app.port

    console.print(
        Panel.fit(
            "[bold green]Starting User API Server[/bold green]",
            border_style="green",
        )
    )
    console.print(f"[blue]Server will be available at:[/blue] http://{host}:{port}")
    console.print("[dim]Press Ctrl+C to stop the server[/dim]")

    uvicorn.run(
        "src.app.api.http.app:app",
        host=host,
        port=port,
        reload=reload,
        reload_dirs=["src"] if reload else None,
        log_level=log_level,
        access_log=False,
    )


def init_db_command(
    seed: bool = typer.Option(
        False, "--seed/--no-seed", help="Insert the demo users into an empty store"
    ),
) -> None:
    """Create the user tables in the configured database."""
    from src.app.runtime.init_db import init_db

    try:
        added = init_db(seed=seed)
    except Exception as e:
        console.print(f"[red]❌ Failed to initialize database: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print("[green]✅ Database initialized[/green]")
    if seed:
        console.print(f"[green]Seeded {added} demo users[/green]")
