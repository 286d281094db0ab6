"""
CLI tool for the signaling relay.

Provides commands for viewing the registered WebSocket events, checking
that every event has a handler, and running the server.
"""

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from telerelay.api.ws.handlers import load_handlers
from telerelay.routing import event_router
from telerelay.schemas.events import ClientEvent

typer_app = typer.Typer(
    name="relay-cli",
    help="Signaling Relay CLI - Inspect WebSocket events and run the server",
    add_completion=False,
)
console = Console()


def _uvicorn_log_config() -> dict:
    """Uvicorn's default logging config with monitoring paths filtered out."""
    from uvicorn.config import LOGGING_CONFIG

    log_config = {
        **LOGGING_CONFIG,
        "filters": {
            "exclude_metrics": {"()": "telerelay.uvicorn_filters.ExcludeMetricsFilter"}
        },
        "handlers": {
            name: dict(handler) for name, handler in LOGGING_CONFIG["handlers"].items()
        },
    }
    log_config["handlers"]["access"]["filters"] = ["exclude_metrics"]
    return log_config


@typer_app.command(name="events")
def events():
    """
    Display a table of all WebSocket events and their handlers.

    Example:
        python cli.py events
    """
    load_handlers()

    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Registered WebSocket Events[/bold cyan]",
            border_style="cyan"
        )
    )
    console.print()

    table = Table(
        "Event",
        "Handler Path",
        title="WebSocket Event Registry",
        show_lines=True,
    )

    for event in ClientEvent:
        handler = event_router.handlers_registry.get(event)

        if not handler:
            table.add_row(
                f"[dim]{event.value}[/dim]",
                "[red]No handler registered[/red]"
            )
            continue

        handler_path = f"{handler.__module__}.[yellow]{handler.__name__}[/yellow]"
        table.add_row(f"[green]{event.value}[/green]", handler_path)

    console.print(table)
    console.print()


@typer_app.command(name="validate-handlers")
def validate_handlers():
    """
    Validate that every client event has a registered handler.

    Useful for CI/CD pipelines to ensure complete handler coverage.

    Example:
        python cli.py validate-handlers
    """
    load_handlers()

    missing = [
        event.value
        for event in ClientEvent
        if event not in event_router.handlers_registry
    ]
    total = len(ClientEvent)

    if missing:
        console.print(
            f"[red]✗ Validation Failed[/red]: "
            f"{total - len(missing)}/{total} handlers registered\n"
        )
        console.print("[bold]Missing handlers:[/bold]")
        for event_name in missing:
            console.print(f"  [red]•[/red] {event_name}")
        console.print()
        raise typer.Exit(code=1)

    console.print(
        Panel.fit(
            f"[green]✓ All handlers registered[/green]\n\n"
            f"Total: {total}/{total}",
            border_style="green",
            title="Success"
        )
    )


@typer_app.command(name="serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(8000, help="Bind port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """
    Run the relay with uvicorn.

    Example:
        python cli.py serve --port 10000
    """
    import uvicorn

    uvicorn.run(
        "telerelay:application",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_config=_uvicorn_log_config(),
    )


if __name__ == "__main__":
    typer_app()
