"""Command Line Interface for Intake-Hub.

Commands:
    serve   Run the HTTP/WebSocket API with uvicorn
    search  Query the configured record store by name
    stats   Show the configured backend and its record count

Every command accepts --config to read store settings from a JSON file
instead of IH_* environment variables.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from intake_hub.adapters.storage import create_record_store
from intake_hub.domain.patient_record import REQUIRED_FIELDS
from intake_hub.domain.ports import IntakeError, RecordStorePort
from intake_hub.infrastructure.config_manager import ConfigManager, get_store_config
from intake_hub.infrastructure.settings import get_settings

app = typer.Typer(
    name="intake-hub",
    help="Intake-Hub: patient intake records and real-time relay",
    add_completion=False,
)
console = Console()


def open_store(config: Optional[Path] = None) -> RecordStorePort:
    """Create and initialize the store selected by configuration.

    Parameters:
        config: JSON configuration file (defaults to IH_* environment variables)
    """
    try:
        if config is not None:
            store_config = ConfigManager.from_file(str(config)).get_store_config()
        else:
            store_config = get_store_config()
        store = create_record_store(store_config)
        store.initialize()
        return store
    except (OSError, ValueError, IntakeError) as e:
        console.print(f"[red]✗[/red] Failed to open record store: {str(e)}")
        raise typer.Exit(code=1)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="JSON configuration file", exists=True),
) -> None:
    """Run the Intake-Hub API."""
    if config is not None:
        # Read by get_store_config in this process and in reload workers
        os.environ["IH_CONFIG_FILE"] = str(config.resolve())

    from intake_hub.api.main import run

    settings = get_settings()
    run(host=host or settings.host, port=port or settings.port, reload=reload)


@app.command()
def search(
    name: str = typer.Argument(..., help="Substring of a first or last name"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="JSON configuration file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Search stored patients by name."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)

    store = open_store(config)
    try:
        results = store.search(name)
    except IntakeError as e:
        console.print(f"[red]✗[/red] {str(e)}")
        raise typer.Exit(code=1)
    finally:
        store.close()

    if not results:
        console.print(f"[yellow]No patients match '{name}'[/yellow]")
        return

    table = Table(title=f"Patients matching '{name}'")
    table.add_column("id", style="cyan")
    for field in REQUIRED_FIELDS:
        table.add_column(field)
    for record in results:
        document = record.to_public()
        table.add_row(str(document["id"]), *(document[field] for field in REQUIRED_FIELDS))
    console.print(table)


@app.command()
def stats(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="JSON configuration file"),
) -> None:
    """Show the configured store backend and record count."""
    store = open_store(config)
    try:
        healthy = store.check_health()
        count = store.count() if healthy else None
    except IntakeError as e:
        console.print(f"[red]✗[/red] {str(e)}")
        raise typer.Exit(code=1)
    finally:
        store.close()

    status = "[green]connected[/green]" if healthy else "[red]disconnected[/red]"
    console.print(f"Backend: [bold]{store.backend_name}[/bold] ({status})")
    if count is not None:
        console.print(f"Records: {count}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
