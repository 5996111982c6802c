"""CLI commands for wonderkits.

``doctor`` reports the resolved execution mode and runs the connectivity
pre-check; the listing commands talk to a remote bridge directly.
"""

import asyncio
import sys
from pathlib import Path
from typing import NoReturn

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from wonderkits import __version__
from wonderkits.capabilities import AppRegistryClient, ClientOptions, Database, Store
from wonderkits.client import WonderKitsClient
from wonderkits.config.loader import load_config
from wonderkits.config.schema import ClientConfig
from wonderkits.core.types import ExecutionMode
from wonderkits.utils.exceptions import WonderKitsError, format_error

app = typer.Typer(
    name="wonderkits",
    help="wonderkits - capability client diagnostics",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"wonderkits v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True
    ),
):
    """wonderkits - capability client diagnostics."""
    pass


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "WARNING",
        format="<dim>{time:HH:mm:ss.SSS}</dim> | <level>{level: <8}</level> | <level>{message}</level>",
    )


def _build_config(
    config_path: Path | None,
    host: str | None,
    port: int | None,
    force_mode: str | None = None,
    verbose: bool = False,
) -> ClientConfig:
    try:
        config = load_config(config_path)
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from e
    updates: dict = {}
    if host:
        updates["http_host"] = host
    if port:
        updates["http_port"] = port
    if force_mode:
        try:
            updates["force_mode"] = ExecutionMode.parse(force_mode)
        except ValueError as e:
            console.print(f"[red]Unknown mode:[/red] {escape(force_mode)}")
            raise typer.Exit(2) from e
    if verbose:
        updates["verbose"] = True
    return config.model_copy(update=updates) if updates else config


def _fail(exc: Exception) -> NoReturn:
    console.print(f"[red]{escape(format_error(exc, include_details=True))}[/red]")
    raise typer.Exit(1) from exc


@app.command()
def doctor(
    host: str = typer.Option(None, "--host", "-h", help="Remote bridge host"),
    port: int = typer.Option(None, "--port", "-p", help="Remote bridge port"),
    force_mode: str = typer.Option(None, "--force-mode", "-m", help="native | proxy | remote"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show the resolved execution mode and run the connectivity pre-check."""
    _configure_logging(verbose)
    config = _build_config(config_path, host, port, force_mode, verbose)
    client = WonderKitsClient(config)
    ok, detail = asyncio.run(client.probe_connection())
    info = client.describe()

    table = Table(title="wonderkits doctor")
    table.add_column("Check", style="cyan")
    table.add_column("Value")
    table.add_row("Mode", f"{info['mode']}{' (forced)' if info['forced'] else ''}")
    table.add_row("Remote target", info["target"])
    for marker, present in info["markers"].items():
        table.add_row(f"Marker: {marker}", "[green]✓[/green]" if present else "[dim]absent[/dim]")
    table.add_row("Connectivity", f"[green]✓ {escape(detail)}[/green]" if ok else f"[red]✗ {escape(detail)}[/red]")
    console.print(table)

    if not ok:
        raise typer.Exit(1)


@app.command()
def connections(
    host: str = typer.Option(None, "--host", "-h", help="Remote bridge host"),
    port: int = typer.Option(None, "--port", "-p", help="Remote bridge port"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config JSON"),
):
    """List database connections open on the remote bridge."""
    _configure_logging(False)
    config = _build_config(config_path, host, port)
    try:
        items = asyncio.run(Database.get_connections(config.base_url))
    except WonderKitsError as e:
        _fail(e)
    if not items:
        console.print("[dim]No open connections.[/dim]")
        return
    for item in items:
        console.print(f"  {item}")


@app.command()
def stores(
    host: str = typer.Option(None, "--host", "-h", help="Remote bridge host"),
    port: int = typer.Option(None, "--port", "-p", help="Remote bridge port"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config JSON"),
):
    """List key-value stores loaded on the remote bridge."""
    _configure_logging(False)
    config = _build_config(config_path, host, port)
    try:
        items = asyncio.run(Store.get_stores(config.base_url))
    except WonderKitsError as e:
        _fail(e)
    if not items:
        console.print("[dim]No stores loaded.[/dim]")
        return
    for item in items:
        console.print(f"  {item}")


@app.command()
def apps(
    status: str = typer.Option(None, "--status", "-s", help="Filter by status"),
    category: str = typer.Option(None, "--category", help="Filter by category"),
    host: str = typer.Option(None, "--host", "-h", help="Remote bridge host"),
    port: int = typer.Option(None, "--port", "-p", help="Remote bridge port"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config JSON"),
):
    """List applications known to the remote bridge's registry."""
    _configure_logging(False)
    config = _build_config(config_path, host, port)

    async def _list() -> list[dict]:
        registry = await AppRegistryClient.create(ClientOptions(remote_target=config.base_url))
        return await registry.get_apps(status=status, category=category)

    try:
        items = asyncio.run(_list())
    except WonderKitsError as e:
        _fail(e)

    table = Table(title="Applications")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Version")
    table.add_column("Status")
    for item in items:
        table.add_row(
            str(item.get("id", "")),
            str(item.get("name", "")),
            str(item.get("version", "")),
            str(item.get("status", "")),
        )
    console.print(table)
