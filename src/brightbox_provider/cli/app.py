"""Main CLI application for the Brightbox provider."""

import asyncio
from collections.abc import Coroutine
from typing import Annotated, Any

import typer

from brightbox_provider.cli.commands.check import run_check
from brightbox_provider.cli.commands.lifecycle import (
    run_create,
    run_delete,
    run_import,
    run_read,
    run_update,
)
from brightbox_provider.cli.commands.resources import run_resources
from brightbox_provider.core.errors import ProviderError
from brightbox_provider.core.logging import setup_logging

app = typer.Typer(
    name="brightbox-provider",
    help="Manage Brightbox Cloud resources from declarative configuration",
    no_args_is_help=True,
)

SettingsOption = Annotated[
    str,
    typer.Option("--settings", "-s", help="Path to provider settings file"),
]
AccountOption = Annotated[
    str,
    typer.Option("--account", "-a", help="Account to operate on"),
]
StateOption = Annotated[
    str,
    typer.Option("--state", help="File to write the resulting state to (default: stdout)"),
]


def _run(operation: Coroutine[Any, Any, None]) -> None:
    try:
        asyncio.run(operation)
    except ProviderError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
    trace: Annotated[
        bool, typer.Option("--trace", help="Enable trace logging (most verbose)")
    ] = False,
) -> None:
    """Brightbox provider - cloud resource lifecycle management."""
    setup_logging(verbose=verbose, trace=trace)


@app.command()
def resources() -> None:
    """List the supported resource types."""
    run_resources()


@app.command()
def check(settings: SettingsOption = "", account: AccountOption = "") -> None:
    """Validate provider settings and authenticate."""
    _run(run_check(settings, account))


@app.command()
def create(
    type_name: Annotated[str, typer.Argument(metavar="TYPE", help="Resource type name")],
    config: Annotated[str, typer.Argument(help="Resource configuration file")],
    settings: SettingsOption = "",
    account: AccountOption = "",
    state: StateOption = "",
) -> None:
    """Create a resource."""
    _run(run_create(settings, account, type_name, config, state))


@app.command()
def read(
    source: Annotated[str, typer.Argument(metavar="STATE", help="State file of the resource")],
    settings: SettingsOption = "",
    account: AccountOption = "",
    state: StateOption = "",
) -> None:
    """Refresh a resource from the API."""
    _run(run_read(settings, account, source, state))


@app.command()
def update(
    source: Annotated[str, typer.Argument(metavar="STATE", help="State file of the resource")],
    config: Annotated[str, typer.Argument(help="Resource configuration file")],
    settings: SettingsOption = "",
    account: AccountOption = "",
    state: StateOption = "",
) -> None:
    """Apply changed configuration to a resource."""
    _run(run_update(settings, account, source, config, state))


@app.command()
def delete(
    source: Annotated[str, typer.Argument(metavar="STATE", help="State file of the resource")],
    settings: SettingsOption = "",
    account: AccountOption = "",
    state: StateOption = "",
) -> None:
    """Delete a resource."""
    _run(run_delete(settings, account, source, state))


@app.command("import")
def import_(
    type_name: Annotated[str, typer.Argument(metavar="TYPE", help="Resource type name")],
    resource_id: Annotated[str, typer.Argument(metavar="ID", help="Id of the existing resource")],
    settings: SettingsOption = "",
    account: AccountOption = "",
    state: StateOption = "",
) -> None:
    """Adopt an existing resource by id."""
    _run(run_import(settings, account, type_name, resource_id, state))


if __name__ == "__main__":
    app()
