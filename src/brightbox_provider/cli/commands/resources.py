"""Resources command implementation."""

import typer

from brightbox_provider.provider.registry import build_registry


def run_resources() -> None:
    """List the resource type names the provider supports."""
    for name in build_registry().names():
        typer.echo(name)
