"""YAML state and resource configuration files used by the CLI."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import typer
import yaml

from brightbox_provider.config.loader import load_yaml_file
from brightbox_provider.core.errors import ConfigurationError
from brightbox_provider.resources.base import Instance


@dataclass
class StateRecord:
    """A resource instance as recorded in a state file.

    Attributes:
        type: Resource type name
        id: Remote identifier, empty once the resource is gone
        attributes: Attributes from the last operation
        connection: Connection details, if any
        timeouts: Per-operation timeouts from the resource configuration
    """

    type: str
    id: str
    attributes: dict[str, Any] = field(default_factory=dict)
    connection: dict[str, str] | None = None
    timeouts: dict[str, Any] | None = None


def _timeouts(data: dict[str, Any], source: str) -> dict[str, Any] | None:
    timeouts = data.pop("timeouts", None)
    if timeouts is not None and not isinstance(timeouts, dict):
        raise ConfigurationError(
            f"timeouts in {source} must be a mapping of operation to seconds"
        )
    return timeouts


def load_state(path: str) -> StateRecord:
    """Read a state file written by an earlier command.

    Raises:
        ConfigurationError: If the file is unreadable or lacks a type
    """
    data = load_yaml_file(Path(path), "State file")

    resource_type = data.get("type")
    if not resource_type:
        raise ConfigurationError(f"State file {path} has no resource type")

    attributes = data.get("attributes") or {}
    if not isinstance(attributes, dict):
        raise ConfigurationError(f"State file {path} has invalid attributes")

    return StateRecord(
        type=resource_type,
        id=str(data.get("id") or ""),
        attributes=attributes,
        connection=data.get("connection"),
        timeouts=_timeouts(data, path),
    )


def load_resource_config(path: str) -> tuple[dict[str, Any], dict[str, Any] | None]:
    """Read a resource configuration file.

    Returns:
        The configured attributes and the optional ``timeouts`` block
    """
    data = load_yaml_file(Path(path), "Resource configuration file")
    timeouts = _timeouts(data, path)
    return data, timeouts


def dump_state(instance: Instance, timeouts: dict[str, Any] | None = None) -> str:
    """Render an instance, and the timeouts it was configured with, as YAML."""
    data = instance.as_dict()
    if timeouts:
        data["timeouts"] = timeouts
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)


def write_state(
    instance: Instance, path: str = "", timeouts: dict[str, Any] | None = None
) -> None:
    """Write an instance to a state file, or to stdout when no path is given."""
    content = dump_state(instance, timeouts)
    if path:
        Path(path).write_text(content)
    else:
        typer.echo(content, nl=False)
