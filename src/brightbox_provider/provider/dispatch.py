"""Lifecycle entry points the host calls with raw attribute mappings."""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from brightbox_provider.config.models import Timeouts
from brightbox_provider.core.errors import ConfigurationError
from brightbox_provider.core.logging import get_logger
from brightbox_provider.provider.registry import ResourceRegistry, ResourceType
from brightbox_provider.provider.session import Session
from brightbox_provider.resources.base import Instance

logger = get_logger(__name__)


def parse_timeouts(raw: Mapping[str, Any] | None) -> Timeouts:
    """Build per-operation timeouts, defaulting any that are not given.

    Raises:
        ConfigurationError: If a timeout is not a positive number of seconds
    """
    try:
        return Timeouts.model_validate(dict(raw or {}))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid timeouts: {e}") from e


def _stored_instance(
    kind: ResourceType, resource_id: str, state: Mapping[str, Any] | None
) -> Instance:
    if not resource_id:
        raise ConfigurationError(f"A {kind.name} id is required")
    attributes = kind.parse_state(state) if state else None
    return Instance(kind.name, resource_id, attributes)


async def create_resource(
    registry: ResourceRegistry,
    session: Session,
    type_name: str,
    config: Mapping[str, Any],
    timeouts: Mapping[str, Any] | None = None,
) -> Instance:
    """Create a resource from its configured attributes.

    Args:
        registry: Supported resource kinds
        session: Authenticated provider session
        type_name: Resource type name
        config: Configured attributes
        timeouts: Optional per-operation timeouts in seconds

    Returns:
        The created instance

    Raises:
        ConfigurationError: If the type or attributes are invalid
    """
    kind = registry.get(type_name)
    planned = kind.parse_config(config)
    limits = parse_timeouts(timeouts)

    logger.info("Creating resource", type=type_name)
    return await kind.handler.create(session, planned, limits)


async def read_resource(
    registry: ResourceRegistry,
    session: Session,
    type_name: str,
    resource_id: str,
    state: Mapping[str, Any] | None = None,
) -> Instance:
    """Refresh a resource from the API.

    Returns:
        The refreshed instance, with an empty id if the resource is gone
    """
    kind = registry.get(type_name)
    instance = _stored_instance(kind, resource_id, state)
    return await kind.handler.read(session, instance)


async def update_resource(
    registry: ResourceRegistry,
    session: Session,
    type_name: str,
    resource_id: str,
    state: Mapping[str, Any] | None,
    config: Mapping[str, Any],
    timeouts: Mapping[str, Any] | None = None,
) -> Instance:
    """Apply configured attributes to an existing resource."""
    kind = registry.get(type_name)
    instance = _stored_instance(kind, resource_id, state)
    planned = kind.parse_config(config)
    limits = parse_timeouts(timeouts)

    logger.info("Updating resource", type=type_name, id=resource_id)
    return await kind.handler.update(session, instance, planned, limits)


async def delete_resource(
    registry: ResourceRegistry,
    session: Session,
    type_name: str,
    resource_id: str,
    state: Mapping[str, Any] | None = None,
    timeouts: Mapping[str, Any] | None = None,
) -> Instance:
    """Delete a resource and wait until it is gone."""
    kind = registry.get(type_name)
    instance = _stored_instance(kind, resource_id, state)
    limits = parse_timeouts(timeouts)

    logger.info("Deleting resource", type=type_name, id=resource_id)
    return await kind.handler.delete(session, instance, limits)


async def import_resource(
    registry: ResourceRegistry,
    session: Session,
    type_name: str,
    resource_id: str,
) -> Instance:
    """Adopt an existing resource by id.

    The id is taken as given and a read fills in the attributes.

    Raises:
        ConfigurationError: If no resource with that id exists
    """
    kind = registry.get(type_name)
    instance = _stored_instance(kind, resource_id, None)

    logger.info("Importing resource", type=type_name, id=resource_id)
    imported = await kind.handler.read(session, instance)
    if not imported.exists:
        raise ConfigurationError(f"Cannot import non-existent {type_name} {resource_id}")
    return imported
