"""Attribute mapping for server groups."""

from typing import ClassVar

from brightbox_provider.api.models import ServerGroup, ServerGroupOptions
from brightbox_provider.mapping.base import ResourceAttributes, ResourceChange


class ServerGroupAttributes(ResourceAttributes):
    """Attributes of a server group."""

    resource_type: ClassVar[str] = "brightbox_server_group"

    name: str | None = None
    description: str | None = None

    # Computed
    fqdn: str | None = None
    firewall_policy: str | None = None


def encode_server_group(
    change: ResourceChange[ServerGroupAttributes], group_id: str = ""
) -> ServerGroupOptions:
    """Build create or update options from the changed attributes."""
    options = ServerGroupOptions(id=group_id)
    if change.has_change("name"):
        options.name = change.planned.name or ""
    if change.has_change("description"):
        options.description = change.planned.description or ""
    return options


def decode_server_group(group: ServerGroup) -> ServerGroupAttributes:
    """Build state attributes from an API server group."""
    return ServerGroupAttributes(
        name=group.name or None,
        description=group.description or None,
        fqdn=group.fqdn or None,
        firewall_policy=group.firewall_policy.id if group.firewall_policy else None,
    )
