"""Attribute mapping for cloud IPs."""

from typing import ClassVar

from brightbox_provider.api.models import CloudIP, CloudIPOptions
from brightbox_provider.mapping.base import ResourceAttributes, ResourceChange

MAPPED = "mapped"
UNMAPPED = "unmapped"


class CloudIPAttributes(ResourceAttributes):
    """Attributes of a cloud IP.

    ``target`` is the id of whatever the address is mapped to: a server, a
    server interface, a load balancer or a server group.
    """

    resource_type: ClassVar[str] = "brightbox_cloudip"

    name: str | None = None
    reverse_dns: str | None = None
    target: str | None = None

    # Computed
    status: str | None = None
    locked: bool | None = None
    public_ip: str | None = None
    public_ipv6: str | None = None
    fqdn: str | None = None


def encode_cloud_ip(
    change: ResourceChange[CloudIPAttributes], cloud_ip_id: str = ""
) -> CloudIPOptions:
    """Build create or update options from the changed attributes."""
    options = CloudIPOptions(id=cloud_ip_id)
    if change.has_change("name"):
        options.name = change.planned.name or ""
    if change.has_change("reverse_dns"):
        options.reverse_dns = change.planned.reverse_dns or ""
    return options


def mapped_target(cloud_ip: CloudIP, requested: str | None = None) -> str | None:
    """Work out the target id a cloud IP is mapped to.

    Mapping to a server maps its first interface, so the API reports both.
    The requested id is kept when it is one of the reported ids.

    Args:
        cloud_ip: Cloud IP returned by the API
        requested: Target id from configuration or state

    Returns:
        Target id, or None when unmapped
    """
    refs = [
        cloud_ip.load_balancer,
        cloud_ip.server_group,
        cloud_ip.server,
        cloud_ip.interface,
    ]
    ids = [ref.id for ref in refs if ref is not None]
    if not ids:
        return None
    if requested in ids:
        return requested
    return ids[0]


def decode_cloud_ip(cloud_ip: CloudIP, requested: str | None = None) -> CloudIPAttributes:
    """Build state attributes from an API cloud IP."""
    return CloudIPAttributes(
        name=cloud_ip.name or None,
        reverse_dns=cloud_ip.reverse_dns or None,
        target=mapped_target(cloud_ip, requested),
        status=cloud_ip.status,
        locked=cloud_ip.locked,
        public_ip=cloud_ip.public_ipv4 or cloud_ip.public_ip or None,
        public_ipv6=cloud_ip.public_ipv6 or None,
        fqdn=cloud_ip.fqdn or None,
    )
