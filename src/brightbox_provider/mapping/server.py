"""Attribute mapping for servers."""

from typing import Any, ClassVar

from pydantic import field_validator

from brightbox_provider.api.models import CloudIP, Server, ServerOptions
from brightbox_provider.core.logging import get_logger
from brightbox_provider.mapping.base import ConnectionInfo, ResourceAttributes, ResourceChange
from brightbox_provider.mapping.encoding import (
    base64_encode,
    check_size,
    hash_string,
    require_base64,
    user_data_hash_sum,
)

logger = get_logger(__name__)


class ServerAttributes(ResourceAttributes):
    """Attributes of a cloud server.

    In state, ``user_data`` holds the SHA-1 of the plain text rather than the
    payload itself.
    """

    resource_type: ClassVar[str] = "brightbox_server"

    image: str
    name: str | None = None
    type: str | None = None
    zone: str | None = None
    user_data: str | None = None
    user_data_base64: str | None = None
    server_groups: list[str]

    # Computed
    status: str | None = None
    locked: bool | None = None
    interface: str | None = None
    ipv4_address: str | None = None
    ipv4_address_private: str | None = None
    ipv6_address: str | None = None
    hostname: str | None = None
    fqdn: str | None = None
    public_hostname: str | None = None
    ipv6_hostname: str | None = None
    username: str | None = None

    @field_validator("user_data_base64")
    @classmethod
    def _must_be_base64(cls, value: str | None) -> str | None:
        if value:
            require_base64(value)
        return value

    @field_validator("server_groups")
    @classmethod
    def _sorted_groups(cls, value: list[str]) -> list[str]:
        return sorted(set(value))

    def validate_config(self) -> None:
        if self.user_data and self.user_data_base64:
            raise ValueError("user_data conflicts with user_data_base64")
        if not self.server_groups:
            raise ValueError("server_groups requires at least one server group")


def encode_user_data(user_data: str | None, user_data_base64: str | None) -> str | None:
    """Build the user data payload sent to the API.

    Plain text is base64 encoded, pre-encoded text passes through.

    Args:
        user_data: Plain text payload
        user_data_base64: Already encoded payload

    Returns:
        Encoded payload, or None when neither is set

    Raises:
        SizeLimitError: If the encoded payload is too large
    """
    encoded = ""
    if user_data:
        logger.debug("Encoding user data")
        encoded = base64_encode(user_data)
    elif user_data_base64:
        logger.debug("Encoded user data found, passing through")
        encoded = user_data_base64

    if not encoded:
        return None
    return check_size(encoded)


def user_data_changed(change: ResourceChange[ServerAttributes]) -> bool:
    """Check whether user data changes, comparing plain text by its hash."""
    if change.has_change("user_data_base64"):
        return True

    planned = change.planned.user_data
    if change.prior is None:
        return bool(planned)
    planned_hash = hash_string(planned) if planned else None
    return planned_hash != (change.prior.user_data or None)


def planned_state(planned: ServerAttributes) -> ServerAttributes:
    """Configuration as it is kept in state, with user data hashed."""
    if not planned.user_data:
        return planned
    return planned.model_copy(update={"user_data": hash_string(planned.user_data)})


def encode_server_create(planned: ServerAttributes) -> ServerOptions:
    """Build create options from configuration.

    Raises:
        SizeLimitError: If the user data is too large
    """
    change = ResourceChange(planned)
    options = ServerOptions(image=planned.image)
    _add_updateable_options(change, options)

    if change.has_change("type"):
        options.server_type = planned.type
    if change.has_change("zone"):
        options.zone = planned.zone

    return options


def encode_server_update(server_id: str, change: ResourceChange[ServerAttributes]) -> ServerOptions:
    """Build update options holding only the changed attributes.

    Raises:
        SizeLimitError: If the user data is too large
    """
    options = ServerOptions(id=server_id)
    _add_updateable_options(change, options)
    return options


def _add_updateable_options(
    change: ResourceChange[ServerAttributes], options: ServerOptions
) -> None:
    planned = change.planned

    if change.has_change("name"):
        options.name = planned.name or ""
    if change.has_change("server_groups"):
        options.server_groups = list(planned.server_groups)
    if user_data_changed(change):
        options.user_data = encode_user_data(planned.user_data, planned.user_data_base64)


def decode_server(server: Server, requested: ServerAttributes | None = None) -> ServerAttributes:
    """Build state attributes from an API server.

    Args:
        server: Server returned by the API
        requested: Prior state or planned state, used to decide how user
            data is stored

    Returns:
        Server attributes
    """
    attrs: dict[str, Any] = {
        "image": server.image.id,
        "name": server.name or None,
        "type": server.server_type.handle or None,
        "zone": server.zone.handle or None,
        "status": server.status,
        "locked": server.locked,
        "hostname": server.hostname or None,
        "username": server.image.username or None,
        "server_groups": [group.id for group in server.server_groups],
    }

    if server.interfaces:
        primary = server.interfaces[0]
        attrs["interface"] = primary.id
        attrs["ipv4_address_private"] = primary.ipv4_address or None
        attrs["ipv6_address"] = primary.ipv6_address or None
        if server.fqdn:
            attrs["fqdn"] = server.fqdn
            attrs["ipv6_hostname"] = f"ipv6.{server.fqdn}"

    if server.cloud_ips:
        attrs.update(_primary_cloud_ip(server.cloud_ips[0]))

    attrs.update(_user_data_details(server.user_data, requested))

    return ServerAttributes(**attrs)


def _primary_cloud_ip(cloud_ip: CloudIP) -> dict[str, Any]:
    return {
        "ipv4_address": cloud_ip.public_ipv4 or cloud_ip.public_ip or None,
        "public_hostname": cloud_ip.fqdn or None,
    }


def _user_data_details(encoded: str | None, requested: ServerAttributes | None) -> dict[str, Any]:
    if not encoded:
        logger.debug("No user data found, keeping prior values")
        if requested is None:
            return {}
        return {
            "user_data": requested.user_data,
            "user_data_base64": requested.user_data_base64,
        }

    if requested is not None and requested.user_data_base64:
        logger.debug("Encoded user data requested, setting user_data_base64")
        return {"user_data_base64": encoded}

    logger.debug("Plain user data requested, setting user_data hash")
    return {"user_data": user_data_hash_sum(encoded)}


def server_connection_info(attrs: ServerAttributes) -> ConnectionInfo | None:
    """Pick the address provisioning tools should connect to.

    Preference is the public hostname, then the IPv6 hostname, then the FQDN.

    Returns:
        Connection details, or None when the server has no address yet
    """
    host = attrs.public_hostname or attrs.ipv6_hostname or attrs.fqdn
    if not host:
        return None
    return ConnectionInfo(host=host, user=attrs.username or "")
