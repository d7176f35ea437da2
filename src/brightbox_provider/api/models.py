"""Request and response models for the Brightbox Cloud API.

Response models ignore fields the provider does not use. Request options
only send fields that are set, so an update carries just the changes.
"""

from typing import Any

from pydantic import BaseModel, Field


class AccessToken(BaseModel):
    """OAuth2 token returned by the token endpoint."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None
    refresh_token: str | None = None


class ResourceRef(BaseModel):
    """Nested reference to another API object."""

    id: str
    name: str = ""


class Image(BaseModel):
    """Disk image a server was built from."""

    id: str
    name: str = ""
    username: str = ""


class ServerType(BaseModel):
    """Server size."""

    id: str = ""
    handle: str = ""


class Zone(BaseModel):
    """Availability zone."""

    id: str = ""
    handle: str = ""


class Interface(BaseModel):
    """Network interface of a server."""

    id: str
    mac_address: str = ""
    ipv4_address: str = ""
    ipv6_address: str = ""


class CloudIP(BaseModel):
    """Public IP address that can be mapped to a destination."""

    id: str
    name: str = ""
    status: str = ""
    locked: bool = False
    public_ip: str = ""
    public_ipv4: str = ""
    public_ipv6: str = ""
    fqdn: str = ""
    reverse_dns: str = ""
    interface: ResourceRef | None = None
    server: ResourceRef | None = None
    load_balancer: ResourceRef | None = None
    server_group: ResourceRef | None = None


class Server(BaseModel):
    """Cloud server."""

    id: str
    name: str = ""
    status: str = ""
    locked: bool = False
    hostname: str = ""
    fqdn: str = ""
    user_data: str | None = None
    image: Image
    server_type: ServerType = Field(default_factory=ServerType)
    zone: Zone = Field(default_factory=Zone)
    interfaces: list[Interface] = Field(default_factory=list)
    cloud_ips: list[CloudIP] = Field(default_factory=list)
    server_groups: list[ResourceRef] = Field(default_factory=list)


class ServerGroup(BaseModel):
    """Named collection of servers."""

    id: str
    name: str = ""
    description: str = ""
    fqdn: str = ""
    default: bool = False
    firewall_policy: ResourceRef | None = None
    servers: list[ResourceRef] = Field(default_factory=list)


class FirewallPolicy(BaseModel):
    """Set of firewall rules applied to a server group."""

    id: str
    name: str = ""
    description: str = ""
    default: bool = False
    server_group: ResourceRef | None = None
    rules: list[ResourceRef] = Field(default_factory=list)


class FirewallRule(BaseModel):
    """Single firewall rule within a policy."""

    id: str
    firewall_policy: ResourceRef
    protocol: str | None = None
    source: str | None = None
    source_port: str | None = None
    destination: str | None = None
    destination_port: str | None = None
    icmp_type_name: str | None = None
    description: str | None = None


class Listener(BaseModel):
    """Load balancer listener forwarding one port."""

    model_config = {"populate_by_name": True}

    protocol: str
    in_port: int = Field(alias="in")
    out_port: int = Field(alias="out")
    timeout: int | None = None
    proxy_protocol: str | None = None


class Healthcheck(BaseModel):
    """Load balancer node health check."""

    type: str
    port: int
    request: str | None = None
    interval: int | None = None
    timeout: int | None = None
    threshold_up: int | None = None
    threshold_down: int | None = None


class LoadBalancer(BaseModel):
    """Load balancer spreading traffic over server nodes."""

    id: str
    name: str = ""
    status: str = ""
    locked: bool = False
    policy: str = ""
    buffer_size: int | None = None
    nodes: list[ResourceRef] = Field(default_factory=list)
    listeners: list[Listener] = Field(default_factory=list)
    healthcheck: Healthcheck | None = None
    cloud_ips: list[CloudIP] = Field(default_factory=list)


class Options(BaseModel):
    """Base for request bodies. ``id`` addresses the object and is never sent."""

    id: str = Field("", exclude=True)

    def payload(self) -> dict[str, Any]:
        """Build the JSON body containing only the fields that are set.

        Returns:
            Request body
        """
        return self.model_dump(exclude_none=True, by_alias=True)


class ServerOptions(Options):
    """Create or update a server."""

    image: str | None = None
    name: str | None = None
    server_type: str | None = None
    zone: str | None = None
    user_data: str | None = None
    server_groups: list[str] | None = None


class ServerGroupOptions(Options):
    """Create or update a server group."""

    name: str | None = None
    description: str | None = None


class FirewallPolicyOptions(Options):
    """Create or update a firewall policy."""

    name: str | None = None
    description: str | None = None
    server_group: str | None = None


class FirewallRuleOptions(Options):
    """Create or update a firewall rule."""

    firewall_policy: str | None = None
    protocol: str | None = None
    source: str | None = None
    source_port: str | None = None
    destination: str | None = None
    destination_port: str | None = None
    icmp_type_name: str | None = None
    description: str | None = None


class CloudIPOptions(Options):
    """Create or update a cloud IP."""

    name: str | None = None
    reverse_dns: str | None = None


class LoadBalancerOptions(Options):
    """Create or update a load balancer."""

    name: str | None = None
    policy: str | None = None
    buffer_size: int | None = None
    nodes: list[str] | None = None
    listeners: list[Listener] | None = None
    healthcheck: Healthcheck | None = None

    def payload(self) -> dict[str, Any]:
        """Build the JSON body; nodes are sent as ``{"node": id}`` objects."""
        body = super().payload()
        if self.nodes is not None:
            body["nodes"] = [{"node": node} for node in self.nodes]
        return body
