"""Attribute mapping for load balancers."""

from typing import Any, ClassVar

from pydantic import BaseModel, Field, field_validator

from brightbox_provider.api.models import (
    Healthcheck,
    Listener,
    LoadBalancer,
    LoadBalancerOptions,
)
from brightbox_provider.mapping.base import ResourceAttributes, ResourceChange

POLICIES = frozenset({"least-connections", "round-robin"})


class ListenerAttributes(BaseModel):
    """One listener block of a load balancer."""

    model_config = {"extra": "forbid", "populate_by_name": True}

    protocol: str
    in_port: int = Field(alias="in", gt=0, lt=65536)
    out_port: int = Field(alias="out", gt=0, lt=65536)
    timeout: int | None = None
    proxy_protocol: str | None = None


class HealthcheckAttributes(BaseModel):
    """Health check block of a load balancer."""

    model_config = {"extra": "forbid"}

    type: str
    port: int = Field(gt=0, lt=65536)
    request: str | None = None
    interval: int | None = None
    timeout: int | None = None
    threshold_up: int | None = None
    threshold_down: int | None = None


class LoadBalancerAttributes(ResourceAttributes):
    """Attributes of a load balancer."""

    resource_type: ClassVar[str] = "brightbox_load_balancer"

    name: str | None = None
    policy: str | None = None
    buffer_size: int | None = None
    nodes: list[str] = Field(default_factory=list)
    listener: list[ListenerAttributes] = Field(default_factory=list)
    healthcheck: HealthcheckAttributes | None = None

    # Computed
    status: str | None = None
    locked: bool | None = None
    ipv4_address: str | None = None
    public_hostname: str | None = None

    @field_validator("nodes")
    @classmethod
    def _sorted_nodes(cls, value: list[str]) -> list[str]:
        return sorted(set(value))

    @field_validator("listener")
    @classmethod
    def _sorted_listeners(cls, value: list[ListenerAttributes]) -> list[ListenerAttributes]:
        return sorted(value, key=lambda listener: (listener.in_port, listener.protocol))

    def validate_config(self) -> None:
        if not self.listener:
            raise ValueError("a load balancer needs at least one listener")
        if self.policy and self.policy not in POLICIES:
            raise ValueError(f"policy must be one of: {', '.join(sorted(POLICIES))}")


def encode_load_balancer(
    change: ResourceChange[LoadBalancerAttributes], lb_id: str = ""
) -> LoadBalancerOptions:
    """Build create or update options from the changed attributes."""
    planned = change.planned
    options = LoadBalancerOptions(id=lb_id)

    if change.has_change("name"):
        options.name = planned.name or ""
    if change.has_change("policy"):
        options.policy = planned.policy
    if change.has_change("buffer_size"):
        options.buffer_size = planned.buffer_size
    if change.has_change("nodes"):
        options.nodes = list(planned.nodes)
    if change.has_change("listener"):
        options.listeners = [
            Listener.model_validate(listener.model_dump(by_alias=True))
            for listener in planned.listener
        ]
    if change.has_change("healthcheck") and planned.healthcheck is not None:
        options.healthcheck = Healthcheck.model_validate(planned.healthcheck.model_dump())

    return options


def decode_load_balancer(lb: LoadBalancer) -> LoadBalancerAttributes:
    """Build state attributes from an API load balancer."""
    attrs: dict[str, Any] = {
        "name": lb.name or None,
        "policy": lb.policy or None,
        "buffer_size": lb.buffer_size,
        "nodes": [node.id for node in lb.nodes],
        "listener": [
            ListenerAttributes.model_validate(listener.model_dump(by_alias=True))
            for listener in lb.listeners
        ],
        "status": lb.status,
        "locked": lb.locked,
    }

    if lb.healthcheck is not None:
        attrs["healthcheck"] = HealthcheckAttributes.model_validate(lb.healthcheck.model_dump())

    if lb.cloud_ips:
        primary = lb.cloud_ips[0]
        attrs["ipv4_address"] = primary.public_ipv4 or primary.public_ip or None
        attrs["public_hostname"] = primary.fqdn or None

    return LoadBalancerAttributes(**attrs)
