"""Attribute mapping for firewall policies and rules."""

from typing import ClassVar

from brightbox_provider.api.models import (
    FirewallPolicy,
    FirewallPolicyOptions,
    FirewallRule,
    FirewallRuleOptions,
)
from brightbox_provider.mapping.base import ResourceAttributes, ResourceChange

PORT_PROTOCOLS = frozenset({"tcp", "udp"})

RULE_FIELDS = (
    "protocol",
    "source",
    "source_port",
    "destination",
    "destination_port",
    "icmp_type_name",
    "description",
)


class FirewallPolicyAttributes(ResourceAttributes):
    """Attributes of a firewall policy."""

    resource_type: ClassVar[str] = "brightbox_firewall_policy"

    name: str | None = None
    description: str | None = None
    server_group: str | None = None


class FirewallRuleAttributes(ResourceAttributes):
    """Attributes of a firewall rule."""

    resource_type: ClassVar[str] = "brightbox_firewall_rule"

    firewall_policy: str
    protocol: str | None = None
    source: str | None = None
    source_port: str | None = None
    destination: str | None = None
    destination_port: str | None = None
    icmp_type_name: str | None = None
    description: str | None = None

    def validate_config(self) -> None:
        if not self.source and not self.destination:
            raise ValueError("a firewall rule needs a source or a destination")
        has_ports = self.source_port or self.destination_port
        if has_ports and (self.protocol or "").lower() not in PORT_PROTOCOLS:
            raise ValueError("ports can only be given for tcp or udp rules")
        if self.icmp_type_name and (self.protocol or "").lower() != "icmp":
            raise ValueError("icmp_type_name can only be given for icmp rules")


def encode_firewall_policy(
    change: ResourceChange[FirewallPolicyAttributes], policy_id: str = ""
) -> FirewallPolicyOptions:
    """Build create or update options from the changed attributes.

    The server group is only sent on create; later changes go through the
    apply and remove calls.
    """
    options = FirewallPolicyOptions(id=policy_id)
    if change.has_change("name"):
        options.name = change.planned.name or ""
    if change.has_change("description"):
        options.description = change.planned.description or ""
    if change.creating and change.planned.server_group:
        options.server_group = change.planned.server_group
    return options


def decode_firewall_policy(policy: FirewallPolicy) -> FirewallPolicyAttributes:
    """Build state attributes from an API firewall policy."""
    return FirewallPolicyAttributes(
        name=policy.name or None,
        description=policy.description or None,
        server_group=policy.server_group.id if policy.server_group else None,
    )


def encode_firewall_rule(
    change: ResourceChange[FirewallRuleAttributes], rule_id: str = ""
) -> FirewallRuleOptions:
    """Build create or update options from the changed attributes."""
    options = FirewallRuleOptions(id=rule_id)
    if change.creating:
        options.firewall_policy = change.planned.firewall_policy

    for name in RULE_FIELDS:
        if change.has_change(name):
            # Empty string clears the field remotely
            setattr(options, name, getattr(change.planned, name) or "")

    return options


def decode_firewall_rule(rule: FirewallRule) -> FirewallRuleAttributes:
    """Build state attributes from an API firewall rule."""
    return FirewallRuleAttributes(
        firewall_policy=rule.firewall_policy.id,
        **{name: getattr(rule, name) or None for name in RULE_FIELDS},
    )
