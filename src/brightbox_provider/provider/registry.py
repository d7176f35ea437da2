"""Registry of the resource kinds the provider manages."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from brightbox_provider.core.errors import ConfigurationError
from brightbox_provider.core.reconciler import DEFAULT_POLL, PollSettings
from brightbox_provider.mapping.base import ResourceAttributes
from brightbox_provider.mapping.cloudip import CloudIPAttributes
from brightbox_provider.mapping.firewall import FirewallPolicyAttributes, FirewallRuleAttributes
from brightbox_provider.mapping.load_balancer import LoadBalancerAttributes
from brightbox_provider.mapping.server import ServerAttributes
from brightbox_provider.mapping.server_group import ServerGroupAttributes
from brightbox_provider.resources.base import ResourceHandler
from brightbox_provider.resources.cloudip import CloudIPHandler
from brightbox_provider.resources.firewall import FirewallPolicyHandler, FirewallRuleHandler
from brightbox_provider.resources.load_balancer import LoadBalancerHandler
from brightbox_provider.resources.server import ServerHandler
from brightbox_provider.resources.server_group import ServerGroupHandler


@dataclass(frozen=True)
class ResourceType:
    """Everything the host needs to manage one resource kind.

    Attributes:
        name: Type name used by the host, e.g. "brightbox_server"
        attributes: Attribute model for the kind
        handler: Lifecycle handler for the kind
    """

    name: str
    attributes: type[ResourceAttributes]
    handler: ResourceHandler

    def parse_config(self, raw: Mapping[str, Any]) -> ResourceAttributes:
        """Validate a raw attribute mapping from configuration.

        Args:
            raw: Attribute names and values

        Returns:
            Validated attributes

        Raises:
            ConfigurationError: If the attributes are invalid
        """
        try:
            attributes = self.attributes.model_validate(dict(raw))
            attributes.validate_config()
        except ValueError as e:
            # pydantic's ValidationError is a ValueError too
            raise ConfigurationError(f"Invalid {self.name} configuration: {e}") from e
        return attributes

    def parse_state(self, raw: Mapping[str, Any]) -> ResourceAttributes:
        """Load attributes recorded in state, skipping configuration-only checks.

        Raises:
            ConfigurationError: If the attributes do not fit the kind
        """
        try:
            return self.attributes.model_validate(dict(raw))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid {self.name} state: {e}") from e


class ResourceRegistry:
    """Maps type names to resource kinds."""

    def __init__(self) -> None:
        self._types: dict[str, ResourceType] = {}

    def register(self, resource_type: ResourceType) -> None:
        """Add a resource kind.

        Raises:
            ConfigurationError: If the name is already registered
        """
        if resource_type.name in self._types:
            raise ConfigurationError(f"Resource type {resource_type.name} is already registered")
        self._types[resource_type.name] = resource_type

    def get(self, name: str) -> ResourceType:
        """Look up a resource kind by name.

        Raises:
            ConfigurationError: If no kind has that name
        """
        try:
            return self._types[name]
        except KeyError:
            raise ConfigurationError(
                f"Unknown resource type {name!r}, supported types: {', '.join(self.names())}"
            ) from None

    def names(self) -> list[str]:
        """Registered type names, sorted."""
        return sorted(self._types)

    def __contains__(self, name: object) -> bool:
        return name in self._types


def build_registry(poll: PollSettings = DEFAULT_POLL) -> ResourceRegistry:
    """Create the registry of every supported resource kind.

    Args:
        poll: Timing for handlers that wait on remote state

    Returns:
        Populated registry
    """
    registry = ResourceRegistry()
    kinds: list[tuple[type[ResourceAttributes], ResourceHandler]] = [
        (ServerAttributes, ServerHandler(poll)),
        (ServerGroupAttributes, ServerGroupHandler()),
        (CloudIPAttributes, CloudIPHandler(poll)),
        (FirewallPolicyAttributes, FirewallPolicyHandler()),
        (FirewallRuleAttributes, FirewallRuleHandler()),
        (LoadBalancerAttributes, LoadBalancerHandler(poll)),
    ]
    for attributes, handler in kinds:
        registry.register(ResourceType(attributes.resource_type, attributes, handler))
    return registry
