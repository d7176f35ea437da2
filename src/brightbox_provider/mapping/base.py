"""Shared building blocks for attribute mapping."""

from dataclasses import dataclass
from typing import Any, ClassVar

from pydantic import BaseModel


class ResourceAttributes(BaseModel):
    """Base for the attribute set of one resource kind.

    Subclasses set ``resource_type`` to the name the host uses for the kind.
    Unknown attribute names are rejected.
    """

    model_config = {"extra": "forbid", "populate_by_name": True}

    resource_type: ClassVar[str] = ""

    def validate_config(self) -> None:
        """Check rules that only apply to configuration, not to state.

        Raises:
            ValueError: If the configuration is invalid
        """

    def flatten(self) -> dict[str, Any]:
        """Attributes as a plain mapping, leaving out unset ones."""
        return self.model_dump(mode="json", exclude_none=True, by_alias=True)


def _empty_as_none(value: Any) -> Any:
    if value == "" or value == []:
        return None
    return value


@dataclass(frozen=True)
class ResourceChange[T: ResourceAttributes]:
    """The attributes a resource has and the attributes it should have.

    Attributes:
        planned: Attributes from configuration
        prior: Attributes from state, or None when creating
    """

    planned: T
    prior: T | None = None

    @property
    def creating(self) -> bool:
        """Whether there is no prior state."""
        return self.prior is None

    def has_change(self, name: str) -> bool:
        """Check whether an attribute changes.

        When creating, an attribute changes if it is set at all. Empty strings
        and lists count as unset.

        Args:
            name: Attribute name

        Returns:
            True if the attribute should be sent to the API
        """
        new = _empty_as_none(getattr(self.planned, name))
        if self.prior is None:
            return new is not None
        return new != _empty_as_none(getattr(self.prior, name))

    def get_ok(self, name: str) -> Any:
        """Get a planned attribute if it has a non-empty value, else None."""
        value = getattr(self.planned, name)
        return value if value else None


@dataclass(frozen=True)
class ConnectionInfo:
    """How provisioning tools outside the provider reach a resource."""

    host: str
    type: str = "ssh"
    user: str = ""

    def as_dict(self) -> dict[str, str]:
        """Connection details with empty fields left out."""
        details = {"type": self.type, "host": self.host}
        if self.user:
            details["user"] = self.user
        return details
