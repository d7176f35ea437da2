"""Resource handler protocol and shared handler helpers."""

from collections.abc import Awaitable, Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from brightbox_provider.config.models import Timeouts
from brightbox_provider.core.errors import (
    ApiError,
    ConfigurationError,
    IncompleteCreateError,
    RemoteCallError,
)
from brightbox_provider.mapping.base import ConnectionInfo, ResourceAttributes, ResourceChange
from brightbox_provider.provider.session import Session


@dataclass
class Instance[T: ResourceAttributes]:
    """One remotely managed object as the host tracks it.

    Attributes:
        resource_type: Name of the resource kind
        id: Remote identifier, empty once the object is gone
        attributes: Attributes from the last create, read or update
        connection: Connection details for provisioning tools, if any
    """

    resource_type: str
    id: str
    attributes: T | None = None
    connection: ConnectionInfo | None = field(default=None, compare=False)

    @property
    def exists(self) -> bool:
        """Whether the instance still refers to a remote object."""
        return bool(self.id)

    def removed(self) -> "Instance[T]":
        """The same instance with its identifier cleared."""
        return Instance(self.resource_type, "")

    def as_dict(self) -> dict[str, Any]:
        """Instance as a plain mapping for state files."""
        data: dict[str, Any] = {"type": self.resource_type, "id": self.id}
        data["attributes"] = self.attributes.flatten() if self.attributes else {}
        if self.connection is not None:
            data["connection"] = self.connection.as_dict()
        return data


@runtime_checkable
class ResourceHandler(Protocol):
    """Lifecycle operations for one resource kind.

    Handlers hold no per-instance state; everything they need arrives as
    arguments.
    """

    async def create(
        self, session: Session, planned: Any, timeouts: Timeouts
    ) -> Instance:
        """Create the remote object and wait until it is usable.

        Raises:
            ProviderError: If creation fails
        """
        ...

    async def read(self, session: Session, instance: Instance) -> Instance:
        """Refresh attributes from the remote object.

        Returns:
            The refreshed instance, with an empty id if the object is gone
        """
        ...

    async def update(
        self, session: Session, instance: Instance, planned: Any, timeouts: Timeouts
    ) -> Instance:
        """Apply changed attributes to the remote object.

        Raises:
            ConfigurationError: If an attribute that cannot change in place changes
        """
        ...

    async def delete(
        self, session: Session, instance: Instance, timeouts: Timeouts
    ) -> Instance:
        """Remove the remote object and wait until it is gone.

        Returns:
            The instance with an empty id
        """
        ...


@contextmanager
def remote_call(operation: str) -> Iterator[None]:
    """Prefix API errors with the operation that was being performed.

    Args:
        operation: What the handler is doing, e.g. "creating server"

    Raises:
        RemoteCallError: If the block raises an ApiError
    """
    try:
        yield
    except ApiError as e:
        raise RemoteCallError(operation, e) from e


@contextmanager
def keep_created(resource_type: str, resource_id: str) -> Iterator[None]:
    """Keep the id of a newly created object when a later step fails.

    Args:
        resource_type: Name of the resource kind
        resource_id: Id returned by the create call

    Raises:
        IncompleteCreateError: If the block raises, carrying the partial instance
    """
    try:
        yield
    except Exception as e:
        raise IncompleteCreateError(Instance(resource_type, resource_id), e) from e


async def read_remote[R](operation: str, fetch: Callable[[], Awaitable[R]]) -> R | None:
    """Fetch a remote object, treating "not found" as gone.

    Args:
        operation: What the handler is doing, for error messages
        fetch: Async function fetching the object

    Returns:
        The object, or None if the API no longer knows it

    Raises:
        RemoteCallError: For any other API error
    """
    try:
        return await fetch()
    except ApiError as e:
        if e.not_found:
            return None
        raise RemoteCallError(operation, e) from e


def require_unchanged(
    change: ResourceChange[Any], names: Iterable[str], kind: str
) -> None:
    """Reject changes to attributes that cannot be updated in place.

    An attribute left unset in configuration keeps whatever value the
    remote object has.

    Raises:
        ConfigurationError: If any of the attributes changes
    """
    if change.prior is None:
        return
    changed = [
        name
        for name in names
        if getattr(change.planned, name) is not None and change.has_change(name)
    ]
    if changed:
        raise ConfigurationError(
            f"Changing {', '.join(changed)} requires replacing the {kind}"
        )
