"""Server resource handler."""

from brightbox_provider.api.client import ApiClient
from brightbox_provider.api.models import Server
from brightbox_provider.config.models import Timeouts
from brightbox_provider.core.logging import get_logger
from brightbox_provider.core.reconciler import (
    DEFAULT_POLL,
    PollSettings,
    RefreshFunc,
    wait_for_state,
)
from brightbox_provider.mapping.base import ResourceChange
from brightbox_provider.mapping.server import (
    ServerAttributes,
    decode_server,
    encode_server_create,
    encode_server_update,
    planned_state,
    server_connection_info,
)
from brightbox_provider.provider.session import Session
from brightbox_provider.resources.base import (
    Instance,
    keep_created,
    read_remote,
    remote_call,
    require_unchanged,
)

logger = get_logger(__name__)

CREATE_PENDING = ("creating",)
CREATE_TARGET = ("active", "inactive")
DELETE_PENDING = ("deleting", "active", "inactive")
DELETE_TARGET = ("deleted",)

# Attributes that can only be set when the server is built
REPLACE_ON_CHANGE = ("image", "type", "zone")


def server_state_refresh(client: ApiClient, server_id: str) -> RefreshFunc[Server]:
    """Build a refresh function reporting a server's status."""

    async def refresh() -> tuple[Server, str]:
        try:
            server = await client.server(server_id)
        except Exception as e:
            logger.error("Error on server state refresh", server_id=server_id, error=str(e))
            raise
        return server, server.status

    return refresh


class ServerHandler:
    """Create, read, update and delete cloud servers."""

    def __init__(self, poll: PollSettings = DEFAULT_POLL) -> None:
        """Initialize the handler.

        Args:
            poll: Timing for waits on server status
        """
        self.poll = poll

    async def create(
        self, session: Session, planned: ServerAttributes, timeouts: Timeouts
    ) -> Instance[ServerAttributes]:
        """Build a server and wait for it to finish booting."""
        client = session.client

        options = encode_server_create(planned)
        logger.debug(
            "Server create configuration",
            image=options.image,
            type=options.server_type,
            zone=options.zone,
            server_groups=options.server_groups,
        )

        with remote_call("creating server"):
            server = await client.create_server(options)

        logger.info("Waiting for server to become available", server_id=server.id)

        with keep_created(ServerAttributes.resource_type, server.id):
            active = await wait_for_state(
                server_state_refresh(client, server.id),
                pending=CREATE_PENDING,
                target=CREATE_TARGET,
                timeout=timeouts.create,
                poll=self.poll,
            )

        return self._instance(active, planned_state(planned))

    async def read(
        self, session: Session, instance: Instance[ServerAttributes]
    ) -> Instance[ServerAttributes]:
        """Refresh a server; a deleted server clears the instance id."""
        logger.debug("Server read called", server_id=instance.id)

        server = await read_remote(
            "retrieving server details", lambda: session.client.server(instance.id)
        )
        if server is None or server.status == "deleted":
            logger.warning("Server not found, removing from state", server_id=instance.id)
            return instance.removed()

        return self._instance(server, instance.attributes)

    async def update(
        self,
        session: Session,
        instance: Instance[ServerAttributes],
        planned: ServerAttributes,
        timeouts: Timeouts,
    ) -> Instance[ServerAttributes]:
        """Rename a server, move it between groups or replace its user data."""
        logger.debug("Server update called", server_id=instance.id)

        change = ResourceChange(planned, instance.attributes)
        require_unchanged(change, REPLACE_ON_CHANGE, "server")

        options = encode_server_update(instance.id, change)
        if not options.payload():
            logger.debug("Nothing to update", server_id=instance.id)
            return await self.read(session, instance)

        logger.debug("Server update configuration", fields=sorted(options.payload()))

        with remote_call("updating server"):
            server = await session.client.update_server(options)

        return self._instance(server, planned_state(planned))

    async def delete(
        self, session: Session, instance: Instance[ServerAttributes], timeouts: Timeouts
    ) -> Instance[ServerAttributes]:
        """Destroy a server and wait until it is gone."""
        client = session.client
        logger.debug("Server delete called", server_id=instance.id)

        with remote_call("deleting server"):
            await client.destroy_server(instance.id)

        await wait_for_state(
            server_state_refresh(client, instance.id),
            pending=DELETE_PENDING,
            target=DELETE_TARGET,
            timeout=timeouts.delete,
            poll=self.poll,
        )

        return instance.removed()

    @staticmethod
    def _instance(
        server: Server, requested: ServerAttributes | None
    ) -> Instance[ServerAttributes]:
        attributes = decode_server(server, requested)
        return Instance(
            ServerAttributes.resource_type,
            server.id,
            attributes,
            server_connection_info(attributes),
        )
