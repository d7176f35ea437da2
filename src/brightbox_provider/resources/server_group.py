"""Server group resource handler."""

from brightbox_provider.api.models import ServerGroup
from brightbox_provider.config.models import Timeouts
from brightbox_provider.core.logging import get_logger
from brightbox_provider.mapping.base import ResourceChange
from brightbox_provider.mapping.server_group import (
    ServerGroupAttributes,
    decode_server_group,
    encode_server_group,
)
from brightbox_provider.provider.session import Session
from brightbox_provider.resources.base import Instance, read_remote, remote_call

logger = get_logger(__name__)


class ServerGroupHandler:
    """Create, read, update and delete server groups. All calls are synchronous."""

    async def create(
        self, session: Session, planned: ServerGroupAttributes, timeouts: Timeouts
    ) -> Instance[ServerGroupAttributes]:
        options = encode_server_group(ResourceChange(planned))
        logger.debug("Server group create configuration", name=options.name)

        with remote_call("creating server group"):
            group = await session.client.create_server_group(options)

        logger.info("Created server group", group_id=group.id)
        return _instance(group)

    async def read(
        self, session: Session, instance: Instance[ServerGroupAttributes]
    ) -> Instance[ServerGroupAttributes]:
        group = await read_remote(
            "retrieving server group details",
            lambda: session.client.server_group(instance.id),
        )
        if group is None:
            logger.warning("Server group not found, removing from state", group_id=instance.id)
            return instance.removed()
        return _instance(group)

    async def update(
        self,
        session: Session,
        instance: Instance[ServerGroupAttributes],
        planned: ServerGroupAttributes,
        timeouts: Timeouts,
    ) -> Instance[ServerGroupAttributes]:
        options = encode_server_group(ResourceChange(planned, instance.attributes), instance.id)

        with remote_call("updating server group"):
            group = await session.client.update_server_group(options)

        return _instance(group)

    async def delete(
        self, session: Session, instance: Instance[ServerGroupAttributes], timeouts: Timeouts
    ) -> Instance[ServerGroupAttributes]:
        with remote_call("deleting server group"):
            await session.client.destroy_server_group(instance.id)

        logger.info("Deleted server group", group_id=instance.id)
        return instance.removed()


def _instance(group: ServerGroup) -> Instance[ServerGroupAttributes]:
    return Instance(ServerGroupAttributes.resource_type, group.id, decode_server_group(group))
