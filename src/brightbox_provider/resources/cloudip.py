"""Cloud IP resource handler.

Mapping and unmapping a cloud IP are asynchronous on the API side, so every
change of target waits for the address to settle before carrying on.
"""

from brightbox_provider.api.client import ApiClient
from brightbox_provider.api.models import CloudIP
from brightbox_provider.config.models import Timeouts
from brightbox_provider.core.logging import get_logger
from brightbox_provider.core.reconciler import (
    DEFAULT_POLL,
    PollSettings,
    RefreshFunc,
    wait_for_state,
)
from brightbox_provider.mapping.base import ResourceChange
from brightbox_provider.mapping.cloudip import (
    MAPPED,
    UNMAPPED,
    CloudIPAttributes,
    decode_cloud_ip,
    encode_cloud_ip,
    mapped_target,
)
from brightbox_provider.provider.session import Session
from brightbox_provider.resources.base import (
    Instance,
    keep_created,
    read_remote,
    remote_call,
)

logger = get_logger(__name__)


def cloud_ip_state_refresh(client: ApiClient, cloud_ip_id: str) -> RefreshFunc[CloudIP]:
    """Build a refresh function reporting a cloud IP's mapping status."""

    async def refresh() -> tuple[CloudIP, str]:
        try:
            cloud_ip = await client.cloud_ip(cloud_ip_id)
        except Exception as e:
            logger.error("Error on cloud IP state refresh", cloud_ip_id=cloud_ip_id, error=str(e))
            raise
        return cloud_ip, cloud_ip.status

    return refresh


class CloudIPHandler:
    """Create, map, remap, unmap and delete cloud IPs."""

    def __init__(self, poll: PollSettings = DEFAULT_POLL) -> None:
        self.poll = poll

    async def create(
        self, session: Session, planned: CloudIPAttributes, timeouts: Timeouts
    ) -> Instance[CloudIPAttributes]:
        """Allocate a cloud IP, then map it to its target if one is given."""
        client = session.client

        with remote_call("creating cloud IP"):
            cloud_ip = await client.create_cloud_ip(encode_cloud_ip(ResourceChange(planned)))

        logger.info("Created cloud IP", cloud_ip_id=cloud_ip.id)

        if planned.target:
            with keep_created(CloudIPAttributes.resource_type, cloud_ip.id):
                cloud_ip = await self._map(client, cloud_ip.id, planned.target, timeouts.create)

        return _instance(cloud_ip, planned.target)

    async def read(
        self, session: Session, instance: Instance[CloudIPAttributes]
    ) -> Instance[CloudIPAttributes]:
        cloud_ip = await read_remote(
            "retrieving cloud IP details", lambda: session.client.cloud_ip(instance.id)
        )
        if cloud_ip is None:
            logger.warning("Cloud IP not found, removing from state", cloud_ip_id=instance.id)
            return instance.removed()

        requested = instance.attributes.target if instance.attributes else None
        return _instance(cloud_ip, requested)

    async def update(
        self,
        session: Session,
        instance: Instance[CloudIPAttributes],
        planned: CloudIPAttributes,
        timeouts: Timeouts,
    ) -> Instance[CloudIPAttributes]:
        """Update details and move the cloud IP when its target changes."""
        client = session.client
        change = ResourceChange(planned, instance.attributes)

        options = encode_cloud_ip(change, instance.id)
        if options.payload():
            with remote_call("updating cloud IP"):
                await client.update_cloud_ip(options)

        if change.has_change("target"):
            await self._retarget(client, instance.id, planned.target, timeouts.update)

        with remote_call("retrieving cloud IP details"):
            cloud_ip = await client.cloud_ip(instance.id)

        return _instance(cloud_ip, planned.target)

    async def delete(
        self, session: Session, instance: Instance[CloudIPAttributes], timeouts: Timeouts
    ) -> Instance[CloudIPAttributes]:
        """Unmap the cloud IP if needed, then release it."""
        client = session.client

        cloud_ip = await read_remote(
            "retrieving cloud IP details", lambda: client.cloud_ip(instance.id)
        )
        if cloud_ip is None:
            return instance.removed()

        if cloud_ip.status == MAPPED:
            await self._unmap(client, instance.id, timeouts.delete)

        with remote_call("deleting cloud IP"):
            await client.destroy_cloud_ip(instance.id)

        logger.info("Deleted cloud IP", cloud_ip_id=instance.id)
        return instance.removed()

    async def _retarget(
        self, client: ApiClient, cloud_ip_id: str, target: str | None, timeout: float
    ) -> None:
        # Imported instances have no recorded target; the live mapping decides
        with remote_call("retrieving cloud IP details"):
            current = await client.cloud_ip(cloud_ip_id)

        if current.status == MAPPED:
            if target and mapped_target(current, target) == target:
                return
            await self._unmap(client, cloud_ip_id, timeout)
        if target:
            await self._map(client, cloud_ip_id, target, timeout)

    async def _map(
        self, client: ApiClient, cloud_ip_id: str, target: str, timeout: float
    ) -> CloudIP:
        logger.info("Mapping cloud IP", cloud_ip_id=cloud_ip_id, target=target)
        with remote_call("mapping cloud IP"):
            await client.map_cloud_ip(cloud_ip_id, target)

        return await wait_for_state(
            cloud_ip_state_refresh(client, cloud_ip_id),
            pending=(UNMAPPED,),
            target=(MAPPED,),
            timeout=timeout,
            poll=self.poll,
        )

    async def _unmap(self, client: ApiClient, cloud_ip_id: str, timeout: float) -> CloudIP:
        logger.info("Unmapping cloud IP", cloud_ip_id=cloud_ip_id)
        with remote_call("unmapping cloud IP"):
            await client.unmap_cloud_ip(cloud_ip_id)

        return await wait_for_state(
            cloud_ip_state_refresh(client, cloud_ip_id),
            pending=(MAPPED,),
            target=(UNMAPPED,),
            timeout=timeout,
            poll=self.poll,
        )


def _instance(cloud_ip: CloudIP, requested: str | None) -> Instance[CloudIPAttributes]:
    return Instance(
        CloudIPAttributes.resource_type, cloud_ip.id, decode_cloud_ip(cloud_ip, requested)
    )
