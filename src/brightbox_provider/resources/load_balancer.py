"""Load balancer resource handler."""

from brightbox_provider.api.client import ApiClient
from brightbox_provider.api.models import LoadBalancer
from brightbox_provider.config.models import Timeouts
from brightbox_provider.core.logging import get_logger
from brightbox_provider.core.reconciler import (
    DEFAULT_POLL,
    PollSettings,
    RefreshFunc,
    wait_for_state,
)
from brightbox_provider.mapping.base import ResourceChange
from brightbox_provider.mapping.load_balancer import (
    LoadBalancerAttributes,
    decode_load_balancer,
    encode_load_balancer,
)
from brightbox_provider.provider.session import Session
from brightbox_provider.resources.base import (
    Instance,
    keep_created,
    read_remote,
    remote_call,
)

logger = get_logger(__name__)

CREATE_PENDING = ("creating",)
CREATE_TARGET = ("active",)
DELETE_PENDING = ("deleting", "active")
DELETE_TARGET = ("deleted",)


def load_balancer_state_refresh(client: ApiClient, lb_id: str) -> RefreshFunc[LoadBalancer]:
    """Build a refresh function reporting a load balancer's status."""

    async def refresh() -> tuple[LoadBalancer, str]:
        try:
            lb = await client.load_balancer(lb_id)
        except Exception as e:
            logger.error("Error on load balancer state refresh", lb_id=lb_id, error=str(e))
            raise
        return lb, lb.status

    return refresh


class LoadBalancerHandler:
    """Create, read, update and delete load balancers."""

    def __init__(self, poll: PollSettings = DEFAULT_POLL) -> None:
        """Initialize the handler.

        Args:
            poll: Timing for waits on load balancer status
        """
        self.poll = poll

    async def create(
        self, session: Session, planned: LoadBalancerAttributes, timeouts: Timeouts
    ) -> Instance[LoadBalancerAttributes]:
        client = session.client
        options = encode_load_balancer(ResourceChange(planned))
        logger.debug(
            "Load balancer create configuration",
            name=options.name,
            policy=options.policy,
            nodes=options.nodes,
        )

        with remote_call("creating load balancer"):
            lb = await client.create_load_balancer(options)

        logger.info("Waiting for load balancer to become available", lb_id=lb.id)

        with keep_created(LoadBalancerAttributes.resource_type, lb.id):
            active = await wait_for_state(
                load_balancer_state_refresh(client, lb.id),
                pending=CREATE_PENDING,
                target=CREATE_TARGET,
                timeout=timeouts.create,
                poll=self.poll,
            )
        return _instance(active)

    async def read(
        self, session: Session, instance: Instance[LoadBalancerAttributes]
    ) -> Instance[LoadBalancerAttributes]:
        lb = await read_remote(
            "retrieving load balancer details",
            lambda: session.client.load_balancer(instance.id),
        )
        if lb is None or lb.status == "deleted":
            logger.warning("Load balancer not found, removing from state", lb_id=instance.id)
            return instance.removed()
        return _instance(lb)

    async def update(
        self,
        session: Session,
        instance: Instance[LoadBalancerAttributes],
        planned: LoadBalancerAttributes,
        timeouts: Timeouts,
    ) -> Instance[LoadBalancerAttributes]:
        options = encode_load_balancer(ResourceChange(planned, instance.attributes), instance.id)
        if not options.payload():
            logger.debug("Nothing to update", lb_id=instance.id)
            return await self.read(session, instance)

        logger.debug("Load balancer update configuration", fields=sorted(options.payload()))

        with remote_call("updating load balancer"):
            lb = await session.client.update_load_balancer(options)

        return _instance(lb)

    async def delete(
        self, session: Session, instance: Instance[LoadBalancerAttributes], timeouts: Timeouts
    ) -> Instance[LoadBalancerAttributes]:
        client = session.client

        with remote_call("deleting load balancer"):
            await client.destroy_load_balancer(instance.id)

        await wait_for_state(
            load_balancer_state_refresh(client, instance.id),
            pending=DELETE_PENDING,
            target=DELETE_TARGET,
            timeout=timeouts.delete,
            poll=self.poll,
        )

        logger.info("Deleted load balancer", lb_id=instance.id)
        return instance.removed()


def _instance(lb: LoadBalancer) -> Instance[LoadBalancerAttributes]:
    return Instance(LoadBalancerAttributes.resource_type, lb.id, decode_load_balancer(lb))
