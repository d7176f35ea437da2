"""Firewall policy and firewall rule resource handlers."""

from brightbox_provider.config.models import Timeouts
from brightbox_provider.core.logging import get_logger
from brightbox_provider.mapping.base import ResourceChange
from brightbox_provider.mapping.firewall import (
    FirewallPolicyAttributes,
    FirewallRuleAttributes,
    decode_firewall_policy,
    decode_firewall_rule,
    encode_firewall_policy,
    encode_firewall_rule,
)
from brightbox_provider.provider.session import Session
from brightbox_provider.resources.base import (
    Instance,
    read_remote,
    remote_call,
    require_unchanged,
)

logger = get_logger(__name__)


class FirewallPolicyHandler:
    """Manage firewall policies and the server group they apply to."""

    async def create(
        self, session: Session, planned: FirewallPolicyAttributes, timeouts: Timeouts
    ) -> Instance[FirewallPolicyAttributes]:
        options = encode_firewall_policy(ResourceChange(planned))

        with remote_call("creating firewall policy"):
            policy = await session.client.create_firewall_policy(options)

        logger.info("Created firewall policy", policy_id=policy.id)
        return Instance(
            FirewallPolicyAttributes.resource_type, policy.id, decode_firewall_policy(policy)
        )

    async def read(
        self, session: Session, instance: Instance[FirewallPolicyAttributes]
    ) -> Instance[FirewallPolicyAttributes]:
        policy = await read_remote(
            "retrieving firewall policy details",
            lambda: session.client.firewall_policy(instance.id),
        )
        if policy is None:
            logger.warning("Firewall policy not found, removing from state", policy_id=instance.id)
            return instance.removed()
        return Instance(instance.resource_type, policy.id, decode_firewall_policy(policy))

    async def update(
        self,
        session: Session,
        instance: Instance[FirewallPolicyAttributes],
        planned: FirewallPolicyAttributes,
        timeouts: Timeouts,
    ) -> Instance[FirewallPolicyAttributes]:
        client = session.client
        change = ResourceChange(planned, instance.attributes)

        with remote_call("updating firewall policy"):
            policy = await client.update_firewall_policy(
                encode_firewall_policy(change, instance.id)
            )

            if change.has_change("server_group"):
                previous = instance.attributes.server_group if instance.attributes else None
                if previous:
                    logger.info(
                        "Removing firewall policy", policy_id=instance.id, server_group=previous
                    )
                    policy = await client.remove_firewall_policy(instance.id, previous)
                if planned.server_group:
                    logger.info(
                        "Applying firewall policy",
                        policy_id=instance.id,
                        server_group=planned.server_group,
                    )
                    policy = await client.apply_firewall_policy(instance.id, planned.server_group)

        return Instance(instance.resource_type, policy.id, decode_firewall_policy(policy))

    async def delete(
        self, session: Session, instance: Instance[FirewallPolicyAttributes], timeouts: Timeouts
    ) -> Instance[FirewallPolicyAttributes]:
        with remote_call("deleting firewall policy"):
            await session.client.destroy_firewall_policy(instance.id)
        return instance.removed()


class FirewallRuleHandler:
    """Manage rules within a firewall policy."""

    async def create(
        self, session: Session, planned: FirewallRuleAttributes, timeouts: Timeouts
    ) -> Instance[FirewallRuleAttributes]:
        options = encode_firewall_rule(ResourceChange(planned))
        logger.debug("Firewall rule create configuration", **options.payload())

        with remote_call("creating firewall rule"):
            rule = await session.client.create_firewall_rule(options)

        return Instance(FirewallRuleAttributes.resource_type, rule.id, decode_firewall_rule(rule))

    async def read(
        self, session: Session, instance: Instance[FirewallRuleAttributes]
    ) -> Instance[FirewallRuleAttributes]:
        rule = await read_remote(
            "retrieving firewall rule details",
            lambda: session.client.firewall_rule(instance.id),
        )
        if rule is None:
            logger.warning("Firewall rule not found, removing from state", rule_id=instance.id)
            return instance.removed()
        return Instance(instance.resource_type, rule.id, decode_firewall_rule(rule))

    async def update(
        self,
        session: Session,
        instance: Instance[FirewallRuleAttributes],
        planned: FirewallRuleAttributes,
        timeouts: Timeouts,
    ) -> Instance[FirewallRuleAttributes]:
        change = ResourceChange(planned, instance.attributes)
        require_unchanged(change, ("firewall_policy",), "firewall rule")

        with remote_call("updating firewall rule"):
            rule = await session.client.update_firewall_rule(
                encode_firewall_rule(change, instance.id)
            )

        return Instance(instance.resource_type, rule.id, decode_firewall_rule(rule))

    async def delete(
        self, session: Session, instance: Instance[FirewallRuleAttributes], timeouts: Timeouts
    ) -> Instance[FirewallRuleAttributes]:
        with remote_call("deleting firewall rule"):
            await session.client.destroy_firewall_rule(instance.id)
        return instance.removed()
