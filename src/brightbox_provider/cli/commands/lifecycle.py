"""Create, read, update, delete and import command implementations."""

from brightbox_provider.cli.state import load_resource_config, load_state, write_state
from brightbox_provider.config.loader import load_settings
from brightbox_provider.core.errors import IncompleteCreateError
from brightbox_provider.core.logging import get_logger
from brightbox_provider.provider.dispatch import (
    create_resource,
    delete_resource,
    import_resource,
    read_resource,
    update_resource,
)
from brightbox_provider.provider.registry import ResourceRegistry, build_registry
from brightbox_provider.provider.session import Session, configure

logger = get_logger(__name__)


async def _open_session(settings_file: str, account: str) -> Session:
    settings = load_settings(settings_file, overrides={"account": account})
    return await configure(settings)


def _check_config(registry: ResourceRegistry, type_name: str, config: dict) -> None:
    # Reject bad attributes before any call to the API
    registry.get(type_name).parse_config(config)


async def run_create(
    settings_file: str, account: str, type_name: str, config_file: str, state_file: str
) -> None:
    """Create a resource from a configuration file and record its state.

    Args:
        settings_file: Path to the provider settings file
        account: Account override
        type_name: Resource type name
        config_file: Path to the resource configuration file
        state_file: Where to write the resulting state, stdout if empty
    """
    registry = build_registry()
    config, timeouts = load_resource_config(config_file)
    _check_config(registry, type_name, config)

    session = await _open_session(settings_file, account)
    try:
        instance = await create_resource(registry, session, type_name, config, timeouts)
    except IncompleteCreateError as e:
        logger.warning(
            "Resource created but not ready, recording its id", type=type_name, id=e.instance.id
        )
        write_state(e.instance, state_file, timeouts)
        raise

    logger.info("Resource created", type=type_name, id=instance.id)
    write_state(instance, state_file, timeouts)


async def run_read(settings_file: str, account: str, source: str, state_file: str) -> None:
    """Refresh a resource recorded in a state file."""
    registry = build_registry()
    record = load_state(source)
    registry.get(record.type)

    session = await _open_session(settings_file, account)
    instance = await read_resource(registry, session, record.type, record.id, record.attributes)
    write_state(instance, state_file, record.timeouts)


async def run_update(
    settings_file: str, account: str, source: str, config_file: str, state_file: str
) -> None:
    """Apply a configuration file to a resource recorded in a state file."""
    registry = build_registry()
    record = load_state(source)
    config, timeouts = load_resource_config(config_file)
    _check_config(registry, record.type, config)
    if timeouts is None:
        timeouts = record.timeouts

    session = await _open_session(settings_file, account)
    instance = await update_resource(
        registry, session, record.type, record.id, record.attributes, config, timeouts
    )

    logger.info("Resource updated", type=record.type, id=instance.id)
    write_state(instance, state_file, timeouts)


async def run_delete(settings_file: str, account: str, source: str, state_file: str) -> None:
    """Delete a resource recorded in a state file."""
    registry = build_registry()
    record = load_state(source)
    registry.get(record.type)

    session = await _open_session(settings_file, account)
    instance = await delete_resource(
        registry, session, record.type, record.id, record.attributes, record.timeouts
    )

    logger.info("Resource deleted", type=record.type, id=record.id)
    write_state(instance, state_file, record.timeouts)


async def run_import(
    settings_file: str, account: str, type_name: str, resource_id: str, state_file: str
) -> None:
    """Adopt an existing resource by id and record its state."""
    registry = build_registry()
    registry.get(type_name)

    session = await _open_session(settings_file, account)
    instance = await import_resource(registry, session, type_name, resource_id)
    write_state(instance, state_file)
