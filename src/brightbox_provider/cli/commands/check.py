"""Check command implementation."""

import typer

from brightbox_provider.config.loader import load_settings
from brightbox_provider.core.logging import get_logger
from brightbox_provider.provider.session import configure

logger = get_logger(__name__)


async def run_check(settings_file: str, account: str = "") -> None:
    """Validate the provider settings and authenticate against the API.

    Args:
        settings_file: Path to the provider settings file
        account: Account override
    """
    settings = load_settings(settings_file, overrides={"account": account})
    logger.debug("Settings loaded", apiurl=settings.apiurl, account=settings.account or "-")

    session = await configure(settings)

    typer.echo(f"Authenticated with {session.mode.value} credentials against {session.api_url}")
