"""Provider session construction from settings."""

from collections.abc import Callable
from dataclasses import dataclass

from brightbox_provider.api.client import ApiClient
from brightbox_provider.config.models import APP_PREFIX, CredentialMode, ProviderSettings
from brightbox_provider.core.errors import ConfigurationError
from brightbox_provider.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Session:
    """Authenticated context shared by every resource operation.

    Attributes:
        client: Authenticated API client
        mode: Credential mode the session was built with
        api_url: API URL for the selected region
        orbit_url: Orbit URL for the selected region
        account: Account the session operates on, if any
    """

    client: ApiClient
    mode: CredentialMode
    api_url: str
    orbit_url: str
    account: str = ""


def validate_credentials(settings: ProviderSettings) -> CredentialMode:
    """Work out which credential mode the settings use.

    Args:
        settings: Provider settings

    Returns:
        The credential mode

    Raises:
        ConfigurationError: If the settings satisfy neither mode, or mix them
    """
    if not settings.apiclient:
        raise ConfigurationError("An API client or OAuth application id is required")
    if not settings.apisecret.get_secret_value():
        raise ConfigurationError("A secret is required for the API client or OAuth application")

    has_username = bool(settings.username)
    has_password = bool(settings.password.get_secret_value())

    if settings.apiclient.startswith(APP_PREFIX):
        logger.debug("Detected OAuth application, validating user details")
        if not has_username or not has_password:
            raise ConfigurationError(
                "User credentials are missing. Please supply a username and password"
            )
        if not settings.account:
            raise ConfigurationError("Must specify account with user credentials")
        return CredentialMode.USER

    logger.debug("Detected API client")
    if has_username or has_password:
        raise ConfigurationError("User credentials should be blank with an API client")
    return CredentialMode.API_CLIENT


async def configure(
    settings: ProviderSettings,
    client_factory: Callable[..., ApiClient] = ApiClient,
) -> Session:
    """Validate settings and exchange credentials for a session.

    Args:
        settings: Provider settings
        client_factory: Builds the API client from ``(api_url, account)``

    Returns:
        Authenticated session

    Raises:
        ConfigurationError: If the credential settings are invalid
        AuthenticationError: If the API rejects the credentials
    """
    mode = validate_credentials(settings)

    client = client_factory(settings.apiurl, settings.account)

    if mode is CredentialMode.USER:
        token = await client.authenticate(
            settings.apiclient,
            settings.apisecret.get_secret_value(),
            username=settings.username,
            password=settings.password.get_secret_value(),
        )
    else:
        token = await client.authenticate(
            settings.apiclient,
            settings.apisecret.get_secret_value(),
        )

    logger.info(
        "Authenticated",
        mode=mode.value,
        client=settings.apiclient,
        account=settings.account or "-",
    )

    return Session(
        client=client.with_token(token),
        mode=mode,
        api_url=settings.apiurl,
        orbit_url=settings.orbit_url,
        account=settings.account,
    )
