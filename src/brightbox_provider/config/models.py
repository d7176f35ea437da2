"""Configuration models for the provider using Pydantic."""

from enum import Enum

from pydantic import BaseModel, Field, SecretStr

from brightbox_provider.core.reconciler import DEFAULT_TIMEOUT

DEFAULT_API_URL = "https://api.gb1.brightbox.com"
DEFAULT_ORBIT_URL = "https://orbit.brightbox.com/v1/"

# OAuth applications have ids like app-12345; API clients use cli-12345
APP_PREFIX = "app-"


class CredentialMode(str, Enum):
    """How the provider authenticates against the API."""

    API_CLIENT = "api-client"
    USER = "user"


class ProviderSettings(BaseModel):
    """Credentials and endpoints used to build a provider session."""

    model_config = {"frozen": True, "extra": "forbid"}

    apiclient: str = Field("", description="API Client or OAuth Application ID")
    apisecret: SecretStr = Field(
        SecretStr(""), description="API Client or OAuth Application Secret"
    )
    username: str = Field("", description="User name for OAuth Application logins")
    password: SecretStr = Field(SecretStr(""), description="Password for the user name")
    account: str = Field("", description="Account to operate on")
    apiurl: str = Field(DEFAULT_API_URL, description="API URL for the selected region")
    orbit_url: str = Field(DEFAULT_ORBIT_URL, description="Orbit URL for the selected region")


class Timeouts(BaseModel):
    """Per-operation timeouts in seconds for a resource."""

    model_config = {"extra": "forbid"}

    create: float = Field(DEFAULT_TIMEOUT, gt=0)
    update: float = Field(DEFAULT_TIMEOUT, gt=0)
    delete: float = Field(DEFAULT_TIMEOUT, gt=0)
