"""Provider settings loading and resolution."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from brightbox_provider.config.models import ProviderSettings
from brightbox_provider.core.errors import ConfigurationError
from brightbox_provider.core.logging import get_logger

logger = get_logger(__name__)

# Environment variables consulted for settings left unset
ENV_DEFAULTS = {
    "apiclient": "BRIGHTBOX_CLIENT",
    "apisecret": "BRIGHTBOX_CLIENT_SECRET",
    "username": "BRIGHTBOX_USER_NAME",
    "password": "BRIGHTBOX_PASSWORD",
    "account": "BRIGHTBOX_ACCOUNT",
    "apiurl": "BRIGHTBOX_API_URL",
    "orbit_url": "BRIGHTBOX_ORBIT_URL",
}


def load_settings(
    settings_file: str = "",
    overrides: dict[str, str] | None = None,
) -> ProviderSettings:
    """Resolve provider settings.

    Explicit overrides win over the settings file, which wins over the
    environment. Anything still unset takes the model default.

    Args:
        settings_file: Path to a YAML settings file (optional)
        overrides: Explicit setting values, e.g. from CLI flags (optional)

    Returns:
        Validated provider settings

    Raises:
        ConfigurationError: If the file or the resulting settings are invalid
    """
    data: dict[str, Any] = {}

    if settings_file:
        data.update(load_yaml_file(Path(settings_file)))

    if overrides:
        data.update({k: v for k, v in overrides.items() if v})

    env = get_env_settings()
    for key, value in env.items():
        if not data.get(key):
            data[key] = value

    try:
        return ProviderSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid provider settings: {e}") from e


def get_env_settings() -> dict[str, str]:
    """Get settings from environment variables.

    Returns:
        Mapping of setting name to value for every variable that is set
    """
    settings = {}
    for key, variable in ENV_DEFAULTS.items():
        value = os.getenv(variable, "")
        if value:
            settings[key] = value
    return settings


def load_yaml_file(path: Path, description: str = "Settings file") -> dict[str, Any]:
    """Load a YAML mapping from a file.

    Args:
        path: Path to the file
        description: What the file holds, for error messages

    Returns:
        Raw mapping, empty for an empty file

    Raises:
        ConfigurationError: If the file is missing, invalid YAML or not a mapping
    """
    if not path.exists():
        raise ConfigurationError(f"{description} not found: {path}")

    logger.info("Loading file", path=str(path))

    try:
        with path.open("r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {description.lower()}: {e}") from e

    # Treat empty files as empty mappings
    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"{description} must contain a YAML mapping")

    return data
