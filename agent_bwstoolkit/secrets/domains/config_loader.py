"""Configuration loader for agent-bwstoolkit."""
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .preferences import config_dir, get_preference

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.bitwarden.com"
DEFAULT_IDENTITY_URL = "https://identity.bitwarden.com"

ACCESS_TOKEN_ENV = "BWS_ACCESS_TOKEN"
ORGANIZATION_ID_ENV = "BWS_ORGANIZATION_ID"


class ConfigError(Exception):
    """Configuration error exception."""
    pass


@dataclass(frozen=True)
class BwsSettings:
    """Everything needed to talk to one Bitwarden organization.

    Built once at CLI startup and passed down explicitly.
    """
    access_token: str
    organization_id: str
    api_url: str = DEFAULT_API_URL
    identity_url: str = DEFAULT_IDENTITY_URL
    state_dir: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"BwsSettings(access_token='***', organization_id={self.organization_id!r}, "
            f"api_url={self.api_url!r}, identity_url={self.identity_url!r}, "
            f"state_dir={self.state_dir!r})"
        )


def default_config_path() -> Path:
    return config_dir() / "config.yml"


def _get_config_path() -> str:
    """
    Get config file path.

    Priority order:
    1. User preference (stored in preferences.json)
    2. Default location: ~/.config/agent-bwstoolkit/config.yml

    Returns:
        Absolute path to config file

    Raises:
        FileNotFoundError: If config file doesn't exist in any location
    """
    config_path_pref = get_preference("config_path")
    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            logger.info(f"Using config from preference: {config_path}")
            return str(config_path)
        logger.warning(f"Config path from preference doesn't exist: {config_path}")

    default_config = default_config_path()
    if default_config.exists():
        logger.info(f"Using default config location: {default_config}")
        return str(default_config)

    raise FileNotFoundError(
        "Configuration file not found. Either export the environment variables:\n"
        f"   {ACCESS_TOKEN_ENV}, {ORGANIZATION_ID_ENV}\n\n"
        "or set up a config file:\n\n"
        "1. Use the default location:\n"
        f"   mkdir -p {default_config.parent}\n"
        f"   cp /path/to/your/config.yml {default_config}\n\n"
        "2. Point to an existing config file:\n"
        "   bwstoolkit config set-path /path/to/your/config.yml\n"
    )


def load_config() -> Dict[str, Any]:
    """
    Load and validate configuration from YAML file.

    Returns:
        Dict containing configuration with keys:
        - authentication: dict with type and access_token_path
        - bitwarden: dict with organization_id and optional api_url,
          identity_url and state_dir

    Raises:
        FileNotFoundError: If no config file exists
        ConfigError: If config file is invalid or the token file doesn't exist
    """
    # Resolved on every call so preference changes apply immediately
    config_path = _get_config_path()

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    if not config:
        raise ConfigError(f"Config file at {config_path} is empty")

    if not isinstance(config, dict):
        raise ConfigError(f"Config file at {config_path} must contain a mapping")

    if 'authentication' not in config:
        raise ConfigError(
            f"Missing 'authentication' section in config at {config_path}\n"
            f"Required format:\n"
            f"authentication:\n"
            f"  type: access_token\n"
            f"  access_token_path: /path/to/access-token"
        )

    auth = config['authentication'] or {}

    if 'type' not in auth:
        raise ConfigError("Missing 'authentication.type' in config")

    if auth['type'] != 'access_token':
        raise ConfigError(
            f"Unsupported authentication type: {auth['type']}\n"
            f"Only 'access_token' (machine account) is supported."
        )

    if 'access_token_path' not in auth:
        raise ConfigError(
            "Missing 'authentication.access_token_path' in config\n"
            "Please specify the path to a file holding your machine account access token."
        )

    token_path = os.path.expanduser(str(auth['access_token_path']))

    if not os.path.exists(token_path):
        raise ConfigError(
            f"Access token file not found at: {token_path}\n"
            f"Please ensure the file exists or update the path in {config_path}"
        )

    if not os.path.isfile(token_path):
        raise ConfigError(f"Access token path is not a file: {token_path}")

    if 'bitwarden' not in config or not config['bitwarden']:
        raise ConfigError(
            f"Missing 'bitwarden' section in config at {config_path}\n"
            f"Required format:\n"
            f"bitwarden:\n"
            f"  organization_id: your-organization-uuid"
        )

    if 'organization_id' not in config['bitwarden']:
        raise ConfigError("Missing 'bitwarden.organization_id' in config")

    logger.info(f"Configuration loaded successfully from {config_path}")
    logger.debug(f"Using access token file: {token_path}")
    logger.debug(f"Using organization ID: {config['bitwarden']['organization_id']}")

    return config


def _read_token(token_path: str) -> str:
    try:
        with open(os.path.expanduser(token_path), 'r') as f:
            token = f.read().strip()
    except OSError as e:
        raise ConfigError(f"Failed to read access token file {token_path}: {e}")
    if not token:
        raise ConfigError(f"Access token file is empty: {token_path}")
    return token


def load_settings() -> BwsSettings:
    """
    Resolve settings from the environment and the config file.

    BWS_ACCESS_TOKEN and BWS_ORGANIZATION_ID override the config file. When
    both are set, no config file is needed.

    Raises:
        ConfigError: If settings are incomplete or the config file is invalid
    """
    env_token = os.getenv(ACCESS_TOKEN_ENV)
    env_org_id = os.getenv(ORGANIZATION_ID_ENV)

    if env_token and env_org_id:
        logger.debug(f"Using {ACCESS_TOKEN_ENV} and {ORGANIZATION_ID_ENV} from environment")
        return BwsSettings(access_token=env_token, organization_id=env_org_id)

    try:
        config = load_config()
    except FileNotFoundError as e:
        missing = [name for name, value in ((ACCESS_TOKEN_ENV, env_token), (ORGANIZATION_ID_ENV, env_org_id)) if not value]
        raise ConfigError(f"{', '.join(missing)} not set and no config file found.\n\n{e}") from e

    bitwarden = config['bitwarden']
    access_token = env_token or _read_token(str(config['authentication']['access_token_path']))
    organization_id = env_org_id or str(bitwarden['organization_id'])

    return BwsSettings(
        access_token=access_token,
        organization_id=organization_id,
        api_url=bitwarden.get('api_url') or DEFAULT_API_URL,
        identity_url=bitwarden.get('identity_url') or DEFAULT_IDENTITY_URL,
        state_dir=bitwarden.get('state_dir'),
    )
