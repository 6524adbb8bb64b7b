"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
configuration file (~/.pdcli/config.yaml).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from pdcli.core.services.batch_executor import BatchOptions
from pdcli.domain.errors import ConfigurationError
from pdcli.domain.models.common import Credential
from pdcli.infrastructure.api.transport import DEFAULT_BASE_URL

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".pdcli"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "PDCLI_"
TOKEN_ENV_VARS = ("PDCLI_TOKEN", "PAGERDUTY_TOKEN")

# --- Global Configuration Store (Simple Approach) ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None, force: bool = False) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        force: Reload even if configuration was already loaded.
    """
    global _config, _loaded
    if _loaded and not force:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(yaml_config)
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file (Medium priority)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        # override=False: ENV VARS take precedence
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("Skipping .env file loading (no file found).")

    # 3. Environment Variables (Highest priority) are handled in get_config
    _loaded = True
    logger.debug("Configuration loading process completed.")


def _coerce(value: str) -> Any:
    if value.lower() == 'true':
        return True
    if value.lower() == 'false':
        return False
    try:
        return float(value) if '.' in value else int(value)
    except ValueError:
        return value


def _lookup_nested(key: str) -> Any:
    """Resolves dotted keys ('batch.concurrency') against the nested YAML dict."""
    if key in _config:
        return _config[key]
    node: Any = _config
    for part in key.split('.'):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def env_var_name(key: str) -> str:
    return ENV_PREFIX + key.upper().replace('.', '_')


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable (PDCLI_ + key with dots as underscores)
    3. YAML config
    4. Default value

    Args:
        key: The configuration key, e.g. 'batch.concurrency'
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = env_var_name(key)
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    value = _lookup_nested(key)
    if value is not None:
        return value

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Convenience Functions ---

def get_api_token(override: Optional[str] = None) -> Credential:
    """Returns the API token from the flag, the environment, or the YAML 'auth.token'.

    Raises:
        ConfigurationError: If no token is configured.
    """
    if override:
        return Credential(override)
    for name in TOKEN_ENV_VARS:
        if os.environ.get(name):
            return Credential(os.environ[name])
    token = get_config('auth.token')
    if token:
        return Credential(str(token))
    raise ConfigurationError(
        "No PagerDuty API token configured. Pass --token, set PDCLI_TOKEN, "
        f"or add auth.token to {DEFAULT_CONFIG_FILE}."
    )


def get_api_base_url() -> str:
    return str(get_config('api.base_url', DEFAULT_BASE_URL))


def get_batch_options(**overrides: Any) -> BatchOptions:
    """Builds BatchOptions from 'batch.*' settings; non-None overrides win."""
    defaults = BatchOptions()
    options = BatchOptions(
        concurrency_limit=int(get_config('batch.concurrency', defaults.concurrency_limit)),
        max_attempts=int(get_config('batch.max_attempts', defaults.max_attempts)),
        base_delay=float(get_config('batch.base_delay', defaults.base_delay)),
        backoff_factor=float(get_config('batch.backoff_factor', defaults.backoff_factor)),
        max_delay=float(get_config('batch.max_delay', defaults.max_delay)),
        jitter=float(get_config('batch.jitter', defaults.jitter)),
        max_retry_after=float(get_config('batch.max_retry_after', defaults.max_retry_after)),
        rate_limit=int(get_config('batch.rate_limit', defaults.rate_limit)),
        rate_window_seconds=float(get_config('batch.rate_window_seconds', defaults.rate_window_seconds)),
        request_timeout=float(get_config('batch.request_timeout', defaults.request_timeout)),
    )
    for name, value in overrides.items():
        if value is not None:
            setattr(options, name, value)
    return options


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
