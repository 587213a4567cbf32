"""
YAML configuration loading.

Loads the public configuration file (e.g. cosmic.yaml) and an optional
private sibling (cosmic_private.yaml) holding secrets such as passwords
or key material, merging them into a single mapping. Plugin sections
live under the top-level ``plugins`` key, one per plugin instance name:

    plugins:
      ssh:
        auth:
          username: deploy
          keys: ~/.ssh/deploy_ed25519
      ssh_legacy:
        auth:
          credentials: keyring
          service: legacy-hosts

Key functions:
- load_config(path) -> dict: Load merged configuration
- get_plugin_config(config, name) -> dict: Copy of one plugin section
"""

import copy
import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when a configuration file cannot be used."""


def private_path_for(path: Path) -> Path:
    """Return the private sibling of a configuration file."""
    return path.with_name(f"{path.stem}_private{path.suffix}")


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found."""
    if not path.exists():
        return {}
    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Top level of {path} must be a mapping")
    return data


def _deep_merge(base: dict, updates: dict) -> dict:
    """Deep merge updates into base dict."""
    result = base.copy()
    for key, value in updates.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(path: Path | str) -> dict[str, Any]:
    """Load a configuration file merged with its private sibling.

    A missing file is not an error: the result is an empty configuration,
    which leaves every plugin on its defaults.

    Args:
        path: Path to the public configuration file

    Returns:
        Merged configuration (private wins on conflict)

    Raises:
        ConfigError: If either file is malformed
    """
    path = Path(path).expanduser()
    public_data = _load_yaml(path)
    private_data = _load_yaml(private_path_for(path))
    if not public_data and not private_data:
        logger.debug("No configuration found at %s", path)

    merged = _deep_merge(public_data, private_data)
    plugins = merged.get("plugins")
    if plugins is not None and not isinstance(plugins, dict):
        raise ConfigError(f"'plugins' section in {path} must be a mapping")
    return merged


def get_plugin_config(config: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a copy of the configuration section for a plugin instance.

    The returned mapping always has an ``auth`` mapping so callers can
    populate it without checking.

    Examples:
        >>> get_plugin_config({}, "ssh")
        {'auth': {}}
    """
    section = (config.get("plugins") or {}).get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Configuration for plugin '{name}' must be a mapping")
    section = copy.deepcopy(section)
    if not isinstance(section.get("auth"), dict):
        section["auth"] = {}
    return section
