"""Project settings loaded from pyproject.toml [tool.cosmic] section.

Configuration is organized into subsections:
  [tool.cosmic]      — general settings (config file, dry-run default)
  [tool.cosmic.ssh]  — host key policy, transfer chunk size

All settings support environment variable overrides (COSMIC_* prefix).
"""

import importlib.resources
import os
import tomllib
from functools import cache
from pathlib import Path

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "cosmic" / "cosmic.yaml"

HOST_KEY_POLICIES = frozenset({"auto-add", "warning", "reject"})

DEFAULT_CHUNK_SIZE = 32 * 1024


@cache
def _load_pyproject_settings() -> dict:
    """Load settings from pyproject.toml [tool.cosmic] section.

    Returns:
        Dictionary of settings from pyproject.toml, empty dict if not found.
    """
    try:
        # Try package resources first (installed package)
        files = importlib.resources.files("cosmic")
        pyproject_path = files.joinpath("..", "pyproject.toml")

        if not pyproject_path.is_file():  # type: ignore[union-attr]
            # Walk up to find pyproject.toml (for development)
            current = Path(__file__).resolve().parent
            while current != current.parent:
                candidate = current / "pyproject.toml"
                if candidate.exists():
                    pyproject_path = candidate
                    break
                current = current.parent
            else:
                return {}

        content = pyproject_path.read_text()  # type: ignore[union-attr]
        data = tomllib.loads(content)
        return data.get("tool", {}).get("cosmic", {})
    except (OSError, tomllib.TOMLDecodeError):
        return {}


def _get_section(section: str) -> dict:
    """Get a subsection from [tool.cosmic.{section}]."""
    return _load_pyproject_settings().get(section, {})


def _parse_bool(value: str | bool) -> bool:
    """Parse a boolean value from string or bool."""
    if isinstance(value, bool):
        return value
    return value.lower() in ("true", "1", "yes")


# ─── General settings ──────────────────────────────────────────────────────


def get_config_path() -> Path:
    """Get the path of the YAML configuration file.

    Priority: COSMIC_CONFIG env → [tool.cosmic].config → ~/.config/cosmic/cosmic.yaml.
    """
    if env := os.getenv("COSMIC_CONFIG"):
        return Path(env).expanduser()
    if val := _load_pyproject_settings().get("config"):
        return Path(val).expanduser()
    return DEFAULT_CONFIG_PATH


def get_dry_run() -> bool:
    """Get whether environments start in dry-run mode.

    Priority: COSMIC_DRY_RUN env → [tool.cosmic].dry-run → False.
    """
    if env := os.getenv("COSMIC_DRY_RUN"):
        return _parse_bool(env)
    val = _load_pyproject_settings().get("dry-run")
    if val is not None:
        return _parse_bool(val)
    return False


# ─── SSH settings ──────────────────────────────────────────────────────────


def get_host_key_policy() -> str:
    """Get the policy applied to hosts missing from known_hosts.

    Priority: COSMIC_HOST_KEY_POLICY env → [ssh].host-key-policy → "auto-add".

    Raises:
        ValueError: If the configured policy is not one of HOST_KEY_POLICIES.
    """
    policy = os.getenv("COSMIC_HOST_KEY_POLICY") or _get_section("ssh").get(
        "host-key-policy", "auto-add"
    )
    policy = policy.strip().lower()
    if policy not in HOST_KEY_POLICIES:
        raise ValueError(
            f"Unknown host key policy '{policy}'. "
            f"Valid policies: {', '.join(sorted(HOST_KEY_POLICIES))}"
        )
    return policy


def get_transfer_chunk_size() -> int:
    """Get the block size used when streaming file transfers.

    Priority: COSMIC_TRANSFER_CHUNK_SIZE env → [ssh].chunk-size → 32768.
    """
    if env := os.getenv("COSMIC_TRANSFER_CHUNK_SIZE"):
        return int(env)
    if (val := _get_section("ssh").get("chunk-size")) is not None:
        return int(val)
    return DEFAULT_CHUNK_SIZE
