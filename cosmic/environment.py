"""
Host environment shared by plugins.

The environment owns everything a plugin needs from its surroundings:
the loaded configuration, credential resolution, the dry-run flag and
the notification bus. Plugins never read process-wide state directly;
they ask the environment they were constructed with.
"""

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cosmic import settings
from cosmic.config import get_plugin_config, load_config
from cosmic.credentials import CredentialManager

logger = logging.getLogger(__name__)

# Tag → log level for notifications; first matching tag wins.
_TAG_LEVELS: tuple[tuple[str, int], ...] = (
    ("error", logging.ERROR),
    ("warn", logging.WARNING),
    ("trace", logging.DEBUG),
    ("dryrun", logging.INFO),
)

_KEY_FIELDS = ("keys", "key_data")


@dataclass(frozen=True)
class Notification:
    """A message emitted by a plugin, tagged for filtering."""

    message: str
    tags: tuple[str, ...]
    timestamp: float = field(default_factory=time.time)

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags


Subscriber = Callable[[Notification], None]


def _as_list(value: Any) -> list[str] | None:
    """Normalize a scalar-or-list config value to a list of strings."""
    if value is None or value == "" or value == []:
        return None
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


class Environment:
    """Configuration, credentials, dry-run state and notifications.

    Args:
        config: Already loaded configuration; loaded from config_path if None
        config_path: YAML configuration file (defaults to settings)
        dry_run: Initial dry-run state (defaults to settings)
        credentials: Credential service used for ``credentials: keyring``
    """

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        config_path: Path | str | None = None,
        dry_run: bool | None = None,
        credentials: CredentialManager | None = None,
    ) -> None:
        if config is None:
            config = load_config(config_path or settings.get_config_path())
        self.config = config
        self.dry_run = settings.get_dry_run() if dry_run is None else dry_run
        self._credentials = credentials
        self._subscribers: list[Subscriber] = []
        self.notifications: list[Notification] = []

    # ── configuration ──────────────────────────────────────────────────

    def get_plugin_config(self, name: str) -> dict[str, Any]:
        """Return a private copy of the configuration for a plugin instance."""
        return get_plugin_config(self.config, name)

    @property
    def credentials(self) -> CredentialManager:
        if self._credentials is None:
            self._credentials = CredentialManager()
        return self._credentials

    def resolve_service_auth(self, service_name: str, config: dict[str, Any]) -> None:
        """Populate ``config["auth"]`` for a service in place.

        When the auth section asks for ``credentials: keyring`` the
        credential service is queried under ``auth.service`` (default:
        service_name); values already present in the configuration win
        over looked-up ones. Key paths are expanded and scalar key
        settings normalized to lists.
        """
        auth = config.setdefault("auth", {})
        source = auth.pop("credentials", None)
        if source is not None:
            if source != "keyring":
                raise ValueError(
                    f"Unknown credential source '{source}' for {service_name}"
                )
            service = auth.pop("service", None) or service_name
            for key, value in self.credentials.get_auth(service).items():
                if not auth.get(key):
                    auth[key] = value
            logger.debug("Resolved %s credentials from service %s", service_name, service)

        if keys := _as_list(auth.get("keys")):
            auth["keys"] = [str(Path(k).expanduser()) for k in keys]
        if key_data := _as_list(auth.get("key_data")):
            auth["key_data"] = key_data
        for key in _KEY_FIELDS:
            if not auth.get(key):
                auth.pop(key, None)

    # ── dry-run ────────────────────────────────────────────────────────

    def in_dry_run_mode(self) -> bool:
        return self.dry_run

    # ── notifications ──────────────────────────────────────────────────

    def subscribe(self, callback: Subscriber) -> None:
        """Register a callback invoked for every notification."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        self._subscribers.remove(callback)

    def notify(self, message: str, tags: Iterable[str] = ()) -> Notification:
        """Record, log and dispatch a notification."""
        notification = Notification(message=message, tags=tuple(tags))
        self.notifications.append(notification)

        level = logging.INFO
        for tag, tag_level in _TAG_LEVELS:
            if notification.has_tag(tag):
                level = tag_level
                break
        logger.log(level, "%s", message)

        for callback in list(self._subscribers):
            try:
                callback(notification)
            except Exception:
                logger.exception("Notification subscriber %r failed", callback)
        return notification
