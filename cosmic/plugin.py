"""Base class for plugins driven by an Environment."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cosmic.environment import Environment, Notification


class PluginError(Exception):
    """Base class for errors raised by plugins."""


class MissingArgument(PluginError):
    """Raised when a required operation parameter is absent."""

    def __init__(self, argument: str):
        self.argument = argument
        super().__init__(argument)

    def __str__(self) -> str:
        return f"No :{self.argument} argument given"


def require(params: Mapping[str, Any], *names: str) -> None:
    """Raise MissingArgument for the first of names absent from params.

    None and empty strings count as absent.
    """
    for name in names:
        value = params.get(name)
        if value is None or value == "":
            raise MissingArgument(name)


class Plugin:
    """A named plugin instance bound to an environment."""

    #: Tag added to every notification this plugin emits
    kind: str = "plugin"

    def __init__(self, environment: Environment, name: str):
        self.name = str(name)
        self.environment = environment

    def notify(self, message: str, tags: Iterable[str] = ()) -> Notification:
        """Send a notification prefixed with the instance name."""
        return self.environment.notify(f"[{self.name}] {message}", tags)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
