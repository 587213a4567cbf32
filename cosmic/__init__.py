"""Cosmic: SSH command execution and file transfer for automation scripts."""

__version__ = "0.1.0"

from cosmic.environment import Environment, Notification  # noqa: E402
from cosmic.plugin import MissingArgument, Plugin, PluginError  # noqa: E402
from cosmic.ssh import SSH, AuthOptions  # noqa: E402

__all__ = [
    "SSH",
    "AuthOptions",
    "Environment",
    "MissingArgument",
    "Notification",
    "Plugin",
    "PluginError",
    "__version__",
]
