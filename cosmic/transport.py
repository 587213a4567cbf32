"""
SSH transport sessions built on paramiko.

A session wraps one connected ``paramiko.SSHClient`` and performs one
action on it: run a command, upload a file or download a file. Sessions
are only handed out by ``open_session()``, a context manager that closes
the connection on every exit path.

Host names are resolved through ``~/.ssh/config`` the way the OpenSSH
client does it, so aliases, ports, users and identity files configured
there keep working.

Errors raised by paramiko (``AuthenticationException``,
``BadHostKeyException``, ``SSHException``), by the socket layer or by
local file I/O propagate unchanged.
"""

from __future__ import annotations

import io
import logging
import os
import posixpath
import stat
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import paramiko

from cosmic import settings

if TYPE_CHECKING:
    from cosmic.ssh import AuthOptions

logger = logging.getLogger(__name__)

# (chunk, file_name, bytes_transferred_so_far, total_bytes)
ProgressCallback = Callable[[bytes, str, int, int], None]

SSH_CONFIG_PATH = Path.home() / ".ssh" / "config"

_HOST_KEY_POLICIES: dict[str, type[paramiko.MissingHostKeyPolicy]] = {
    "auto-add": paramiko.AutoAddPolicy,
    "warning": paramiko.WarningPolicy,
    "reject": paramiko.RejectPolicy,
}

# Tried in order when parsing in-memory private keys
_KEY_CLASSES: tuple[type[paramiko.PKey], ...] = (
    paramiko.Ed25519Key,
    paramiko.ECDSAKey,
    paramiko.RSAKey,
)


def load_private_key(key_data: str) -> paramiko.PKey:
    """Parse an unencrypted private key held in memory.

    Raises:
        paramiko.SSHException: If no supported key type can read the text
    """
    for key_class in _KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(key_data))
        except paramiko.SSHException:
            continue
    raise paramiko.SSHException("Unsupported or encrypted private key data")


def lookup_ssh_config(host: str, path: Path | None = None) -> dict[str, Any]:
    """Return the OpenSSH client configuration for a host alias.

    Returns an empty dict when no config file exists.
    """
    path = path or SSH_CONFIG_PATH
    if not path.is_file():
        return {}
    return paramiko.SSHConfig.from_path(str(path)).lookup(host)


def connect_kwargs(
    host: str,
    user: str | None,
    auth_options: AuthOptions,
    ssh_config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build keyword arguments for ``paramiko.SSHClient.connect``.

    Key-based options disable the agent and default key files, so only
    the configured keys are offered. Password options leave the agent
    and default keys enabled. Empty options rely on the agent, default
    key files and any IdentityFile from the SSH config.
    """
    ssh_config = ssh_config or {}
    kwargs: dict[str, Any] = {
        "hostname": ssh_config.get("hostname", host),
        "username": user or ssh_config.get("user"),
    }
    if "port" in ssh_config:
        kwargs["port"] = int(ssh_config["port"])

    if auth_options.keys_only:
        kwargs["allow_agent"] = False
        kwargs["look_for_keys"] = False
        if auth_options.keys:
            kwargs["key_filename"] = list(auth_options.keys)
        if auth_options.key_data:
            if len(auth_options.key_data) > 1:
                logger.warning(
                    "%d in-memory keys configured for %s; only the first is offered",
                    len(auth_options.key_data),
                    host,
                )
            kwargs["pkey"] = load_private_key(auth_options.key_data[0])
    elif auth_options.password is not None:
        kwargs["password"] = auth_options.password
    elif identity_files := ssh_config.get("identityfile"):
        kwargs["key_filename"] = [os.path.expanduser(f) for f in identity_files]
    return kwargs


def _host_key_policy(name: str) -> paramiko.MissingHostKeyPolicy:
    return _HOST_KEY_POLICIES[name]()


def _remote_target(sftp: paramiko.SFTPClient, remote: str, source: str) -> str:
    """Place the file inside ``remote`` when it names an existing directory."""
    try:
        attrs = sftp.stat(remote)
    except FileNotFoundError:
        return remote
    if attrs.st_mode is not None and stat.S_ISDIR(attrs.st_mode):
        return posixpath.join(remote, os.path.basename(source))
    return remote


class Session:
    """One connected SSH client used for a single action."""

    def __init__(self, client: paramiko.SSHClient, chunk_size: int | None = None):
        self._client = client
        self.chunk_size = chunk_size or settings.get_transfer_chunk_size()
        self.exit_status: int | None = None

    def execute(self, cmd: str) -> str:
        """Run a command and return its stdout and stderr combined.

        A non-zero exit status is not an error; it is kept on
        ``exit_status`` and logged.
        """
        transport = self._client.get_transport()
        if transport is None:
            raise paramiko.SSHException("Session is not connected")
        channel = transport.open_session()
        try:
            channel.set_combine_stderr(True)
            channel.exec_command(cmd)
            chunks = []
            while data := channel.recv(self.chunk_size):
                chunks.append(data)
            self.exit_status = channel.recv_exit_status()
        finally:
            channel.close()

        if self.exit_status:
            logger.debug("Command %r exited with status %d", cmd, self.exit_status)
        return b"".join(chunks).decode("utf-8", errors="replace")

    def upload_file(
        self,
        local: str,
        remote: str,
        progress: ProgressCallback | None = None,
    ) -> None:
        """Copy a local file to the remote host, reporting each chunk sent.

        An existing remote directory receives the file under its local name.
        """
        total = os.path.getsize(local)
        sent = 0
        with self._client.open_sftp() as sftp, open(local, "rb") as src:
            remote = _remote_target(sftp, remote, local)
            with sftp.open(remote, "wb") as dst:
                dst.set_pipelined(True)
                while chunk := src.read(self.chunk_size):
                    dst.write(chunk)
                    sent += len(chunk)
                    if progress is not None:
                        progress(chunk, local, sent, total)
        logger.debug("Uploaded %d bytes from %s to %s", sent, local, remote)

    def download_file(
        self,
        remote: str,
        local: str,
        progress: ProgressCallback | None = None,
    ) -> None:
        """Copy a remote file to the local host, reporting each chunk received.

        An existing local directory receives the file under its remote name.
        """
        if os.path.isdir(local):
            local = os.path.join(local, posixpath.basename(remote))
        received = 0
        with self._client.open_sftp() as sftp:
            total = sftp.stat(remote).st_size or 0
            with sftp.open(remote, "rb") as src, open(local, "wb") as dst:
                src.prefetch(total)
                while chunk := src.read(self.chunk_size):
                    dst.write(chunk)
                    received += len(chunk)
                    if progress is not None:
                        progress(chunk, remote, received, total)
        logger.debug("Downloaded %d bytes from %s to %s", received, remote, local)


@contextmanager
def open_session(
    host: str,
    user: str | None,
    auth_options: AuthOptions,
) -> Iterator[Session]:
    """Connect to a host and yield a Session; always closes the connection.

    Args:
        host: Host name or ~/.ssh/config alias
        user: Login user; falls back to the SSH config, then paramiko's default
        auth_options: Resolved credentials
    """
    kwargs = connect_kwargs(host, user, auth_options, lookup_ssh_config(host))
    client = paramiko.SSHClient()
    try:
        client.load_system_host_keys()
        client.set_missing_host_key_policy(
            _host_key_policy(settings.get_host_key_policy())
        )
        logger.debug(
            "Connecting to %s as %s", kwargs["hostname"], kwargs["username"] or "<default>"
        )
        client.connect(**kwargs)
        yield Session(client)
    finally:
        client.close()
