"""
SSH plugin: remote commands and file transfers for scripts.

Typical use:

    from cosmic.environment import Environment
    from cosmic.ssh import SSH

    ssh = SSH(Environment())
    print(ssh.exec(host="build01", cmd="uname -a"))

    def show(chunk, name, sent, total):
        print(f"\\r{name}: {sent}/{total}", end="")

    ssh.upload({"host": "build01", "local": "dist/app.tar.gz"}, show)

By default the plugin relies on the local ssh agent and default key
files, so it needs no configuration section. A section is only needed
to pin specific keys (``auth.keys`` / ``auth.key_data``), a password,
a username, or to fetch any of these from the credential service
(``auth.credentials: keyring``).

In dry-run mode nothing connects to the remote hosts; each operation
only emits a notification tagged ``ssh`` and ``dryrun``. Live
operations emit a ``trace`` notification once they succeed.
"""

from __future__ import annotations

import getpass
import logging
import os
from collections.abc import Callable, Iterable, Mapping
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from cosmic.plugin import Plugin, require
from cosmic.transport import (
    ProgressCallback,
    Session,
    lookup_ssh_config,
    open_session,
)

if TYPE_CHECKING:
    from cosmic.environment import Environment

logger = logging.getLogger(__name__)

SessionFactory = Callable[
    [str, "str | None", "AuthOptions"], AbstractContextManager[Session]
]


def _as_tuple(value: str | Iterable[str] | None) -> tuple[str, ...] | None:
    """Normalize a scalar-or-list auth value; a bare string is one entry."""
    if not value:
        return None
    if isinstance(value, str):
        return (value,)
    return tuple(value)


class AuthOptions(BaseModel):
    """Credentials offered when opening a session.

    Exactly one shape is populated: key-based (``keys`` and/or
    ``key_data`` with ``keys_only``), password-based, or empty.
    """

    model_config = ConfigDict(frozen=True)

    keys: tuple[str, ...] | None = None
    key_data: tuple[str, ...] | None = Field(default=None, repr=False)
    keys_only: bool = False
    password: str | None = Field(default=None, repr=False)

    @classmethod
    def from_auth(cls, auth: Mapping[str, Any]) -> AuthOptions:
        """Build options from a resolved auth section.

        Any key material wins over a password, which is then ignored.
        """
        keys = auth.get("keys")
        key_data = auth.get("key_data")
        if keys or key_data:
            return cls(
                keys=_as_tuple(keys),
                key_data=_as_tuple(key_data),
                keys_only=True,
            )
        if password := auth.get("password"):
            return cls(password=password)
        return cls()

    @property
    def kind(self) -> Literal["key", "password", "none"]:
        if self.keys_only:
            return "key"
        if self.password is not None:
            return "password"
        return "none"

    @property
    def is_empty(self) -> bool:
        return self.kind == "none"


class _Request(BaseModel):
    host: str
    user: str | None = None

    #: Parameters that must be present and non-empty
    required: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def from_params(cls, params: Mapping[str, Any]):
        require(params, *cls.required)
        return cls.model_validate(dict(params))


class ExecRequest(_Request):
    """Parameters of ``SSH.exec``."""

    required = ("host", "cmd")

    cmd: str


class _TransferRequest(_Request):
    local: str | None = None
    remote: str | None = None

    @field_validator("local", "remote", mode="before")
    @classmethod
    def coerce_path(cls, value: Any) -> Any:
        if isinstance(value, os.PathLike):
            return os.fspath(value)
        return value


class UploadRequest(_TransferRequest):
    """Parameters of ``SSH.upload``; ``remote`` defaults to ``local``."""

    required = ("host", "local")

    @model_validator(mode="after")
    def default_remote(self) -> UploadRequest:
        if not self.remote:
            self.remote = self.local
        return self


class DownloadRequest(_TransferRequest):
    """Parameters of ``SSH.download``; ``local`` defaults to ``remote``."""

    required = ("host", "remote")

    @model_validator(mode="after")
    def default_local(self) -> DownloadRequest:
        if not self.local:
            self.local = self.remote
        return self


def _merge_params(params: Mapping[str, Any] | None, kwargs: dict[str, Any]) -> dict:
    merged = dict(params or {})
    merged.update(kwargs)
    return merged


class SSH(Plugin):
    """Run commands on and copy files to and from remote hosts.

    Args:
        environment: The host environment
        name: Plugin instance name, used for the config section and as
            the credential service name
        session_factory: Replacement for ``cosmic.transport.open_session``
    """

    kind = "ssh"

    def __init__(
        self,
        environment: Environment,
        name: str = "ssh",
        *,
        session_factory: SessionFactory | None = None,
    ):
        super().__init__(environment, name)
        self.config = environment.get_plugin_config(self.name)
        environment.resolve_service_auth(self.name, self.config)
        self.auth_options = AuthOptions.from_auth(self.config["auth"])
        self._open_session = session_factory or open_session
        logger.debug("%r using %s authentication", self, self.auth_options.kind)

    def _resolve_user(self, host: str, user: str | None) -> tuple[str | None, str]:
        """Return the login user passed to the transport and the name reported.

        Without an explicit or configured user the transport gets None, so
        a ``User`` from ~/.ssh/config still applies there. The reported
        name follows the same fallback, ending at the local user.
        """
        user = user or self.config["auth"].get("username")
        shown = user or lookup_ssh_config(host).get("user") or getpass.getuser()
        return user, shown

    def _dry_run(self) -> bool:
        return self.environment.in_dry_run_mode()

    def exec(
        self, params: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> str | None:
        """Execute a command on a remote host.

        Args:
            params: Mapping with ``host``, ``cmd`` and optional ``user``;
                keyword arguments are merged over it

        Returns:
            The command output (stdout and stderr combined), or None in
            dry-run mode

        Raises:
            MissingArgument: If ``host`` or ``cmd`` is absent
        """
        request = ExecRequest.from_params(_merge_params(params, kwargs))
        user, shown = self._resolve_user(request.host, request.user)
        what = f"command '{request.cmd}' as user {shown} on host {request.host}"

        if self._dry_run():
            self.notify(f"Would execute {what}", tags=(self.kind, "dryrun"))
            return None

        with self._open_session(request.host, user, self.auth_options) as session:
            response = session.execute(request.cmd)
        self.notify(f"Executed {what}", tags=(self.kind, "trace"))
        return response

    def upload(
        self,
        params: Mapping[str, Any] | None = None,
        progress: ProgressCallback | None = None,
        **kwargs: Any,
    ) -> None:
        """Transfer a local file to a remote host.

        Args:
            params: Mapping with ``host``, ``local`` and optional ``user``
                and ``remote`` (defaults to the local path)
            progress: Called as ``progress(chunk, file_name, sent, total)``
                for every chunk sent

        Raises:
            MissingArgument: If ``host`` or ``local`` is absent
        """
        request = UploadRequest.from_params(_merge_params(params, kwargs))
        user, shown = self._resolve_user(request.host, request.user)
        what = (
            f"local file {request.local} as user {shown} "
            f"to host {request.host} at {request.remote}"
        )

        if self._dry_run():
            self.notify(f"Would upload {what}", tags=(self.kind, "dryrun"))
            return

        with self._open_session(request.host, user, self.auth_options) as session:
            session.upload_file(request.local, request.remote, progress)
        self.notify(f"Uploaded {what}", tags=(self.kind, "trace"))

    def download(
        self,
        params: Mapping[str, Any] | None = None,
        progress: ProgressCallback | None = None,
        **kwargs: Any,
    ) -> None:
        """Transfer a file from a remote host to the local host.

        Args:
            params: Mapping with ``host``, ``remote`` and optional ``user``
                and ``local`` (defaults to the remote path)
            progress: Called as ``progress(chunk, file_name, received, total)``
                for every chunk received

        Raises:
            MissingArgument: If ``host`` or ``remote`` is absent
        """
        request = DownloadRequest.from_params(_merge_params(params, kwargs))
        user, shown = self._resolve_user(request.host, request.user)
        what = (
            f"remote file {request.remote} as user {shown} "
            f"from host {request.host} to local file {request.local}"
        )

        if self._dry_run():
            self.notify(f"Would download {what}", tags=(self.kind, "dryrun"))
            return

        with self._open_session(request.host, user, self.auth_options) as session:
            session.download_file(request.remote, request.local, progress)
        self.notify(f"Downloaded {what}", tags=(self.kind, "trace"))
