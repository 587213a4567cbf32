"""Shared fixtures.

Provides a stub transport standing in for ``cosmic.transport.open_session``
so plugin tests run entirely offline and can count the sessions opened,
plus environment isolation from the developer's own settings and keyring.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import pytest

from cosmic import settings
from cosmic.credentials import CredentialManager
from cosmic.environment import Environment


@dataclass
class StubTransport:
    """Records every session opened and every action run on it."""

    output: str = ""
    chunks: list[tuple[bytes, str, int, int]] = field(default_factory=list)
    error: BaseException | None = None
    sessions: list[tuple[str, str | None, Any]] = field(default_factory=list)
    calls: list[tuple[Any, ...]] = field(default_factory=list)
    closed: int = 0

    @contextmanager
    def __call__(self, host, user, auth_options):
        self.sessions.append((host, user, auth_options))
        try:
            yield _StubSession(self)
        finally:
            self.closed += 1


class _StubSession:
    def __init__(self, transport: StubTransport):
        self._transport = transport

    def _fail(self) -> None:
        if self._transport.error is not None:
            raise self._transport.error

    def execute(self, cmd):
        self._transport.calls.append(("execute", cmd))
        self._fail()
        return self._transport.output

    def upload_file(self, local, remote, progress=None):
        self._transport.calls.append(("upload_file", local, remote))
        self._fail()
        for chunk in self._transport.chunks:
            if progress is not None:
                progress(*chunk)

    def download_file(self, remote, local, progress=None):
        self._transport.calls.append(("download_file", remote, local))
        self._fail()
        for chunk in self._transport.chunks:
            if progress is not None:
                progress(*chunk)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep tests independent of COSMIC_* variables, ~/.ssh/config and caches."""
    for var in (
        "COSMIC_CONFIG",
        "COSMIC_DRY_RUN",
        "COSMIC_HOST_KEY_POLICY",
        "COSMIC_TRANSFER_CHUNK_SIZE",
        "COSMIC_RICH",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr("cosmic.transport.SSH_CONFIG_PATH", tmp_path / "ssh_config")
    settings._load_pyproject_settings.cache_clear()
    CredentialManager.clear_cache()
    yield
    CredentialManager.clear_cache()


@pytest.fixture
def credentials():
    """Credential manager that only consults environment variables."""
    return CredentialManager(use_keyring=False)


@pytest.fixture
def make_environment(credentials):
    """Factory for environments over an in-memory configuration."""

    def _make(config: dict | None = None, dry_run: bool = False) -> Environment:
        return Environment(config or {}, dry_run=dry_run, credentials=credentials)

    return _make


@pytest.fixture
def transport():
    return StubTransport()


@pytest.fixture
def ssh_config_path(tmp_path):
    """Location the transport reads as ~/.ssh/config during a test."""
    return tmp_path / "ssh_config"
