"""Tests for keyring/environment credential lookup."""

import json

import keyring
import pytest

from cosmic.credentials import CredentialManager


@pytest.fixture
def fake_keyring(monkeypatch):
    """In-memory replacement for the keyring password store."""
    store: dict[tuple[str, str], str] = {}

    def _delete(service, username):
        if (service, username) not in store:
            raise keyring.errors.PasswordDeleteError("not found")
        del store[(service, username)]

    monkeypatch.setattr(keyring, "get_password", lambda s, u: store.get((s, u)))
    monkeypatch.setattr(
        keyring, "set_password", lambda s, u, p: store.__setitem__((s, u), p)
    )
    monkeypatch.setattr(keyring, "delete_password", _delete)
    return store


class TestEnvironmentFallback:
    def test_env_vars(self, credentials, monkeypatch):
        monkeypatch.setenv("BUILD_HOSTS_USERNAME", "deploy")
        monkeypatch.setenv("BUILD_HOSTS_PASSWORD", "secret")

        assert credentials.get_credentials("build-hosts") == {
            "username": "deploy",
            "password": "secret",
        }

    def test_key_data_only(self, credentials, monkeypatch):
        monkeypatch.setenv("SSH_KEY_DATA", "-----BEGIN KEY-----")
        assert credentials.get_auth("ssh") == {"key_data": "-----BEGIN KEY-----"}

    def test_nothing_found(self, credentials):
        assert credentials.get_credentials("no-such-service") is None
        assert credentials.get_auth("no-such-service") == {}
        assert credentials.has_credentials("no-such-service") is False

    def test_env_var_name(self, credentials):
        assert credentials._env_var_name("jt-60sa/ssh", "password") == (
            "JT_60SA_SSH_PASSWORD"
        )

    def test_cached_across_instances(self, monkeypatch):
        monkeypatch.setenv("CACHED_USERNAME", "deploy")
        CredentialManager(use_keyring=False).get_credentials("cached")
        monkeypatch.delenv("CACHED_USERNAME")

        assert CredentialManager(use_keyring=False).get_auth("cached") == {
            "username": "deploy"
        }

    def test_cache_returns_copies(self, credentials, monkeypatch):
        monkeypatch.setenv("COPY_USERNAME", "deploy")
        credentials.get_auth("copy")["username"] = "changed"
        assert credentials.get_auth("copy") == {"username": "deploy"}

    def test_store_without_keyring_fails(self, credentials):
        assert credentials.set_credentials("svc", "u", "p") is False


class TestKeyring:
    def test_set_and_get(self, fake_keyring):
        creds = CredentialManager(use_keyring=True)

        assert creds.set_credentials("svc", "deploy", key_data="KEY") is True
        assert json.loads(fake_keyring[("cosmic/svc", "credentials")]) == {
            "username": "deploy",
            "key_data": "KEY",
        }

        CredentialManager.clear_cache()
        assert creds.get_credentials("svc") == {"username": "deploy", "key_data": "KEY"}

    def test_keyring_wins_over_env(self, fake_keyring, monkeypatch):
        fake_keyring[("cosmic/svc", "credentials")] = json.dumps({"password": "kr"})
        monkeypatch.setenv("SVC_PASSWORD", "env")

        assert CredentialManager(use_keyring=True).get_auth("svc") == {"password": "kr"}

    def test_invalid_json_falls_back_to_env(self, fake_keyring, monkeypatch):
        fake_keyring[("cosmic/svc", "credentials")] = "not json"
        monkeypatch.setenv("SVC_PASSWORD", "env")

        assert CredentialManager(use_keyring=True).get_auth("svc") == {"password": "env"}

    def test_delete(self, fake_keyring):
        creds = CredentialManager(use_keyring=True)
        creds.set_credentials("svc", "deploy", "secret")

        assert creds.delete_credentials("svc") is True
        assert fake_keyring == {}
        assert creds.get_credentials("svc") is None

    def test_delete_missing(self, fake_keyring):
        assert CredentialManager(use_keyring=True).delete_credentials("svc") is False

    def test_keyring_errors_are_not_fatal(self, monkeypatch):
        def _broken(*args):
            raise RuntimeError("locked")

        monkeypatch.setattr(keyring, "get_password", _broken)
        monkeypatch.setenv("SVC_USERNAME", "env-user")

        assert CredentialManager(use_keyring=True).get_auth("svc") == {
            "username": "env-user"
        }


class TestKeyringDetection:
    def test_explicit_null_backend(self, monkeypatch):
        monkeypatch.setenv("PYTHON_KEYRING_BACKEND", "keyring.backends.null.Keyring")
        assert CredentialManager().keyring_available is False

    def test_headless_linux(self, monkeypatch):
        monkeypatch.delenv("PYTHON_KEYRING_BACKEND", raising=False)
        monkeypatch.delenv("DISPLAY", raising=False)
        monkeypatch.delenv("DBUS_SESSION_BUS_ADDRESS", raising=False)
        monkeypatch.setattr("cosmic.credentials.sys.platform", "linux")

        assert CredentialManager().keyring_available is False
