"""Tests for settings.py module."""

from pathlib import Path

import pytest

from cosmic import settings
from cosmic.settings import _parse_bool


class TestSettingsFunctions:
    """Tests for settings module functions."""

    def test_get_config_path_env_override(self, monkeypatch, tmp_path):
        """Environment variable overrides config path."""
        monkeypatch.setenv("COSMIC_CONFIG", str(tmp_path / "c.yaml"))
        assert settings.get_config_path() == tmp_path / "c.yaml"

    def test_get_config_path_default(self, monkeypatch):
        """Default config path lives under ~/.config/cosmic."""
        monkeypatch.setattr(settings, "_load_pyproject_settings", lambda: {})
        assert settings.get_config_path() == (
            Path.home() / ".config" / "cosmic" / "cosmic.yaml"
        )

    def test_get_config_path_from_pyproject(self, monkeypatch):
        """[tool.cosmic].config is used when no env var is set."""
        monkeypatch.setattr(
            settings, "_load_pyproject_settings", lambda: {"config": "/etc/cosmic.yaml"}
        )
        assert settings.get_config_path() == Path("/etc/cosmic.yaml")

    def test_get_dry_run_env_override(self, monkeypatch):
        """Environment variable overrides dry-run default."""
        monkeypatch.setenv("COSMIC_DRY_RUN", "true")
        assert settings.get_dry_run() is True

    def test_get_dry_run_default(self, monkeypatch):
        """Dry-run is off by default."""
        monkeypatch.setattr(settings, "_load_pyproject_settings", lambda: {})
        assert settings.get_dry_run() is False

    def test_get_host_key_policy_env_override(self, monkeypatch):
        """Environment variable overrides host key policy."""
        monkeypatch.setenv("COSMIC_HOST_KEY_POLICY", "Reject")
        assert settings.get_host_key_policy() == "reject"

    def test_get_host_key_policy_default(self, monkeypatch):
        """Unknown hosts are added by default."""
        monkeypatch.setattr(settings, "_load_pyproject_settings", lambda: {})
        assert settings.get_host_key_policy() == "auto-add"

    def test_get_host_key_policy_invalid(self, monkeypatch):
        """An unknown policy is rejected."""
        monkeypatch.setenv("COSMIC_HOST_KEY_POLICY", "trust-everyone")
        with pytest.raises(ValueError, match="Unknown host key policy"):
            settings.get_host_key_policy()

    def test_get_transfer_chunk_size_env_override(self, monkeypatch):
        """Environment variable overrides chunk size."""
        monkeypatch.setenv("COSMIC_TRANSFER_CHUNK_SIZE", "4096")
        assert settings.get_transfer_chunk_size() == 4096

    def test_get_transfer_chunk_size_from_pyproject(self, monkeypatch):
        """[tool.cosmic.ssh].chunk-size is used when no env var is set."""
        monkeypatch.setattr(
            settings, "_load_pyproject_settings", lambda: {"ssh": {"chunk-size": 1024}}
        )
        assert settings.get_transfer_chunk_size() == 1024

    def test_get_transfer_chunk_size_default(self, monkeypatch):
        monkeypatch.setattr(settings, "_load_pyproject_settings", lambda: {})
        assert settings.get_transfer_chunk_size() == settings.DEFAULT_CHUNK_SIZE


class TestParseBool:
    @pytest.mark.parametrize("value", ["true", "1", "yes", "TRUE", True])
    def test_true(self, value):
        assert _parse_bool(value) is True

    @pytest.mark.parametrize("value", ["false", "0", "no", "", False])
    def test_false(self, value):
        assert _parse_bool(value) is False
