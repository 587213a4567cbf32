"""Tests for YAML configuration loading."""

import pytest

from cosmic.config import ConfigError, get_plugin_config, load_config, private_path_for


class TestLoadConfig:
    def test_missing_file_is_empty(self, tmp_path):
        assert load_config(tmp_path / "absent.yaml") == {}

    def test_empty_file_is_empty(self, tmp_path):
        path = tmp_path / "cosmic.yaml"
        path.write_text("")
        assert load_config(path) == {}

    def test_private_file_merged(self, tmp_path):
        path = tmp_path / "cosmic.yaml"
        path.write_text(
            "plugins:\n"
            "  ssh:\n"
            "    auth:\n"
            "      username: deploy\n"
            "      keys: [~/.ssh/public_default]\n"
        )
        private_path_for(path).write_text(
            "plugins:\n  ssh:\n    auth:\n      keys: [/secure/deploy_key]\n"
        )

        config = load_config(path)

        assert config["plugins"]["ssh"]["auth"] == {
            "username": "deploy",
            "keys": ["/secure/deploy_key"],
        }

    def test_private_file_alone(self, tmp_path):
        path = tmp_path / "cosmic.yaml"
        private_path_for(path).write_text("plugins:\n  ssh:\n    auth: {password: x}\n")
        assert load_config(path)["plugins"]["ssh"]["auth"] == {"password": "x"}

    def test_private_path_name(self, tmp_path):
        assert private_path_for(tmp_path / "cosmic.yaml").name == "cosmic_private.yaml"

    def test_non_mapping_root_rejected(self, tmp_path):
        path = tmp_path / "cosmic.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError, match="must be a mapping"):
            load_config(path)

    def test_invalid_yaml_rejected(self, tmp_path):
        path = tmp_path / "cosmic.yaml"
        path.write_text("plugins: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_plugins_must_be_mapping(self, tmp_path):
        path = tmp_path / "cosmic.yaml"
        path.write_text("plugins: ssh\n")
        with pytest.raises(ConfigError, match="'plugins' section"):
            load_config(path)


class TestGetPluginConfig:
    def test_absent_section(self):
        assert get_plugin_config({}, "ssh") == {"auth": {}}

    def test_auth_added(self):
        config = {"plugins": {"ssh": {"port": 2222}}}
        assert get_plugin_config(config, "ssh") == {"port": 2222, "auth": {}}

    def test_null_auth_replaced(self):
        config = {"plugins": {"ssh": {"auth": None}}}
        assert get_plugin_config(config, "ssh") == {"auth": {}}

    def test_deep_copy(self):
        config = {"plugins": {"ssh": {"auth": {"keys": ["/a"]}}}}

        section = get_plugin_config(config, "ssh")
        section["auth"]["keys"].append("/b")

        assert config["plugins"]["ssh"]["auth"]["keys"] == ["/a"]

    def test_non_mapping_section_rejected(self):
        with pytest.raises(ConfigError):
            get_plugin_config({"plugins": {"ssh": "yes"}}, "ssh")
