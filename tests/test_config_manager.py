"""配置管理器的测试。"""

import json

import pytest

from nodeswitcher.core.config_manager import ConfigManager, ConfigValidationError, KNOWN_TOOLS


@pytest.fixture
def config_dir(tmp_path):
    return tmp_path / "cfg"


class TestLoad:

    def test_creates_default_file(self, config_dir):
        manager = ConfigManager(str(config_dir))
        config = manager.get_config()

        assert (config_dir / "config.json").exists()
        assert config["settings"]["preferred_tool"] == "auto"
        assert set(config["settings"]["tool_paths"]) == set(KNOWN_TOOLS)

    def test_default_config_passes_validation(self, config_dir):
        manager = ConfigManager(str(config_dir))
        assert manager.validate_config(manager.get_config()) is True
        assert manager.get_command_timeout() is None

    def test_fills_missing_settings(self, config_dir):
        config_dir.mkdir()
        (config_dir / "config.json").write_text(json.dumps({"settings": {"preferred_tool": "fnm"}}))

        manager = ConfigManager(str(config_dir))

        assert manager.get_preferred_tool() == "fnm"
        assert manager.is_auto_apply_pin() is True
        assert manager.get_tool_path("volta") == ""

    def test_corrupt_file_uses_defaults(self, config_dir):
        config_dir.mkdir()
        (config_dir / "config.json").write_text("{broken")

        assert ConfigManager(str(config_dir)).get_preferred_tool() == "auto"

    def test_invalid_values_use_defaults(self, config_dir):
        config_dir.mkdir()
        (config_dir / "config.json").write_text(json.dumps({"settings": {"command_timeout": True}}))

        assert ConfigManager(str(config_dir)).get_command_timeout() is None

    def test_env_home(self, tmp_path, monkeypatch):
        monkeypatch.setenv("NODESWITCHER_HOME", str(tmp_path / "home"))
        manager = ConfigManager()
        manager.get_config()
        assert (tmp_path / "home" / "config.json").exists()


class TestSettings:

    def test_set_nested_setting_persists(self, config_dir):
        manager = ConfigManager(str(config_dir))
        manager.set_setting("tool_paths.fnm", "/opt/fnm/fnm")

        reloaded = ConfigManager(str(config_dir))
        assert reloaded.get_tool_path("fnm") == "/opt/fnm/fnm"
        assert reloaded.get_setting("tool_paths.fnm") == "/opt/fnm/fnm"

    def test_invalid_setting_is_rejected_and_not_saved(self, config_dir):
        manager = ConfigManager(str(config_dir))
        with pytest.raises(ConfigValidationError):
            manager.set_setting("preferred_tool", "rustup")
        with pytest.raises(ConfigValidationError):
            manager.set_setting("cache_expire_time", "soon")
        with pytest.raises(ConfigValidationError):
            manager.set_setting("node_index_mirrors", ["ftp://example.com"])

        assert ConfigManager(str(config_dir)).get_preferred_tool() == "auto"

    def test_command_timeout(self, config_dir):
        manager = ConfigManager(str(config_dir))
        assert manager.get_command_timeout() is None
        manager.set_setting("command_timeout", 30)
        assert manager.get_command_timeout() == 30

    def test_set_tool_path_validates_tool(self, config_dir):
        manager = ConfigManager(str(config_dir))
        assert manager.set_tool_path("rustup", "/usr/bin/rustup") is False
        assert manager.set_tool_path("mise", "/usr/local/bin/mise") is True

    def test_mirrors_default_when_empty(self, config_dir):
        manager = ConfigManager(str(config_dir))
        manager.set_setting("node_index_mirrors", [])
        assert manager.get_node_index_mirrors()[0] == "https://nodejs.org/dist/"

    def test_reset_to_default(self, config_dir):
        manager = ConfigManager(str(config_dir))
        manager.set_setting("preferred_tool", "volta")
        manager.reset_to_default()
        assert manager.get_preferred_tool() == "auto"


class TestCache:

    def test_cache_round_trip(self, config_dir):
        manager = ConfigManager(str(config_dir))
        manager.set_cache("node_versions", {"versions": [], "last_update": "2024-01-01T00:00:00"})
        manager.save_cache()

        assert "node_versions" in ConfigManager(str(config_dir)).get_cache()

    def test_clear_cache(self, config_dir):
        manager = ConfigManager(str(config_dir))
        manager.set_cache("node_versions", {})
        manager.clear_cache()
        assert manager.get_cache() == {}
