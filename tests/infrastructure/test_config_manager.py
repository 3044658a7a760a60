#!/usr/bin/env python3
"""Tests for the ConfigManager module."""

from unittest.mock import MagicMock, patch

import pytest

from distarchive.core.constants import ErrorCode
from distarchive.infrastructure.config_manager import (
    CONFIG_SCHEMA,
    ConfigError,
    ConfigManager,
    ConfigSource,
    ConfigValue,
    get_config_manager,
    set_global_config,
)


class TestConfigSource:
    """Tests for ConfigSource enum."""

    def test_precedence_order(self):
        """Sources are ordered from defaults to runtime."""
        sources = list(ConfigSource)
        assert sources[0] is ConfigSource.COMPILED_DEFAULTS
        assert sources[-1] is ConfigSource.RUNTIME
        for lower, higher in zip(sources, sources[1:]):
            assert lower.value < higher.value


class TestConfigError:
    """Tests for ConfigError."""

    def test_error_code(self):
        error = ConfigError("Config file not found", ErrorCode.NOT_FOUND)
        assert error.message == "Config file not found"
        assert error.error_code == ErrorCode.NOT_FOUND
        assert str(error) == "Config file not found"

    def test_default_code(self):
        assert ConfigError("bad").error_code == ErrorCode.INVALID_INPUT


class TestDefaults:
    """Tests for compiled defaults."""

    def test_defaults(self):
        config = ConfigManager()
        assert config.get("distarchive.format") == "zip"
        assert config.get("distarchive.ignore_file") == ".distignore"
        assert config.get("distarchive.filename_format") == "{name}.{version}"
        assert config.get("distarchive.matcher") == "gitignore"
        assert config.get("distarchive.include_directories") is True
        assert config.get("distarchive.logging.level") == "INFO"

    def test_missing_key_default(self):
        assert ConfigManager().get("distarchive.nope", default=5) == 5

    def test_defaults_not_shared(self):
        """Changing one manager does not leak into another."""
        first = ConfigManager()
        first._config[ConfigSource.COMPILED_DEFAULTS]["distarchive"]["format"] = "targz"
        assert ConfigManager().get("distarchive.format") == "zip"

    def test_section(self):
        section = ConfigManager().section()
        assert section["format"] == "zip"
        assert section["logging"]["file"] is None


class TestLoadFile:
    """Tests for YAML file loading."""

    def test_load_with_root_key(self, temp_dir):
        path = temp_dir / "config.yaml"
        path.write_text("distarchive:\n  format: targz\n  logging:\n    level: DEBUG\n")
        config = ConfigManager()
        config.load_file(str(path))

        assert config.get("distarchive.format") == "targz"
        assert config.get("distarchive.logging.level") == "DEBUG"
        assert config.get("distarchive.logging.file") is None

    def test_load_without_root_key(self, temp_dir):
        """Files may hold the section's keys directly."""
        path = temp_dir / "config.yaml"
        path.write_text("matcher: simple\n")
        config = ConfigManager(str(path))
        assert config.get("distarchive.matcher") == "simple"

    def test_missing_file(self, temp_dir):
        with pytest.raises(ConfigError) as exc_info:
            ConfigManager().load_file(str(temp_dir / "missing.yaml"))
        assert exc_info.value.error_code == ErrorCode.NOT_FOUND

    def test_invalid_yaml(self, temp_dir):
        path = temp_dir / "config.yaml"
        path.write_text("distarchive: [unclosed\n")
        with pytest.raises(ConfigError, match="YAML parse error"):
            ConfigManager().load_file(str(path))

    def test_not_a_mapping(self, temp_dir):
        path = temp_dir / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError, match="Invalid config format"):
            ConfigManager().load_file(str(path))


class TestSystemConfig:
    """Tests for the system-wide configuration file."""

    def test_missing_file_is_skipped(self, temp_dir):
        config = ConfigManager()
        assert not config.load_system_config(str(temp_dir / "missing.yaml"))
        assert config.get_value("distarchive.format").source is ConfigSource.COMPILED_DEFAULTS

    def test_loaded_below_user_config(self, temp_dir):
        """User config files override the system file."""
        system = temp_dir / "system.yaml"
        system.write_text("format: targz\nmatcher: simple\n")
        user = temp_dir / "user.yaml"
        user.write_text("format: zip\n")

        config = ConfigManager()
        assert config.load_system_config(str(system))
        config.load_file(str(user))

        assert config.get("distarchive.format") == "zip"
        assert config.get_value("distarchive.matcher").source is ConfigSource.SYSTEM_CONFIG

    def test_default_location(self, temp_dir, monkeypatch):
        """Without an argument the SYSTEM_CONFIG_FILE location is read."""
        system = temp_dir / "config.yaml"
        system.write_text("include_directories: false\n")
        monkeypatch.setattr(
            "distarchive.infrastructure.config_manager.SYSTEM_CONFIG_FILE", str(system)
        )

        config = ConfigManager()
        assert config.load_system_config()
        assert config.get("distarchive.include_directories") is False


class TestEnvironment:
    """Tests for DISTARCHIVE_* overrides."""

    def test_top_level_key(self, monkeypatch):
        monkeypatch.setenv("DISTARCHIVE_FORMAT", "targz")
        config = ConfigManager()
        assert config.get("distarchive.format") == "targz"
        assert config.get_value("distarchive.format").source is ConfigSource.ENVIRONMENT

    def test_nested_key(self, monkeypatch):
        monkeypatch.setenv("DISTARCHIVE_LOGGING__LEVEL", "DEBUG")
        assert ConfigManager().get("distarchive.logging.level") == "DEBUG"

    @pytest.mark.parametrize(
        "raw,parsed",
        [("true", True), ("No", False), ("42", 42), ("1.5", 1.5), ("zip", "zip")],
    )
    def test_value_parsing(self, raw, parsed):
        assert ConfigManager()._parse_env_value(raw) == parsed

    def test_environment_over_file(self, temp_dir, monkeypatch):
        """Environment variables beat the config file."""
        path = temp_dir / "config.yaml"
        path.write_text("format: zip\n")
        monkeypatch.setenv("DISTARCHIVE_FORMAT", "targz")
        config = ConfigManager(str(path))
        assert config.get("distarchive.format") == "targz"


class TestPrecedence:
    """Tests for source precedence and merging."""

    def test_cli_over_environment(self, monkeypatch):
        monkeypatch.setenv("DISTARCHIVE_FORMAT", "targz")
        config = ConfigManager()
        config.load_dict({"distarchive": {"format": "zip"}}, ConfigSource.CLI_ARGS)
        value = config.get_value("distarchive.format")
        assert isinstance(value, ConfigValue)
        assert value.value == "zip"
        assert value.source is ConfigSource.CLI_ARGS

    def test_get_all_deep_merges(self):
        config = ConfigManager()
        config.load_dict({"distarchive": {"logging": {"file": "/tmp/d.log"}}}, ConfigSource.CLI_ARGS)
        merged = config.get_all()["distarchive"]
        assert merged["logging"] == {"level": "INFO", "file": "/tmp/d.log"}
        assert merged["format"] == "zip"

    def test_set_runtime(self):
        config = ConfigManager()
        config.set("distarchive.matcher", "simple")
        assert config.get_value("distarchive.matcher").source is ConfigSource.RUNTIME

    def test_clear(self):
        config = ConfigManager()
        config.set("distarchive.format", "targz")
        config.clear()
        assert config.get("distarchive.format") == "zip"

    def test_clear_single_source_keeps_defaults(self):
        config = ConfigManager()
        config.clear(ConfigSource.COMPILED_DEFAULTS)
        assert config.get("distarchive.format") == "zip"


class TestWatchers:
    """Tests for change watchers."""

    def test_watcher_notified(self):
        config = ConfigManager()
        watcher = MagicMock()
        config.add_watcher(watcher)
        config.set("distarchive.format", "targz")

        watcher.assert_called_once()
        assert watcher.call_args[0][0]["distarchive"]["format"] == "targz"

    def test_removed_watcher_not_notified(self):
        config = ConfigManager()
        watcher = MagicMock()
        config.add_watcher(watcher)
        config.remove_watcher(watcher)
        config.set("distarchive.format", "targz")
        watcher.assert_not_called()


class TestValidateSchema:
    """Tests for schema validation."""

    def test_defaults_valid(self):
        assert ConfigManager().validate_schema(CONFIG_SCHEMA)

    def test_wrong_type(self):
        config = ConfigManager()
        config.set("distarchive.include_directories", "yes")
        with pytest.raises(ConfigError, match="include_directories"):
            config.validate_schema(CONFIG_SCHEMA)

    def test_wrong_nested_type(self):
        config = ConfigManager()
        config.set("distarchive.logging", "DEBUG")
        with pytest.raises(ConfigError, match="Expected dict"):
            config.validate_schema(CONFIG_SCHEMA)


class TestGlobalConfig:
    """Tests for the global config helpers."""

    def test_set_and_get(self):
        config = ConfigManager()
        set_global_config(config)
        try:
            assert get_config_manager() is config
        finally:
            set_global_config(None)

    def test_created_on_demand(self):
        set_global_config(None)
        with patch("distarchive.infrastructure.config_manager.ConfigManager") as manager_cls:
            assert get_config_manager() is manager_cls.return_value
        set_global_config(None)
