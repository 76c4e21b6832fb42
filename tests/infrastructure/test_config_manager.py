#!/usr/bin/env python3
"""Tests for the ConfigManager module."""

from unittest.mock import patch

import pytest

from syncfilter.core.constants import ErrorCode, PROTOCOL_VERSION
from syncfilter.infrastructure.config_manager import (
    ConfigError,
    ConfigManager,
    ConfigSource,
)


class TestConfigSource:
    """Tests for ConfigSource enum."""

    def test_precedence_order(self):
        """Sources are ordered from defaults to runtime."""
        values = [s.value for s in ConfigSource]
        assert values == sorted(values)
        assert ConfigSource.COMPILED_DEFAULTS.value == 1
        assert ConfigSource.RUNTIME.value == 6


class TestConfigError:
    """Tests for ConfigError exception."""

    def test_default_code(self):
        """ConfigError defaults to INVALID_INPUT."""
        error = ConfigError("bad")
        assert error.message == "bad"
        assert error.error_code == ErrorCode.INVALID_INPUT
        assert str(error) == "bad"


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_defaults(self):
        """Compiled defaults are available without any file."""
        config = ConfigManager(environ={})
        assert config.get("syncfilter.filter.nulls") is False
        assert config.get("syncfilter.filter.rules") == []
        assert config.get("syncfilter.protocol.version") == PROTOCOL_VERSION
        assert config.get("syncfilter.logging.level") == "WARNING"
        assert config.get("syncfilter.missing", default="x") == "x"

    def test_defaults_are_copied(self):
        """Changing one manager's lists leaves other managers alone."""
        first = ConfigManager(environ={})
        first.get("syncfilter.filter.rules").append("*.o")
        assert ConfigManager(environ={}).get("syncfilter.filter.rules") == []

    def test_load_file(self, tmp_path):
        """A YAML file overrides the defaults."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "syncfilter:\n"
            "  filter:\n"
            "    cvs: true\n"
            "    rules: ['*.o', '+ keep']\n"
            "  protocol:\n"
            "    version: 20\n"
        )
        config = ConfigManager(str(path), environ={})
        assert config.get("syncfilter.filter.cvs") is True
        assert config.get("syncfilter.filter.rules") == ["*.o", "+ keep"]
        assert config.get("syncfilter.protocol.version") == 20
        assert config.get("syncfilter.filter.nulls") is False

    def test_load_file_without_root_key(self, tmp_path):
        """The root key may be omitted."""
        path = tmp_path / "config.yaml"
        path.write_text("filter:\n  nulls: yes\n")
        config = ConfigManager(str(path), environ={})
        assert config.get("syncfilter.filter.nulls") is True

    def test_load_empty_file(self, tmp_path):
        """An empty file changes nothing."""
        path = tmp_path / "config.yaml"
        path.write_text("")
        config = ConfigManager(str(path), environ={})
        assert config.get("syncfilter.protocol.version") == PROTOCOL_VERSION

    def test_missing_file(self, tmp_path):
        """A missing file is a FILE_IO error."""
        with pytest.raises(ConfigError) as exc_info:
            ConfigManager(str(tmp_path / "nope.yaml"), environ={})
        assert exc_info.value.error_code == ErrorCode.FILE_IO

    def test_invalid_yaml(self, tmp_path):
        """Unparseable YAML raises ConfigError."""
        path = tmp_path / "config.yaml"
        path.write_text("filter: [unclosed\n")
        with pytest.raises(ConfigError, match="YAML parse error"):
            ConfigManager(str(path), environ={})

    def test_non_mapping_file(self, tmp_path):
        """A top-level list is rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="Invalid config format"):
            ConfigManager(str(path), environ={})

    def test_invalid_values_in_file(self, tmp_path):
        """File contents are validated on load."""
        path = tmp_path / "config.yaml"
        path.write_text("protocol:\n  version: 0\n")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            ConfigManager(str(path), environ={})

    def test_environment(self):
        """SYNCFILTER_* variables map onto dot paths."""
        config = ConfigManager(
            environ={
                "SYNCFILTER_PROTOCOL_VERSION": "18",
                "SYNCFILTER_FILTER_CVS": "on",
                "SYNCFILTER_LOGGING_LEVEL": "debug",
                "OTHER_VAR": "ignored",
            }
        )
        assert config.get("syncfilter.protocol.version") == 18
        assert config.get("syncfilter.filter.cvs") is True
        assert config.get("syncfilter.logging.level") == "debug"

    def test_environment_overrides_file(self, tmp_path):
        """Environment precedence is above config files."""
        path = tmp_path / "config.yaml"
        path.write_text("protocol:\n  version: 20\n")
        config = ConfigManager(str(path), environ={"SYNCFILTER_PROTOCOL_VERSION": "21"})
        assert config.get("syncfilter.protocol.version") == 21

    def test_process_environment(self, monkeypatch):
        """os.environ is read when no mapping is given."""
        monkeypatch.setenv("SYNCFILTER_FILTER_NULLS", "true")
        assert ConfigManager().get("syncfilter.filter.nulls") is True

    @pytest.mark.parametrize(
        "raw,expected",
        [("yes", True), ("OFF", False), ("42", 42), ("-3", -3), ("text", "text")],
    )
    def test_parse_env_value(self, raw, expected):
        """Environment strings become bools, ints or strings."""
        assert ConfigManager(environ={})._parse_env_value(raw) == expected

    def test_set_and_precedence(self):
        """Higher sources win regardless of the order they are set in."""
        config = ConfigManager(environ={"SYNCFILTER_PROTOCOL_VERSION": "19"})
        config.set("syncfilter.protocol.version", 22)
        config.set("syncfilter.protocol.version", 20, ConfigSource.CLI_ARGS)
        assert config.get("syncfilter.protocol.version") == 22

    def test_cli_args_above_environment(self):
        """CLI values override the environment."""
        config = ConfigManager(environ={"SYNCFILTER_PROTOCOL_VERSION": "19"})
        config.set("syncfilter.protocol.version", 20, ConfigSource.CLI_ARGS)
        assert config.get("syncfilter.protocol.version") == 20

    def test_set_creates_nested_keys(self):
        """set() builds missing intermediate dictionaries."""
        config = ConfigManager(environ={})
        config.set("syncfilter.logging.file", "/tmp/x.log", ConfigSource.CLI_ARGS)
        assert config.section()["logging"] == {"level": "WARNING", "file": "/tmp/x.log"}

    def test_section_deep_merge(self):
        """section() merges nested dictionaries across sources."""
        config = ConfigManager(environ={})
        config.set("syncfilter.filter.cvs", True, ConfigSource.CLI_ARGS)
        section = config.section()
        assert section["filter"]["cvs"] is True
        assert section["filter"]["nulls"] is False
        assert section["logging"]["level"] == "WARNING"

    def test_validate(self):
        """validate() checks the merged section."""
        config = ConfigManager(environ={})
        assert config.validate() is True
        config.set("syncfilter.logging.level", "LOUD")
        with pytest.raises(ConfigError, match="Invalid log level"):
            config.validate()

    def test_load_defaults_files(self, tmp_path):
        """Only existing system and user files are loaded."""
        user = tmp_path / "user.yaml"
        user.write_text("filter:\n  cvs: true\n")
        with patch(
            "syncfilter.infrastructure.config_manager.SYSTEM_CONFIG_PATH", str(tmp_path / "none.yaml")
        ), patch("syncfilter.infrastructure.config_manager.USER_CONFIG_PATH", str(user)):
            config = ConfigManager(environ={})
            config.load_defaults_files()
        assert config.get("syncfilter.filter.cvs") is True
        assert config.get("syncfilter.filter.nulls") is False

    def test_user_file_overrides_system_file(self, tmp_path):
        """The user file has precedence over the system file."""
        system = tmp_path / "system.yaml"
        system.write_text("protocol:\n  version: 20\nfilter:\n  nulls: true\n")
        user = tmp_path / "user.yaml"
        user.write_text("protocol:\n  version: 21\n")
        with patch(
            "syncfilter.infrastructure.config_manager.SYSTEM_CONFIG_PATH", str(system)
        ), patch("syncfilter.infrastructure.config_manager.USER_CONFIG_PATH", str(user)):
            config = ConfigManager(environ={})
            config.load_defaults_files()
        assert config.get("syncfilter.protocol.version") == 21
        assert config.get("syncfilter.filter.nulls") is True
