"""Tests for Config loading and property defaults."""

from pathlib import Path

import pytest

from cmdwire.config import Config
from cmdwire.exceptions import ConfigurationError


def _write(tmp_path: Path, text: str) -> Path:
    (tmp_path / "settings.yaml").write_text(text)
    return tmp_path


class TestConfig:

    def test_defaults_without_files(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CMDWIRE_PREFIX", raising=False)
        config = Config(config_dir=tmp_path)
        assert config.settings == {}
        assert config.prefixes == ["!"]
        assert config.quiet_unknown_command is False
        assert config.reply_errors is True
        assert config.help_underline is True
        assert config.sanitize_mentions is True
        assert config.ignore_bots is True
        assert config.admin_ids == []
        assert config.logging_level == "INFO"
        assert config.logging_max_file_size_mb == 10
        assert config.logging_backup_count == 5

    def test_yaml_settings(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CMDWIRE_PREFIX", raising=False)
        config = Config(config_dir=_write(tmp_path, (
            "prefixes: ['~', 'bot ']\n"
            "quiet_unknown_command: true\n"
            "admin_ids: [1, 'two', 3]\n"
            "log_dir: /tmp/cmdwire-logs\n"
            "logging:\n"
            "  level: DEBUG\n"
            "  subsystem_levels: {dispatch: WARNING}\n"
        )))
        assert config.prefixes == ["~", "bot "]
        assert config.quiet_unknown_command is True
        assert config.admin_ids == [1, 3]
        assert config.log_dir == Path("/tmp/cmdwire-logs")
        assert config.logging_level == "DEBUG"
        assert config.logging_subsystem_levels == {"dispatch": "WARNING"}

    def test_single_prefix_string(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CMDWIRE_PREFIX", raising=False)
        config = Config(config_dir=_write(tmp_path, "prefixes: '$'\n"))
        assert config.prefixes == ["$"]

    def test_env_prefix_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CMDWIRE_PREFIX", "?")
        config = Config(config_dir=_write(tmp_path, "prefixes: ['~']\n"))
        assert config.prefixes == ["?"]

    def test_invalid_yaml_raises(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot parse"):
            Config(config_dir=_write(tmp_path, "prefixes: [unclosed\n"))

    def test_non_mapping_raises(self, tmp_path):
        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            Config(config_dir=_write(tmp_path, "- a\n- b\n"))

    def test_validate_logs_but_does_not_raise(self, tmp_path):
        config = Config(config_dir=_write(tmp_path, "prefixes: 3\nadmin_ids: ['x']\n"))
        config.validate()
        assert config.admin_ids == []
