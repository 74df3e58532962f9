"""Tests for user configuration loading and editing."""

import json

from dotsync.config import (
    DEFAULT_CONFIG,
    get_config_file,
    get_config_value,
    load_config,
    reset_config,
    save_config,
    set_config_value,
)


class TestLoadConfig:
    def test_defaults_when_missing(self, temp_home):
        config = load_config(temp_home)

        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG
        config["ignore_patterns"].append("x")
        assert "x" not in DEFAULT_CONFIG["ignore_patterns"]

    def test_partial_nested_override(self, temp_home):
        save_config({"commit": {"author_name": "me"}}, temp_home)

        config = load_config(temp_home)

        assert config["commit"] == {
            "author_name": "me",
            "author_email": "dotsync@localhost",
        }
        assert config["backup_dir_name"] == "backups"

    def test_invalid_json_falls_back_to_defaults(self, temp_home, capsys):
        config_file = get_config_file(temp_home)
        config_file.parent.mkdir(parents=True)
        config_file.write_text("{not json")

        assert load_config(temp_home) == DEFAULT_CONFIG
        assert "Using defaults" in capsys.readouterr().err

    def test_home_from_environment(self, temp_home):
        assert get_config_file() == temp_home / ".dotsync" / "config.json"


class TestConfigValues:
    def test_get_nested_value(self, temp_home):
        assert get_config_value("commit.author_email", temp_home) == "dotsync@localhost"

    def test_get_missing_value(self, temp_home):
        assert get_config_value("commit.nope", temp_home, quiet=True) is None

    def test_set_parses_json_and_booleans(self, temp_home):
        assert set_config_value("ignore_patterns", '["*.bak"]', temp_home, quiet=True)
        assert set_config_value("extra.flag", "True", temp_home, quiet=True)
        assert set_config_value("lock_filename", ".busy", temp_home, quiet=True)

        saved = json.loads(get_config_file(temp_home).read_text())
        assert saved["ignore_patterns"] == ["*.bak"]
        assert saved["extra"] == {"flag": True}
        assert saved["lock_filename"] == ".busy"

    def test_set_invalid_json_does_not_save(self, temp_home):
        assert not set_config_value("ignore_patterns", "[", temp_home, quiet=True)
        assert not get_config_file(temp_home).exists()

    def test_reset(self, temp_home):
        set_config_value("backup_dir_name", "old", temp_home, quiet=True)

        reset_config(temp_home, quiet=True)

        assert load_config(temp_home) == DEFAULT_CONFIG
