"""ConfigWriter Atomic Write Tests

The configuration file is replaced atomically; a failed write never
leaves a truncated file or a stray temp file behind.
"""

import json
import os
import time
from unittest.mock import patch

import pytest

from rivaltray.core.services.config.config_defaults import get_default_config
from rivaltray.core.services.config.config_writer import ConfigWriter
from rivaltray.utils import ConfigurationError


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "rivaltray" / "config.json"


@pytest.fixture
def writer(config_file):
    writer = ConfigWriter(config_file, save_delay=0.05)
    writer.set_config(get_default_config())
    yield writer
    writer.cleanup()


def read_json(path):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


class TestAtomicWrite:
    """save_config()"""

    def test_creates_parent_directory(self, writer, config_file):
        assert writer.save_config()
        assert read_json(config_file) == get_default_config()

    def test_none_values_survive(self, writer, config_file):
        """Test unset device settings are written as null"""
        writer.save_config()
        assert read_json(config_file)["settings"]["sensitivity"] is None

    def test_uses_os_replace(self, writer, config_file):
        calls = []
        original_replace = os.replace

        def track_replace(src, dst):
            calls.append((str(src), str(dst)))
            return original_replace(src, dst)

        with patch("os.replace", side_effect=track_replace):
            writer.save_config()

        assert len(calls) == 1
        src, dst = calls[0]
        assert dst == str(config_file)
        assert os.path.dirname(src) == str(config_file.parent)

    def test_fsync_called(self, writer):
        with patch("os.fsync") as fsync:
            writer.save_config()
        assert fsync.called

    def test_no_temp_files_left(self, writer, config_file):
        writer.save_config()
        assert [p.name for p in config_file.parent.iterdir()] == ["config.json"]

    def test_failed_replace_keeps_old_file(self, writer, config_file):
        """Test the previous file is untouched when the rename fails"""
        writer.save_config()
        writer.set_setting("polling.interval_seconds", 60)

        with patch("os.replace", side_effect=OSError("simulated failure")):
            assert writer.save_config() is False

        assert read_json(config_file)["polling"]["interval_seconds"] == 30
        assert [p.name for p in config_file.parent.iterdir()] == ["config.json"]

    def test_unserializable_value_fails(self, writer):
        writer.set_setting("icons.theme_style", object())
        assert writer.save_config() is False


class TestSetSetting:
    """Dotted-key updates"""

    def test_nested_key(self, writer):
        writer.set_setting("settings.sleep_timer", 5)
        assert writer.get_config()["settings"]["sleep_timer"] == 5

    def test_missing_sections_created(self, writer):
        writer.set_setting("extra.section.value", 1)
        assert writer.get_config()["extra"]["section"]["value"] == 1

    def test_scalar_replaced_by_section(self, writer):
        writer.set_config({"ui": "broken"})
        writer.set_setting("ui.notifications", False)
        assert writer.get_config() == {"ui": {"notifications": False}}

    def test_empty_key_rejected(self, writer):
        with pytest.raises(ConfigurationError):
            writer.set_setting("", 1)


class TestDebounce:
    """schedule_save()"""

    def test_delayed_write(self, writer, config_file):
        writer.schedule_save()
        assert not config_file.exists()
        assert writer.is_dirty

        time.sleep(0.3)
        assert config_file.exists()
        assert not writer.is_dirty

    def test_latest_value_wins(self, writer, config_file):
        for rate in (125, 250, 500):
            writer.set_setting("settings.polling_rate", rate)
            writer.schedule_save()

        time.sleep(0.3)
        assert read_json(config_file)["settings"]["polling_rate"] == 500

    def test_cleanup_flushes_pending(self, writer, config_file):
        writer.set_setting("settings.dim_timer", 30)
        writer.schedule_save()
        writer.cleanup()

        assert read_json(config_file)["settings"]["dim_timer"] == 30
