"""Config Service Tests

Defaults, dotted lookups, repair of invalid values and persistence
through the service facade.
"""

import json

from rivaltray.core.services.config.config_keys import ConfigKeys
from rivaltray.core.services.config.config_service import ConfigService, default_config_path


def write_config(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


def started(path):
    service = ConfigService(str(path), save_delay=0.01)
    service.start()
    return service


class TestDefaults:
    """No configuration file"""

    def test_defaults(self, config_service):
        get = config_service.get_setting
        assert get(ConfigKeys.DEVICE_TOOL) == "rivalcfg"
        assert get(ConfigKeys.DEVICE_TIMEOUT_SECONDS) == 3
        assert get(ConfigKeys.POLLING_INTERVAL_SECONDS) == 30
        assert get(ConfigKeys.ICONS_THEME_STYLE) == "light"
        assert get(ConfigKeys.ICONS_RENDERER) == "qtsvg"
        assert get(ConfigKeys.SETTINGS_SENSITIVITY) is None

    def test_missing_key_returns_default(self, config_service):
        assert config_service.get_setting("nope.missing", 7) == 7

    def test_default_location(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert default_config_path() == tmp_path / "rivaltray" / "config.json"

    def test_defaults_are_valid(self, config_service):
        assert config_service.validate()["valid"]


class TestLoading:
    """Existing configuration files"""

    def test_partial_file_merged_over_defaults(self, config_path):
        write_config(config_path, {"polling": {"interval_seconds": 60}})
        service = started(config_path)
        try:
            assert service.get_setting(ConfigKeys.POLLING_INTERVAL_SECONDS) == 60
            assert service.get_setting(ConfigKeys.POLLING_MAX_INTERVAL_SECONDS) == 300
        finally:
            service.stop()

    def test_invalid_values_repaired(self, config_path):
        """Test out-of-range and malformed values fall back to defaults"""
        write_config(
            config_path,
            {
                "device": {"timeout_seconds": 30},
                "icons": {"custom_color": "orange", "theme_style": "neon", "size": 48},
            },
        )
        service = started(config_path)
        try:
            assert service.get_setting(ConfigKeys.DEVICE_TIMEOUT_SECONDS) == 3
            assert service.get_setting(ConfigKeys.ICONS_CUSTOM_COLOR) == "#ff8800"
            assert service.get_setting(ConfigKeys.ICONS_THEME_STYLE) == "light"
            assert service.get_setting(ConfigKeys.ICONS_SIZE) == 48
        finally:
            service.stop()

        assert json.loads(config_path.read_text())["device"]["timeout_seconds"] == 3

    def test_corrupt_file_uses_defaults(self, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text("{not json", encoding="utf-8")

        service = ConfigService(str(config_path))
        assert service.start()
        try:
            assert service.load_config() is False
            assert service.get_setting(ConfigKeys.DEVICE_TOOL) == "rivalcfg"
        finally:
            service.stop()

    def test_non_object_root_uses_defaults(self, config_path):
        write_config(config_path, [1, 2, 3])
        service = started(config_path)
        try:
            assert service.get_setting(ConfigKeys.POLLING_INTERVAL_SECONDS) == 30
        finally:
            service.stop()


class TestPersistence:
    """set_setting() and reloads"""

    def test_set_and_get(self, config_service):
        config_service.set_setting(ConfigKeys.SETTINGS_SENSITIVITY, 1600)
        assert config_service.get_setting(ConfigKeys.SETTINGS_SENSITIVITY) == 1600

    def test_immediate_save(self, config_service, config_path):
        config_service.set_setting(ConfigKeys.ICONS_THEME_STYLE, "dark", immediate=True)
        assert json.loads(config_path.read_text())["icons"]["theme_style"] == "dark"

    def test_stop_flushes_and_reload_sees_value(self, config_path):
        service = started(config_path)
        service.set_setting(ConfigKeys.SETTINGS_POLLING_RATE, 500)
        service.stop()

        reloaded = started(config_path)
        try:
            assert reloaded.get_setting(ConfigKeys.SETTINGS_POLLING_RATE) == 500
        finally:
            reloaded.stop()
