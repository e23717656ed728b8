"""Configuration service - facade over reader, writer and validator"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional, TypeVar

from ...base.lifecycle_component import LifecycleComponent
from ...interfaces.config import IConfigService
from ....utils import ConfigurationError, app_logger, log_configuration_change

from .config_reader import ConfigReader
from .config_validator import ConfigValidator
from .config_writer import ConfigWriter

T = TypeVar("T")


def default_config_path() -> Path:
    """$XDG_CONFIG_HOME/rivaltray/config.json"""
    config_home = os.getenv("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(config_home) / "rivaltray" / "config.json"


class ConfigService(LifecycleComponent, IConfigService):
    """Configuration service

    Loads the JSON configuration on start, repairs invalid values, and
    flushes pending writes on stop.
    """

    def __init__(self, config_path: Optional[str] = None, save_delay: float = 0.5):
        """
        Args:
            config_path: configuration file path, None for the default location
            save_delay: debounce delay for non-immediate saves
        """
        super().__init__("ConfigService")

        self.config_path = Path(config_path) if config_path else default_config_path()

        self._reader = ConfigReader(self.config_path)
        self._writer = ConfigWriter(self.config_path, save_delay=save_delay)
        self._validator = ConfigValidator()

        app_logger.log_config_event(
            "ConfigService initialized",
            {"config_path": str(self.config_path), "config_exists": self.config_path.exists()},
        )

    def _do_start(self) -> bool:
        self.load_config()
        return True

    def _do_stop(self) -> bool:
        self._writer.cleanup()
        return True

    def load_config(self) -> bool:
        """Load (or reload) the file and repair invalid values

        Returns:
            False if the file was unreadable and defaults are in use
        """
        loaded = self._reader.load_config()
        config = self._reader.get_all_settings()
        repaired = self._validator.repair_config(config)

        self._reader.replace(config)
        self._writer.set_config(copy.deepcopy(config))

        if repaired:
            self._writer.schedule_save()

        return loaded

    def get_setting(self, key: str, default: Optional[T] = None) -> T:
        return self._reader.get_setting(key, default)

    def set_setting(self, key: str, value: Any, immediate: bool = False) -> None:
        """Set a setting and persist it

        Args:
            key: dotted key
            value: new value
            immediate: save now instead of debouncing

        Raises:
            ConfigurationError: if an immediate save fails
        """
        old_value = self.get_setting(key)

        self._writer.set_setting(key, value)
        self._reader.replace(self._writer.get_config())

        if old_value != value:
            log_configuration_change(key, old_value, value)

        if immediate:
            if not self._writer.save_config():
                raise ConfigurationError(f"Failed to save configuration after setting '{key}'")
        else:
            self._writer.schedule_save()

    def save_config(self) -> bool:
        return self._writer.save_config()

    def get_all_settings(self) -> Dict[str, Any]:
        return self._reader.get_all_settings()

    def validate(self) -> Dict[str, Any]:
        return self._validator.validate_config(self._reader.get_all_settings())
