"""Configuration reader - loading and dotted-key lookup"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, TypeVar

from ....utils import app_logger
from .config_defaults import get_default_config

T = TypeVar("T")

_MISSING = object()


def dotted_get(config: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """config["a"]["b"] for key "a.b", or default if any level is missing"""
    value: Any = config
    for part in key.split("."):
        if not isinstance(value, Mapping):
            return default
        value = value.get(part, _MISSING)
        if value is _MISSING:
            return default
    return value


def deep_merge(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of base with overrides applied section by section"""
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(merged.get(key), dict) and isinstance(value, Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class ConfigReader:
    """Holds the merged configuration and answers lookups"""

    def __init__(self, config_path: Path):
        self.config_path = config_path
        self._default_config = get_default_config()
        self._config: Dict[str, Any] = copy.deepcopy(self._default_config)

    def load_config(self) -> bool:
        """Read the file and merge it over the defaults

        A missing file is not an error. An unreadable or malformed one
        leaves the defaults in place.

        Returns:
            False if the file existed but could not be used
        """
        if not self.config_path.exists():
            self._config = copy.deepcopy(self._default_config)
            app_logger.log_config_event("Using default configuration", {"config_path": str(self.config_path)})
            return True

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
            if not isinstance(loaded, dict):
                raise ValueError("configuration root must be an object")
        except (OSError, ValueError) as e:
            app_logger.log_error(e, "config_reader_load")
            self._config = copy.deepcopy(self._default_config)
            return False

        self._config = deep_merge(self._default_config, loaded)
        app_logger.log_config_event(
            "Configuration loaded",
            {"config_path": str(self.config_path), "sections": sorted(loaded)},
        )
        return True

    def replace(self, config: Dict[str, Any]) -> None:
        """Adopt an already merged configuration (after repair or a write)"""
        self._config = config

    def get_setting(self, key: str, default: Optional[T] = None) -> T:
        """Look up a dotted key such as "polling.interval_seconds" """
        return dotted_get(self._config, key, default)

    def get_all_settings(self) -> Dict[str, Any]:
        return copy.deepcopy(self._config)

    def get_default_value(self, key: str) -> Any:
        return dotted_get(self._default_config, key)
