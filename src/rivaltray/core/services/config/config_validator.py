"""Configuration validator - type and range checks with repair"""

import re
from typing import Any, Dict, List, Tuple

from ....utils import app_logger
from .config_defaults import get_default_config
from .config_keys import ConfigKeys
from .config_reader import dotted_get

HEX_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")

_VALID_STYLES = ("light", "dark", "custom")
_VALID_RENDERERS = ("qtsvg", "rsvg-convert")
_VALID_BUCKETS = ("disconnected", "critical", "low", "medium", "high", "full")


class ConfigValidator:
    """Validates a merged configuration and resets bad values to defaults"""

    def __init__(self):
        self._defaults = get_default_config()

    def validate_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Check the configuration

        Returns:
            {"valid": bool, "issues": [(key, message), ...]}
        """
        issues: List[Tuple[str, str]] = []

        def check_int(key: str, low: int, high: int) -> None:
            value = dotted_get(config, key)
            if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
                issues.append((key, f"expected integer in {low}..{high}, got {value!r}"))

        def check_choice(key: str, choices) -> None:
            value = dotted_get(config, key)
            if value not in choices:
                issues.append((key, f"expected one of {', '.join(choices)}, got {value!r}"))

        def check_bool(key: str) -> None:
            if not isinstance(dotted_get(config, key), bool):
                issues.append((key, "expected boolean"))

        tool = dotted_get(config, ConfigKeys.DEVICE_TOOL)
        if not isinstance(tool, str) or not tool.strip():
            issues.append((ConfigKeys.DEVICE_TOOL, "expected non-empty string"))

        check_int(ConfigKeys.DEVICE_TIMEOUT_SECONDS, 2, 5)
        check_bool(ConfigKeys.DEVICE_RESTORE_ON_STARTUP)
        check_int(ConfigKeys.POLLING_INTERVAL_SECONDS, 5, 3600)
        check_int(ConfigKeys.POLLING_MAX_INTERVAL_SECONDS, 5, 86400)
        check_bool(ConfigKeys.POLLING_BACKOFF_ENABLED)
        check_choice(ConfigKeys.ICONS_THEME_STYLE, _VALID_STYLES)
        check_int(ConfigKeys.ICONS_SIZE, 16, 512)
        check_choice(ConfigKeys.ICONS_RENDERER, _VALID_RENDERERS)
        check_choice(ConfigKeys.ICONS_UNKNOWN_BUCKET, _VALID_BUCKETS)
        check_bool(ConfigKeys.UI_NOTIFICATIONS)

        color = dotted_get(config, ConfigKeys.ICONS_CUSTOM_COLOR)
        if not isinstance(color, str) or not HEX_COLOR_RE.match(color):
            issues.append((ConfigKeys.ICONS_CUSTOM_COLOR, f"expected #rrggbb, got {color!r}"))

        return {"valid": not issues, "issues": issues}

    def repair_config(self, config: Dict[str, Any]) -> List[str]:
        """Reset every invalid key to its default in place

        Returns:
            The keys that were repaired
        """
        repaired = []
        for key, message in self.validate_config(config)["issues"]:
            default = dotted_get(self._defaults, key)
            self._set_nested(config, key, default)
            repaired.append(key)
            app_logger.warning(
                f"Invalid configuration value for {key}: {message}; using default",
                context={"key": key, "default": default},
                component="config_validator",
            )
        return repaired

    @staticmethod
    def _set_nested(config: Dict[str, Any], key: str, value: Any) -> None:
        keys = key.split(".")
        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]
        config[keys[-1]] = value
