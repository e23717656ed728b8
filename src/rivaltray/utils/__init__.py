"""Utilities: exception hierarchy and the unified logging system"""

from .exceptions import *  # noqa: F403, F401
from .unified_logger import (  # noqa: F401
    logger,
    unified_logger,
    app_logger,
    LogLevel,
    LogCategory,
)


def log_configuration_change(setting: str, old_value, new_value, component: str = "config"):
    """Record a configuration change"""
    ctx = {
        "event_type": "config_change",
        "setting": setting,
        "old_value": old_value,
        "new_value": new_value,
    }
    logger.info(f"Config Change: {setting}", LogCategory.CONFIG, ctx, component)
