"""Default configuration"""

from typing import Dict, Any


def get_default_config() -> Dict[str, Any]:
    """Return a fresh default configuration dictionary"""
    return {
        "device": {
            "tool": "rivalcfg",
            "timeout_seconds": 3,
            "restore_on_startup": False,
        },
        "polling": {
            "interval_seconds": 30,
            "max_interval_seconds": 300,
            "backoff_enabled": True,
        },
        "icons": {
            "theme_style": "light",
            "custom_color": "#ff8800",
            "size": 64,
            "renderer": "qtsvg",  # "qtsvg" | "rsvg-convert"
            "unknown_bucket": "medium",
        },
        # Last successfully applied device settings (None = never set)
        "settings": {
            "sensitivity": None,
            "polling_rate": None,
            "sleep_timer": None,
            "dim_timer": None,
        },
        "ui": {
            "notifications": True,
        },
        "logging": {
            "level": "INFO",
            "console_output": False,
            "enabled_categories": [],
        },
    }
