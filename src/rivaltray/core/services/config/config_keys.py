"""Configuration key constants

Central definition of every dotted configuration path.

Usage:
    config.get_setting(ConfigKeys.POLLING_INTERVAL_SECONDS)
"""


class ConfigKeys:
    """Configuration key constants"""

    # ==================== Device (external tool) ====================
    DEVICE_TOOL = "device.tool"
    """Executable name or path of the configuration tool (str)"""

    DEVICE_TIMEOUT_SECONDS = "device.timeout_seconds"
    """Per-invocation timeout (int, 2..5)"""

    DEVICE_RESTORE_ON_STARTUP = "device.restore_on_startup"
    """Re-apply persisted settings once at startup (bool)"""

    # ==================== Polling ====================
    POLLING_INTERVAL_SECONDS = "polling.interval_seconds"
    """Base polling interval (int)"""

    POLLING_MAX_INTERVAL_SECONDS = "polling.max_interval_seconds"
    """Upper bound for the backoff interval (int)"""

    POLLING_BACKOFF_ENABLED = "polling.backoff_enabled"
    """Widen the interval while the tool is missing or timing out (bool)"""

    # ==================== Icons ====================
    ICONS_THEME_STYLE = "icons.theme_style"
    """Foreground style (str): "light" | "dark" | "custom" """

    ICONS_CUSTOM_COLOR = "icons.custom_color"
    """Foreground colour for the custom style (str, #rrggbb)"""

    ICONS_SIZE = "icons.size"
    """Raster size in pixels (int)"""

    ICONS_RENDERER = "icons.renderer"
    """Rasterizer (str): "qtsvg" | "rsvg-convert" """

    ICONS_UNKNOWN_BUCKET = "icons.unknown_bucket"
    """Bucket shown for a connected device with no readable charge (str)"""

    # ==================== Persisted device settings ====================
    SETTINGS_SENSITIVITY = "settings.sensitivity"
    SETTINGS_POLLING_RATE = "settings.polling_rate"
    SETTINGS_SLEEP_TIMER = "settings.sleep_timer"
    SETTINGS_DIM_TIMER = "settings.dim_timer"

    # ==================== UI ====================
    UI_NOTIFICATIONS = "ui.notifications"
    """Show tray messages for low battery and action results (bool)"""

    # ==================== Logging ====================
    LOGGING_LEVEL = "logging.level"
    LOGGING_CONSOLE_OUTPUT = "logging.console_output"
    LOGGING_ENABLED_CATEGORIES = "logging.enabled_categories"


class ConfigKeyGroups:
    """Keys grouped by section"""

    DEVICE = [
        ConfigKeys.DEVICE_TOOL,
        ConfigKeys.DEVICE_TIMEOUT_SECONDS,
        ConfigKeys.DEVICE_RESTORE_ON_STARTUP,
    ]

    POLLING = [
        ConfigKeys.POLLING_INTERVAL_SECONDS,
        ConfigKeys.POLLING_MAX_INTERVAL_SECONDS,
        ConfigKeys.POLLING_BACKOFF_ENABLED,
    ]

    ICONS = [
        ConfigKeys.ICONS_THEME_STYLE,
        ConfigKeys.ICONS_CUSTOM_COLOR,
        ConfigKeys.ICONS_SIZE,
        ConfigKeys.ICONS_RENDERER,
        ConfigKeys.ICONS_UNKNOWN_BUCKET,
    ]

    SETTINGS = [
        ConfigKeys.SETTINGS_SENSITIVITY,
        ConfigKeys.SETTINGS_POLLING_RATE,
        ConfigKeys.SETTINGS_SLEEP_TIMER,
        ConfigKeys.SETTINGS_DIM_TIMER,
    ]
