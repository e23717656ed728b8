"""Application wiring

Builds the component graph from configuration, connects the Qt signals
between the tray, the scheduler and the action bridge, and tears
everything down in a fixed order on exit.
"""

import sys
from pathlib import Path
from typing import Callable, Optional

from PySide6.QtCore import QCoreApplication, QEventLoop, QTimer

from .interfaces.process import ICommandRunner
from .interfaces.rasterizer import IRasterizer
from .interfaces.tray import ITrayBackend
from .menu_actions import MenuActionBridge, SettingAction
from .models import DeviceStatus, ThemeStyle
from .poll_scheduler import PollScheduler
from .services.config.config_keys import ConfigKeys
from .services.config.config_service import ConfigService
from ..device.process_runner import ProcessRunner
from ..device.status_source import DeviceStatusSource
from ..icons.asset_cache import IconAssetCache
from ..icons.bucket_mapper import DEFAULT_UNKNOWN_BUCKET, bucket_from_setting, map_status
from ..icons.rasterizer import QtSvgRasterizer, create_rasterizer
from ..ui.system_tray.tray_controller import TrayController
from ..utils import ActionError, LogCategory, SourceError, StartupError, app_logger

EXIT_OK = 0
EXIT_ONCE_FAILED = 1
EXIT_RUNTIME_DIR = 2
EXIT_TRAY_REGISTRATION = 3
EXIT_EVENT_LOOP = 4


class RivalTrayApp:
    """Owns every long-lived component of a tray session"""

    def __init__(
        self,
        config: ConfigService,
        runner: Optional[ICommandRunner] = None,
        tray_backend: Optional[ITrayBackend] = None,
        rasterizer: Optional[IRasterizer] = None,
        runtime_dir: Optional[Path] = None,
        on_quit: Optional[Callable[[], None]] = None,
    ):
        self.config = config
        self.runner = runner or ProcessRunner()
        self._tray_backend = tray_backend
        self._rasterizer = rasterizer
        self._runtime_dir = runtime_dir
        self._on_quit = on_quit

        self.source: Optional[DeviceStatusSource] = None
        self.cache: Optional[IconAssetCache] = None
        self.tray: Optional[TrayController] = None
        self.bridge: Optional[MenuActionBridge] = None
        self.scheduler: Optional[PollScheduler] = None

        self._initialized = False

    # ==================== Startup ====================

    def initialize(self) -> None:
        """Create the runtime directory and the tray registration

        Raises:
            StartupError: with EXIT_RUNTIME_DIR or EXIT_TRAY_REGISTRATION
        """
        get = self.config.get_setting
        tool = get(ConfigKeys.DEVICE_TOOL, "rivalcfg")
        timeout = get(ConfigKeys.DEVICE_TIMEOUT_SECONDS, 3)

        self.source = DeviceStatusSource(self.runner, tool=tool, timeout_seconds=timeout)

        self.cache = IconAssetCache(
            self._resolve_rasterizer(),
            runtime_dir=self._runtime_dir,
            size=get(ConfigKeys.ICONS_SIZE, 64),
        )
        if not self.cache.start():
            cause = self.cache.last_error
            raise StartupError(
                f"Cannot create runtime directory {self.cache.runtime_dir}",
                exit_code=EXIT_RUNTIME_DIR,
                context={"path": str(self.cache.runtime_dir), "cause": str(cause) if cause else None},
                original_exception=cause,
            )

        if self._tray_backend is None:
            from ..ui.system_tray.tray_widget import TrayWidget

            self._tray_backend = TrayWidget(QCoreApplication.instance())

        self.tray = TrayController(
            self._tray_backend,
            notifications_enabled=get(ConfigKeys.UI_NOTIFICATIONS, True),
        )
        if not self.tray.start():
            raise StartupError("Tray registration was rejected", exit_code=EXIT_TRAY_REGISTRATION)

        self.bridge = MenuActionBridge(self.runner, self.config, tool=tool, timeout_seconds=timeout)

        style = ThemeStyle.from_setting(get(ConfigKeys.ICONS_THEME_STYLE, "light"))
        self.scheduler = PollScheduler(
            self.source,
            self.cache,
            self.tray,
            interval_seconds=get(ConfigKeys.POLLING_INTERVAL_SECONDS, 30),
            max_interval_seconds=get(ConfigKeys.POLLING_MAX_INTERVAL_SECONDS, 300),
            backoff_enabled=get(ConfigKeys.POLLING_BACKOFF_ENABLED, True),
            style=style,
            accent=get(ConfigKeys.ICONS_CUSTOM_COLOR, "") if style == ThemeStyle.CUSTOM else "",
            unknown_bucket=bucket_from_setting(get(ConfigKeys.ICONS_UNKNOWN_BUCKET, "medium")),
        )

        self._connect_signals()
        self._initialized = True
        app_logger.info(
            "Components initialized",
            LogCategory.STARTUP,
            {
                "tool": tool,
                "renderer": self._rasterizer.name,
                "runtime_dir": str(self.cache.runtime_dir),
                "headless": self.tray.is_headless,
            },
            "application",
        )

    def _resolve_rasterizer(self) -> IRasterizer:
        if self._rasterizer is None:
            self._rasterizer = create_rasterizer(self.config.get_setting(ConfigKeys.ICONS_RENDERER, "qtsvg"))
        if not self._rasterizer.is_available():
            app_logger.warning(
                f"Renderer '{self._rasterizer.name}' is not available, using qtsvg",
                LogCategory.ICON,
                component="application",
            )
            self._rasterizer = QtSvgRasterizer()
        return self._rasterizer

    def _connect_signals(self) -> None:
        self.tray.refresh_requested.connect(self.scheduler.request_refresh)
        self.tray.quit_requested.connect(self._quit)
        self.tray.setting_requested.connect(self.bridge.apply)

        self.bridge.refresh_requested.connect(self.scheduler.request_refresh)
        self.bridge.style_changed.connect(self.scheduler.set_style)
        self.bridge.action_finished.connect(self._on_action_finished)

        self.scheduler.critical_battery.connect(self._on_critical_battery)

    def start(self) -> None:
        """Begin polling and, if configured, restore the persisted settings"""
        if not self._initialized:
            self.initialize()

        self.source.query_device_name(self.tray.set_device_name)
        self.scheduler.start()

        if self.config.get_setting(ConfigKeys.DEVICE_RESTORE_ON_STARTUP, False):
            self.bridge.restore_settings(on_done=lambda error: self.scheduler.request_refresh())

    # ==================== Handlers ====================

    def _quit(self) -> None:
        if self._on_quit is not None:
            self._on_quit()

    def _on_action_finished(self, action: SettingAction, error: Optional[ActionError]) -> None:
        if error is None:
            self.tray.notify(action.describe())
        else:
            self.tray.notify(f"Could not apply setting: {error.message}", critical=True)

    def _on_critical_battery(self, percent: int) -> None:
        self.tray.notify(f"Battery low: {percent}%", critical=True)

    # ==================== Shutdown ====================

    def shutdown(self) -> None:
        """Stop polling, kill children, drop the tray icon, remove the icon directory"""
        app_logger.log_shutdown()

        if self.scheduler is not None:
            self.scheduler.stop()

        self.runner.terminate_all()

        if self.tray is not None:
            self.tray.stop()

        if self.cache is not None:
            self.cache.stop()

        self._initialized = False


def run_once(config: ConfigService, runner: Optional[ICommandRunner] = None) -> int:
    """Sample once, print the status and icon key

    Returns:
        EXIT_OK on a successful sample, EXIT_ONCE_FAILED on a source error
    """
    get = config.get_setting
    source = DeviceStatusSource(
        runner or ProcessRunner(),
        tool=get(ConfigKeys.DEVICE_TOOL, "rivalcfg"),
        timeout_seconds=get(ConfigKeys.DEVICE_TIMEOUT_SECONDS, 3),
    )

    result = []
    loop = QEventLoop()

    def on_result(sample) -> None:
        result.append(sample)
        loop.quit()

    source.sample(on_result)
    if not result:
        # Safety net beyond the per-process timeout
        QTimer.singleShot(int(get(ConfigKeys.DEVICE_TIMEOUT_SECONDS, 3) * 1000) + 2000, loop.quit)
        loop.exec()

    if not result:
        print("No answer from the tool", file=sys.stderr)
        return EXIT_ONCE_FAILED

    sample = result[0]
    if isinstance(sample, SourceError):
        print(f"Error [{sample.error_code}]: {sample.message}", file=sys.stderr)
        return EXIT_ONCE_FAILED

    style = ThemeStyle.from_setting(get(ConfigKeys.ICONS_THEME_STYLE, "light"))
    key = map_status(
        sample,
        style,
        get(ConfigKeys.ICONS_CUSTOM_COLOR, ""),
        bucket_from_setting(get(ConfigKeys.ICONS_UNKNOWN_BUCKET, "medium"), DEFAULT_UNKNOWN_BUCKET),
    )
    print(_describe(sample))
    print(f"Icon: {key.icon_name}")
    return EXIT_OK


def _describe(status: DeviceStatus) -> str:
    percent = f"{status.battery_percent}%" if status.battery_percent is not None else "unknown"
    return f"Battery: {percent} ({status.describe()})"
