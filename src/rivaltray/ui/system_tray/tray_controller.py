"""System tray controller - tray registration state

Owns the single tray registration and the TrayState that mirrors what
the host is showing. Icon changes arrive as (file path, IconKey) pairs
and are published as (theme path, bare icon name), theme path first.
A repeated key results in no host write at all.

Host absence is not fatal: the controller runs headless and retries the
registration on the next publish.
"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from PySide6.QtCore import QObject, Signal

from ...core.interfaces.tray import ITrayBackend, MenuEntry
from ...core.menu_actions import (
    DIM_TIMER_PRESETS,
    POLLING_RATES,
    SENSITIVITY_PRESETS,
    SLEEP_TIMER_PRESETS,
    action_from_menu,
)
from ...core.models import DeviceStatus, IconKey, ThemeStyle
from ...device.status_source import DEFAULT_DEVICE_NAME
from ...utils import ActionError, LogCategory, RegistrationError, RegistrationErrorKind, app_logger

ERROR_ICON_NAME = "dialog-error"
APP_TITLE = "RivalTray"


@dataclass
class TrayState:
    """What the tray host was last told"""

    registered: bool = False
    theme_path: Optional[Path] = None
    icon_name: Optional[str] = None
    key: Optional[IconKey] = None
    host_writes: int = 0


def battery_text(status: Optional[DeviceStatus]) -> str:
    if status is None or not status.connected or status.battery_percent is None:
        return "Battery: --"
    return f"Battery: {status.battery_percent}%"


def build_menu(device_name: str = DEFAULT_DEVICE_NAME) -> List[Optional[MenuEntry]]:
    """The tray menu tree"""
    return [
        MenuEntry(device_name, key="device"),
        MenuEntry(battery_text(None), key="battery"),
        MenuEntry("Status: Unknown", key="status"),
        None,
        MenuEntry(
            "Sensitivity",
            children=[MenuEntry(f"{dpi} DPI", action_id="sensitivity", payload=dpi) for dpi in SENSITIVITY_PRESETS],
        ),
        MenuEntry(
            "Polling rate",
            children=[MenuEntry(f"{hz} Hz", action_id="polling_rate", payload=hz) for hz in POLLING_RATES],
        ),
        MenuEntry(
            "Sleep timer",
            children=[
                MenuEntry(f"{minutes} min", action_id="sleep_timer", payload=minutes)
                for minutes in SLEEP_TIMER_PRESETS
            ],
        ),
        MenuEntry(
            "Dim timer",
            children=[
                MenuEntry("Off" if seconds == 0 else f"{seconds} s", action_id="dim_timer", payload=seconds)
                for seconds in DIM_TIMER_PRESETS
            ],
        ),
        MenuEntry(
            "Icon theme",
            children=[
                MenuEntry(style.value.capitalize(), action_id="theme", payload=style.value) for style in ThemeStyle
            ],
        ),
        None,
        MenuEntry("Refresh now", action_id="refresh"),
        MenuEntry("Reset device settings", action_id="reset"),
        None,
        MenuEntry("Quit", action_id="quit"),
    ]


class TrayController(QObject):
    """Tray registration

    Note: Inherits from QObject to support Qt signals.
    Implements the lifecycle pattern manually to avoid metaclass conflicts.
    """

    refresh_requested = Signal()
    quit_requested = Signal()
    setting_requested = Signal(object)  # SettingAction

    def __init__(
        self,
        backend: ITrayBackend,
        notifications_enabled: bool = True,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)

        self._component_name = "tray_controller"
        self._is_running = False

        self._backend = backend
        self._notifications_enabled = notifications_enabled
        self._state = TrayState()

        self._device_name = DEFAULT_DEVICE_NAME
        self._labels: Dict[str, str] = {}
        self._tooltip = APP_TITLE

    # ==================== Lifecycle Methods (manual implementation) ====================

    def start(self) -> bool:
        """Register with the tray host

        Returns:
            False only when a present host rejected the registration;
            an absent host leaves the controller running headless.
        """
        if self._is_running:
            return True

        try:
            self._register()
        except RegistrationError as e:
            if e.kind != RegistrationErrorKind.BACKEND_UNAVAILABLE:
                app_logger.log_error(e, f"{self._component_name}_start")
                return False
            app_logger.log_recoverable(e, "register_tray", {"mode": "headless"})
        except Exception as e:
            app_logger.log_error(e, f"{self._component_name}_start")
            return False

        self._is_running = True
        return True

    def stop(self) -> bool:
        if not self._is_running:
            return True

        try:
            if self._state.registered:
                self._backend.unregister()
                app_logger.log_tray_event("Tray icon unregistered")
        except Exception as e:
            app_logger.log_error(e, f"{self._component_name}_stop")
            return False
        finally:
            self._state = TrayState()
            self._is_running = False
        return True

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def is_headless(self) -> bool:
        return not self._state.registered

    @property
    def state(self) -> TrayState:
        """Snapshot of the published state"""
        return replace(self._state)

    # ==================== Registration ====================

    def _register(self) -> None:
        """Create the registration and replay labels and tooltip

        Raises:
            RegistrationError: BACKEND_UNAVAILABLE if no host is present
        """
        if not self._backend.is_host_available():
            raise RegistrationError(RegistrationErrorKind.BACKEND_UNAVAILABLE, "No system tray host is available")

        self._backend.register(build_menu(self._device_name), self._on_menu)
        self._state = TrayState(registered=True, host_writes=self._state.host_writes)
        if self._labels:
            self._backend.set_labels(self._labels)
        self._backend.set_tooltip(self._tooltip)

    def _ensure_registered(self) -> bool:
        if self._state.registered:
            if self._backend.is_host_available():
                return True
            lost = RegistrationError(RegistrationErrorKind.REGISTRATION_LOST, "Tray host went away")
            app_logger.log_recoverable(
                lost, "publish_icon", {"icon_name": self._state.icon_name}
            )
            try:
                self._backend.unregister()
            except Exception as e:
                app_logger.log_recoverable(e, "unregister_tray")
            self._state = TrayState(host_writes=self._state.host_writes)
            return False

        try:
            self._register()
        except RegistrationError as e:
            app_logger.debug(
                "Tray host still unavailable",
                LogCategory.TRAY,
                context={"error_code": e.error_code},
                component=self._component_name,
            )
            return False
        app_logger.log_tray_event("Tray icon re-registered")
        return True

    def publish(self, icon_path: Path, key: IconKey) -> bool:
        """Show the icon at icon_path for key

        Nothing is written when key and file are already published.

        Returns:
            True if the host was updated
        """
        icon_path = Path(icon_path)
        theme_path = icon_path.parent
        icon_name = icon_path.stem

        if not self._ensure_registered():
            app_logger.log_tray_event(
                "Headless, icon not shown", {"icon_name": icon_name, "bucket": key.bucket.value}
            )
            return False

        state = self._state
        if state.key == key and state.icon_name == icon_name and state.theme_path == theme_path:
            return False

        if state.theme_path != theme_path:
            self._backend.set_theme_path(theme_path)
            state.theme_path = theme_path
            state.host_writes += 1

        if not self._backend.set_icon_name(icon_name):
            app_logger.warning(
                "Tray host could not resolve icon name",
                LogCategory.TRAY,
                context={"icon_name": icon_name, "theme_path": str(theme_path)},
                component=self._component_name,
            )
            self.show_error_state(key)
            return False

        state.icon_name = icon_name
        state.key = key
        state.host_writes += 1
        app_logger.log_tray_event("Icon published", {"icon_name": icon_name, "theme_path": str(theme_path)})
        return True

    def show_error_state(self, key: Optional[IconKey] = None) -> None:
        """Show the stock error icon when no rendered icon is available"""
        if not self._ensure_registered():
            return
        if self._state.icon_name == ERROR_ICON_NAME:
            return
        if self._backend.set_icon_name(ERROR_ICON_NAME):
            self._state.host_writes += 1
        self._state.icon_name = ERROR_ICON_NAME
        self._state.key = None
        app_logger.log_tray_event(
            "Showing error icon", {"requested": key.icon_name if key else None}
        )

    # ==================== Labels / notifications ====================

    def set_device_name(self, name: str) -> None:
        self._device_name = name
        self._set_labels({"device": name})

    def update_status(self, status: DeviceStatus) -> None:
        battery = battery_text(status)
        self._tooltip = f"{self._device_name}\n{battery}"
        self._set_labels({"battery": battery, "status": f"Status: {status.describe()}"})
        if self._state.registered:
            self._backend.set_tooltip(self._tooltip)

    def _set_labels(self, labels: Dict[str, str]) -> None:
        changed = {k: v for k, v in labels.items() if self._labels.get(k) != v}
        if not changed:
            return
        self._labels.update(changed)
        if self._state.registered:
            self._backend.set_labels(changed)

    def set_notifications_enabled(self, enabled: bool) -> None:
        self._notifications_enabled = enabled

    def notify(self, message: str, critical: bool = False) -> bool:
        if not self._notifications_enabled or not self._state.registered:
            return False
        return self._backend.show_message(APP_TITLE, message, critical)

    # ==================== Menu ====================

    def _on_menu(self, action_id: str, payload: Any) -> None:
        app_logger.log_tray_event("Menu item selected", {"action": action_id, "payload": payload})

        if action_id == "refresh":
            self.refresh_requested.emit()
            return
        if action_id == "quit":
            self.quit_requested.emit()
            return

        try:
            action = action_from_menu(action_id, payload)
        except ActionError as e:
            app_logger.log_recoverable(e, "menu_action", {"action": action_id, "payload": payload})
            self.notify(e.get_user_message(), critical=True)
            return
        self.setting_requested.emit(action)
