"""Menu action bridge - device setting changes

Translates menu selections into validated SettingAction values and runs
them through the configuration tool. Successful changes are persisted so
they can be restored on the next start. Action failures are reported to
the caller and never touch the icon state.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from PySide6.QtCore import QObject, Signal

from .interfaces.config import IConfigService
from .interfaces.process import CommandOutput, ICommandRunner
from .models import ThemeStyle
from .services.config.config_keys import ConfigKeys
from .services.config.config_validator import HEX_COLOR_RE
from ..utils import ActionError, ActionErrorKind, LogCategory, app_logger, log_configuration_change

SENSITIVITY_RANGE = (100, 16000)
POLLING_RATES = (125, 250, 500, 1000)
SLEEP_TIMER_RANGE = (0, 20)
DIM_TIMER_RANGE = (0, 1200)

# Menu presets
SENSITIVITY_PRESETS = (400, 800, 1200, 1600, 3200)
SLEEP_TIMER_PRESETS = (1, 5, 10, 15, 20)
DIM_TIMER_PRESETS = (0, 30, 60, 120, 300)


def _check_int(name: str, value: Any, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
        raise ActionError(
            ActionErrorKind.INVALID_ARGUMENT,
            f"{name} must be an integer between {low} and {high}",
            context={"value": value},
        )


@dataclass(frozen=True)
class SetSensitivity:
    dpi: int

    def validate(self) -> None:
        _check_int("Sensitivity", self.dpi, *SENSITIVITY_RANGE)

    def tool_args(self) -> List[str]:
        return ["--sensitivity", str(self.dpi)]

    def persisted(self) -> Dict[str, Any]:
        return {ConfigKeys.SETTINGS_SENSITIVITY: self.dpi}

    def describe(self) -> str:
        return f"Sensitivity set to {self.dpi} DPI"


@dataclass(frozen=True)
class SetPollingRate:
    hz: int

    def validate(self) -> None:
        if isinstance(self.hz, bool) or self.hz not in POLLING_RATES:
            raise ActionError(
                ActionErrorKind.INVALID_ARGUMENT,
                f"Polling rate must be one of {', '.join(map(str, POLLING_RATES))} Hz",
                context={"value": self.hz},
            )

    def tool_args(self) -> List[str]:
        return ["--polling-rate", str(self.hz)]

    def persisted(self) -> Dict[str, Any]:
        return {ConfigKeys.SETTINGS_POLLING_RATE: self.hz}

    def describe(self) -> str:
        return f"Polling rate set to {self.hz} Hz"


@dataclass(frozen=True)
class SetSleepTimer:
    minutes: int

    def validate(self) -> None:
        _check_int("Sleep timer", self.minutes, *SLEEP_TIMER_RANGE)

    def tool_args(self) -> List[str]:
        return ["--sleep-timer", str(self.minutes)]

    def persisted(self) -> Dict[str, Any]:
        return {ConfigKeys.SETTINGS_SLEEP_TIMER: self.minutes}

    def describe(self) -> str:
        return f"Sleep timer set to {self.minutes} min"


@dataclass(frozen=True)
class SetDimTimer:
    seconds: int

    def validate(self) -> None:
        _check_int("Dim timer", self.seconds, *DIM_TIMER_RANGE)

    def tool_args(self) -> List[str]:
        return ["--dim-timer", str(self.seconds)]

    def persisted(self) -> Dict[str, Any]:
        return {ConfigKeys.SETTINGS_DIM_TIMER: self.seconds}

    def describe(self) -> str:
        return f"Dim timer set to {self.seconds} s"


@dataclass(frozen=True)
class SetTheme:
    """Icon style change. Local only, the tool is not involved."""

    style: ThemeStyle
    accent: str = ""

    def validate(self) -> None:
        if not isinstance(self.style, ThemeStyle):
            raise ActionError(
                ActionErrorKind.INVALID_ARGUMENT, "Unknown icon theme", context={"value": self.style}
            )
        if self.accent and not HEX_COLOR_RE.match(self.accent):
            raise ActionError(
                ActionErrorKind.INVALID_ARGUMENT,
                "Custom colour must look like #rrggbb",
                context={"value": self.accent},
            )

    def tool_args(self) -> List[str]:
        return []

    def persisted(self) -> Dict[str, Any]:
        values = {ConfigKeys.ICONS_THEME_STYLE: self.style.value}
        if self.accent:
            values[ConfigKeys.ICONS_CUSTOM_COLOR] = self.accent.lower()
        return values

    def describe(self) -> str:
        return f"Icon theme set to {self.style.value}"


@dataclass(frozen=True)
class ResetSettings:
    """Restore the factory settings on the mouse and forget persisted ones"""

    def validate(self) -> None:
        pass

    def tool_args(self) -> List[str]:
        return ["-r"]

    def persisted(self) -> Dict[str, Any]:
        return {
            ConfigKeys.SETTINGS_SENSITIVITY: None,
            ConfigKeys.SETTINGS_POLLING_RATE: None,
            ConfigKeys.SETTINGS_SLEEP_TIMER: None,
            ConfigKeys.SETTINGS_DIM_TIMER: None,
        }

    def describe(self) -> str:
        return "Device settings reset"


SettingAction = Union[SetSensitivity, SetPollingRate, SetSleepTimer, SetDimTimer, SetTheme, ResetSettings]
ActionCallback = Callable[[SettingAction, Optional[ActionError]], None]

# Menu action id -> constructor taking the menu payload
MENU_ACTIONS: Dict[str, Callable[[Any], SettingAction]] = {
    "sensitivity": lambda payload: SetSensitivity(int(payload)),
    "polling_rate": lambda payload: SetPollingRate(int(payload)),
    "sleep_timer": lambda payload: SetSleepTimer(int(payload)),
    "dim_timer": lambda payload: SetDimTimer(int(payload)),
    "theme": lambda payload: SetTheme(ThemeStyle.from_setting(payload)),
    "reset": lambda payload: ResetSettings(),
}


def action_from_menu(action_id: str, payload: Any = None) -> SettingAction:
    """Build the SettingAction for a menu item

    Raises:
        ActionError: INVALID_ARGUMENT for an unknown id or malformed payload
    """
    factory = MENU_ACTIONS.get(action_id)
    if factory is None:
        raise ActionError(ActionErrorKind.INVALID_ARGUMENT, f"Unknown menu action '{action_id}'")
    try:
        return factory(payload)
    except (TypeError, ValueError) as e:
        raise ActionError(
            ActionErrorKind.INVALID_ARGUMENT,
            f"Bad value for {action_id}",
            context={"payload": payload},
            original_exception=e,
        ) from e


_RESTORE_ORDER = (
    (ConfigKeys.SETTINGS_SENSITIVITY, SetSensitivity),
    (ConfigKeys.SETTINGS_POLLING_RATE, SetPollingRate),
    (ConfigKeys.SETTINGS_SLEEP_TIMER, SetSleepTimer),
    (ConfigKeys.SETTINGS_DIM_TIMER, SetDimTimer),
)


def build_tool_args(settings: Dict[str, Any]) -> List[str]:
    """Arguments that re-apply every valid persisted setting in one call

    Args:
        settings: mapping of settings.* keys to values, None meaning unset

    Invalid values are skipped with a warning.
    """
    args: List[str] = []
    for key, action_type in _RESTORE_ORDER:
        value = settings.get(key)
        if value is None:
            continue
        try:
            action = action_type(value)
            action.validate()
        except ActionError as e:
            app_logger.warning(
                f"Skipping persisted setting {key}",
                LogCategory.ACTION,
                context={"value": value, "reason": e.message},
                component="menu_actions",
            )
            continue
        args.extend(action.tool_args())
    return args


def classify_action_output(tool: str, output: CommandOutput) -> Optional[ActionError]:
    """None on success, otherwise the ActionError for this output"""
    if output.failed_to_start:
        return ActionError(ActionErrorKind.TOOL_NOT_FOUND, f"{tool} could not be started")
    if output.timed_out:
        return ActionError(ActionErrorKind.TIMEOUT, f"{tool} did not answer in time")
    if not output.success:
        detail = (output.stderr or output.stdout).strip().splitlines()
        return ActionError(
            ActionErrorKind.COMMAND_FAILED,
            detail[-1] if detail else f"{tool} exited with status {output.exit_code}",
            context={"exit_code": output.exit_code},
        )
    return None


class MenuActionBridge(QObject):
    """Runs setting actions, one at a time

    Signals:
        action_finished(action, error): error is None on success
        refresh_requested(): a setting changed and the icon should be re-sampled
        style_changed(style, accent): the icon theme was changed locally
    """

    action_finished = Signal(object, object)
    refresh_requested = Signal()
    style_changed = Signal(object, str)

    def __init__(
        self,
        runner: ICommandRunner,
        config_service: Optional[IConfigService] = None,
        tool: str = "rivalcfg",
        timeout_seconds: float = 3,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._runner = runner
        self._config_service = config_service
        self._tool = tool
        self._timeout_ms = int(timeout_seconds * 1000)
        self._in_flight: Optional[SettingAction] = None
        self._restoring = False

    @property
    def busy(self) -> bool:
        return self._in_flight is not None or self._restoring

    def _running_description(self) -> str:
        return "restore of persisted settings" if self._restoring else repr(self._in_flight)

    def apply(self, action: SettingAction, on_done: Optional[ActionCallback] = None) -> None:
        """Validate and apply one action; the outcome goes to on_done and action_finished"""
        try:
            action.validate()
            if self.busy:
                raise ActionError(
                    ActionErrorKind.BUSY,
                    "Another setting change is still running",
                    context={"running": self._running_description()},
                )
        except ActionError as e:
            self._finish(action, e, on_done)
            return

        if isinstance(action, SetTheme):
            self._apply_theme(action, on_done)
            return

        app_logger.log_action_event("Applying setting", {"action": repr(action), "args": action.tool_args()})
        self._in_flight = action
        self._runner.run(
            self._tool,
            action.tool_args(),
            self._timeout_ms,
            lambda output: self._on_output(action, output, on_done),
        )

    def _apply_theme(self, action: SetTheme, on_done: Optional[ActionCallback]) -> None:
        accent = action.accent
        if action.style == ThemeStyle.CUSTOM and not accent:
            accent = self._get_setting(ConfigKeys.ICONS_CUSTOM_COLOR, "")

        self._persist(action)
        self.style_changed.emit(action.style, accent if action.style == ThemeStyle.CUSTOM else "")
        self._finish(action, None, on_done)
        self.refresh_requested.emit()

    def _on_output(self, action: SettingAction, output: CommandOutput, on_done: Optional[ActionCallback]) -> None:
        self._in_flight = None
        error = classify_action_output(self._tool, output)
        if error is None:
            self._persist(action)
        self._finish(action, error, on_done)
        if error is None:
            self.refresh_requested.emit()

    def _finish(self, action: SettingAction, error: Optional[ActionError], on_done: Optional[ActionCallback]) -> None:
        if error is None:
            app_logger.log_action_event("Setting applied", {"action": repr(action)})
        else:
            app_logger.log_recoverable(error, "apply_setting", {"action": repr(action)})

        if on_done is not None:
            on_done(action, error)
        self.action_finished.emit(action, error)

    def _persist(self, action: SettingAction) -> None:
        if self._config_service is None:
            return
        for key, value in action.persisted().items():
            old_value = self._config_service.get_setting(key)
            if old_value == value:
                continue
            self._config_service.set_setting(key, value)
            log_configuration_change(key, old_value, value, component="menu_actions")

    def _get_setting(self, key: str, default: Any = None) -> Any:
        if self._config_service is None:
            return default
        return self._config_service.get_setting(key, default)

    def restore_settings(self, on_done: Optional[Callable[[Optional[ActionError]], None]] = None) -> bool:
        """Re-apply the persisted settings in a single tool invocation

        Returns:
            False if there was nothing to restore or an action is running
        """
        if self._config_service is None or self.busy:
            return False

        settings = {key: self._get_setting(key) for key, _ in _RESTORE_ORDER}
        args = build_tool_args(settings)
        if not args:
            return False

        app_logger.log_action_event("Restoring persisted settings", {"args": args})
        self._restoring = True

        def on_output(output: CommandOutput) -> None:
            self._restoring = False
            error = classify_action_output(self._tool, output)
            if error is None:
                app_logger.log_action_event("Persisted settings restored", {"args": args})
            else:
                app_logger.log_recoverable(error, "restore_settings", {"args": args})
            if on_done is not None:
                on_done(error)

        self._runner.run(self._tool, args, self._timeout_ms, on_output)
        return True
