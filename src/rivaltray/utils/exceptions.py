"""Exception hierarchy for RivalTray

Every error that crosses a component boundary carries a ``kind`` (an
enum of the failure modes of that component) and a stable
``error_code`` derived from it, e.g. ``SOURCE_TIMEOUT``. Errors from
the device and the action bridge are usually delivered as values to a
callback rather than raised.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCategory(Enum):
    STARTUP = "startup"
    CONFIGURATION = "configuration"
    DEVICE = "device"
    ICON = "icon"
    TRAY = "tray"
    ACTION = "action"


class RivalTrayError(Exception):
    """Base exception for RivalTray

    Subclasses set ``category``, ``code_prefix`` and optionally
    ``suggestions`` (a list, or a dict keyed by kind).
    """

    category = ErrorCategory.STARTUP
    code_prefix = "RIVALTRAY"
    suggestions: Any = ()

    def __init__(
        self,
        message: str,
        kind: Optional[Enum] = None,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        recovery_suggestions: Optional[List[str]] = None,
        original_exception: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.error_code = error_code or (
            f"{self.code_prefix}_{kind.name}" if kind is not None else f"{self.code_prefix}_ERROR"
        )
        self.context = dict(context or {})
        self.original_exception = original_exception
        if recovery_suggestions is None:
            recovery_suggestions = self._suggestions_for(kind)
        self.recovery_suggestions = list(recovery_suggestions)

    def _suggestions_for(self, kind: Optional[Enum]) -> List[str]:
        if isinstance(self.suggestions, dict):
            return list(self.suggestions.get(kind, ()))
        return list(self.suggestions)

    def to_dict(self) -> Dict[str, Any]:
        """Fields for the structured error log"""
        data = {
            "type": self.__class__.__name__,
            "error_code": self.error_code,
            "category": self.category.value,
            "message": self.message,
        }
        if self.context:
            data["context"] = self.context
        if self.original_exception is not None:
            data["cause"] = repr(self.original_exception)
        return data

    def get_user_message(self) -> str:
        """Message for a notification, with the first suggestion if any"""
        if not self.recovery_suggestions:
            return self.message
        return f"{self.message}\n{self.recovery_suggestions[0]}"


# Device status


class SourceErrorKind(Enum):
    TOOL_NOT_FOUND = "tool_not_found"
    TIMEOUT = "timeout"
    PARSE_FAILURE = "parse_failure"
    DEVICE_ABSENT = "device_absent"
    COMMAND_FAILED = "command_failed"


class SourceError(RivalTrayError):
    """Battery query failed (tool missing, timed out, unreadable output)"""

    category = ErrorCategory.DEVICE
    code_prefix = "SOURCE"
    suggestions = {
        SourceErrorKind.TOOL_NOT_FOUND: ["Install rivalcfg and make sure it is on PATH"],
        SourceErrorKind.TIMEOUT: ["Check the receiver, or raise device.timeout_seconds"],
        SourceErrorKind.DEVICE_ABSENT: ["Turn the mouse on or plug in the receiver"],
        SourceErrorKind.PARSE_FAILURE: ["Update rivalcfg to a supported version"],
    }

    def __init__(self, kind: SourceErrorKind, message: str, **kwargs):
        super().__init__(message, kind=kind, **kwargs)


# Icon cache


class CacheErrorKind(Enum):
    RENDER_FAILURE = "render_failure"
    SOURCE_MISSING = "source_missing"
    DISK_FAILURE = "disk_failure"


class CacheError(RivalTrayError):
    """An icon could not be rendered or stored"""

    category = ErrorCategory.ICON
    code_prefix = "CACHE"
    suggestions = {
        CacheErrorKind.RENDER_FAILURE: ["Switch icons.renderer between qtsvg and rsvg-convert"],
        CacheErrorKind.DISK_FAILURE: ["Check that $XDG_RUNTIME_DIR is writable and owned by you"],
    }

    def __init__(self, kind: CacheErrorKind, message: str, **kwargs):
        super().__init__(message, kind=kind, **kwargs)


# Tray registration


class RegistrationErrorKind(Enum):
    BACKEND_UNAVAILABLE = "backend_unavailable"
    REGISTRATION_LOST = "registration_lost"


class RegistrationError(RivalTrayError):
    """The status-notifier host is absent or went away"""

    category = ErrorCategory.TRAY
    code_prefix = "TRAY"
    suggestions = ["Run rivaltray --diagnostics to inspect the session"]

    def __init__(self, kind: RegistrationErrorKind, message: str, **kwargs):
        super().__init__(message, kind=kind, **kwargs)


# Setting actions


class ActionErrorKind(Enum):
    INVALID_ARGUMENT = "invalid_argument"
    TOOL_NOT_FOUND = "tool_not_found"
    TIMEOUT = "timeout"
    COMMAND_FAILED = "command_failed"
    BUSY = "busy"


class ActionError(RivalTrayError):
    """A setting change was rejected or failed"""

    category = ErrorCategory.ACTION
    code_prefix = "ACTION"

    def __init__(self, kind: ActionErrorKind, message: str, **kwargs):
        super().__init__(message, kind=kind, **kwargs)


# Configuration and startup


class ConfigurationError(RivalTrayError):
    category = ErrorCategory.CONFIGURATION
    code_prefix = "CONFIG"
    suggestions = ["Delete the configuration file to restore defaults"]


class StartupError(RivalTrayError):
    """Fatal startup failure with a distinct process exit code"""

    category = ErrorCategory.STARTUP
    code_prefix = "STARTUP"

    def __init__(self, message: str, exit_code: int, **kwargs):
        self.exit_code = exit_code
        super().__init__(message, **kwargs)


__all__ = [
    "ErrorCategory",
    "RivalTrayError",
    "SourceErrorKind",
    "SourceError",
    "CacheErrorKind",
    "CacheError",
    "RegistrationErrorKind",
    "RegistrationError",
    "ActionErrorKind",
    "ActionError",
    "ConfigurationError",
    "StartupError",
]
