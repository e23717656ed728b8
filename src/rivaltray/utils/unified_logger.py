"""Unified logging - single interface, category routing, performance tracing

Provides the RivalTray logging system:
- One API for every component
- Console output (optional, coloured) plus an append-only log file
- Category filtering (device, icon, tray, scheduler, action, ...)
- Timing via timed()

Usage:
    from rivaltray.utils import logger

    logger.info("Tray started", LogCategory.TRAY)
    logger.performance("icon_render", 0.012)

    with logger.timed("icon_render") as details:
        details["bytes"] = len(png)
"""

import os
import sys
import time
import threading
import json
import traceback
from typing import Dict, Any, Optional
from pathlib import Path
from enum import Enum
from contextlib import contextmanager


class LogLevel(Enum):
    """Log levels"""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class LogCategory(Enum):
    """Log categories (used for filtering and routing)"""

    DEVICE = "device"
    ICON = "icon"
    TRAY = "tray"
    SCHEDULER = "scheduler"
    ACTION = "action"
    CONFIG = "config"
    STARTUP = "startup"
    ERROR = "error"
    PERFORMANCE = "performance"


def default_log_dir() -> Path:
    """Log directory under $XDG_STATE_HOME (or ~/.local/state)"""
    state_home = os.getenv("XDG_STATE_HOME") or str(Path.home() / ".local" / "state")
    return Path(state_home) / "rivaltray" / "logs"


class UnifiedLogger:
    """Unified logger - singleton"""

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if hasattr(self, "_initialized"):
            return

        self._initialized = True
        self._config_service = None
        self._min_level = LogLevel.DEBUG if self._is_dev_mode() else LogLevel.INFO
        self._console_output_enabled = self._is_dev_mode()
        self._enabled_categories = set(LogCategory)
        self._lock = threading.RLock()
        self._log_file: Optional[Path] = None
        self.set_log_dir(default_log_dir())


    @staticmethod
    def _is_dev_mode() -> bool:
        """Check for development mode"""
        return bool("--dev" in sys.argv or os.getenv("RIVALTRAY_DEV"))

    def set_log_dir(self, log_dir: Path) -> None:
        """Point file output at a new directory (file logging is skipped if unwritable)"""
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            self._log_file = log_dir / "app.log"
        except OSError as e:
            print(f"[LOG WARNING] Cannot create log directory {log_dir}: {e}", file=sys.stderr)
            self._log_file = None

    @property
    def log_file(self) -> Optional[Path]:
        return self._log_file

    def set_config_service(self, config_service) -> None:
        """Attach the configuration service and load logging settings from it

        Args:
            config_service: configuration service instance
        """
        self._config_service = config_service
        self._load_settings_from_config()

    def _load_settings_from_config(self) -> None:
        if not self._config_service:
            return

        try:
            level_str = self._config_service.get_setting("logging.level", "INFO")
            self._min_level = self._string_to_log_level(level_str)
            if self._is_dev_mode():
                self._min_level = LogLevel.DEBUG

            self._console_output_enabled = self._is_dev_mode() or bool(
                self._config_service.get_setting("logging.console_output", False)
            )

            enabled = self._config_service.get_setting("logging.enabled_categories", [])
            if enabled:
                self._enabled_categories = set(LogCategory(cat) for cat in enabled)
            else:
                self._enabled_categories = set(LogCategory)

        except Exception as e:
            print(f"[LOG WARNING] Failed to load logger settings from config: {e}", file=sys.stderr)

    def _string_to_log_level(self, level_str: str) -> LogLevel:
        level_map = {
            "DEBUG": LogLevel.DEBUG,
            "INFO": LogLevel.INFO,
            "WARNING": LogLevel.WARNING,
            "ERROR": LogLevel.ERROR,
            "CRITICAL": LogLevel.CRITICAL,
        }
        return level_map.get(str(level_str).upper(), LogLevel.INFO)

    def is_debug_enabled(self) -> bool:
        return self._min_level == LogLevel.DEBUG

    def _should_log(self, level: LogLevel) -> bool:
        return level.value >= self._min_level.value

    def _format_console_message(
        self, level: LogLevel, category: LogCategory, message: str, context: Dict[str, Any] = None
    ) -> str:
        timestamp = time.strftime("%H:%M:%S")

        colors = {
            LogLevel.DEBUG: "\033[36m",
            LogLevel.INFO: "\033[32m",
            LogLevel.WARNING: "\033[33m",
            LogLevel.ERROR: "\033[31m",
            LogLevel.CRITICAL: "\033[35m",
        }
        reset = "\033[0m"
        color = colors.get(level, "")

        parts = [f"[{timestamp}] {color}{level.name}{reset} | {category.value} | {message}"]

        if context and (level.value >= LogLevel.WARNING.value or self.is_debug_enabled()):
            context_str = self._format_context_readable(context)
            if context_str:
                parts.append(f"\n  {context_str}")

        return "".join(parts)

    def _format_context_readable(self, context: Dict[str, Any]) -> str:
        parts = []
        for key, value in context.items():
            if key == "traceback":
                continue
            if isinstance(value, dict):
                parts.append(f"{key}: {json.dumps(value, default=self._safe_json_serialize)}")
            elif isinstance(value, (list, tuple)):
                parts.append(f"{key}: {', '.join(str(v) for v in value)}")
            else:
                parts.append(f"{key}: {value}")
        return " | ".join(parts)

    @staticmethod
    def _safe_json_serialize(obj):
        """JSON fallback for enums, paths and other non-serialisable values"""
        if hasattr(obj, "value") and hasattr(obj, "name"):
            return f"{type(obj).__name__}.{obj.name}"
        if hasattr(obj, "__name__"):
            return obj.__name__
        return str(obj)

    def _format_file_message(
        self,
        level: LogLevel,
        category: LogCategory,
        message: str,
        context: Dict[str, Any] = None,
        component: str = None,
    ) -> str:
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S")

        parts = [timestamp, level.name.ljust(8), category.value.ljust(11)]
        if component:
            parts.append(f"[{component}]")
        parts.append(message)

        if context:
            context_json = json.dumps(
                context, ensure_ascii=False, separators=(",", ":"), default=self._safe_json_serialize
            )
            parts.append(context_json)

        return " | ".join(parts)

    def _write_log(
        self,
        level: LogLevel,
        category: LogCategory,
        message: str,
        context: Dict[str, Any] = None,
        component: str = None,
    ) -> None:
        if category != LogCategory.PERFORMANCE and not self._should_log(level):
            return

        if category not in self._enabled_categories and level.value < LogLevel.ERROR.value:
            return

        with self._lock:
            if self._console_output_enabled or level.value >= LogLevel.WARNING.value:
                console_msg = self._format_console_message(level, category, message, context)
                stream = sys.stderr if level.value >= LogLevel.WARNING.value else sys.stdout
                print(console_msg, file=stream, flush=True)

            if self._log_file is None:
                return
            try:
                file_msg = self._format_file_message(level, category, message, context, component)
                with open(self._log_file, "a", encoding="utf-8") as f:
                    f.write(file_msg + "\n")
            except OSError as e:
                print(f"[LOG ERROR] Failed to write to log file: {e}", file=sys.stderr)

    # ============ Public API ============

    def debug(self, message: str, category: LogCategory = LogCategory.STARTUP,
              context: Dict[str, Any] = None, component: str = None) -> None:
        self._write_log(LogLevel.DEBUG, category, message, context, component)

    def info(self, message: str, category: LogCategory = LogCategory.STARTUP,
             context: Dict[str, Any] = None, component: str = None) -> None:
        self._write_log(LogLevel.INFO, category, message, context, component)

    def warning(self, message: str, category: LogCategory = LogCategory.ERROR,
                context: Dict[str, Any] = None, component: str = None) -> None:
        self._write_log(LogLevel.WARNING, category, message, context, component)

    def error(self, message: str, exception: Exception = None,
              category: LogCategory = LogCategory.ERROR,
              context: Dict[str, Any] = None, component: str = None) -> None:
        ctx = dict(context or {})
        if exception:
            ctx["exception"] = str(exception)
            ctx["exception_type"] = type(exception).__name__
        self._write_log(LogLevel.ERROR, category, message, ctx, component)

    def performance(self, operation: str, duration: float, details: Dict[str, Any] = None) -> None:
        """Record a timing measurement"""
        ctx = dict(details or {})
        ctx["duration"] = f"{duration:.3f}s"
        self.info(f"Performance: {operation} - {duration:.3f}s", LogCategory.PERFORMANCE, ctx, "performance")

    @contextmanager
    def timed(self, operation: str, details: Dict[str, Any] = None):
        """Log the duration of the block as a performance entry

        The yielded dict can be filled in by the block; its contents end up
        in the log context. Nothing is logged if the block raises.
        """
        ctx = dict(details or {})
        start = time.perf_counter()
        yield ctx
        self.performance(operation, time.perf_counter() - start, ctx)


# ============ Global singleton and compatibility interface ============

logger = UnifiedLogger()

unified_logger = logger


class EventLoggerAdapter:
    """Event-style helpers on top of UnifiedLogger"""

    def __init__(self, logger_instance: UnifiedLogger):
        self._logger = logger_instance

    def debug(self, message: str, category: LogCategory = LogCategory.STARTUP,
              context: Dict[str, Any] = None, component: str = None) -> None:
        self._logger.debug(message, category, context, component)

    def info(self, message: str, category: LogCategory = LogCategory.STARTUP,
             context: Dict[str, Any] = None, component: str = None) -> None:
        self._logger.info(message, category, context, component)

    def warning(self, message: str, category: LogCategory = LogCategory.ERROR,
                context: Dict[str, Any] = None, component: str = None) -> None:
        self._logger.warning(message, category, context, component)

    def error(self, message: str, exception: Exception = None,
              category: LogCategory = LogCategory.ERROR,
              context: Dict[str, Any] = None, component: str = None) -> None:
        self._logger.error(message, exception, category, context, component)

    def log_device_event(self, event: str, details: Dict[str, Any] = None) -> None:
        self._logger.info(f"Device: {event}", LogCategory.DEVICE, details, "device")

    def log_icon_event(self, event: str, details: Dict[str, Any] = None) -> None:
        self._logger.debug(f"Icon: {event}", LogCategory.ICON, details, "icon")

    def log_tray_event(self, event: str, details: Dict[str, Any] = None) -> None:
        self._logger.info(f"Tray: {event}", LogCategory.TRAY, details, "tray")

    def log_scheduler_event(self, event: str, details: Dict[str, Any] = None) -> None:
        self._logger.debug(f"Scheduler: {event}", LogCategory.SCHEDULER, details, "scheduler")

    def log_action_event(self, event: str, details: Dict[str, Any] = None) -> None:
        self._logger.info(f"Action: {event}", LogCategory.ACTION, details, "action")

    def log_config_event(self, event: str, details: Dict[str, Any] = None) -> None:
        self._logger.debug(f"Config: {event}", LogCategory.CONFIG, details, "config")

    def log_error(self, error: Exception, context: str) -> None:
        tb_str = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        details = {"traceback": tb_str, "error_details": str(error)}
        if hasattr(error, "to_dict"):
            details["error"] = error.to_dict()

        self._logger.error(f"Error in {context}", error, LogCategory.ERROR, context=details, component=context)

    def log_recoverable(self, error: Exception, operation: str, details: Dict[str, Any] = None) -> None:
        """Log a handled failure with the operation and what was attempted"""
        ctx = {"operation": operation, **(details or {})}
        if hasattr(error, "error_code"):
            ctx["error_code"] = error.error_code
        if getattr(error, "original_exception", None) is not None:
            ctx["cause"] = str(error.original_exception)
        self._logger.warning(f"{operation} failed: {error}", LogCategory.ERROR, ctx, operation)

    def log_startup(self) -> None:
        self._logger.info("RivalTray starting up", LogCategory.STARTUP, component="startup")

    def log_shutdown(self) -> None:
        self._logger.info("RivalTray shutting down", LogCategory.STARTUP, component="shutdown")


app_logger = EventLoggerAdapter(logger)


__all__ = [
    "logger",
    "unified_logger",
    "app_logger",
    "EventLoggerAdapter",
    "LogLevel",
    "LogCategory",
    "UnifiedLogger",
    "default_log_dir",
]
