"""RivalTray - command line entry point

Usage:
  rivaltray                  # Run the tray icon (default)
  rivaltray --once           # Sample the battery once and print it
  rivaltray --diagnostics    # Inspect the desktop session and exit
  rivaltray --config PATH    # Use another configuration file
  rivaltray --dev            # Debug logging on the console
"""

import argparse
import os
import signal
import sys
import time
from typing import List, Optional

from loguru import logger as trace_logger

from . import __version__
from .core.application import EXIT_EVENT_LOOP, EXIT_OK, RivalTrayApp, run_once
from .core.services.config.config_keys import ConfigKeys
from .core.services.config.config_service import ConfigService
from .utils import LogCategory, StartupError, app_logger, unified_logger

_STARTUP_START_TIME = time.time()

# Global reference for the signal handler
_qt_app_instance = None


def handle_shutdown(signum, frame):
    """Ask the Qt event loop to quit; cleanup runs after exec() returns"""
    app_logger.info(
        "Shutdown signal received", LogCategory.STARTUP, {"signal": signum}, "main"
    )
    if _qt_app_instance is not None:
        _qt_app_instance.quit()
    else:
        sys.exit(EXIT_OK)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="rivaltray", description="SteelSeries mouse battery indicator for the system tray"
    )
    parser.add_argument("--dev", action="store_true", help="Debug logging on the console")
    parser.add_argument("--diagnostics", action="store_true", help="Print session diagnostics and exit")
    parser.add_argument("--once", action="store_true", help="Sample the battery once and exit")
    parser.add_argument("--config", metavar="PATH", help="Configuration file to use")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def configure_logging(config: ConfigService, dev: bool) -> None:
    """Point both loggers at the configured levels"""
    unified_logger.set_config_service(config)

    trace_logger.remove()
    trace_logger.add(sys.stderr, level="DEBUG" if dev else "WARNING")
    if unified_logger.log_file is not None:
        trace_logger.add(
            unified_logger.log_file.with_name("trace.log"),
            level="DEBUG",
            rotation="1 MB",
            retention=3,
        )


def run_diagnostics(config: ConfigService) -> int:
    from PySide6.QtWidgets import QApplication

    from .utils.diagnostics import SessionDiagnostics

    qt_app = QApplication.instance() or QApplication(sys.argv[:1])
    diagnostics = SessionDiagnostics(
        tool=config.get_setting(ConfigKeys.DEVICE_TOOL, "rivalcfg"),
        renderer=config.get_setting(ConfigKeys.ICONS_RENDERER, "qtsvg"),
    )
    diagnostics.print_summary(diagnostics.generate_report())
    return EXIT_OK


def run_single_sample(config: ConfigService) -> int:
    from PySide6.QtCore import QCoreApplication

    qt_app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    exit_code = run_once(config)
    return exit_code


def run_tray(config: ConfigService) -> int:
    """Run the tray icon until quit"""
    global _qt_app_instance

    from PySide6.QtCore import QTimer
    from PySide6.QtWidgets import QApplication

    try:
        qt_app = QApplication.instance() or QApplication(sys.argv[:1])
    except RuntimeError as e:
        app_logger.log_error(e, "create_event_loop")
        return EXIT_EVENT_LOOP

    qt_app.setApplicationName("rivaltray")
    qt_app.setApplicationVersion(__version__)
    qt_app.setQuitOnLastWindowClosed(False)  # System tray app
    _qt_app_instance = qt_app

    app = RivalTrayApp(config, on_quit=qt_app.quit)
    try:
        app.initialize()
    except StartupError as e:
        app_logger.log_error(e, "startup")
        print(f"ERROR: {e.message}", file=sys.stderr)
        app.shutdown()
        _qt_app_instance = None
        return e.exit_code

    app.start()

    startup_duration = time.time() - _STARTUP_START_TIME
    app_logger.info(
        f"Application Startup Complete in {startup_duration:.2f}s",
        LogCategory.STARTUP,
        {"startup_duration_sec": round(startup_duration, 2), "headless": app.tray.is_headless},
        "main",
    )

    # Qt's loop blocks Python signal handlers; wake the interpreter regularly
    signal_timer = QTimer()
    signal_timer.timeout.connect(lambda: None)
    signal_timer.start(200)

    exit_code = qt_app.exec()

    signal_timer.stop()
    app.shutdown()
    qt_app.processEvents()
    _qt_app_instance = None
    return exit_code


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.dev:
        os.environ["RIVALTRAY_DEV"] = "1"

    config = ConfigService(args.config)
    config.start()
    configure_logging(config, args.dev)
    app_logger.log_startup()

    signal.signal(signal.SIGINT, handle_shutdown)
    signal.signal(signal.SIGTERM, handle_shutdown)

    try:
        if args.diagnostics:
            return run_diagnostics(config)
        if args.once:
            return run_single_sample(config)
        return run_tray(config)
    finally:
        config.stop()


if __name__ == "__main__":
    sys.exit(main())
