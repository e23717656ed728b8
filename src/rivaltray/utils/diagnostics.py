"""Session diagnostics for tray icon problems

Collects what usually explains a missing or blank tray icon: desktop and
session type, whether a StatusNotifierWatcher is on the session bus,
whether the configuration tool and rasterizers are usable, and where
icons would be written.
"""

import os
import platform
import shutil
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .unified_logger import app_logger

STATUS_NOTIFIER_WATCHER = "org.kde.StatusNotifierWatcher"


class SessionDiagnostics:
    """Environment report for ``rivaltray --diagnostics``"""

    def __init__(self, tool: str = "rivalcfg", runtime_dir: Optional[Path] = None, renderer: str = "qtsvg"):
        self.tool = tool
        self.runtime_dir = runtime_dir
        self.renderer = renderer
        self.started_at = datetime.now()

    def generate_report(self) -> Dict[str, Any]:
        report = {
            "timestamp": self.started_at.isoformat(),
            "session": self._collect_session_info(),
            "tool": self._check_tool(),
            "rasterizers": self._check_rasterizers(),
            "tray": self._check_tray(),
            "runtime_dir": self._check_runtime_dir(),
        }
        report["summary"] = self._summarize(report)
        app_logger.info(
            "Diagnostics collected",
            context={"issues": len(report["summary"]["issues"])},
            component="diagnostics",
        )
        return report

    def _collect_session_info(self) -> Dict[str, Any]:
        return {
            "platform": platform.platform(),
            "python": sys.version.split()[0],
            "desktop": os.getenv("XDG_CURRENT_DESKTOP", "Not set"),
            "session_type": os.getenv("XDG_SESSION_TYPE", "Not set"),
            "dbus_session": bool(os.getenv("DBUS_SESSION_BUS_ADDRESS")),
        }

    def _check_tool(self) -> Dict[str, Any]:
        path = shutil.which(self.tool)
        return {"name": self.tool, "path": path, "available": path is not None}

    def _check_rasterizers(self) -> Dict[str, Any]:
        from ..icons.rasterizer import QtSvgRasterizer, RsvgConvertRasterizer

        return {
            "configured": self.renderer,
            QtSvgRasterizer.name: QtSvgRasterizer().is_available(),
            RsvgConvertRasterizer.name: RsvgConvertRasterizer().is_available(),
        }

    def _check_tray(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"status_notifier_watcher": None, "system_tray_available": None}

        try:
            from PySide6.QtDBus import QDBusConnection

            bus = QDBusConnection.sessionBus()
            if bus.isConnected():
                reply = bus.interface().isServiceRegistered(STATUS_NOTIFIER_WATCHER)
                result["status_notifier_watcher"] = bool(reply.value()) if reply.isValid() else False
        except ImportError as e:
            result["dbus_error"] = str(e)

        from PySide6.QtWidgets import QApplication, QSystemTrayIcon

        if QApplication.instance() is not None:
            result["system_tray_available"] = QSystemTrayIcon.isSystemTrayAvailable()
        return result

    def _check_runtime_dir(self) -> Dict[str, Any]:
        path = self.runtime_dir
        if path is None:
            from ..icons.asset_cache import runtime_base_dir

            path = runtime_base_dir()
        parent = path.parent
        return {
            "path": str(path),
            "xdg_runtime_dir": os.getenv("XDG_RUNTIME_DIR", "Not set"),
            "parent_writable": parent.is_dir() and os.access(parent, os.W_OK),
            "exists": path.exists(),
        }

    def _summarize(self, report: Dict[str, Any]) -> Dict[str, Any]:
        issues: List[str] = []

        if not report["tool"]["available"]:
            issues.append(f"{self.tool} is not on PATH")
        rasterizers = report["rasterizers"]
        if not rasterizers.get(rasterizers["configured"], False):
            issues.append(f"Configured renderer '{rasterizers['configured']}' is not usable")
        if report["tray"]["status_notifier_watcher"] is False:
            issues.append(f"{STATUS_NOTIFIER_WATCHER} is not registered on the session bus")
        if report["tray"]["system_tray_available"] is False:
            issues.append("Qt reports no system tray")
        if not report["runtime_dir"]["parent_writable"]:
            issues.append("Runtime directory parent is not writable")

        return {"status": "ok" if not issues else "issues", "issues": issues}

    def print_summary(self, report: Dict[str, Any]) -> None:
        session = report["session"]
        tool = report["tool"]
        tray = report["tray"]
        runtime = report["runtime_dir"]

        print("=== RivalTray Diagnostics ===")
        print(f"Desktop:        {session['desktop']} ({session['session_type']})")
        print(f"Platform:       {session['platform']}, Python {session['python']}")
        print(f"Tool:           {tool['name']} -> {tool['path'] or 'not found'}")
        print(
            "Rasterizers:    "
            + ", ".join(f"{name}={'yes' if ok else 'no'}" for name, ok in report["rasterizers"].items()
                        if name != "configured")
            + f" (configured: {report['rasterizers']['configured']})"
        )
        print(f"StatusNotifier: {_yes_no(tray['status_notifier_watcher'])}")
        print(f"Qt tray:        {_yes_no(tray['system_tray_available'])}")
        print(f"Runtime dir:    {runtime['path']} (XDG_RUNTIME_DIR={runtime['xdg_runtime_dir']})")

        issues = report["summary"]["issues"]
        if issues:
            print("\nIssues:")
            for issue in issues:
                print(f"  - {issue}")
        else:
            print("\nNo issues found")


def _yes_no(value: Optional[bool]) -> str:
    if value is None:
        return "unknown"
    return "yes" if value else "no"
