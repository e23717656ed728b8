"""System tray widget - Qt side of the tray registration

Talks to the status-notifier host through QSystemTrayIcon. Icons are set
by bare name and resolved by Qt against the declared theme path, never
by absolute file path. No ordering or recovery logic lives here.
"""

from pathlib import Path
from typing import Dict, List, Optional

from PySide6.QtCore import QObject
from PySide6.QtGui import QAction, QIcon
from PySide6.QtWidgets import QMenu, QSystemTrayIcon

from ...core.interfaces.tray import ITrayBackend, MenuCallback, MenuEntry
from ...utils import RegistrationError, RegistrationErrorKind, app_logger


class TrayWidget(ITrayBackend):
    """QSystemTrayIcon based tray backend

    Not a QObject subclass itself (ABC metaclass); owns a parent QObject
    for the Qt objects it creates.
    """

    def __init__(self, parent: Optional[QObject] = None):
        self._parent = parent
        self._tray_icon: Optional[QSystemTrayIcon] = None
        self._context_menu: Optional[QMenu] = None
        self._submenus: List[QMenu] = []
        self._labels: Dict[str, QAction] = {}
        self._on_menu: Optional[MenuCallback] = None

    # ==================== Registration ====================

    def is_host_available(self) -> bool:
        return QSystemTrayIcon.isSystemTrayAvailable()

    def register(self, menu: List[Optional[MenuEntry]], on_menu: MenuCallback) -> None:
        if not self.is_host_available():
            raise RegistrationError(
                RegistrationErrorKind.BACKEND_UNAVAILABLE, "No system tray host is available"
            )

        self.unregister()
        self._on_menu = on_menu

        self._tray_icon = QSystemTrayIcon(self._parent)
        self._tray_icon.setObjectName("rivaltray")

        self._context_menu = QMenu()
        self._populate(self._context_menu, menu)
        self._tray_icon.setContextMenu(self._context_menu)

        self._tray_icon.show()
        app_logger.log_tray_event("Tray icon registered", {"menu_entries": len(menu)})

    def unregister(self) -> None:
        if self._tray_icon:
            self._tray_icon.hide()
            self._tray_icon.setContextMenu(None)
            self._tray_icon.deleteLater()
            self._tray_icon = None

        if self._context_menu:
            self._context_menu.deleteLater()
            self._context_menu = None

        self._submenus.clear()
        self._labels.clear()
        self._on_menu = None

    # ==================== Menu ====================

    def _populate(self, menu: QMenu, entries: List[Optional[MenuEntry]]) -> None:
        for entry in entries:
            if entry is None:
                menu.addSeparator()
                continue

            if entry.children:
                submenu = menu.addMenu(entry.text)
                self._submenus.append(submenu)
                self._populate(submenu, entry.children)
                continue

            action = QAction(entry.text, menu)
            if entry.action_id is None:
                action.setEnabled(False)
            else:
                action.triggered.connect(
                    lambda checked=False, action_id=entry.action_id, payload=entry.payload: self._dispatch(
                        action_id, payload
                    )
                )
            menu.addAction(action)

            if entry.key:
                self._labels[entry.key] = action

    def _dispatch(self, action_id: str, payload) -> None:
        if self._on_menu:
            self._on_menu(action_id, payload)

    # ==================== Icon / text ====================

    def set_theme_path(self, theme_path: Path) -> None:
        directory = str(theme_path)

        fallback = [p for p in QIcon.fallbackSearchPaths() if p != directory]
        QIcon.setFallbackSearchPaths([directory] + fallback)

        theme_paths = [p for p in QIcon.themeSearchPaths() if p != directory]
        QIcon.setThemeSearchPaths([directory] + theme_paths)

    def set_icon_name(self, icon_name: str) -> bool:
        icon = QIcon.fromTheme(icon_name)
        if icon.isNull():
            return False

        if self._tray_icon:
            self._tray_icon.setIcon(icon)
        return True

    def set_tooltip(self, text: str) -> None:
        if self._tray_icon:
            self._tray_icon.setToolTip(text)

    def set_labels(self, labels: Dict[str, str]) -> None:
        for key, text in labels.items():
            action = self._labels.get(key)
            if action is not None:
                action.setText(text)

    def show_message(self, title: str, message: str, critical: bool = False) -> bool:
        if self._tray_icon and QSystemTrayIcon.supportsMessages():
            icon = (
                QSystemTrayIcon.MessageIcon.Critical
                if critical
                else QSystemTrayIcon.MessageIcon.Information
            )
            self._tray_icon.showMessage(title, message, icon, 5000)
            return True
        return False
