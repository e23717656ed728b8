"""Tray / status-notifier backend interface"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional


MenuCallback = Callable[[str, Any], None]


@dataclass
class MenuEntry:
    """One node of the tray menu tree

    Entries with children become submenus, entries with an action id emit
    (action_id, payload) when clicked, entries with neither are disabled
    labels addressable by key. A None entry in a list is a separator.
    """

    text: str
    key: str = ""
    action_id: Optional[str] = None
    payload: Any = None
    children: List[Optional["MenuEntry"]] = field(default_factory=list)


class ITrayBackend(ABC):
    """Host-facing half of the tray registration

    Implementations only talk to the desktop; ordering, idempotence and
    error recovery live in TrayRegistration.
    """

    @abstractmethod
    def is_host_available(self) -> bool:
        """Whether a status-notifier host is present right now"""
        pass

    @abstractmethod
    def register(self, menu: List[Optional[MenuEntry]], on_menu: MenuCallback) -> None:
        """Create the tray item and attach the menu"""
        pass

    @abstractmethod
    def unregister(self) -> None:
        pass

    @abstractmethod
    def set_theme_path(self, theme_path: Path) -> None:
        """Declare the directory bare icon names resolve against"""
        pass

    @abstractmethod
    def set_icon_name(self, icon_name: str) -> bool:
        """Show the icon with this bare name; False if it did not resolve"""
        pass

    @abstractmethod
    def set_tooltip(self, text: str) -> None:
        pass

    @abstractmethod
    def set_labels(self, labels: Dict[str, str]) -> None:
        """Update the text of informational menu entries by key"""
        pass

    @abstractmethod
    def show_message(self, title: str, message: str, critical: bool = False) -> bool:
        pass


__all__ = ["ITrayBackend", "MenuCallback", "MenuEntry"]
