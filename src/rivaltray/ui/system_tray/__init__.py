"""System tray component module

TrayWidget talks to the tray host, TrayController owns the registration
state and turns menu clicks into requests.
"""

from .tray_controller import TrayController, TrayState, build_menu
from .tray_widget import TrayWidget

__all__ = [
    "TrayController",
    "TrayState",
    "TrayWidget",
    "build_menu",
]
