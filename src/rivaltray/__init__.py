"""RivalTray - SteelSeries mouse battery indicator for the system tray"""

__version__ = "0.3.0"
__author__ = "RivalTray contributors"
